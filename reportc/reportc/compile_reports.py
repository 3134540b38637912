"""
Incremental compilation of report designs.

One pass: validate directories, register the output directory as a project
resource, find stale designs, overlay the engine configuration, compile each
stale design with the external engine, restore the configuration.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Set, Tuple

from .classpath import build_classpath_string, classpath_entries
from .config import CompileReportsConfig
from .context import (
    COMPILER_CLASS,
    COMPILER_CLASSPATH,
    COMPILER_KEEP_JAVA_FILE,
    COMPILER_TEMP_DIR,
    COMPILER_XML_VALIDATION,
    JAVAC_ARGUMENTS,
    JAVAC_EXECUTABLE,
    EngineContext,
    property_overlay,
)
from .engine import ReportEngine, engine_classpath
from .errors import BuildFailure, EngineError, InclusionScanError, NoSuchCompilerError
from .mapping import SuffixMapping
from .project import BuildContext, BuildProject, Resource
from .scan import StaleSourceScanner
from .toolchain import find_toolchain, get_compiler

logger = logging.getLogger(__name__)

COMPILER_ID = "javac"


def _flag(value: bool) -> str:
    return "true" if value else "false"


@dataclass
class CompileResult:
    stale: List[Path] = field(default_factory=list)
    compiled: List[Tuple[Path, Path]] = field(default_factory=list)
    skipped: bool = False

    @property
    def up_to_date(self) -> bool:
        return not self.stale


class ReportCompiler:
    def __init__(
        self,
        config: CompileReportsConfig,
        engine: ReportEngine,
        project: Optional[BuildProject] = None,
        build_context: Optional[BuildContext] = None,
        context: Optional[EngineContext] = None,
    ) -> None:
        self.config = config
        self.engine = engine
        self.project = project
        self.build_context = build_context or BuildContext()
        self.context = context or getattr(engine, "context", None) or EngineContext.get_instance()

    def execute(self) -> CompileResult:
        cfg = self.config
        logger.debug("java_directory = %s", cfg.java_directory)
        logger.debug("source_directory = %s", cfg.source_directory)
        logger.debug("source_file_ext = %s", cfg.source_file_ext)
        logger.info("output_directory = %s", cfg.output_directory)
        logger.debug("output_file_ext = %s", cfg.output_file_ext)
        logger.debug("keep_java = %s", cfg.keep_java)
        logger.debug("xml_validation = %s", cfg.xml_validation)
        logger.debug("compiler = %s", cfg.compiler)
        logger.debug("classpath_elements = %s", cfg.classpath_elements)
        logger.debug("additional_classpath = %s", cfg.additional_classpath)
        logger.info("compiler.source = %s", cfg.source)
        logger.info("compiler.target = %s", cfg.target)

        self.check_dir(cfg.java_directory, "Directory for generated java sources", True)
        self.check_dir(cfg.source_directory, "Source directory", False)
        self.check_dir(cfg.output_directory, "Target directory", True)

        result = CompileResult()
        if self.project is not None:
            logger.info("Adding output directory as resource to project: %s", cfg.output_directory)
            self.project.add_resource(Resource(directory=str(Path(cfg.output_directory).resolve())))
            if self.build_context.is_incremental() and not self.build_context.has_delta(self.project.basedir):
                result.skipped = True
                return result

        mapping = SuffixMapping(cfg.source_file_ext, cfg.output_file_ext)
        stale = self.scan_source_dir(mapping)
        result.stale = sorted(stale)
        if not stale:
            logger.info("Nothing to compile - all reports are up to date")
        else:
            result.compiled = self.compile(stale, mapping)
            if cfg.keep_java and self.project is not None:
                self.project.add_compile_source_root(str(Path(cfg.java_directory).resolve()))

        logger.info("Refreshing output directory in build context: %s", cfg.output_directory)
        self.build_context.refresh(cfg.output_directory)
        return result

    def _engine_properties(self, classpath: str) -> dict:
        cfg = self.config
        try:
            compiler = get_compiler(COMPILER_ID)
        except NoSuchCompilerError as exc:
            raise BuildFailure(str(exc)) from exc
        logger.debug("Using compiler '%s'.", COMPILER_ID)
        options = compiler.init(
            debug=cfg.debug,
            encoding=cfg.encoding,
            toolchain=find_toolchain("jdk", cfg.java_home),
            source=cfg.source,
            target=cfg.target,
        )
        return {
            COMPILER_CLASSPATH: classpath,
            COMPILER_TEMP_DIR: str(Path(cfg.java_directory).resolve()),
            COMPILER_KEEP_JAVA_FILE: _flag(cfg.keep_java),
            COMPILER_CLASS: cfg.compiler,
            COMPILER_XML_VALIDATION: _flag(cfg.xml_validation),
            JAVAC_EXECUTABLE: options.executable,
            JAVAC_ARGUMENTS: options.arguments_string(),
        }

    def compile(self, files: Iterable[Path], mapping: SuffixMapping) -> List[Tuple[Path, Path]]:
        cfg = self.config
        files = sorted(files)
        classpath = build_classpath_string(cfg.classpath_elements, cfg.additional_classpath)
        logger.debug("compiler classpath = %s", classpath)
        logger.info("Compiling %d report design files.", len(files))

        compiled: List[Tuple[Path, Path]] = []
        entries = classpath_entries(cfg.classpath_elements, cfg.additional_classpath)
        with engine_classpath(self.engine, entries), property_overlay(self.context):
            self.context.set_properties(self._engine_properties(classpath))
            for key, value in cfg.additional_properties.items():
                self.context.set_property(key, value)
                logger.debug("Added property: %s:%s", key, value)

            for src in files:
                src_name = self._relative_to_root(src)
                try:
                    dest = next(iter(mapping.target_files(cfg.output_directory, src_name)))
                except StopIteration:
                    raise BuildFailure(f"Error compiling report design : {src}", src) from None
                dest_parent = dest.parent
                if not dest_parent.exists():
                    try:
                        dest_parent.mkdir(parents=True, exist_ok=True)
                    except OSError as exc:
                        raise BuildFailure(f"Could not create directory {dest_parent}", dest_parent) from exc
                    logger.debug("Created directory %s", dest_parent)
                logger.info("Compiling report file: %s", src_name)
                try:
                    self.engine.compile_report_to_file(Path(src).resolve(), dest.resolve())
                except EngineError as exc:
                    raise BuildFailure(f"Error compiling report design : {src}", src) from exc
                compiled.append((Path(src), dest))

        logger.info("Compiled %d report design files.", len(files))
        return compiled

    def scan_source_dir(self, mapping: SuffixMapping) -> Set[Path]:
        """Determine the designs to compile; the scanner handles recursion."""
        scanner = StaleSourceScanner(
            self.config.stale_millis,
            includes=self.config.includes,
            excludes=self.config.excludes,
        )
        scanner.add_mapping(mapping)
        try:
            return scanner.included_sources(self.config.source_directory, self.config.output_directory)
        except InclusionScanError as exc:
            raise BuildFailure(str(exc), exc.path) from exc

    def _relative_to_root(self, file: Path) -> str:
        root = Path(self.config.source_directory).resolve()
        try:
            file_path = Path(file).resolve()
        except OSError as exc:
            raise BuildFailure(f"Could not resolve path of file {file}", Path(file)) from exc
        try:
            return file_path.relative_to(root).as_posix()
        except ValueError:
            raise BuildFailure(f"File is not in source root: {file}", Path(file)) from None

    @staticmethod
    def check_dir(directory: Path, desc: str, is_target: bool) -> None:
        directory = Path(directory)
        if directory.exists() and not directory.is_dir():
            raise BuildFailure(f"{desc} is not a directory : {directory}", directory)
        if not directory.exists() and is_target:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise BuildFailure(f"{desc} could not be created : {directory}", directory) from exc
        if is_target and not os.access(directory, os.W_OK):
            raise BuildFailure(f"{desc} is not writable : {directory}", directory)
