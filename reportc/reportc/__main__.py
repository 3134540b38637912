from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from . import __version__ as _version
from .compile_reports import CompileResult, ReportCompiler
from .config import CompileReportsConfig, build_config, load_config
from .context import EngineContext
from .engine import ExternalReportEngine
from .errors import ConfigError, ReportcError
from .mapping import SuffixMapping
from .project import BuildContext, BuildProject
from .toolchain import find_toolchain


class PropertyFlagError(ValueError):
    pass


def _parse_properties(items: list[str] | None) -> dict[str, str]:
    props: dict[str, str] = {}
    for item in items or []:
        if "=" not in item:
            raise PropertyFlagError(f"Invalid property '{item}', expected key=value")
        key, value = item.split("=", 1)
        key = key.strip()
        if not key:
            raise PropertyFlagError(f"Invalid property '{item}', empty key")
        props[key] = value
    return props


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default=None, metavar="path", help="JSON config file; flags override it")
    p.add_argument("--basedir", default=None, help="Project base directory (default: .)")
    p.add_argument("--build-dir", dest="build_directory", default=None, help="Build directory (default: <basedir>/target)")
    p.add_argument("--source-dir", dest="source_directory", default=None, help="Report design directory (default: src/main/jasperreports)")
    p.add_argument("--output-dir", dest="output_directory", default=None, help="Compiled report directory")
    p.add_argument("--java-dir", dest="java_directory", default=None, help="Directory for generated java sources")
    p.add_argument("--source-ext", dest="source_file_ext", default=None, help="Report design extension (default: .jrxml)")
    p.add_argument("--output-ext", dest="output_file_ext", default=None, help="Compiled report extension (default: .jasper)")
    p.add_argument("--stale-millis", dest="stale_millis", type=int, default=None)
    p.add_argument("--include", dest="includes", action="append", default=None, help="Include glob (repeatable)")
    p.add_argument("--exclude", dest="excludes", action="append", default=None, help="Exclude glob (repeatable)")


def _add_compile_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--keep-java", dest="keep_java", action="store_true", default=None)
    p.add_argument("--no-keep-java", dest="keep_java", action="store_false")
    p.add_argument("--xml-validation", dest="xml_validation", action="store_true", default=None)
    p.add_argument("--no-xml-validation", dest="xml_validation", action="store_false")
    p.add_argument("--debug", dest="debug", action="store_true", default=None, help="javac -g (default)")
    p.add_argument("--no-debug", dest="debug", action="store_false")
    p.add_argument("--compiler", default=None, help="Report engine compiler class")
    p.add_argument("--classpath-element", dest="classpath_elements", action="append", default=None, help="Compile classpath entry (repeatable)")
    p.add_argument("--additional-classpath", dest="additional_classpath", default=None)
    p.add_argument("-D", dest="properties", action="append", default=[], metavar="key=value", help="Additional engine property (repeatable)")
    p.add_argument("--java-source", dest="source", default=None, help="javac -source (default: 1.5)")
    p.add_argument("--java-target", dest="target", default=None, help="javac -target (default: 1.5)")
    p.add_argument("--encoding", default=None, help="javac -encoding")
    p.add_argument("--java-home", dest="java_home", default=None, help="JDK home (default: $JAVA_HOME)")
    p.add_argument(
        "--engine-main",
        dest="engine_main_class",
        default=None,
        help=(
            "Main class of the report engine launcher. --debug, --encoding, --java-source and "
            "--java-target reach javac only through the reportc.javac.executable and "
            "reportc.javac.arguments properties, which the launcher must apply; "
            "the engine compiler class ignores them"
        ),
    )
    p.add_argument("--timeout", dest="engine_timeout", type=float, default=None, metavar="seconds", help="Per-report engine timeout")
    p.add_argument("--incremental", action="store_true", default=False, help="Skip the pass unless --changed touches the project")
    p.add_argument("--changed", action="append", default=[], metavar="path", help="Changed path for --incremental (repeatable)")
    p.add_argument("--json", action="store_true", default=False, help="Print machine-readable result JSON")


_CONFIG_KEYS = tuple(CompileReportsConfig.model_fields)


def config_from_args(args: argparse.Namespace) -> CompileReportsConfig:
    overrides = {k: getattr(args, k) for k in _CONFIG_KEYS if getattr(args, k, None) is not None}
    if args.config:
        cfg = load_config(Path(args.config), **overrides)
    else:
        cfg = build_config(overrides)
    cfg.additional_properties.update(_parse_properties(getattr(args, "properties", None)))
    return cfg


def make_engine(cfg: CompileReportsConfig) -> ExternalReportEngine:
    if not cfg.engine_main_class:
        raise ConfigError("no report engine main class configured (use --engine-main or engine_main_class)")
    java = "java"
    toolchain = find_toolchain("jdk", cfg.java_home)
    if toolchain is not None:
        java = toolchain.find_tool("java") or java
    return ExternalReportEngine(
        cfg.engine_main_class,
        context=EngineContext.get_instance(),
        java_executable=java,
        timeout=cfg.engine_timeout,
    )


def _result_to_dict(result: CompileResult, project: BuildProject) -> dict[str, Any]:
    return {
        "status": "skipped" if result.skipped else "ok",
        "stale": [str(p) for p in result.stale],
        "compiled": [{"source": str(s), "dest": str(d)} for s, d in result.compiled],
        "resources": [r.directory for r in project.resources],
        "compile_source_roots": list(project.compile_source_roots),
    }


def _run_compile(args: argparse.Namespace) -> int:
    cfg = config_from_args(args)
    engine = make_engine(cfg)
    project = BuildProject(
        basedir=cfg.basedir,
        build_directory=cfg.build_directory,
        compile_classpath_elements=list(cfg.classpath_elements),
    )
    build_context = BuildContext(incremental=args.incremental, changed=[Path(p) for p in args.changed])
    result = ReportCompiler(cfg, engine, project=project, build_context=build_context).execute()

    if args.json:
        print(json.dumps(_result_to_dict(result, project), indent=2, sort_keys=True))
    elif result.skipped:
        print("ok: no changes, skipped")
    elif result.up_to_date:
        print("ok: all reports are up to date")
    else:
        print(f"ok: compiled {len(result.compiled)} report design files")
    return 0


def _run_scan(args: argparse.Namespace) -> int:
    cfg = config_from_args(args)
    mapping = SuffixMapping(cfg.source_file_ext, cfg.output_file_ext)
    compiler = ReportCompiler(cfg, engine=None, context=EngineContext())
    ReportCompiler.check_dir(cfg.source_directory, "Source directory", False)
    for src in sorted(compiler.scan_source_dir(mapping)):
        rel = Path(src).resolve().relative_to(Path(cfg.source_directory).resolve())
        for dest in sorted(mapping.target_files(cfg.output_directory, rel)):
            print(f"stale: {rel.as_posix()} -> {dest}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="reportc", description="Incremental report design compiler")
    parser.add_argument("--version", action="version", version=f"%(prog)s {_version}")
    parser.add_argument("-v", "--verbose", action="store_true", default=False, help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    compile_parser = subparsers.add_parser("compile", help="Compile stale report designs")
    _add_config_args(compile_parser)
    _add_compile_args(compile_parser)

    scan_parser = subparsers.add_parser("scan", help="List stale report designs without compiling")
    _add_config_args(scan_parser)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        if args.command == "compile":
            return _run_compile(args)
        if args.command == "scan":
            return _run_scan(args)
    except PropertyFlagError as exc:
        print(f"failed: {exc}")
        return 1
    except ReportcError as exc:
        print(f"failed: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
