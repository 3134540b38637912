"""
Bridge to the external report-compilation engine.

The engine is a JVM process: it parses the report design, generates Java
sources for its expressions, compiles them, and serializes the compiled report.
Everything it needs comes from the engine context properties at call time.
"""
from __future__ import annotations

import logging
import os
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Sequence

from .context import COMPILER_CLASSPATH, EngineContext
from .errors import EngineError

logger = logging.getLogger(__name__)


class ReportEngine(Protocol):
    def compile_report_to_file(self, source: Path, dest: Path) -> None:
        ...


@contextmanager
def engine_classpath(engine: ReportEngine, entries: Sequence[str]) -> Iterator[ReportEngine]:
    """Put *entries* in front of the engine's own classpath for the duration.

    Engines without a ``classpath`` attribute are left untouched.
    """
    previous = getattr(engine, "classpath", None)
    if previous is None:
        yield engine
        return
    previous = list(previous)
    engine.classpath = list(entries) + [e for e in previous if e not in entries]
    try:
        yield engine
    finally:
        engine.classpath = previous


def _entry_key(entry: str) -> str:
    return str(Path(entry).expanduser().resolve())


class ExternalReportEngine:
    """Runs ``java -cp ... -Dk=v ... <main_class> <source> <dest>`` per report."""

    def __init__(
        self,
        main_class: str,
        context: Optional[EngineContext] = None,
        java_executable: str = "java",
        classpath: Optional[Sequence[str]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.main_class = main_class
        self.context = context or EngineContext.get_instance()
        self.java_executable = java_executable
        self.classpath: List[str] = list(classpath or [])
        self.timeout = timeout

    def build_command(self, source: Path, dest: Path) -> List[str]:
        cmd: List[str] = [self.java_executable]
        entries: List[str] = []
        seen = set()
        compiler_cp = self.context.get_property(COMPILER_CLASSPATH) or ""
        for entry in self.classpath + compiler_cp.split(os.pathsep):
            if not entry:
                continue
            key = _entry_key(entry)
            if key in seen:
                continue
            seen.add(key)
            entries.append(entry)
        if entries:
            cmd += ["-cp", os.pathsep.join(entries)]
        for key in sorted(self.context.properties):
            cmd.append(f"-D{key}={self.context.properties[key]}")
        cmd += [self.main_class, str(source), str(dest)]
        return cmd

    def compile_report_to_file(self, source: Path, dest: Path) -> None:
        cmd = self.build_command(source, dest)
        logger.debug("engine command: %s", cmd)
        try:
            out = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise EngineError(f"Could not run report engine: {exc}", Path(source)) from exc
        if out.returncode != 0:
            output = (out.stderr or "") + (out.stdout or "")
            raise EngineError(
                f"Report engine exited with code {out.returncode}: {output.strip()}",
                Path(source),
                output=output,
            )
        if out.stdout:
            logger.debug(out.stdout.rstrip())
