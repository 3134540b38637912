"""
JDK toolchain lookup and javac option assembly.

The report engine generates Java sources for report expressions and hands them
to javac; this module decides which javac and which flags.
"""
from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .errors import NoSuchCompilerError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Toolchain:
    type: str
    home: Path

    def find_tool(self, name: str) -> Optional[str]:
        for candidate in (name, name + ".exe"):
            path = self.home / "bin" / candidate
            if path.is_file():
                return str(path)
        return None


def find_toolchain(toolchain_type: str = "jdk", java_home: Optional[Path] = None) -> Optional[Toolchain]:
    """Return the jdk toolchain from *java_home* or ``JAVA_HOME``, if either is set."""
    if toolchain_type != "jdk":
        return None
    home = java_home or os.environ.get("JAVA_HOME")
    if not home:
        return None
    return Toolchain(type=toolchain_type, home=Path(home))


@dataclass(frozen=True)
class JavacOptions:
    executable: str
    arguments: List[str] = field(default_factory=list)

    def arguments_string(self) -> str:
        return " ".join(self.arguments)


class JavacCompiler:
    compiler_id = "javac"

    def init(
        self,
        debug: bool = True,
        encoding: Optional[str] = None,
        toolchain: Optional[Toolchain] = None,
        source: Optional[str] = None,
        target: Optional[str] = None,
    ) -> JavacOptions:
        executable = None
        if toolchain is not None:
            executable = toolchain.find_tool("javac")
            if executable:
                logger.info("Toolchain in reportc: %s", toolchain.home)
        if executable is None:
            executable = shutil.which("javac") or "javac"

        args: List[str] = ["-g"] if debug else ["-g:none"]
        if encoding:
            args += ["-encoding", encoding]
        if source:
            args += ["-source", source]
        if target:
            args += ["-target", target]
        return JavacOptions(executable=executable, arguments=args)


_COMPILERS: Dict[str, Callable[[], JavacCompiler]] = {
    JavacCompiler.compiler_id: JavacCompiler,
}


def get_compiler(compiler_id: str) -> JavacCompiler:
    try:
        factory = _COMPILERS[compiler_id]
    except KeyError:
        raise NoSuchCompilerError(compiler_id) from None
    return factory()
