"""
Source-to-target path mapping for compiled report artifacts.
Targets mirror the source tree: only the trailing suffix is rewritten.
"""
from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Set


class SuffixMapping:
    """Maps ``<rel>/<name><source_suffix>`` to ``<target_dir>/<rel>/<name><target_suffix>``."""

    def __init__(self, source_suffix: str, target_suffix: str) -> None:
        self.source_suffix = source_suffix
        self.target_suffix = target_suffix

    def __repr__(self) -> str:
        return f"SuffixMapping({self.source_suffix!r}, {self.target_suffix!r})"

    def matches(self, source_rel: str | Path) -> bool:
        return PurePosixPath(Path(source_rel).as_posix()).name.endswith(self.source_suffix)

    def target_files(self, target_dir: Path, source_rel: str | Path) -> Set[Path]:
        rel = Path(source_rel).as_posix()
        if not self.matches(rel):
            return set()
        base = rel[: len(rel) - len(self.source_suffix)]
        return {Path(target_dir) / (base + self.target_suffix)}
