"""
Stale source detection.

A source file is included when some mapping yields a target for it and at least
one of those targets is missing or older than the source (by more than
``stale_millis``). Nothing is cached; timestamps are read on every scan.
"""
from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Set

from .errors import InclusionScanError
from .mapping import SuffixMapping

logger = logging.getLogger(__name__)

DEFAULT_INCLUDES = ("**/*",)


def _mtime_millis(path: Path) -> int:
    return path.stat().st_mtime_ns // 1_000_000


def _matches_pattern(rel: str, pattern: str) -> bool:
    if fnmatch.fnmatchcase(rel, pattern):
        return True
    # "**/" also matches files at the scan root
    return pattern.startswith("**/") and fnmatch.fnmatchcase(rel, pattern[3:])


def _matches_any(rel: str, patterns: Iterable[str]) -> bool:
    return any(_matches_pattern(rel, pattern) for pattern in patterns)


class StaleSourceScanner:
    def __init__(
        self,
        stale_millis: int = 0,
        includes: Optional[Iterable[str]] = None,
        excludes: Optional[Iterable[str]] = None,
    ) -> None:
        self.stale_millis = stale_millis
        self.includes: List[str] = list(includes) if includes else list(DEFAULT_INCLUDES)
        self.excludes: List[str] = list(excludes) if excludes else []
        self._mappings: List[SuffixMapping] = []

    def add_mapping(self, mapping: SuffixMapping) -> None:
        self._mappings.append(mapping)

    def _is_stale(self, source: Path, targets: Set[Path]) -> bool:
        source_ms = _mtime_millis(source)
        for target in targets:
            if not target.exists():
                return True
            if source_ms > _mtime_millis(target) + self.stale_millis:
                return True
        return False

    def included_sources(self, source_dir: Path, target_dir: Path) -> Set[Path]:
        """Return the stale source files under *source_dir*."""
        source_dir = Path(source_dir)
        target_dir = Path(target_dir)
        if not source_dir.is_dir():
            logger.debug("source directory %s does not exist; nothing to scan", source_dir)
            return set()

        stale: Set[Path] = set()
        try:
            for entry in sorted(source_dir.rglob("*")):
                if not entry.is_file():
                    continue
                rel = entry.relative_to(source_dir).as_posix()
                if not _matches_any(rel, self.includes) or _matches_any(rel, self.excludes):
                    continue
                targets: Set[Path] = set()
                for mapping in self._mappings:
                    targets |= mapping.target_files(target_dir, rel)
                if not targets:
                    continue
                if self._is_stale(entry, targets):
                    logger.debug("stale: %s", rel)
                    stale.add(entry)
        except OSError as exc:
            raise InclusionScanError(
                f"Error scanning source root: '{source_dir}' for stale files to recompile.",
                source_dir,
            ) from exc
        return stale
