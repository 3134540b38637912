from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from reportc.context import EngineContext
from reportc.errors import EngineError

BASE_NS = 1_700_000_000 * 1_000_000_000


def write_at(path: Path, text: str, offset_s: float = 0.0) -> Path:
    """Write *path* and pin its mtime to a fixed base plus *offset_s*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    ns = BASE_NS + int(offset_s * 1_000_000_000)
    os.utime(path, ns=(ns, ns))
    return path


class RecordingEngine:
    """Stands in for the external engine; writes a placeholder artifact per call."""

    def __init__(self, context: Optional[EngineContext] = None, fail_on: Optional[str] = None):
        self.context = context or EngineContext()
        self.classpath: List[str] = []
        self.fail_on = fail_on
        self.calls: List[Tuple[Path, Path]] = []
        self.properties_seen: List[Dict[str, str]] = []
        self.classpaths_seen: List[List[str]] = []

    def compile_report_to_file(self, source: Path, dest: Path) -> None:
        self.calls.append((Path(source), Path(dest)))
        self.properties_seen.append(dict(self.context.properties))
        self.classpaths_seen.append(list(self.classpath))
        if self.fail_on and Path(source).name == self.fail_on:
            raise EngineError("bad design", Path(source))
        Path(dest).write_bytes(b"compiled")


class MinimalEngine:
    """An engine exposing nothing beyond ``compile_report_to_file``."""

    def __init__(self):
        self.calls: List[Tuple[Path, Path]] = []

    def compile_report_to_file(self, source: Path, dest: Path) -> None:
        self.calls.append((Path(source), Path(dest)))
        Path(dest).write_bytes(b"compiled")
