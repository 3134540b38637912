"""
Minimal build project and incremental build context.

Downstream packaging reads ``BuildProject.resources``; IDE-style incremental
builds supply a ``BuildContext`` naming the paths that changed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List


@dataclass(frozen=True)
class Resource:
    directory: str


@dataclass
class BuildProject:
    basedir: Path
    build_directory: Path
    resources: List[Resource] = field(default_factory=list)
    compile_source_roots: List[str] = field(default_factory=list)
    compile_classpath_elements: List[str] = field(default_factory=list)

    def add_resource(self, resource: Resource) -> None:
        if resource not in self.resources:
            self.resources.append(resource)

    def add_compile_source_root(self, path: str) -> None:
        if path not in self.compile_source_roots:
            self.compile_source_roots.append(path)


class BuildContext:
    def __init__(self, incremental: bool = False, changed: Iterable[Path] = ()) -> None:
        self.incremental = incremental
        self.changed = [Path(p).resolve() for p in changed]
        self.refreshed: List[Path] = []

    def is_incremental(self) -> bool:
        return self.incremental

    def has_delta(self, path: Path) -> bool:
        """True when a non-incremental build, or something under *path* changed."""
        if not self.incremental:
            return True
        root = Path(path).resolve()
        for changed in self.changed:
            if changed == root or root in changed.parents:
                return True
        return False

    def refresh(self, path: Path) -> None:
        self.refreshed.append(Path(path))
