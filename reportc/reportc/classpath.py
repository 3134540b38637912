from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

logger = logging.getLogger(__name__)


def build_classpath_string(elements: Iterable[str], additional: Optional[str] = None) -> str:
    """Join classpath elements with the platform path separator.

    *additional* is appended verbatim after the elements; it may itself hold
    several separator-delimited entries.
    """
    classpath = os.pathsep.join(str(e) for e in elements)
    if additional:
        if classpath:
            classpath += os.pathsep
        classpath += additional
    return classpath


def classpath_entries(elements: Iterable[str], additional: Optional[str] = None) -> List[str]:
    """Flatten elements plus *additional* into absolute classpath entries."""
    entries: List[str] = []
    raw = [str(e) for e in elements]
    if additional:
        raw.extend(part for part in additional.split(os.pathsep) if part)
    for element in raw:
        resolved = str(Path(element).expanduser().resolve())
        entries.append(resolved)
        logger.debug("Added to classpath %s", element)
    return entries
