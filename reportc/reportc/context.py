"""
Process-wide report engine configuration.

The engine reads its compiler settings from a flat string->string property map.
A compile pass overlays its own settings and must leave the map exactly as it
found it.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Mapping, Optional

logger = logging.getLogger(__name__)

COMPILER_CLASSPATH = "net.sf.jasperreports.compiler.classpath"
COMPILER_TEMP_DIR = "net.sf.jasperreports.compiler.temp.dir"
COMPILER_KEEP_JAVA_FILE = "net.sf.jasperreports.compiler.keep.java.file"
COMPILER_CLASS = "net.sf.jasperreports.compiler.class"
COMPILER_XML_VALIDATION = "net.sf.jasperreports.compiler.xml.validation"
JAVAC_EXECUTABLE = "reportc.javac.executable"
JAVAC_ARGUMENTS = "reportc.javac.arguments"


class EngineContext:
    _instance: Optional["EngineContext"] = None

    def __init__(self, properties: Optional[Mapping[str, str]] = None) -> None:
        self.properties: Dict[str, str] = dict(properties or {})

    @classmethod
    def get_instance(cls) -> "EngineContext":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def get_property(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.properties.get(key, default)

    def set_property(self, key: str, value: str) -> None:
        self.properties[key] = str(value)

    def set_properties(self, values: Mapping[str, str]) -> None:
        for key, value in values.items():
            self.set_property(key, value)


@contextmanager
def property_overlay(context: EngineContext) -> Iterator[EngineContext]:
    """Snapshot *context* properties and restore them on exit, even on error."""
    backup = dict(context.properties)
    try:
        yield context
    finally:
        context.properties.clear()
        context.properties.update(backup)
        logger.debug("restored %d engine properties", len(backup))
