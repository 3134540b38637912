from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError

DEFAULT_SOURCE_DIRECTORY = "src/main/jasperreports"
DEFAULT_BUILD_DIRECTORY = "target"
DEFAULT_JAVA_DIRECTORY = "jasperreports/java"
DEFAULT_OUTPUT_DIRECTORY = "generated-resources/jasper"
DEFAULT_COMPILER = "net.sf.jasperreports.engine.design.JRJavacCompiler"


class CompileReportsConfig(BaseModel):
    """Settings for one compile pass. Relative paths resolve against ``basedir``."""
    model_config = ConfigDict(extra="forbid")

    basedir: Path = Path(".")
    build_directory: Optional[Path] = None
    java_directory: Optional[Path] = None
    output_directory: Optional[Path] = None
    source_directory: Optional[Path] = None
    source_file_ext: str = ".jrxml"
    output_file_ext: str = ".jasper"
    keep_java: bool = False
    xml_validation: bool = True
    compiler: str = DEFAULT_COMPILER
    classpath_elements: List[str] = Field(default_factory=list)
    additional_classpath: Optional[str] = None
    additional_properties: Dict[str, str] = Field(default_factory=dict)
    source: str = "1.5"
    target: str = "1.5"
    encoding: Optional[str] = None
    debug: bool = True
    stale_millis: int = 0
    includes: Optional[List[str]] = None
    excludes: Optional[List[str]] = None
    java_home: Optional[Path] = None
    engine_main_class: Optional[str] = None
    engine_timeout: Optional[float] = None

    @field_validator("source_file_ext", "output_file_ext")
    @classmethod
    def validate_suffix(cls, value: str) -> str:
        if not value:
            raise ValueError("file extension must be non-empty")
        return value

    @field_validator("stale_millis")
    @classmethod
    def validate_stale_millis(cls, value: int) -> int:
        if value < 0:
            raise ValueError("stale_millis must be >= 0")
        return value

    @field_validator("engine_timeout")
    @classmethod
    def validate_engine_timeout(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("engine_timeout must be > 0")
        return value

    @field_validator("additional_properties", mode="before")
    @classmethod
    def stringify_properties(cls, value):
        if isinstance(value, dict):
            return {str(k): str(v).lower() if isinstance(v, bool) else str(v) for k, v in value.items()}
        return value

    @model_validator(mode="after")
    def resolve_directories(self) -> "CompileReportsConfig":
        base = self.basedir
        build = self._under(base, self.build_directory or Path(DEFAULT_BUILD_DIRECTORY))
        self.build_directory = build
        self.java_directory = self._under(base, self.java_directory or build / DEFAULT_JAVA_DIRECTORY)
        self.output_directory = self._under(base, self.output_directory or build / DEFAULT_OUTPUT_DIRECTORY)
        self.source_directory = self._under(base, self.source_directory or Path(DEFAULT_SOURCE_DIRECTORY))
        return self

    @staticmethod
    def _under(base: Path, path: Path) -> Path:
        path = Path(path).expanduser()
        return path if path.is_absolute() else base / path


def load_config(path: Path, **overrides) -> CompileReportsConfig:
    """Load a JSON config file; a relative ``basedir`` is taken from the file's directory."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"config file not readable: {exc}", path) from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid json in config: {exc}", path) from exc
    if not isinstance(data, dict):
        raise ConfigError("config must be a JSON object", path)
    basedir = Path(data.get("basedir") or ".")
    if not basedir.is_absolute():
        data["basedir"] = str(path.resolve().parent / basedir)
    data.update({k: v for k, v in overrides.items() if v is not None})
    return build_config(data, path)


def build_config(data: Dict, path: Optional[Path] = None) -> CompileReportsConfig:
    try:
        return CompileReportsConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}", path) from exc
