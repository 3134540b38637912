# reportc/reportc/errors.py
from __future__ import annotations

from pathlib import Path


class ReportcError(Exception):
    """Base class for all errors in the reportc application."""
    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{super().__str__()} [{self.path}]"
        return super().__str__()

class BuildFailure(ReportcError):
    """Fatal failure of a compile pass; the remaining files are not compiled."""
    pass

class ConfigError(ReportcError):
    """Invalid or unreadable configuration."""
    pass

class InclusionScanError(ReportcError):
    """The source tree could not be scanned for stale files."""
    pass

class EngineError(ReportcError):
    """The external report engine rejected or failed a report design."""
    def __init__(self, message: str, path: Path | None = None, output: str = ""):
        super().__init__(message, path)
        self.output = output

class NoSuchCompilerError(ReportcError):
    def __init__(self, compiler_id: str):
        super().__init__(f"No such compiler '{compiler_id}'.")
        self.compiler_id = compiler_id
