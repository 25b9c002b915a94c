from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    PAYLOAD_ERROR = 3
    SOURCE_ERROR = 4
    RUNTIME_ERROR = 5


class ExplorerError(Exception):
    """Base error for the graph explorer."""


class ConfigError(ExplorerError):
    """Raised for configuration or argument issues."""


class PayloadError(ExplorerError):
    """Raised when a graph payload does not have the expected shape."""


class SourceError(ExplorerError):
    """Raised when a graph source cannot answer a read (missing file, unknown node)."""


class ExportError(ExplorerError):
    """Raised when writing a selection export fails."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, PayloadError):
        return int(ExitCode.PAYLOAD_ERROR)
    if isinstance(exc, SourceError):
        return int(ExitCode.SOURCE_ERROR)
    if isinstance(exc, (ExportError, ExplorerError)):
        return int(ExitCode.RUNTIME_ERROR)
    return 1
