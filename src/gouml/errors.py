"""Error taxonomy for a generation pass."""

from __future__ import annotations

from pathlib import Path


class GoUmlError(Exception):
    """Base class for every error raised by gouml."""


class ParseFailure(GoUmlError):
    """Raised when a Go source unit does not parse cleanly."""

    def __init__(self, path: Path | str, message: str, line: int = 0, column: int = 0) -> None:
        self.path = Path(path)
        self.line = line
        self.column = column
        self.message = message
        location = f"{self.path}:{line}:{column}" if line else str(self.path)
        super().__init__(f"{location}: {message}")


class IOFailure(GoUmlError):
    """Raised when a source unit or an output file cannot be read or written."""


class RenderFailure(GoUmlError):
    """Raised when the external diagram renderer fails."""


class DuplicateTypeError(GoUmlError):
    """Raised when a type name is registered twice in one build."""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        super().__init__(message)


class ConfigError(GoUmlError):
    """Raised for invalid settings discovered at process start."""
