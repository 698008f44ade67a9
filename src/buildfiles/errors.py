"""
Error types raised while resolving file sets.

Fatal problems are raised as subclasses of `BuildError`, carrying an optional
`Location` that names the build-file element the failing set was declared in.
Non-fatal problems are recorded as `ScanWarning` values and logged; they never
propagate past the file set that produced them.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Location:
    """Where a file set was declared (file, element name, and line when known)."""

    file_name: str | None = None
    element: str | None = None
    line: int | None = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file_name:
            parts.append(self.file_name if self.line is None else f"{self.file_name}:{self.line}")
        if self.element:
            parts.append(f"[{self.element}]")
        return " ".join(parts)


class BuildError(Exception):
    """Base class for errors that halt the enclosing task."""

    def __init__(self, message: str, location: Location | None = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.location: Location | None = location

    def __str__(self) -> str:
        where = str(self.location) if self.location else ""
        return f"{where}: {self.message}" if where else self.message


class ConfigurationError(BuildError):
    """A file set was declared in a way that can't be resolved (bad base directory, list file)."""


class EmptyResultError(BuildError):
    """A file set with `fail_on_empty` enabled matched no files."""


class ScanError(BuildError):
    """A directory could not be read while scanning in strict mode."""


class UnresolvedReferenceError(BuildError):
    """A bare filename reference was found in no search directory (strict mode only)."""


@dataclass(frozen=True)
class ScanWarning:
    """A recoverable problem seen during a scan: the path involved and why it was skipped."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"{self.path}: {self.reason}"
