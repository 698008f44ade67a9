"""
FileSet: the set of files a build task operates on.

A file set merges four sources into one ordered, de-duplicated list:

1. files under the base directory selected by include/exclude patterns,
2. "as-is" names, added verbatim with no pattern matching or existence check,
3. "from-path" names, looked up in the directories of the `PATH` variable,
4. names read from list files, which become as-is entries.

Scanner matches come first, then as-is entries, then path-resolved entries, each
in declaration order. Results are computed lazily on first access to
`file_names` and cached until the configuration changes.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from buildfiles.errors import (
    BuildError,
    ConfigurationError,
    EmptyResultError,
    Location,
    ScanWarning,
)
from buildfiles.path_scanner import DEFAULT_PATH_VARIABLE, PathScanner
from buildfiles.scanner import DirectoryScanner

logger = logging.getLogger(__name__)


@dataclass
class PatternEntry:
    """
    One include or exclude declaration from a build script.

    The entry only takes effect when `if_defined` is true and `unless_defined`
    is false; both conditions are evaluated by the caller before they get here.
    `as_is` and `from_path` only apply to includes.
    """

    pattern: str
    if_defined: bool = True
    unless_defined: bool = False
    as_is: bool = False
    from_path: bool = False

    @property
    def enabled(self) -> bool:
        return self.if_defined and not self.unless_defined


def read_list_file(list_file: str | Path) -> list[str]:
    """
    Read a list file: each non-blank line, stripped, is one file name.
    Raises `ConfigurationError` if the file can't be read.
    """
    path = Path(list_file)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"'{path}' list could not be opened: {e}") from e
    return [line.strip() for line in text.splitlines() if line.strip()]


def find_more_recent_last_write_time(
    file_names: Iterable[str], target: datetime | float
) -> str | None:
    """
    Return the first file that is missing or was modified after `target`, or
    `None` if all are older. Only rooted paths are checked; relative (as-is)
    names are skipped.
    """
    threshold = target.timestamp() if isinstance(target, datetime) else float(target)
    for file_name in file_names:
        if not os.path.isabs(file_name):
            continue
        try:
            mtime = Path(file_name).stat().st_mtime
        except FileNotFoundError:
            return file_name
        if mtime > threshold:
            return file_name
    return None


class _MergedPaths:
    """Ordered path collection that drops later duplicates of the same absolute path."""

    def __init__(self, base_directory: Path) -> None:
        self._base: Path = base_directory
        self._seen: set[str] = set()
        self.paths: list[str] = []

    def _key(self, path: str) -> str:
        return os.path.normcase(os.path.normpath(os.path.join(self._base, path)))

    def add(self, path: str) -> bool:
        key = self._key(path)
        if key in self._seen:
            return False
        self._seen.add(key)
        self.paths.append(path)
        return True

    def __len__(self) -> int:
        return len(self.paths)


class FileSet:
    """
    A declarative selection of files, resolved on demand.

    `base_directory` defaults to `project_root`; a relative base directory is
    taken relative to `project_root`. Default excludes (version-control and
    editor files) are fixed when the set is created. With `fail_on_empty`,
    every `scan()` that finds nothing raises `EmptyResultError`.

    Not thread-safe: callers must serialize mutation and scanning of one instance.
    """

    def __init__(
        self,
        base_directory: str | Path | None = None,
        *,
        project_root: str | Path | None = None,
        default_excludes: bool = True,
        fail_on_empty: bool = False,
        case_sensitive: bool = True,
        respect_gitignore: bool = False,
        strict: bool = False,
        name: str | None = None,
        location: Location | None = None,
        path_variable: str = DEFAULT_PATH_VARIABLE,
    ) -> None:
        self._base_directory: Path | None = Path(base_directory) if base_directory else None
        self._project_root: Path | None = Path(project_root) if project_root else None
        self._default_excludes: bool = default_excludes
        self.fail_on_empty: bool = fail_on_empty
        self.name: str | None = name
        self.location: Location | None = location
        self._scanner: DirectoryScanner = DirectoryScanner(
            default_excludes=default_excludes,
            case_sensitive=case_sensitive,
            respect_gitignore=respect_gitignore,
            strict=strict,
        )
        self._as_is: list[str] = []
        self._path_files: PathScanner = PathScanner(variable=path_variable)
        self._file_names: list[str] | None = None
        self._warnings: list[ScanWarning] = []

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self.name!r}, base_directory={self._base_directory!r}, "
            f"includes={list(self.includes)!r}, excludes={list(self.excludes)!r})"
        )

    # Configuration

    @property
    def project_root(self) -> Path | None:
        return self._project_root

    @project_root.setter
    def project_root(self, value: str | Path | None) -> None:
        self._project_root = Path(value) if value else None
        self.invalidate()

    @property
    def base_directory(self) -> Path | None:
        """The absolute base directory, or `None` if neither it nor the project root is set."""
        root = self.project_root
        if self._base_directory is None:
            return Path(os.path.abspath(root)) if root is not None else None
        if root is not None and not self._base_directory.is_absolute():
            return Path(os.path.abspath(root / self._base_directory))
        return Path(os.path.abspath(self._base_directory))

    @base_directory.setter
    def base_directory(self, value: str | Path | None) -> None:
        self._base_directory = Path(value) if value else None
        self.invalidate()

    @property
    def default_excludes(self) -> bool:
        return self._default_excludes

    @property
    def case_sensitive(self) -> bool:
        return self._scanner.case_sensitive

    @property
    def respect_gitignore(self) -> bool:
        return self._scanner.respect_gitignore

    @property
    def strict(self) -> bool:
        return self._scanner.strict

    @property
    def includes(self) -> tuple[str, ...]:
        return self._scanner.includes

    @property
    def excludes(self) -> tuple[str, ...]:
        return self._scanner.excludes

    @property
    def effective_excludes(self) -> list[str]:
        return self._scanner.effective_excludes

    @property
    def as_is(self) -> tuple[str, ...]:
        return tuple(self._as_is)

    @property
    def from_path(self) -> tuple[str, ...]:
        return self._path_files.names

    def add_include(self, pattern: str) -> FileSet:
        self._scanner.add_include(pattern)
        self.invalidate()
        return self

    def add_exclude(self, pattern: str) -> FileSet:
        self._scanner.add_exclude(pattern)
        self.invalidate()
        return self

    def remove_include(self, pattern: str) -> FileSet:
        self._scanner.remove_include(pattern)
        self.invalidate()
        return self

    def remove_exclude(self, pattern: str) -> FileSet:
        self._scanner.remove_exclude(pattern)
        self.invalidate()
        return self

    def add_as_is(self, name: str) -> FileSet:
        if name not in self._as_is:
            self._as_is.append(name)
        self.invalidate()
        return self

    def add_from_path(self, name: str) -> FileSet:
        self._path_files.add(name)
        self.invalidate()
        return self

    def add_entry(self, entry: PatternEntry) -> FileSet:
        """Add an include declaration, routed by its `as_is` / `from_path` flags."""
        if not entry.enabled:
            return self
        if entry.as_is:
            return self.add_as_is(entry.pattern)
        if entry.from_path:
            return self.add_from_path(entry.pattern)
        return self.add_include(entry.pattern)

    def add_exclude_entry(self, entry: PatternEntry) -> FileSet:
        if not entry.enabled:
            return self
        return self.add_exclude(entry.pattern)

    def add_list_file(
        self, list_file: str | Path, *, if_defined: bool = True, unless_defined: bool = False
    ) -> FileSet:
        """
        Add every name in a list file as an as-is entry. A relative list-file
        path is taken relative to the base directory. The file is read now, so
        a missing file fails at declaration time.
        """
        if not if_defined or unless_defined:
            return self
        path = Path(list_file)
        base = self.base_directory
        if not path.is_absolute() and base is not None:
            path = base / path
        try:
            names = read_list_file(path)
        except ConfigurationError as e:
            e.location = e.location or self.location
            raise
        logger.debug("Read %d names from list file %s", len(names), path)
        for name in names:
            self.add_as_is(name)
        return self

    def invalidate(self) -> None:
        """Forget the cached result so the next access rescans."""
        self._forget_result()
        self._scanner.invalidate()

    def _forget_result(self) -> None:
        """Drop the merged result but keep the directory scan."""
        self._file_names = None

    def _settings(self) -> dict[str, Any]:
        return dict(
            project_root=self._project_root,
            default_excludes=self._default_excludes,
            fail_on_empty=self.fail_on_empty,
            case_sensitive=self.case_sensitive,
            respect_gitignore=self.respect_gitignore,
            strict=self.strict,
            name=self.name,
            location=self.location,
            path_variable=self._path_files.variable,
        )

    def _copy_patterns_from(self, source: FileSet) -> None:
        for pattern in source.includes:
            self.add_include(pattern)
        for pattern in source.excludes:
            self.add_exclude(pattern)
        for name in source.as_is:
            self.add_as_is(name)
        for name in source.from_path:
            self.add_from_path(name)

    def clone(self) -> FileSet:
        """A fresh, unscanned file set with a copy of this set's configuration."""
        copy = FileSet(self._base_directory, **self._settings())
        copy._copy_patterns_from(self)
        return copy

    # Results

    @property
    def has_scanned(self) -> bool:
        return self._file_names is not None

    @property
    def warnings(self) -> list[ScanWarning]:
        """Problems skipped during the most recent scan."""
        return list(self._warnings)

    @property
    def file_names(self) -> list[str]:
        """All selected files, scanning first if needed."""
        if self._file_names is None:
            self.scan()
        assert self._file_names is not None
        return list(self._file_names)

    @property
    def directory_names(self) -> list[str]:
        """Directories under the base directory selected by the include/exclude patterns."""
        self._scanner.base_directory = self._require_base_directory()
        return self._scanner.directory_names

    def scan(self) -> None:
        """
        Resolve the file set. Safe to call repeatedly; the directory scan itself
        is cached until the patterns or base directory change.
        """
        base = self._require_base_directory()
        self._scanner.base_directory = base
        self._warnings = []
        merged = _MergedPaths(base)
        try:
            self._merge(base, merged)
        except BuildError as e:
            e.location = e.location or self.location
            raise
        except OSError as e:
            raise BuildError(f"Error creating file set{self._label}: {e}", self.location) from e

        self._file_names = merged.paths
        logger.info("File set%s resolved to %d files", self._label, len(merged))

        if self.fail_on_empty and not merged.paths:
            raise EmptyResultError(f"The file set{self._label} is empty.", self.location)

    def _merge(self, base: Path, merged: _MergedPaths) -> None:
        """Append each source in order. Subclasses extend this to add more sources."""
        for path in self._scanner.file_names:
            merged.add(path)
        self._warnings.extend(self._scanner.warnings)

        for name in self._as_is:
            if not merged.add(name):
                logger.debug("As-is entry %s already in file set", name)

        for path in self._path_files.scan():
            merged.add(path)
        self._warnings.extend(self._path_files.warnings)

    @property
    def _label(self) -> str:
        return f" '{self.name}'" if self.name else ""

    def _require_base_directory(self) -> Path:
        base = self.base_directory
        if base is None:
            raise ConfigurationError(
                f"File set{self._label} has no base directory and no project root", self.location
            )
        if not base.is_dir():
            raise ConfigurationError(
                f"Base directory of file set{self._label} does not exist: {base}", self.location
            )
        return base
