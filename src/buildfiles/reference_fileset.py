"""
ReferenceFileSet: a file set for compiler references (assemblies, libraries).

Besides the normal scan, each include that is a bare file name (no wildcard, no
directory) and doesn't exist in the base directory is searched for in:

1. each library directory, in declared order,
2. the fallback (platform/framework) directory, if one is configured.

The first hit is added to the result. A name found nowhere is left out with a
warning, or raises `UnresolvedReferenceError` with `strict_references`.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path

from buildfiles.errors import Location, ScanWarning, UnresolvedReferenceError
from buildfiles.fileset import FileSet, _MergedPaths  # pyright: ignore[reportPrivateUsage]
from buildfiles.path_scanner import DEFAULT_PATH_VARIABLE
from buildfiles.patterns import compile_pattern, is_bare_filename, is_glob
from buildfiles.scanner import DirectoryScanner

logger = logging.getLogger(__name__)

FallbackDirectory = str | Path | Callable[[], str | Path | None] | None


class LibDirectorySet(FileSet):
    """
    The library directories of a `ReferenceFileSet`.

    Its base directory and project root always mirror the parent's and can't
    be set. Includes name directories rather than files: a literal include
    (relative or absolute) names one directory, a glob include is expanded
    against the directories under the base directory.
    """

    def __init__(
        self,
        parent: ReferenceFileSet,
        *,
        default_excludes: bool = True,
        case_sensitive: bool = True,
    ) -> None:
        super().__init__(default_excludes=default_excludes, case_sensitive=case_sensitive)
        self._parent: ReferenceFileSet = parent

    @property
    def parent(self) -> ReferenceFileSet:
        return self._parent

    @property
    def project_root(self) -> Path | None:
        return self._parent.project_root

    @property
    def base_directory(self) -> Path | None:
        return self._parent.base_directory

    def invalidate(self) -> None:
        super().invalidate()
        # Library directories only feed the reference ladder, not the parent's scan.
        self._parent._forget_result()  # pyright: ignore[reportPrivateUsage]

    @property
    def directory_names(self) -> list[str]:
        """Existing library directories, ordered by the include that selected them."""
        self._warnings = []
        base = self._require_base_directory()
        globs = [pattern for pattern in self.includes if is_glob(pattern)]
        enumerated: list[str] = []
        if globs:
            scanner = DirectoryScanner(
                base,
                includes=globs,
                excludes=self.excludes,
                default_excludes=self.default_excludes,
                case_sensitive=self.case_sensitive,
            )
            scanner.scan()
            enumerated = scanner.relative_directory_names

        result: list[str] = []
        for pattern in self.includes:
            if is_glob(pattern):
                compiled = compile_pattern(pattern, self.case_sensitive)
                candidates = [str(base / rel) for rel in enumerated if compiled.matches(rel)]
            else:
                candidate = os.path.abspath(base / pattern)
                if not os.path.isdir(candidate):
                    logger.warning("Library directory does not exist: %s", candidate)
                    self._warnings.append(ScanWarning(candidate, "library directory not found"))
                    continue
                candidates = [candidate]
            for candidate in candidates:
                if candidate not in result:
                    result.append(candidate)
        return result

    def clone(self) -> LibDirectorySet:
        copy = LibDirectorySet(
            self._parent, default_excludes=self.default_excludes, case_sensitive=self.case_sensitive
        )
        copy._copy_patterns_from(self)
        return copy


class ReferenceFileSet(FileSet):
    """
    A `FileSet` that also resolves bare file names through library directories
    and a fallback directory.

    `fallback_directory` may be a path or a zero-argument callable returning
    one; either way it is read at scan time, so the platform directory can be
    supplied after the set is declared. `lib_default_excludes` overrides
    `default_excludes` for the library directory set only.
    """

    def __init__(
        self,
        base_directory: str | Path | None = None,
        *,
        fallback_directory: FallbackDirectory = None,
        strict_references: bool = False,
        lib_default_excludes: bool | None = None,
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
        super().__init__(
            base_directory,
            project_root=project_root,
            default_excludes=default_excludes,
            fail_on_empty=fail_on_empty,
            case_sensitive=case_sensitive,
            respect_gitignore=respect_gitignore,
            strict=strict,
            name=name,
            location=location,
            path_variable=path_variable,
        )
        self._lib: LibDirectorySet = LibDirectorySet(
            self,
            default_excludes=default_excludes if lib_default_excludes is None else lib_default_excludes,
            case_sensitive=case_sensitive,
        )
        self.fallback_directory: FallbackDirectory = fallback_directory
        self.strict_references: bool = strict_references

    @classmethod
    def from_file_set(cls, source: FileSet) -> ReferenceFileSet:
        """Create an unscanned reference set with the configuration of `source`."""
        settings = source._settings()  # pyright: ignore[reportPrivateUsage]
        if isinstance(source, ReferenceFileSet):
            settings["lib_default_excludes"] = source.lib.default_excludes
        reference_set = cls(source._base_directory, **settings)  # pyright: ignore[reportPrivateUsage]
        reference_set._copy_patterns_from(source)
        if isinstance(source, ReferenceFileSet):
            reference_set._lib._copy_patterns_from(source.lib)
            reference_set.fallback_directory = source.fallback_directory
            reference_set.strict_references = source.strict_references
        return reference_set

    def clone(self) -> ReferenceFileSet:
        return ReferenceFileSet.from_file_set(self)

    @property
    def lib(self) -> LibDirectorySet:
        return self._lib

    def add_lib_directory(self, pattern: str) -> ReferenceFileSet:
        self._lib.add_include(pattern)
        return self

    def current_fallback_directory(self) -> Path | None:
        value = self.fallback_directory
        if callable(value):
            value = value()
        return Path(value) if value else None

    def _merge(self, base: Path, merged: _MergedPaths) -> None:
        super()._merge(base, merged)
        self._resolve_references(base, merged)

    def _resolve_references(self, base: Path, merged: _MergedPaths) -> None:
        candidates = [p for p in self.includes if is_bare_filename(p)]
        if not candidates:
            return

        lib_directories = self._lib.directory_names if self._lib.includes else []
        self._warnings.extend(self._lib.warnings)
        fallback = self.current_fallback_directory()

        local_names = None if self.case_sensitive else self._folded_file_names(base)
        unresolved: list[str] = []
        for pattern in candidates:
            if local_names is None:
                is_local = (base / pattern).is_file()
            else:
                is_local = pattern.casefold() in local_names
            if is_local:
                # Already picked up by the directory scan.
                continue
            resolved = self._search(pattern, lib_directories, fallback)
            if resolved is None:
                unresolved.append(pattern)
                continue
            merged.add(resolved)

        if not unresolved:
            return
        if self.strict_references:
            raise UnresolvedReferenceError(
                f"Could not resolve reference(s) in file set{self._label}: {', '.join(unresolved)}",
                self.location,
            )
        for pattern in unresolved:
            logger.warning("Could not resolve reference %s", pattern)
            self._warnings.append(ScanWarning(pattern, "reference not found"))

    @staticmethod
    def _folded_file_names(base: Path) -> set[str]:
        """Case-folded names of the regular files directly in `base`."""
        with os.scandir(base) as entries:
            return {entry.name.casefold() for entry in entries if entry.is_file()}

    @staticmethod
    def _search(pattern: str, lib_directories: list[str], fallback: Path | None) -> str | None:
        for directory in lib_directories:
            candidate = Path(directory) / pattern
            if candidate.is_file():
                logger.debug("Resolved reference %s in library directory %s", pattern, directory)
                return str(candidate)
        if fallback is not None:
            candidate = fallback / pattern
            if candidate.is_file():
                logger.debug("Resolved reference %s in fallback directory %s", pattern, fallback)
                return os.path.abspath(candidate)
        return None
