"""
DirectoryScanner: walks a base directory and selects files by include and
exclude patterns.

A file is selected when its base-relative path matches at least one include
pattern and no exclude pattern. With no include patterns the scanner selects
everything (`MATCH_ALL`). Results are sorted, de-duplicated, and cached until
the patterns or the base directory change.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

from buildfiles.defaults import DEFAULT_EXCLUDES, MATCH_ALL
from buildfiles.errors import ConfigurationError, ScanError, ScanWarning
from buildfiles.gitignore import GitignoreChain
from buildfiles.patterns import Pattern, compile_pattern

logger = logging.getLogger(__name__)


def _relative(path: Path, root: Path) -> str:
    rel = path.relative_to(root).as_posix()
    return "" if rel == "." else rel


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name


class DirectoryScanner:
    """
    Selects files (and directories) under `base_directory` by pattern.

    Symbolic links are followed. A link back to the directory itself or one of
    its ancestors is not entered, so link cycles end the descent; other links
    to an already walked directory are walked again under their own path. Directories
    that can't be read are skipped with a warning, or raise `ScanError` when
    `strict` is set.

    Not thread-safe: callers must serialize mutation and scanning of one instance.
    """

    def __init__(
        self,
        base_directory: str | Path | None = None,
        *,
        includes: Iterable[str] = (),
        excludes: Iterable[str] = (),
        default_excludes: bool = True,
        case_sensitive: bool = True,
        respect_gitignore: bool = False,
        strict: bool = False,
    ) -> None:
        self._base_directory: Path | None = None
        self._includes: list[str] = []
        self._excludes: list[str] = []
        self._default_excludes: bool = default_excludes
        self._case_sensitive: bool = case_sensitive
        self._respect_gitignore: bool = respect_gitignore
        self.strict: bool = strict
        self._file_names: list[str] | None = None
        self._directory_names: list[str] = []
        self._warnings: list[ScanWarning] = []

        if base_directory is not None:
            self.base_directory = base_directory
        for pattern in includes:
            self.add_include(pattern)
        for pattern in excludes:
            self.add_exclude(pattern)

    # Configuration

    @property
    def base_directory(self) -> Path | None:
        return self._base_directory

    @base_directory.setter
    def base_directory(self, value: str | Path | None) -> None:
        new_value = Path(os.path.abspath(value)) if value is not None else None
        if new_value != self._base_directory:
            self._base_directory = new_value
            self.invalidate()

    @property
    def includes(self) -> tuple[str, ...]:
        return tuple(self._includes)

    @property
    def excludes(self) -> tuple[str, ...]:
        return tuple(self._excludes)

    @property
    def default_excludes(self) -> bool:
        return self._default_excludes

    @default_excludes.setter
    def default_excludes(self, value: bool) -> None:
        if value != self._default_excludes:
            self._default_excludes = value
            self.invalidate()

    @property
    def case_sensitive(self) -> bool:
        return self._case_sensitive

    @case_sensitive.setter
    def case_sensitive(self, value: bool) -> None:
        if value != self._case_sensitive:
            self._case_sensitive = value
            self.invalidate()

    @property
    def respect_gitignore(self) -> bool:
        return self._respect_gitignore

    @respect_gitignore.setter
    def respect_gitignore(self, value: bool) -> None:
        if value != self._respect_gitignore:
            self._respect_gitignore = value
            self.invalidate()

    @property
    def effective_includes(self) -> list[str]:
        """Declared includes, or `[MATCH_ALL]` when none are declared."""
        return list(self._includes) if self._includes else [MATCH_ALL]

    @property
    def effective_excludes(self) -> list[str]:
        """Declared excludes followed by `DEFAULT_EXCLUDES` when those are enabled."""
        if not self._default_excludes:
            return list(self._excludes)
        return self._excludes + [p for p in DEFAULT_EXCLUDES if p not in self._excludes]

    def add_include(self, pattern: str) -> DirectoryScanner:
        if pattern not in self._includes:
            self._includes.append(pattern)
            self.invalidate()
        return self

    def add_exclude(self, pattern: str) -> DirectoryScanner:
        if pattern not in self._excludes:
            self._excludes.append(pattern)
            self.invalidate()
        return self

    def remove_include(self, pattern: str) -> DirectoryScanner:
        if pattern in self._includes:
            self._includes.remove(pattern)
            self.invalidate()
        return self

    def remove_exclude(self, pattern: str) -> DirectoryScanner:
        if pattern in self._excludes:
            self._excludes.remove(pattern)
            self.invalidate()
        return self

    def invalidate(self) -> None:
        """Drop cached results so the next access rescans."""
        self._file_names = None
        self._directory_names = []

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
        """Absolute paths of the selected files, sorted by relative path."""
        root = self._require_base_directory()
        return [str(root / rel) for rel in self.scan()]

    @property
    def directory_names(self) -> list[str]:
        """Absolute paths of the selected directories, sorted by relative path."""
        root = self._require_base_directory()
        self.scan()
        return [str(root / rel) if rel else str(root) for rel in self._directory_names]

    @property
    def relative_directory_names(self) -> list[str]:
        self.scan()
        return list(self._directory_names)

    def scan(self) -> list[str]:
        """
        Walk the base directory and return the sorted relative paths (with `/`
        separators) of all selected files. Repeated calls return the cached
        result until the configuration changes.
        """
        if self._file_names is not None:
            return list(self._file_names)

        root = self._require_base_directory()
        if not root.is_dir():
            raise ConfigurationError(f"Base directory does not exist: {root}")

        includes = [compile_pattern(p, self._case_sensitive) for p in self.effective_includes]
        excludes = [compile_pattern(p, self._case_sensitive) for p in self.effective_excludes]
        gitignore = GitignoreChain(root) if self._respect_gitignore else None

        files: set[str] = set()
        directories: set[str] = set()
        warnings: list[ScanWarning] = []
        # Real paths of each walked directory and its ancestors, keyed by walk path.
        ancestors: dict[str, frozenset[str]] = {str(root): frozenset({os.path.realpath(root)})}

        def on_error(error: OSError) -> None:
            path = str(error.filename or root)
            reason = error.strerror or str(error)
            if self.strict:
                raise ScanError(f"Cannot read directory {path}: {reason}") from error
            logger.warning("Skipping unreadable directory %s: %s", path, reason)
            warnings.append(ScanWarning(path, reason))

        if self._is_selected("", includes, excludes):
            directories.add("")

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=True):
            current = Path(dirpath)
            rel_dir = _relative(current, root)
            chain = ancestors.pop(dirpath)

            # Prune in place: excluded subtrees, ignored directories, link cycles,
            # and directories no include pattern can reach.
            kept: list[str] = []
            for dirname in dirnames:
                rel = _join(rel_dir, dirname)
                if any(p.prunes_subtree(rel) for p in excludes):
                    continue
                if gitignore is not None and gitignore.is_ignored(rel, is_dir=True):
                    continue
                if self._is_selected(rel, includes, excludes):
                    directories.add(rel)
                if not any(p.could_match_beneath(rel) for p in includes):
                    continue
                real = os.path.realpath(current / dirname)
                if real in chain:
                    logger.debug("Not following link cycle at %s", current / dirname)
                    continue
                ancestors[os.path.join(dirpath, dirname)] = chain | {real}
                kept.append(dirname)
            dirnames[:] = kept

            for filename in filenames:
                filepath = current / filename
                if not filepath.is_file():
                    continue
                rel = _join(rel_dir, filename)
                if gitignore is not None and gitignore.is_ignored(rel):
                    continue
                if self._is_selected(rel, includes, excludes):
                    logger.debug("Matched %s", rel)
                    files.add(rel)

        self._file_names = sorted(files)
        self._directory_names = sorted(directories)
        self._warnings = warnings
        logger.info(
            "Scanned %s: %d files, %d directories matched", root, len(files), len(directories)
        )
        return list(self._file_names)

    @staticmethod
    def _is_selected(rel_path: str, includes: list[Pattern], excludes: list[Pattern]) -> bool:
        return any(p.matches(rel_path) for p in includes) and not any(
            p.matches(rel_path) for p in excludes
        )

    def _require_base_directory(self) -> Path:
        if self._base_directory is None:
            raise ConfigurationError("No base directory set for directory scanner")
        return self._base_directory
