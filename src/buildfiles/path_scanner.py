"""
PathScanner: finds files by name in the directories of a search-path variable.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path

from buildfiles.errors import ScanWarning
from buildfiles.patterns import compile_pattern, is_glob

logger = logging.getLogger(__name__)

DEFAULT_PATH_VARIABLE = "PATH"


class PathScanner:
    """
    Resolves names against the directories listed in an environment variable
    (`PATH` by default), in order. The first directory holding a match wins.

    Names that can't be found are dropped with a warning, never an error. The
    variable is re-read on every `scan()`, so environment changes made between
    scans are picked up.
    """

    def __init__(
        self,
        names: Iterable[str] = (),
        *,
        variable: str = DEFAULT_PATH_VARIABLE,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._names: list[str] = []
        self.variable: str = variable
        self._environ: Mapping[str, str] | None = environ
        self._warnings: list[ScanWarning] = []
        for name in names:
            self.add(name)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._names)

    @property
    def warnings(self) -> list[ScanWarning]:
        """Names left unresolved by the most recent scan."""
        return list(self._warnings)

    def add(self, name: str) -> PathScanner:
        if name not in self._names:
            self._names.append(name)
        return self

    def search_directories(self) -> list[Path]:
        """The current search-path directories, in order, skipping empty entries."""
        environ = self._environ if self._environ is not None else os.environ
        value = environ.get(self.variable, "")
        return [Path(entry) for entry in value.split(os.pathsep) if entry.strip()]

    def scan(self) -> list[str]:
        """Return absolute paths for every name found, in declaration order."""
        directories = self.search_directories()
        found: list[str] = []
        self._warnings = []
        for name in self._names:
            matches = self._resolve(name, directories)
            if not matches:
                logger.warning("Could not find %r on %s", name, self.variable)
                self._warnings.append(ScanWarning(name, f"not found on {self.variable}"))
                continue
            for match in matches:
                if match not in found:
                    found.append(match)
        return found

    @staticmethod
    def _resolve(name: str, directories: list[Path]) -> list[str]:
        if not is_glob(name):
            for directory in directories:
                candidate = directory / name
                if candidate.is_file():
                    logger.debug("Resolved %s to %s", name, candidate)
                    return [os.path.abspath(candidate)]
            return []

        pattern = compile_pattern(name)
        for directory in directories:
            try:
                entries = sorted(os.listdir(directory))
            except OSError as e:
                logger.debug("Skipping unreadable search directory %s: %s", directory, e)
                continue
            hits = [
                os.path.abspath(directory / entry)
                for entry in entries
                if pattern.matches(entry) and (directory / entry).is_file()
            ]
            if hits:
                return hits
        return []
