"""Optional `.gitignore` handling for directory scans, using pathspec."""

from __future__ import annotations

import logging
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)

GITIGNORE_NAME = ".gitignore"


def read_ignore_lines(ignore_file: Path) -> list[str] | None:
    """
    Return the meaningful lines of an ignore file (no blanks, no comments), or
    `None` if the file is missing, unreadable, or not valid UTF-8.
    """
    try:
        text = ignore_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Skipping unreadable ignore file %s: %s", ignore_file, e)
        return None
    lines = [line for line in text.splitlines() if line.strip() and not line.strip().startswith("#")]
    return lines or None


def load_gitignore(directory: Path) -> pathspec.PathSpec | None:
    """
    Read `.gitignore` in the given directory and return a compiled `PathSpec`,
    or `None` if the file doesn't exist or is empty.
    """
    lines = read_ignore_lines(directory / GITIGNORE_NAME)
    if lines is None:
        return None
    return pathspec.GitIgnoreSpec.from_lines(lines)


class GitignoreChain:
    """
    Collects the `.gitignore` specs that apply to each directory of one walk,
    from the walk root down. Specs are cached per directory so each file is
    read at most once per scan.
    """

    def __init__(self, root: Path) -> None:
        self._root: Path = root
        self._cache: dict[Path, pathspec.PathSpec | None] = {}

    def _get(self, directory: Path) -> pathspec.PathSpec | None:
        if directory not in self._cache:
            self._cache[directory] = load_gitignore(directory)
        return self._cache[directory]

    def is_ignored(self, rel_path: str, is_dir: bool = False) -> bool:
        """
        True if any `.gitignore` between the root and the path's parent ignores
        it. Each spec is matched against the path relative to the directory that
        holds the `.gitignore`, as git does.
        """
        parts = [p for p in rel_path.split("/") if p]
        current = self._root
        for depth in range(len(parts)):
            spec = self._get(current)
            if spec is not None:
                sub_path = "/".join(parts[depth:])
                if is_dir:
                    sub_path += "/"
                if spec.match_file(sub_path):
                    return True
            current = current / parts[depth]
        return False
