"""
Glob-style path patterns with recursive-descent wildcards.

A pattern is split into `/`-separated segments and matched against a path split
the same way. Within a segment, `*` matches any run of characters and `?`
matches exactly one. A segment that is exactly `**` matches zero or more whole
segments, so `**/CVS` matches both `CVS` and `a/b/CVS`. Matching is anchored:
the whole path must match, not a substring of it.

Everything here is pure string work; nothing touches the filesystem.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from functools import lru_cache

RECURSIVE_WILDCARD = "**"

# Characters that make a pattern a glob rather than a literal path.
_GLOB_CHARS = frozenset("*?")


def normalize_pattern(pattern: str) -> str:
    """
    Normalize separators and shorthand: `\\` becomes `/`, a leading `./` is
    dropped, `.` means the base directory itself, and a trailing `/` means the
    directory and everything beneath it (`dir/` is `dir/**`).
    """
    normalized = pattern.strip().replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    if normalized == ".":
        return ""
    if normalized.endswith("/") and normalized.strip("/"):
        normalized += RECURSIVE_WILDCARD
    return normalized


def split_segments(path: str) -> tuple[str, ...]:
    """Split a path or pattern into segments, ignoring empty and `.` segments."""
    return tuple(seg for seg in path.replace("\\", "/").split("/") if seg and seg != ".")


def is_glob(pattern: str) -> bool:
    """True if the pattern contains any wildcard character."""
    return any(c in _GLOB_CHARS for c in pattern)


def is_bare_filename(pattern: str) -> bool:
    """True for a plain file name: no wildcards and no directory separator."""
    name = pattern.strip()
    if not name or name in (".", ".."):
        return False
    return not is_glob(name) and "/" not in name and "\\" not in name


def _match_segment(pattern: str, text: str) -> bool:
    """Single-segment wildcard match, backtracking to the most recent `*`."""
    p = t = 0
    star = -1
    mark = 0
    while t < len(text):
        if p < len(pattern) and (pattern[p] == "?" or pattern[p] == text[t]):
            p += 1
            t += 1
        elif p < len(pattern) and pattern[p] == "*":
            star = p
            mark = t
            p += 1
        elif star != -1:
            p = star + 1
            mark += 1
            t = mark
        else:
            return False
    while p < len(pattern) and pattern[p] == "*":
        p += 1
    return p == len(pattern)


def _match_segments(pattern: Sequence[str], path: Sequence[str]) -> bool:
    """
    Match segment lists. A `**` segment tries every possible number of path
    segments to consume, shortest first, and succeeds on the first choice that
    lets the rest of the pattern match.
    """

    @lru_cache(maxsize=None)
    def match(i: int, j: int) -> bool:
        if i == len(pattern):
            return j == len(path)
        seg = pattern[i]
        if seg == RECURSIVE_WILDCARD:
            # Consecutive `**` segments are equivalent to one.
            if i + 1 < len(pattern) and pattern[i + 1] == RECURSIVE_WILDCARD:
                return match(i + 1, j)
            return any(match(i + 1, k) for k in range(j, len(path) + 1))
        if j == len(path):
            return False
        return _match_segment(seg, path[j]) and match(i + 1, j + 1)

    return match(0, 0)


@dataclass(frozen=True)
class Pattern:
    """
    A compiled pattern. `text` is kept as declared; `segments` holds the
    normalized (and, when `case_sensitive` is off, case-folded) segments.
    """

    text: str
    case_sensitive: bool = True
    segments: tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        segments = split_segments(normalize_pattern(self.text))
        if not self.case_sensitive:
            segments = tuple(seg.casefold() for seg in segments)
        object.__setattr__(self, "segments", segments)

    @property
    def is_glob(self) -> bool:
        return any(is_glob(seg) for seg in self.segments)

    def _path_segments(self, path: str) -> tuple[str, ...]:
        segments = split_segments(path)
        if not self.case_sensitive:
            segments = tuple(seg.casefold() for seg in segments)
        return segments

    def matches(self, path: str) -> bool:
        """True if the whole relative `path` matches this pattern."""
        return _match_segments(self.segments, self._path_segments(path))

    def could_match_beneath(self, directory: str) -> bool:
        """
        True if some path strictly beneath `directory` could match. Used to
        avoid descending into directories that no include pattern can reach.
        """
        dir_segments = self._path_segments(directory)
        pattern = self.segments
        i = 0
        for dir_seg in dir_segments:
            if i == len(pattern):
                return False
            if pattern[i] == RECURSIVE_WILDCARD:
                return True
            if not _match_segment(pattern[i], dir_seg):
                return False
            i += 1
        return i < len(pattern)

    def prunes_subtree(self, directory: str) -> bool:
        """
        True if this pattern matches `directory` and, because it ends in `**`,
        everything beneath it as well. Only such excludes can prune a walk.
        """
        return (
            bool(self.segments)
            and self.segments[-1] == RECURSIVE_WILDCARD
            and self.matches(directory)
        )


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str, case_sensitive: bool = True) -> Pattern:
    return Pattern(pattern, case_sensitive)


def matches(pattern: str, candidate: str, *, case_sensitive: bool = True) -> bool:
    """
    Return True if `candidate` (a `/`-separated relative path) matches `pattern`.

    Never raises: anything other than two strings simply doesn't match.
    """
    if not isinstance(pattern, str) or not isinstance(candidate, str):  # pyright: ignore[reportUnnecessaryIsInstance]
        return False
    return compile_pattern(pattern, case_sensitive).matches(candidate)
