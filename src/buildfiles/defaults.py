"""
Default include and exclude patterns for file sets.

Patterns use `/` as the segment separator. `**` matches any number of whole
directory levels, so `**/CVS/**` excludes every CVS directory and its contents.
"""

from __future__ import annotations

# The effective include set when a scanner has no include patterns: every file at any depth.
MATCH_ALL: str = "**"

# Applied to every file set unless `default_excludes=False`.
DEFAULT_EXCLUDES: list[str] = [
    # Editor backups and lock files
    "**/*~",
    "**/#*#",
    "**/.#*",
    "**/%*%",
    "**/*.swp",
    "**/.DS_Store",
    # CVS
    "**/CVS",
    "**/CVS/**",
    "**/.cvsignore",
    # SCCS / Visual SourceSafe
    "**/SCCS",
    "**/SCCS/**",
    "**/vssver.scc",
    "**/_vti_cnf/**",
    # Subversion, Git, Mercurial, Bazaar, Darcs
    "**/.svn/**",
    "**/.git/**",
    "**/.gitattributes",
    "**/.gitignore",
    "**/.hg/**",
    "**/.hgignore",
    "**/.bzr/**",
    "**/_darcs/**",
]
