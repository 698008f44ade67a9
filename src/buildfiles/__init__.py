"""
File set resolution for build scripts: glob patterns with recursive `**`
wildcards, as-is names, search-path lookups, list files, and reference
resolution through library and fallback directories.

Usage::

    from buildfiles import FileSet, ReferenceFileSet

    sources = FileSet("src", project_root="/work/app")
    sources.add_include("**/*.cs").add_exclude("**/obj/**")
    for path in sources.file_names:
        ...

    refs = ReferenceFileSet(project_root="/work/app", fallback_directory="/usr/lib/mono/4.5")
    refs.add_include("System.Xml.dll").add_lib_directory("lib")
    refs.file_names
"""

from buildfiles.defaults import DEFAULT_EXCLUDES, MATCH_ALL
from buildfiles.errors import (
    BuildError,
    ConfigurationError,
    EmptyResultError,
    Location,
    ScanError,
    ScanWarning,
    UnresolvedReferenceError,
)
from buildfiles.fileset import (
    FileSet,
    PatternEntry,
    find_more_recent_last_write_time,
    read_list_file,
)
from buildfiles.path_scanner import PathScanner
from buildfiles.patterns import Pattern, is_bare_filename, is_glob, matches
from buildfiles.reference_fileset import LibDirectorySet, ReferenceFileSet
from buildfiles.scanner import DirectoryScanner

__all__ = [
    "DEFAULT_EXCLUDES",
    "MATCH_ALL",
    "BuildError",
    "ConfigurationError",
    "DirectoryScanner",
    "EmptyResultError",
    "FileSet",
    "LibDirectorySet",
    "Location",
    "PathScanner",
    "Pattern",
    "PatternEntry",
    "ReferenceFileSet",
    "ScanError",
    "ScanWarning",
    "UnresolvedReferenceError",
    "find_more_recent_last_write_time",
    "is_bare_filename",
    "is_glob",
    "matches",
    "read_list_file",
]
