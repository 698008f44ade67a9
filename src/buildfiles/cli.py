#!/usr/bin/env python3
"""
buildfiles: Resolve build file sets into concrete lists of files

Common usage:
  buildfiles '**/*.py'
  buildfiles --basedir src --exclude '**/test_*' '**/*.py'
  buildfiles --fileset sources
  buildfiles --lib libs --framework-dir /usr/lib/mono/4.5 System.dll foo.dll

Patterns are relative to the base directory. `*` and `?` match within one
directory level; `**` matches any number of levels. With no patterns every
file is selected. Named file sets are read from `buildfiles.toml`,
`.buildfiles.toml`, or `[tool.buildfiles]` in `pyproject.toml`.
"""

from __future__ import annotations

import argparse
import importlib.metadata
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from strif import atomic_output_file

from buildfiles.config import build_file_set, find_config_file, load_config
from buildfiles.errors import BuildError, ConfigurationError
from buildfiles.fileset import FileSet
from buildfiles.reference_fileset import ReferenceFileSet

logger = logging.getLogger(__name__)


@dataclass
class Options:
    """Command-line options for the buildfiles tool."""

    patterns: list[str]
    basedir: str | None
    exclude: list[str]
    asis: list[str]
    frompath: list[str]
    fromfile: list[str]
    lib: list[str]
    framework_dir: str | None
    fileset: str | None
    config: str | None
    default_excludes: bool
    fail_on_empty: bool
    ignore_case: bool
    respect_gitignore: bool
    strict: bool
    strict_references: bool
    output: str
    verbose: int
    quiet: bool
    version: bool

    @property
    def wants_references(self) -> bool:
        return bool(self.lib or self.framework_dir or self.strict_references)


def _parse_args(args: list[str] | None = None) -> Options:
    # Use the module's docstring as the description
    module_doc = __doc__ or ""
    doc_parts = module_doc.split("\n\n")
    description = doc_parts[0]
    epilog = "\n\n".join(doc_parts[1:])

    parser = argparse.ArgumentParser(
        prog="buildfiles",
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "patterns",
        nargs="*",
        default=[],
        metavar="PATTERN",
        help="Include patterns, relative to the base directory",
    )
    parser.add_argument(
        "-b",
        "--basedir",
        type=str,
        default=None,
        metavar="DIR",
        help="Base directory for patterns (default: current directory)",
    )
    parser.add_argument(
        "-x",
        "--exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Exclude pattern. Can be repeated",
    )
    parser.add_argument(
        "--asis",
        action="append",
        default=[],
        metavar="NAME",
        help="Add a name verbatim, without matching or existence check. Can be repeated",
    )
    parser.add_argument(
        "--frompath",
        action="append",
        default=[],
        metavar="NAME",
        help="Look up a file name in the PATH directories. Can be repeated",
    )
    parser.add_argument(
        "--fromfile",
        action="append",
        default=[],
        metavar="FILE",
        help="Add every line of a list file as an as-is name. Can be repeated",
    )
    parser.add_argument(
        "--lib",
        action="append",
        default=[],
        metavar="DIR",
        help="Library directory searched for bare file name patterns. Can be repeated",
    )
    parser.add_argument(
        "--framework-dir",
        type=str,
        default=None,
        dest="framework_dir",
        metavar="DIR",
        help="Fallback directory searched after the library directories",
    )
    parser.add_argument(
        "--fileset",
        type=str,
        default=None,
        metavar="NAME",
        help="Resolve a file set declared in the config file (command-line options extend it)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="FILE",
        help="Config file to read --fileset from (default: search upward from the current directory)",
    )
    parser.add_argument(
        "--no-default-excludes",
        action="store_true",
        dest="no_default_excludes",
        help="Don't exclude version-control and editor backup files",
    )
    parser.add_argument(
        "--fail-on-empty",
        action="store_true",
        dest="fail_on_empty",
        help="Exit with an error if no files are selected",
    )
    parser.add_argument(
        "-i",
        "--ignore-case",
        action="store_true",
        dest="ignore_case",
        help="Match patterns case-insensitively",
    )
    parser.add_argument(
        "--respect-gitignore",
        action="store_true",
        dest="respect_gitignore",
        help="Also skip files ignored by .gitignore files",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail on unreadable directories instead of skipping them",
    )
    parser.add_argument(
        "--strict-references",
        action="store_true",
        dest="strict_references",
        help="Fail when a bare file name is found in no library or fallback directory",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default="-",
        help="Write the file list here instead of stdout (use '-' for stdout)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log scan progress (repeat for per-file detail)",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information and exit",
    )
    opts = parser.parse_args(args)

    return Options(
        patterns=opts.patterns,
        basedir=opts.basedir,
        exclude=opts.exclude,
        asis=opts.asis,
        frompath=opts.frompath,
        fromfile=opts.fromfile,
        lib=opts.lib,
        framework_dir=opts.framework_dir,
        fileset=opts.fileset,
        config=opts.config,
        default_excludes=not opts.no_default_excludes,
        fail_on_empty=opts.fail_on_empty,
        ignore_case=opts.ignore_case,
        respect_gitignore=opts.respect_gitignore,
        strict=opts.strict,
        strict_references=opts.strict_references,
        output=opts.output,
        verbose=opts.verbose,
        quiet=opts.quiet,
        version=opts.version,
    )


def _configure_logging(options: Options) -> None:
    if options.quiet:
        level = logging.ERROR
    elif options.verbose >= 2:
        level = logging.DEBUG
    elif options.verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s", stream=sys.stderr)


def _explicit_overrides(options: Options) -> dict[str, Any]:
    """Construction settings given on the command line, which win over the config file."""
    overrides: dict[str, Any] = {}
    if not options.default_excludes:
        overrides["default_excludes"] = False
    if options.fail_on_empty:
        overrides["fail_on_empty"] = True
    if options.ignore_case:
        overrides["case_sensitive"] = False
    if options.respect_gitignore:
        overrides["respect_gitignore"] = True
    if options.strict:
        overrides["strict"] = True
    return overrides


def _build_file_set(options: Options) -> FileSet:
    """Create the file set described by the options (and config file, with --fileset)."""
    overrides = _explicit_overrides(options)

    if options.fileset:
        config_path = Path(options.config) if options.config else find_config_file(Path.cwd())
        if config_path is None:
            raise ConfigurationError(
                f"--fileset {options.fileset}: no buildfiles.toml, .buildfiles.toml, or "
                "pyproject.toml with [tool.buildfiles] found"
            )
        file_set = build_file_set(load_config(config_path), options.fileset, overrides=overrides)
        if options.basedir:
            file_set.base_directory = Path(options.basedir).resolve()
    elif options.wants_references:
        file_set = ReferenceFileSet(options.basedir, project_root=Path.cwd(), **overrides)
    else:
        file_set = FileSet(options.basedir, project_root=Path.cwd(), **overrides)

    if isinstance(file_set, ReferenceFileSet):
        for lib_dir in options.lib:
            file_set.add_lib_directory(lib_dir)
        if options.framework_dir:
            file_set.fallback_directory = Path(options.framework_dir).resolve()
        if options.strict_references:
            file_set.strict_references = True
    elif options.wants_references:
        raise ConfigurationError(
            f"--lib, --framework-dir and --strict-references need a reference file set, "
            f"but '{options.fileset}' is a plain file set"
        )

    for pattern in options.patterns:
        file_set.add_include(pattern)
    for pattern in options.exclude:
        file_set.add_exclude(pattern)
    for name in options.asis:
        file_set.add_as_is(name)
    for name in options.frompath:
        file_set.add_from_path(name)
    for list_file in options.fromfile:
        file_set.add_list_file(Path(list_file).resolve())
    return file_set


def _write_output(file_names: list[str], output: str) -> None:
    text = "".join(f"{name}\n" for name in file_names)
    if output == "-":
        sys.stdout.write(text)
        return
    with atomic_output_file(Path(output), make_parents=True) as tmp_path:
        Path(tmp_path).write_text(text, encoding="utf-8")
    logger.info("Wrote %d file names to %s", len(file_names), output)


def main(args: list[str] | None = None) -> int:
    """
    Main entry point for the buildfiles CLI.

    Args:
        args: Command-line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, 1 if the file set can't be resolved)
    """
    options = _parse_args(args)

    if options.version:
        try:
            version = importlib.metadata.version("buildfiles")
            print(f"v{version}")
        except importlib.metadata.PackageNotFoundError:
            print("unknown (package not installed)")
        return 0

    _configure_logging(options)

    try:
        file_set = _build_file_set(options)
        file_names = file_set.file_names
    except BuildError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _write_output(file_names, options.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
