"""
TOML-based file set declarations.

Searches for `.buildfiles.toml`, `buildfiles.toml`, or `pyproject.toml
[tool.buildfiles]` walking up from the current directory. Each
`[filesets.<name>]` table declares a `FileSet`; each `[references.<name>]`
table declares a `ReferenceFileSet`. The directory holding the file is the
project root: `basedir` and `framework-dir` are relative to it, and list files
named in `fromfile` are relative to the set's base directory.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, cast

from buildfiles.errors import ConfigurationError, Location
from buildfiles.fileset import FileSet, PatternEntry
from buildfiles.reference_fileset import ReferenceFileSet

if sys.version_info >= (3, 11):
    import tomllib  # pyright: ignore[reportUnreachable]
else:
    import tomli as tomllib  # type: ignore[no-redef]  # pyright: ignore[reportUnreachable]

logger = logging.getLogger(__name__)

FILESETS_TABLE = "filesets"
REFERENCES_TABLE = "references"


@dataclass
class FileSetConfig:
    """
    One declared file set. Flags are `None` when not set in the file, so the
    `FileSet` defaults apply; pattern lists are empty.
    """

    name: str
    references: bool = False
    basedir: str | None = None
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    asis: list[str] = field(default_factory=list)
    frompath: list[str] = field(default_factory=list)
    fromfile: list[str] = field(default_factory=list)
    includes: list[PatternEntry] = field(default_factory=list)
    excludes: list[PatternEntry] = field(default_factory=list)
    default_excludes: bool | None = None
    fail_on_empty: bool | None = None
    case_sensitive: bool | None = None
    respect_gitignore: bool | None = None
    strict: bool | None = None
    # Reference sets only
    lib: list[str] = field(default_factory=list)
    framework_dir: str | None = None
    strict_references: bool | None = None


@dataclass
class BuildConfig:
    """All file sets declared in one config file."""

    path: Path
    filesets: dict[str, FileSetConfig] = field(default_factory=dict)

    @property
    def project_root(self) -> Path:
        return self.path.parent

    def location(self, name: str) -> Location:
        kind = REFERENCES_TABLE if self.filesets[name].references else FILESETS_TABLE
        return Location(str(self.path), element=f"{kind}.{name}")


# Config file search order (first match wins within each directory level)
_CONFIG_FILENAMES = [".buildfiles.toml", "buildfiles.toml", "pyproject.toml"]

_LIST_FIELDS = {"include", "exclude", "asis", "frompath", "fromfile", "lib"}
_BOOL_FIELDS = {
    "default_excludes",
    "fail_on_empty",
    "case_sensitive",
    "respect_gitignore",
    "strict",
    "strict_references",
}
_STR_FIELDS = {"basedir", "framework_dir"}
_ENTRY_FIELDS = {"includes", "excludes"}
_REFERENCE_ONLY_FIELDS = {"lib", "framework_dir", "strict_references"}

_VALID_FIELDS = {f.name for f in fields(FileSetConfig)} - {"name", "references"}

# Keys allowed in an `includes` / `excludes` entry table.
_ENTRY_KEYS = {"name", "if", "unless", "asis", "frompath"}
_ENTRY_DEFAULTS: dict[str, bool] = {"if": True, "unless": False, "asis": False, "frompath": False}


def find_config_file(start_dir: Path) -> Path | None:
    """
    Walk up from `start_dir` looking for a config file. Returns the first
    found, or `None`. Search order per directory: `.buildfiles.toml` >
    `buildfiles.toml` > `pyproject.toml` (only if it has `[tool.buildfiles]`).
    """
    current = start_dir.resolve()
    while True:
        for filename in _CONFIG_FILENAMES:
            candidate = current / filename
            if candidate.is_file():
                if filename == "pyproject.toml":
                    if _pyproject_has_buildfiles_section(candidate):
                        return candidate
                else:
                    return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def _pyproject_has_buildfiles_section(path: Path) -> bool:
    """Check if a pyproject.toml has a [tool.buildfiles] section."""
    try:
        data = tomllib.loads(path.read_text())
        return "buildfiles" in data.get("tool", {})
    except (tomllib.TOMLDecodeError, OSError):
        return False


def load_config(config_path: Path) -> BuildConfig:
    """
    Load all file set declarations from a TOML file. Supports standalone
    `buildfiles.toml` / `.buildfiles.toml` and `pyproject.toml` (reads
    `[tool.buildfiles]`). Kebab-case keys are mapped to snake_case.
    """
    try:
        data = tomllib.loads(config_path.read_text())
    except (tomllib.TOMLDecodeError, OSError) as e:
        raise ConfigurationError(f"Could not read config: {e}", Location(str(config_path))) from e

    if config_path.name == "pyproject.toml":
        data = data.get("tool", {}).get("buildfiles", {})

    config = BuildConfig(path=config_path)
    for table, is_references in ((FILESETS_TABLE, False), (REFERENCES_TABLE, True)):
        declared = data.get(table, {})
        if not isinstance(declared, dict):
            raise ConfigurationError(f"'{table}' must be a table", Location(str(config_path)))
        for name, body in cast(dict[str, Any], declared).items():
            location = Location(str(config_path), element=f"{table}.{name}")
            if name in config.filesets:
                raise ConfigurationError(f"Duplicate file set name '{name}'", location)
            if not isinstance(body, dict):
                raise ConfigurationError("File set declaration must be a table", location)
            config.filesets[name] = _parse_fileset(
                name, cast(dict[str, Any], body), is_references, location
            )
    return config


def _parse_fileset(
    name: str, data: dict[str, Any], references: bool, location: Location
) -> FileSetConfig:
    """Parse one file set table into a FileSetConfig, checking value types."""
    config = FileSetConfig(name=name, references=references)
    for key, value in data.items():
        snake_key = key.replace("-", "_")
        if snake_key not in _VALID_FIELDS:
            logger.warning("%s: ignoring unknown key '%s'", location, key)
            continue
        if snake_key in _REFERENCE_ONLY_FIELDS and not references:
            raise ConfigurationError(f"'{key}' is only valid for reference file sets", location)
        if snake_key in _LIST_FIELDS:
            setattr(config, snake_key, _expect_str_list(key, value, location))
        elif snake_key in _BOOL_FIELDS:
            if not isinstance(value, bool):
                raise ConfigurationError(f"'{key}' must be true or false", location)
            setattr(config, snake_key, value)
        elif snake_key in _STR_FIELDS:
            if not isinstance(value, str):
                raise ConfigurationError(f"'{key}' must be a string", location)
            setattr(config, snake_key, value)
        elif snake_key in _ENTRY_FIELDS:
            setattr(config, snake_key, _parse_entries(key, value, location))
    return config


def _expect_str_list(key: str, value: Any, location: Location) -> list[str]:
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in cast(list[Any], value)):
        raise ConfigurationError(f"'{key}' must be a string or a list of strings", location)
    return list(cast(list[str], value))


def _parse_entries(key: str, value: Any, location: Location) -> list[PatternEntry]:
    if not isinstance(value, list):
        raise ConfigurationError(f"'{key}' must be a list of tables", location)
    entries: list[PatternEntry] = []
    for item in cast(list[Any], value):
        if not isinstance(item, dict):
            raise ConfigurationError(f"'{key}' must be a list of tables", location)
        table = cast(dict[str, Any], item)
        unknown = set(table) - _ENTRY_KEYS
        if unknown:
            raise ConfigurationError(
                f"Unknown key(s) in '{key}' entry: {', '.join(sorted(unknown))}", location
            )
        pattern = table.get("name")
        if not isinstance(pattern, str) or not pattern:
            raise ConfigurationError(f"Every '{key}' entry needs a 'name'", location)
        flags = {k: table.get(k, default) for k, default in _ENTRY_DEFAULTS.items()}
        if not all(isinstance(v, bool) for v in flags.values()):
            raise ConfigurationError(f"Flags in '{key}' entry '{pattern}' must be booleans", location)
        entries.append(
            PatternEntry(
                pattern,
                if_defined=flags["if"],
                unless_defined=flags["unless"],
                as_is=flags["asis"],
                from_path=flags["frompath"],
            )
        )
    return entries


def build_file_set(
    config: BuildConfig, name: str, overrides: dict[str, Any] | None = None
) -> FileSet:
    """
    Create the `FileSet` (or `ReferenceFileSet`) declared as `name`, with the
    config file's directory as project root. `overrides` replace declared
    settings (`fail_on_empty`, `case_sensitive`, ...), for command-line flags.
    List files are read here, so an unreadable one fails immediately.
    """
    if name not in config.filesets:
        available = ", ".join(sorted(config.filesets)) or "none"
        raise ConfigurationError(
            f"No file set named '{name}' (available: {available})", Location(str(config.path))
        )
    declared = config.filesets[name]
    location = config.location(name)
    options: dict[str, Any] = {
        key: getattr(declared, key)
        for key in ("default_excludes", "fail_on_empty", "case_sensitive", "respect_gitignore", "strict")
        if getattr(declared, key) is not None
    }
    options.update(overrides or {})

    file_set: FileSet
    if declared.references:
        framework_dir = declared.framework_dir
        reference_set = ReferenceFileSet(
            declared.basedir,
            project_root=config.project_root,
            name=name,
            location=location,
            fallback_directory=(config.project_root / framework_dir) if framework_dir else None,
            strict_references=bool(declared.strict_references),
            **options,
        )
        for pattern in declared.lib:
            reference_set.add_lib_directory(pattern)
        file_set = reference_set
    else:
        file_set = FileSet(
            declared.basedir,
            project_root=config.project_root,
            name=name,
            location=location,
            **options,
        )

    for pattern in declared.include:
        file_set.add_include(pattern)
    for pattern in declared.exclude:
        file_set.add_exclude(pattern)
    for entry in declared.includes:
        file_set.add_entry(entry)
    for entry in declared.excludes:
        file_set.add_exclude_entry(entry)
    for entry_name in declared.asis:
        file_set.add_as_is(entry_name)
    for entry_name in declared.frompath:
        file_set.add_from_path(entry_name)
    for list_file in declared.fromfile:
        file_set.add_list_file(list_file)
    return file_set
