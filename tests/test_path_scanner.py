"""Tests for PathScanner."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from buildfiles.path_scanner import PathScanner


def _search_path(*dirs: Path) -> str:
    return os.pathsep.join(str(d) for d in dirs)


def test_first_directory_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (first / "tool").write_text("1")
    (second / "tool").write_text("2")
    monkeypatch.setenv("PATH", _search_path(first, second))

    assert PathScanner(["tool"]).scan() == [str(first / "tool")]


def test_unresolved_names_are_dropped_with_warning(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    (tmp_path / "present").write_text("p")
    monkeypatch.setenv("PATH", str(tmp_path))

    scanner = PathScanner(["missing", "present"])
    assert scanner.scan() == [str(tmp_path / "present")]
    assert [w.path for w in scanner.warnings] == ["missing"]


def test_results_keep_declaration_order(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    for name in ("b", "a"):
        (tmp_path / name).write_text(name)
    monkeypatch.setenv("PATH", str(tmp_path))
    assert PathScanner(["b", "a"]).scan() == [str(tmp_path / "b"), str(tmp_path / "a")]


def test_search_path_is_reread_each_scan(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    one = tmp_path / "one"
    two = tmp_path / "two"
    one.mkdir()
    two.mkdir()
    (two / "tool").write_text("t")
    monkeypatch.setenv("PATH", str(one))
    scanner = PathScanner(["tool"])
    assert scanner.scan() == []
    monkeypatch.setenv("PATH", _search_path(one, two))
    assert scanner.scan() == [str(two / "tool")]


def test_directories_are_skipped_and_empty_entries_ignored(tmp_path: Path):
    (tmp_path / "tool").mkdir()
    other = tmp_path / "other"
    other.mkdir()
    (other / "tool").write_text("t")
    environ = {"TOOLPATH": os.pathsep.join(["", str(tmp_path), "", str(other)])}

    scanner = PathScanner(["tool"], variable="TOOLPATH", environ=environ)
    assert scanner.search_directories() == [tmp_path, other]
    assert scanner.scan() == [str(other / "tool")]


def test_missing_variable_resolves_nothing():
    scanner = PathScanner(["tool"], variable="BUILDFILES_NO_SUCH_VAR", environ={})
    assert scanner.scan() == []


def test_wildcard_name_returns_matches_from_first_directory(tmp_path: Path):
    first = tmp_path / "first"
    second = tmp_path / "second"
    first.mkdir()
    second.mkdir()
    (first / "libz.so").write_text("z")
    (first / "liba.so").write_text("a")
    (second / "libb.so").write_text("b")
    scanner = PathScanner(["lib*.so"], environ={"PATH": _search_path(first, second)})
    assert scanner.scan() == [str(first / "liba.so"), str(first / "libz.so")]


def test_duplicate_names_added_once():
    scanner = PathScanner().add("tool").add("tool")
    assert scanner.names == ("tool",)
