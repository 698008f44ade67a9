"""CLI integration tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from buildfiles.cli import main


def _make_tree(root: Path) -> None:
    """Create a minimal project directory tree for testing."""
    src = root / "src"
    src.mkdir()
    (src / "main.c").write_text("int main;\n")
    (src / "util.c").write_text("int util;\n")
    (src / "test_util.c").write_text("int test;\n")
    (root / "README.md").write_text("# Root\n")
    cvs = src / "CVS"
    cvs.mkdir()
    (cvs / "Entries").write_text("entries\n")


def _lines(out: str) -> list[str]:
    return [line for line in out.split("\n") if line]


def _render_help(capsys: pytest.CaptureFixture[str]) -> str:
    with pytest.raises(SystemExit) as exc:
        main(["--help"])
    assert exc.value.code == 0
    return capsys.readouterr().out


def test_help_includes_tagline_and_usage(capsys: pytest.CaptureFixture[str]) -> None:
    out = _render_help(capsys)
    assert "buildfiles: Resolve build file sets into concrete lists of files" in out
    assert "Common usage:" in out
    assert "buildfiles --fileset sources" in out


def test_lists_matching_files(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_tree(tmp_path)
    monkeypatch.chdir(tmp_path)
    root = Path.cwd()
    assert main(["**/*.c"]) == 0
    assert _lines(capsys.readouterr().out) == [
        str(root / "src" / "main.c"),
        str(root / "src" / "test_util.c"),
        str(root / "src" / "util.c"),
    ]


def test_no_patterns_selects_everything_but_default_excludes(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_tree(tmp_path)
    monkeypatch.chdir(tmp_path)
    assert main([]) == 0
    out = capsys.readouterr().out
    assert "README.md" in out
    assert "Entries" not in out

    assert main(["--no-default-excludes"]) == 0
    assert "Entries" in capsys.readouterr().out


def test_basedir_exclude_and_asis(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_tree(tmp_path)
    monkeypatch.chdir(tmp_path)
    root = Path.cwd()
    assert main(["--basedir", "src", "-x", "test_*", "--asis", "crt0.o", "*.c"]) == 0
    assert _lines(capsys.readouterr().out) == [
        str(root / "src" / "main.c"),
        str(root / "src" / "util.c"),
        "crt0.o",
    ]


def test_frompath(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    (bin_dir / "cc").write_text("#!/bin/sh\n")
    monkeypatch.setenv("PATH", str(bin_dir))
    monkeypatch.chdir(tmp_path)
    assert main(["--frompath", "cc", "*.none"]) == 0
    assert _lines(capsys.readouterr().out) == [str(bin_dir / "cc")]


def test_fromfile_is_relative_to_cwd(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_tree(tmp_path)
    (tmp_path / "objects.txt").write_text("a.o\nb.o\n")
    monkeypatch.chdir(tmp_path)
    assert main(["--basedir", "src", "--fromfile", "objects.txt", "*.none"]) == 0
    assert _lines(capsys.readouterr().out) == ["a.o", "b.o"]


def test_fail_on_empty_exits_with_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["--fail-on-empty", "*.none"]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Error:" in captured.err
    assert "empty" in captured.err


def test_missing_basedir_exits_with_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["--basedir", "missing"]) == 1
    assert "does not exist" in capsys.readouterr().err


def test_lib_and_framework_dir(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / "libs").mkdir()
    (tmp_path / "libs" / "foo.dll").write_text("foo")
    (tmp_path / "framework").mkdir()
    (tmp_path / "framework" / "System.dll").write_text("sys")
    monkeypatch.chdir(tmp_path)
    root = Path.cwd()
    args = ["--lib", "libs", "--framework-dir", "framework", "foo.dll", "System.dll"]
    assert main(args) == 0
    assert _lines(capsys.readouterr().out) == [
        str(root / "libs" / "foo.dll"),
        str(root / "framework" / "System.dll"),
    ]


def test_strict_references(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["ghost.dll"]) == 0
    assert main(["--strict-references", "ghost.dll"]) == 1
    assert "ghost.dll" in capsys.readouterr().err


def test_fileset_from_config(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_tree(tmp_path)
    (tmp_path / "buildfiles.toml").write_text(
        "[filesets.sources]\nbasedir = 'src'\ninclude = ['*.c']\nexclude = ['test_*']\n"
    )
    (tmp_path / "src" / "sub").mkdir()
    monkeypatch.chdir(tmp_path / "src" / "sub")
    root = tmp_path.resolve()
    assert main(["--fileset", "sources", "-x", "util.c"]) == 0
    assert _lines(capsys.readouterr().out) == [str(root / "src" / "main.c")]


def test_fileset_without_config(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["--fileset", "sources"]) == 1
    assert "no buildfiles.toml" in capsys.readouterr().err


def test_lib_with_plain_fileset_is_an_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / "buildfiles.toml").write_text("[filesets.sources]\ninclude = ['*.c']\n")
    monkeypatch.chdir(tmp_path)
    assert main(["--fileset", "sources", "--lib", "libs"]) == 1
    assert "plain file set" in capsys.readouterr().err


def test_output_file(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_tree(tmp_path)
    monkeypatch.chdir(tmp_path)
    root = Path.cwd()
    output = tmp_path / "out" / "files.txt"
    assert main(["-o", str(output), "*.md"]) == 0
    assert capsys.readouterr().out == ""
    assert output.read_text() == f"{root / 'README.md'}\n"
