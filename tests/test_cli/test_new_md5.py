"""Tests for the new-md5 command."""

from __future__ import annotations

import hashlib
import subprocess
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from cli.common import EXIT_FAILURE, EXIT_OK, EXIT_TOOL_MISSING, EXIT_USAGE
from cli.new_md5 import main

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def _md5(text: str) -> str:
    return hashlib.md5(text.encode()).hexdigest()


class TestNewMd5:
    def test_appends_new_file(
        self,
        tmp_path: Path,
        make_tree: Callable[..., Path],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        make_tree(tmp_path, {"foo.txt": "foo", "bar.txt": "bar"})
        (tmp_path / "checksums.md5").write_text("abc123  foo.txt\n")

        assert main(["0", str(tmp_path)]) == EXIT_OK

        assert (tmp_path / "checksums.md5").read_text() == f"abc123  foo.txt\n{_md5('bar')}  bar.txt\n"
        assert capsys.readouterr().out == f"{tmp_path}: 1 new file\n"

    def test_reports_missing_files(
        self,
        tmp_path: Path,
        make_tree: Callable[..., Path],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        make_tree(tmp_path, {"bar.txt": "bar"})
        (tmp_path / "checksums.md5").write_text("abc123  foo.txt\n")

        assert main(["0", str(tmp_path)]) == EXIT_OK

        assert capsys.readouterr().out == f"{tmp_path}: 1 new file, 1 missing\n"
        assert "foo.txt" in (tmp_path / "checksums.md5").read_text()

    def test_depth_one_prints_total(
        self,
        tmp_path: Path,
        make_tree: Callable[..., Path],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        make_tree(tmp_path, {"a/x.txt": "x", "a/y.txt": "y", "b/z.txt": "z"})

        assert main(["1", str(tmp_path)]) == EXIT_OK

        assert capsys.readouterr().out.splitlines() == [
            f"{tmp_path / 'a'}: 2 new files",
            f"{tmp_path / 'b'}: 1 new file",
            "Total: 3 new files in 2 directories, 0 failed",
        ]

    def test_failed_directory_sets_exit_status(
        self, tmp_path: Path, make_tree: Callable[..., Path]
    ) -> None:
        make_tree(tmp_path, {"a/x.txt": "x", "b/y.txt": "y"})
        (tmp_path / "a" / "checksums.md5").write_text("not a record\n")

        assert main(["1", str(tmp_path)]) == EXIT_FAILURE
        assert (tmp_path / "b" / "checksums.md5").exists()

    def test_custom_manifest_and_algorithm(
        self, tmp_path: Path, make_tree: Callable[..., Path]
    ) -> None:
        make_tree(tmp_path, {"a.txt": "a"})

        assert main(["0", str(tmp_path), "--manifest", "SHA1SUMS", "--algorithm", "sha1"]) == EXIT_OK

        expected = hashlib.sha1(b"a").hexdigest()
        assert (tmp_path / "SHA1SUMS").read_text() == f"{expected}  a.txt\n"
        assert not (tmp_path / "checksums.md5").exists()

    def test_settings_from_environment(
        self,
        tmp_path: Path,
        make_tree: Callable[..., Path],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        make_tree(tmp_path, {"a.txt": "a"})
        monkeypatch.setenv("FILEKEEP_MANIFEST_NAME", "MD5SUMS")

        assert main(["0", str(tmp_path)]) == EXIT_OK
        assert (tmp_path / "MD5SUMS").exists()

    def test_missing_root(self, tmp_path: Path) -> None:
        assert main(["0", str(tmp_path / "nope")]) == EXIT_FAILURE


class TestUsageErrors:
    @pytest.mark.parametrize(
        "argv",
        [
            ["-1", "."],
            ["x", "."],
            ["0"],
            ["0", ".", "--export"],
            ["0", ".", "--bitrot", "--algorithm", "sha1"],
            ["0", ".", "--bitrot", "--mode", "hash"],
            ["0", ".", "--algorithm", "crc32"],
            ["0", ".", "--manifest", "sub/sums"],
        ],
    )
    def test_exit_status_two(self, argv: list[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        assert exc_info.value.code == EXIT_USAGE


class TestBitrotMode:
    def test_missing_bitrot_binary(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("FILEKEEP_BITROT_BIN", str(tmp_path / "no-such-bitrot"))
        assert main(["--bitrot", "0", str(tmp_path)]) == EXIT_TOOL_MISSING

    def test_runs_bitrot_per_directory(
        self,
        tmp_path: Path,
        make_tree: Callable[..., Path],
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        make_tree(tmp_path, {"a/x.txt": "x", "b/y.txt": "y"})
        completed = subprocess.CompletedProcess(["bitrot"], 0, stdout="", stderr="")
        with (
            patch("filekeep.services.tool_service.shutil.which", return_value="/usr/bin/bitrot"),
            patch("filekeep.services.tool_service.subprocess.run", return_value=completed) as run,
        ):
            assert main(["--mode", "bitrot", "1", str(tmp_path)]) == EXIT_OK

        assert [c.kwargs["cwd"] for c in run.call_args_list] == [tmp_path / "a", tmp_path / "b"]
        assert f"{tmp_path / 'a'}: 0 new files" in capsys.readouterr().out
