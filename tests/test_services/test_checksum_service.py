"""Tests for checksum strategies."""

from __future__ import annotations

import hashlib
import subprocess
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from filekeep.config import Settings
from filekeep.exceptions import ExternalToolError, HashError
from filekeep.services.checksum_service import (
    BitrotStrategy,
    ChecksumStrategy,
    DirectHashStrategy,
    get_strategy,
    hash_file,
    list_strategies,
)
from filekeep.services.tool_service import ExternalTool

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


class TestHashFile:
    def test_md5_default(self, tmp_path: Path) -> None:
        path = tmp_path / "f"
        path.write_bytes(b"hello")
        assert hash_file(path) == hashlib.md5(b"hello").hexdigest()

    def test_other_algorithm(self, tmp_path: Path) -> None:
        path = tmp_path / "f"
        path.write_bytes(b"hello")
        assert hash_file(path, "sha256") == hashlib.sha256(b"hello").hexdigest()

    def test_large_file_in_chunks(self, tmp_path: Path) -> None:
        data = b"x" * (3 * 1024 * 1024 + 17)
        path = tmp_path / "big"
        path.write_bytes(data)
        assert hash_file(path) == hashlib.md5(data).hexdigest()

    def test_missing_file_raises_hash_error(self, tmp_path: Path) -> None:
        with pytest.raises(HashError, match="gone"):
            hash_file(tmp_path / "gone")


class TestDirectHashStrategy:
    def test_is_checksum_strategy(self) -> None:
        assert isinstance(DirectHashStrategy(), ChecksumStrategy)

    def test_unknown_algorithm_rejected(self) -> None:
        with pytest.raises(ValueError):
            DirectHashStrategy("not-a-hash")

    def test_update_uses_algorithm(self, tmp_path: Path, make_tree: Callable[..., Path]) -> None:
        make_tree(tmp_path, {"a.txt": "a"})
        report = DirectHashStrategy("sha1").update(tmp_path, tmp_path / "checksums.sha1")
        assert report.added == ["a.txt"]
        expected = hashlib.sha1(b"a").hexdigest()
        assert (tmp_path / "checksums.sha1").read_text() == f"{expected}  a.txt\n"

    def test_needs_no_tools(self) -> None:
        assert DirectHashStrategy().required_tools() == []


class TestBitrotStrategy:
    def _completed(self, returncode: int = 0, stdout: str = "") -> subprocess.CompletedProcess[str]:
        return subprocess.CompletedProcess(["bitrot"], returncode, stdout=stdout, stderr="")

    def test_is_checksum_strategy(self) -> None:
        assert isinstance(BitrotStrategy(ExternalTool("bitrot")), ChecksumStrategy)

    def test_runs_bitrot_in_directory(self, tmp_path: Path) -> None:
        strategy = BitrotStrategy(ExternalTool("bitrot"))
        with patch("filekeep.services.tool_service.subprocess.run", return_value=self._completed()) as run:
            report = strategy.update(tmp_path, tmp_path / "checksums.sha1")
        assert run.call_args.args[0] == ["bitrot"]
        assert run.call_args.kwargs["cwd"] == tmp_path
        assert report.added == []
        assert report.exported is None
        assert not (tmp_path / "checksums.sha1").exists()

    def test_failure_raises_external_tool_error(self, tmp_path: Path) -> None:
        strategy = BitrotStrategy(ExternalTool("bitrot"))
        with (
            patch(
                "filekeep.services.tool_service.subprocess.run",
                return_value=self._completed(returncode=1),
            ),
            pytest.raises(ExternalToolError, match="status 1"),
        ):
            strategy.update(tmp_path, tmp_path / "checksums.sha1")

    def test_export_transcribes_database(self, tmp_path: Path) -> None:
        strategy = BitrotStrategy(ExternalTool("bitrot"), export=True)
        with (
            patch("filekeep.services.tool_service.subprocess.run", return_value=self._completed()),
            patch(
                "filekeep.services.checksum_service.export_bitrot_db", return_value=3
            ) as export,
        ):
            report = strategy.update(tmp_path, tmp_path / "checksums.sha1")
        export.assert_called_once_with(tmp_path / ".bitrot.db", tmp_path / "checksums.sha1", echo=False)
        assert report.exported == 3

    def test_required_tools(self) -> None:
        tool = ExternalTool("bitrot")
        assert BitrotStrategy(tool).required_tools() == [tool]


class TestGetStrategy:
    def test_hash_mode(self) -> None:
        settings = Settings(_env_file=None, hash_algorithm="sha256", fsync=True)
        strategy = get_strategy("hash", settings)
        assert isinstance(strategy, DirectHashStrategy)
        assert strategy.algorithm == "sha256"
        assert strategy.fsync is True

    def test_bitrot_mode(self) -> None:
        settings = Settings(
            _env_file=None,
            bitrot_bin="/opt/bitrot",
            bitrot_export=True,
            tool_timeout_seconds=30,
        )
        strategy = get_strategy("bitrot", settings)
        assert isinstance(strategy, BitrotStrategy)
        assert strategy.tool.executable == "/opt/bitrot"
        assert strategy.tool.timeout == 30
        assert strategy.export is True

    def test_unknown_mode(self, test_settings: Settings) -> None:
        with pytest.raises(ValueError, match="Unknown checksum mode"):
            get_strategy("crc", test_settings)

    def test_list_strategies(self) -> None:
        assert list_strategies() == ["hash", "bitrot"]

    def test_strategies_are_polymorphic(self, test_settings: Settings) -> None:
        for mode in list_strategies():
            strategy = get_strategy(mode, test_settings)
            assert strategy.name == mode
            assert isinstance(strategy, ChecksumStrategy)
