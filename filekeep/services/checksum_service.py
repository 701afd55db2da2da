"""Checksum strategies: direct hashing or delegation to the bitrot tool."""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from filekeep.exceptions import HashError
from filekeep.services.bitrot_service import export_bitrot_db
from filekeep.services.reconcile_service import ReconcileReport, reconcile
from filekeep.services.tool_service import ExternalTool

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from filekeep.config import Settings

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def hash_file(path: Path, algorithm: str = "md5") -> str:
    """Compute the hex digest of a file, raising HashError on I/O failure."""
    digest = hashlib.new(algorithm)
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as exc:
        raise HashError(str(path), exc.strerror or str(exc)) from exc
    return digest.hexdigest()


@runtime_checkable
class ChecksumStrategy(Protocol):
    """Brings a directory's persisted checksum record up to date."""

    name: str

    def update(self, directory: Path, manifest_path: Path) -> ReconcileReport:
        """Record new files under ``directory`` and report what changed."""
        ...

    def required_tools(self) -> list[ExternalTool]:
        """External binaries that must be installed for ``update`` to work."""
        ...


class DirectHashStrategy:
    """Hashes new files with hashlib and appends them to the manifest."""

    name = "hash"

    def __init__(self, algorithm: str = "md5", *, fsync: bool = False) -> None:
        hashlib.new(algorithm)
        self.algorithm = algorithm
        self.fsync = fsync

    def _hash(self, path: Path) -> str:
        return hash_file(path, self.algorithm)

    def update(self, directory: Path, manifest_path: Path) -> ReconcileReport:
        return reconcile(directory, manifest_path, self._hash, fsync=self.fsync)

    def required_tools(self) -> list[ExternalTool]:
        return []


class BitrotStrategy:
    """Delegates detection and verification to the ``bitrot`` tool.

    bitrot keeps its own database in the directory and both records new
    files and checks existing ones. Optionally the database is transcribed
    into ``manifest_path`` so the checksums are usable without bitrot.
    """

    name = "bitrot"

    def __init__(
        self,
        tool: ExternalTool,
        *,
        export: bool = False,
        db_name: str = ".bitrot.db",
        echo: bool = False,
    ) -> None:
        self.tool = tool
        self.export = export
        self.db_name = db_name
        self.echo = echo

    def update(self, directory: Path, manifest_path: Path) -> ReconcileReport:
        report = ReconcileReport(directory=directory, manifest_path=manifest_path)
        result = self.tool.run(cwd=directory)
        for line in result.stdout.splitlines():
            logger.info("bitrot[%s]: %s", directory, line)
        if self.export:
            report.exported = export_bitrot_db(
                directory / self.db_name, manifest_path, echo=self.echo
            )
        return report

    def required_tools(self) -> list[ExternalTool]:
        return [self.tool]


def _direct_hash(settings: Settings) -> ChecksumStrategy:
    return DirectHashStrategy(settings.hash_algorithm, fsync=settings.fsync)


def _bitrot(settings: Settings) -> ChecksumStrategy:
    return BitrotStrategy(
        ExternalTool(settings.bitrot_bin, timeout=settings.tool_timeout_seconds),
        export=settings.bitrot_export,
        db_name=settings.bitrot_db_name,
        echo=settings.debug,
    )


STRATEGIES: dict[str, Callable[[Settings], ChecksumStrategy]] = {
    "hash": _direct_hash,
    "bitrot": _bitrot,
}


def get_strategy(mode: str, settings: Settings) -> ChecksumStrategy:
    """Build the checksum strategy registered under ``mode``.

    Raises ValueError if the mode is unknown.
    """
    factory = STRATEGIES.get(mode)
    if factory is None:
        msg = f"Unknown checksum mode: {mode!r}. Available: {list(STRATEGIES)}"
        raise ValueError(msg)
    return factory(settings)


def list_strategies() -> list[str]:
    """Return the names of the supported checksum modes."""
    return list(STRATEGIES.keys())
