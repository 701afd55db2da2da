"""Reconcile service: bring checksum manifests up to date with the files on disk.

A manifest is append-only. Reconciliation hashes files that are on disk but
not yet recorded, appends one record per file, and reports recorded paths
that have disappeared. Existing records are never rewritten or removed, and a
file whose content changed under an unchanged name is left alone: this pass
is about completeness of the manifest, not about re-verifying it.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from filekeep.exceptions import (
    AccessError,
    ExternalToolError,
    HashError,
    MissingFileWarning,
    ToolNotFoundError,
)
from filekeep.filesystem.manifest_file import ManifestAppender, ManifestRecord, read_records
from filekeep.filesystem.walker import directories_at_depth, iter_files

if TYPE_CHECKING:
    from collections.abc import Callable

    from filekeep.services.checksum_service import ChecksumStrategy

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    """Outcome of reconciling one directory."""

    directory: Path
    manifest_path: Path
    added: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    unresolved: list[HashError] = field(default_factory=list)
    exported: int | None = None

    @property
    def added_count(self) -> int:
        return len(self.added)

    @property
    def ok(self) -> bool:
        """True when every new file was hashed."""
        return not self.unresolved


@dataclass
class BatchReport:
    """Outcome of reconciling every directory at one depth below a root."""

    reports: list[ReconcileReport] = field(default_factory=list)
    failures: list[tuple[Path, AccessError | ExternalToolError]] = field(default_factory=list)

    @property
    def added_count(self) -> int:
        return sum(r.added_count for r in self.reports)

    @property
    def ok(self) -> bool:
        return not self.failures and all(r.ok for r in self.reports)


def _manifest_rel_path(directory: Path, manifest_path: Path) -> str | None:
    try:
        return manifest_path.relative_to(directory).as_posix()
    except ValueError:
        return None


def reconcile(
    directory: Path,
    manifest_path: Path,
    hash_file: Callable[[Path], str],
    *,
    fsync: bool = False,
) -> ReconcileReport:
    """Append checksums for files under ``directory`` missing from ``manifest_path``.

    ``hash_file`` maps an absolute path to a hex digest and raises HashError
    when the file cannot be read; such files are reported in
    ``report.unresolved`` and not appended. Raises AccessError when the
    directory cannot be fully listed or the manifest cannot be read or
    appended to. Any other exception propagates; records appended before it
    stay in the manifest.
    """
    report = ReconcileReport(directory=directory, manifest_path=manifest_path)

    recorded = dict.fromkeys(record.path for record in read_records(manifest_path))

    own = _manifest_rel_path(directory, manifest_path)
    exclude = frozenset({own}) if own is not None else frozenset()
    snapshot = list(iter_files(directory, exclude=exclude))
    on_disk = set(snapshot)

    new = [path for path in snapshot if path not in recorded]
    report.missing = [path for path in recorded if path not in on_disk]

    if new:
        with ManifestAppender(manifest_path, fsync=fsync) as appender:
            for rel in new:
                try:
                    checksum = hash_file(directory / rel)
                except HashError as exc:
                    logger.error("%s", exc)
                    report.unresolved.append(exc)
                    continue
                appender.append(ManifestRecord(checksum=checksum, path=rel))
                report.added.append(rel)
                logger.debug("Added %s", rel)

    for rel in report.missing:
        warnings.warn(
            f"{directory / rel} is recorded in {manifest_path.name} but missing from disk",
            MissingFileWarning,
            stacklevel=2,
        )

    logger.info(
        "%s: %d new, %d missing, %d unresolved",
        directory,
        report.added_count,
        len(report.missing),
        len(report.unresolved),
    )
    return report


def reconcile_tree(
    root: Path,
    depth: int,
    strategy: ChecksumStrategy,
    manifest_name: str,
) -> BatchReport:
    """Run ``strategy`` on every directory exactly ``depth`` levels below ``root``.

    Each directory gets its own manifest named ``manifest_name``. A failure in
    one directory is recorded in the batch report and the next directory is
    processed. Raises AccessError only when ``root`` itself is unreadable,
    and ToolNotFoundError when the strategy's binary is not installed.
    """
    batch = BatchReport()
    for directory in directories_at_depth(root, depth):
        try:
            report = strategy.update(directory, directory / manifest_name)
        except ToolNotFoundError:
            raise
        except (AccessError, ExternalToolError) as exc:
            logger.error("Skipping %s: %s", directory, exc)
            batch.failures.append((directory, exc))
            continue
        batch.reports.append(report)
    return batch
