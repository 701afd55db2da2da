"""Bitrot database access: transcription of ``.bitrot.db`` into a manifest."""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filekeep.exceptions import AccessError
from filekeep.filesystem.manifest_file import ManifestRecord, normalize_path, write_manifest
from filekeep.models.bitrot import BitrotEntry

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


def open_bitrot_db(db_path: Path, *, echo: bool = False) -> Engine:
    """Create a read-only engine for a bitrot database."""
    if not db_path.is_file():
        raise AccessError(db_path, "bitrot database not found")
    uri = f"{db_path.resolve().as_uri()}?mode=ro"
    return create_engine("sqlite://", creator=lambda: sqlite3.connect(uri, uri=True), echo=echo)


def read_bitrot_records(db_path: Path, *, echo: bool = False) -> list[ManifestRecord]:
    """Return all hashed files in the database as manifest records, ordered by path.

    Rows without a hash (never completed by bitrot) are skipped.
    """
    engine = open_bitrot_db(db_path, echo=echo)
    try:
        with Session(engine) as session:
            rows = session.scalars(select(BitrotEntry).order_by(BitrotEntry.path)).all()
            records = [
                ManifestRecord(checksum=row.hash.lower(), path=normalize_path(row.path))
                for row in rows
                if row.hash
            ]
    except SQLAlchemyError as exc:
        raise AccessError(db_path, f"cannot read bitrot database: {exc}") from exc
    finally:
        engine.dispose()
    return records


def export_bitrot_db(db_path: Path, manifest_path: Path, *, echo: bool = False) -> int:
    """Write the bitrot database as a ``<hash>  <path>`` manifest.

    The manifest is replaced atomically. Returns the number of records.
    """
    records = read_bitrot_records(db_path, echo=echo)
    count = write_manifest(manifest_path, records)
    logger.info("Exported %d bitrot record(s) from %s to %s", count, db_path, manifest_path)
    return count
