"""Checksum manifest reader/writer in the ``md5sum``/``sha1sum`` text format."""

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from filekeep.exceptions import AccessError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

logger = logging.getLogger(__name__)

# Paths are kept as surrogate-escaped str so that names which are not valid
# UTF-8 survive a read/write round trip unchanged.
MANIFEST_ENCODING = "utf-8"
MANIFEST_ERRORS = "surrogateescape"

_RECORD_RE = re.compile(r"^(?P<checksum>[0-9A-Fa-f]+) (?P<mode>[ *]?)(?P<path>.*)$", re.DOTALL)
_UNESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r"}


@dataclass(frozen=True)
class ManifestRecord:
    """One ``<checksum>  <path>`` line of a manifest."""

    checksum: str
    path: str


def normalize_path(path: str) -> str:
    """Return a manifest-relative path without leading ``./`` segments."""
    while path.startswith("./"):
        path = path[2:]
    return path


def _needs_escape(path: str) -> bool:
    return "\\" in path or "\n" in path or "\r" in path


def _escape(path: str) -> str:
    return path.replace("\\", "\\\\").replace("\n", "\\n").replace("\r", "\\r")


def _unescape(path: str) -> str:
    def sub(match: re.Match[str]) -> str:
        char = match.group(1)
        if char not in _UNESCAPES:
            msg = f"Invalid escape sequence '\\{char}' in manifest path"
            raise ValueError(msg)
        return _UNESCAPES[char]

    return _UNESCAPE_RE.sub(sub, path)


def format_record(record: ManifestRecord) -> str:
    """Render a record as a manifest line, newline included.

    Paths containing a backslash or a line break are escaped the way GNU
    coreutils does it: the line gets a leading backslash and the path has
    ``\\\\``, ``\\n`` and ``\\r`` escapes.
    """
    if _needs_escape(record.path):
        return f"\\{record.checksum}  {_escape(record.path)}\n"
    return f"{record.checksum}  {record.path}\n"


def parse_line(line: str) -> ManifestRecord | None:
    """Parse one manifest line. Returns None for blank lines.

    Accepts the two-space text-mode separator, the `` *`` binary-mode
    separator and a single space. Raises ValueError for lines that do not
    start with a hex checksum.
    """
    if line.endswith("\n"):
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
    if not line.strip():
        return None

    escaped = line.startswith("\\")
    if escaped:
        line = line[1:]

    match = _RECORD_RE.match(line)
    if match is None or not match.group("path"):
        msg = f"Malformed manifest line: {line!r}"
        raise ValueError(msg)

    path = match.group("path")
    if escaped:
        path = _unescape(path)
    return ManifestRecord(checksum=match.group("checksum").lower(), path=normalize_path(path))


def read_records(manifest_path: Path) -> list[ManifestRecord]:
    """Read all records from a manifest. A missing manifest is empty.

    Raises AccessError if the manifest exists but cannot be read.
    """
    if not manifest_path.exists():
        return []
    records: list[ManifestRecord] = []
    try:
        with manifest_path.open("r", encoding=MANIFEST_ENCODING, errors=MANIFEST_ERRORS, newline="") as f:
            for line_number, line in enumerate(f, start=1):
                try:
                    record = parse_line(line)
                except ValueError as exc:
                    raise AccessError(manifest_path, f"line {line_number}: {exc}") from exc
                if record is not None:
                    records.append(record)
    except OSError as exc:
        raise AccessError(manifest_path, exc.strerror or str(exc)) from exc
    return records


def _ends_without_newline(path: Path) -> bool:
    size = path.stat().st_size
    if size == 0:
        return False
    with path.open("rb") as f:
        f.seek(size - 1)
        return f.read(1) != b"\n"


class ManifestAppender:
    """Append-only manifest writer.

    Every record is written and flushed on its own, so an interrupted run
    leaves all previously appended records intact. Existing content is never
    rewritten; a missing trailing newline is completed before the first new
    record.
    """

    def __init__(self, manifest_path: Path, *, fsync: bool = False) -> None:
        self.manifest_path = manifest_path
        self.fsync = fsync
        self.appended = 0
        self._handle = None
        self._pending_newline = False

    def __enter__(self) -> ManifestAppender:
        try:
            self._pending_newline = self.manifest_path.exists() and _ends_without_newline(
                self.manifest_path
            )
            self._handle = self.manifest_path.open(
                "a", encoding=MANIFEST_ENCODING, errors=MANIFEST_ERRORS, newline=""
            )
        except OSError as exc:
            raise AccessError(self.manifest_path, exc.strerror or str(exc)) from exc
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def append(self, record: ManifestRecord) -> None:
        """Append one record and flush it to the file."""
        if self._handle is None:
            msg = "ManifestAppender used outside of its context"
            raise RuntimeError(msg)
        line = format_record(record)
        if self._pending_newline:
            line = "\n" + line
        try:
            self._handle.write(line)
            self._handle.flush()
            if self.fsync:
                os.fsync(self._handle.fileno())
        except OSError as exc:
            raise AccessError(self.manifest_path, exc.strerror or str(exc)) from exc
        self._pending_newline = False
        self.appended += 1


def write_manifest(manifest_path: Path, records: Iterable[ManifestRecord]) -> int:
    """Write a complete manifest atomically (temporary file + rename).

    Used for transcriptions of another tool's database, never for the
    append-only reconciled manifest. Returns the number of records written.
    """
    count = 0
    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding=MANIFEST_ENCODING,
            errors=MANIFEST_ERRORS,
            newline="",
            dir=manifest_path.parent,
            prefix=f".{manifest_path.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            tmp_name = f.name
            for record in records:
                f.write(format_record(record))
                count += 1
        os.replace(tmp_name, manifest_path)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise AccessError(manifest_path, exc.strerror or str(exc)) from exc
    logger.debug("Wrote %d record(s) to %s", count, manifest_path)
    return count
