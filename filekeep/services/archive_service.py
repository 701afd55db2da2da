"""Archive service: extraction with 7z/unrar and packing directories with 7z."""

from __future__ import annotations

import logging
import os
import re
import shutil
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from filekeep.exceptions import AccessError, ExternalToolError, ToolNotFoundError
from filekeep.services.tool_service import ExternalTool

logger = logging.getLogger(__name__)

# Longest first so that ".tar.gz" wins over ".gz".
ARCHIVE_SUFFIXES = (
    ".tar.gz",
    ".tar.bz2",
    ".tar.xz",
    ".7z",
    ".zip",
    ".rar",
    ".tar",
    ".tgz",
    ".gz",
    ".bz2",
    ".xz",
    ".iso",
    ".cab",
    ".arj",
    ".lzh",
)
ARCHIVE_FORMATS = ("7z", "zip", "tar")
# 7z unpacks only the compression layer of these; the inner .tar needs a second pass.
COMPRESSED_TAR_SUFFIXES = (".tar.gz", ".tar.bz2", ".tar.xz", ".tgz")

_RAR_PART_RE = re.compile(r"^(?P<stem>.+)\.part(?P<num>\d+)\.rar$", re.IGNORECASE)
_SPLIT_VOLUME_RE = re.compile(r"^(?P<stem>.+)\.(?P<fmt>7z|zip)\.(?P<num>\d{3})$", re.IGNORECASE)


class ArchiveStatus(StrEnum):
    """Outcome of extracting or creating one archive."""

    DONE = "done"
    SKIPPED = "skipped"
    FAILED = "failed"


class ArchiveKind(StrEnum):
    """Which tool handles an archive."""

    SEVEN_ZIP = "7z"
    RAR = "rar"


@dataclass(frozen=True)
class Archive:
    """An archive to extract; ``path`` is the first volume for split archives."""

    path: Path
    stem: str
    kind: ArchiveKind
    volume_pattern: str | None = None
    compressed_tar: bool = False

    def volumes(self) -> list[Path]:
        """All files belonging to this archive."""
        if self.volume_pattern is None:
            return [self.path]
        return sorted(p for p in self.path.parent.glob(self.volume_pattern) if self._is_volume(p))

    def _is_volume(self, path: Path) -> bool:
        match = _RAR_PART_RE.match(path.name) or _SPLIT_VOLUME_RE.match(path.name)
        return match is not None and match.group("stem") == self.stem


@dataclass
class ArchiveResult:
    """Result of one extract or pack operation."""

    source: Path
    target: Path
    status: ArchiveStatus
    error: str | None = None


def classify_archive(path: Path) -> Archive | None:
    """Return the Archive for ``path``, or None if it is not an archive to extract.

    Second and later volumes of split archives return None; the first volume
    stands for the whole set.
    """
    name = path.name

    match = _RAR_PART_RE.match(name)
    if match:
        if int(match.group("num")) != 1:
            return None
        stem = match.group("stem")
        return Archive(path, stem, ArchiveKind.RAR, f"{glob_escape(stem)}.part*.rar")

    match = _SPLIT_VOLUME_RE.match(name)
    if match:
        if int(match.group("num")) != 1:
            return None
        base = f"{match.group('stem')}.{match.group('fmt')}"
        return Archive(path, match.group("stem"), ArchiveKind.SEVEN_ZIP, f"{glob_escape(base)}.[0-9][0-9][0-9]")

    lowered = name.lower()
    for suffix in ARCHIVE_SUFFIXES:
        if lowered.endswith(suffix) and len(name) > len(suffix):
            stem = name[: -len(suffix)]
            if suffix == ".rar":
                return Archive(path, stem, ArchiveKind.RAR)
            return Archive(
                path,
                stem,
                ArchiveKind.SEVEN_ZIP,
                compressed_tar=suffix in COMPRESSED_TAR_SUFFIXES,
            )
    return None


def glob_escape(value: str) -> str:
    """Escape glob metacharacters in a literal file name."""
    return re.sub(r"([*?\[])", r"[\1]", value)


def archives_in(directory: Path) -> list[Archive]:
    """Archives directly inside ``directory``, sorted by file name."""
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise AccessError(directory, exc.strerror or str(exc)) from exc
    archives = []
    for entry in entries:
        if not entry.is_file():
            continue
        archive = classify_archive(entry)
        if archive is not None:
            archives.append(archive)
    return archives


class ArchiveExtractor:
    """Extracts archives into sibling directories named after them."""

    def __init__(self, seven_zip: ExternalTool, unrar: ExternalTool) -> None:
        self.seven_zip = seven_zip
        self.unrar = unrar

    def tool_for(self, archive: Archive) -> ExternalTool:
        return self.unrar if archive.kind is ArchiveKind.RAR else self.seven_zip

    def required_tools(self, archives: list[Archive]) -> list[ExternalTool]:
        tools: list[ExternalTool] = []
        for archive in archives:
            tool = self.tool_for(archive)
            if tool not in tools:
                tools.append(tool)
        return tools

    def extract(self, archive: Archive, *, delete: bool = False) -> ArchiveResult:
        """Extract one archive.

        An existing destination is never touched. On failure the partially
        written destination is removed. Raises ToolNotFoundError when the
        needed binary is missing.
        """
        destination = archive.path.parent / archive.stem
        if destination.exists():
            logger.warning("Skipping %s: %s already exists", archive.path, destination)
            return ArchiveResult(archive.path, destination, ArchiveStatus.SKIPPED, "destination exists")

        tool = self.tool_for(archive)
        if archive.kind is ArchiveKind.RAR:
            args = ("x", "-o-", "-p-", "--", str(archive.path), f"{destination}{os.sep}")
        else:
            args = ("x", f"-o{destination}", "-y", "-bd", "--", str(archive.path))

        try:
            destination.mkdir()
            tool.run(*args)
            if archive.compressed_tar:
                self._unpack_inner_tar(archive, destination)
        except ToolNotFoundError:
            shutil.rmtree(destination, ignore_errors=True)
            raise
        except (ExternalToolError, OSError) as exc:
            shutil.rmtree(destination, ignore_errors=True)
            logger.error("Failed to extract %s: %s", archive.path, exc)
            return ArchiveResult(archive.path, destination, ArchiveStatus.FAILED, str(exc))

        logger.info("Extracted %s -> %s", archive.path, destination)
        if delete:
            for volume in archive.volumes():
                volume.unlink()
                logger.info("Deleted %s", volume)
        return ArchiveResult(archive.path, destination, ArchiveStatus.DONE)

    def _unpack_inner_tar(self, archive: Archive, destination: Path) -> None:
        inner = [p for p in destination.iterdir() if p.is_file() and p.suffix.lower() == ".tar"]
        if len(inner) != 1:
            msg = f"expected one tar archive inside {archive.path.name}, found {len(inner)}"
            raise ExternalToolError(self.seven_zip.executable, msg)
        self.seven_zip.run("x", f"-o{destination}", "-y", "-bd", "--", str(inner[0]))
        inner[0].unlink()


class DirectoryArchiver:
    """Packs directories into ``<dir>.<fmt>`` archives with 7z."""

    def __init__(self, seven_zip: ExternalTool, fmt: str = "7z") -> None:
        if fmt not in ARCHIVE_FORMATS:
            msg = f"Unsupported archive format: {fmt!r}. Available: {list(ARCHIVE_FORMATS)}"
            raise ValueError(msg)
        self.seven_zip = seven_zip
        self.fmt = fmt

    def target_for(self, directory: Path) -> Path:
        return directory.parent / f"{directory.name}.{self.fmt}"

    def archive(self, directory: Path, *, test: bool = False, delete: bool = False) -> ArchiveResult:
        """Pack one directory; the archive holds the directory as its top entry.

        The source directory is only deleted after the archive was created
        and, when ``test`` is set, verified. A failed run removes the partial
        archive. Raises AccessError when ``directory`` is not a directory.
        """
        if not directory.name:
            raise AccessError(directory, "cannot archive a filesystem root")
        if not directory.is_dir():
            raise AccessError(directory, "not a directory")

        target = self.target_for(directory)
        if target.exists():
            logger.warning("Skipping %s: %s already exists", directory, target)
            return ArchiveResult(directory, target, ArchiveStatus.SKIPPED, "archive exists")

        try:
            self.seven_zip.run(
                "a", f"-t{self.fmt}", "-bd", "--", target.name, directory.name, cwd=directory.parent
            )
            if test:
                self.seven_zip.run("t", "-bd", "--", target.name, cwd=directory.parent)
        except ToolNotFoundError:
            raise
        except ExternalToolError as exc:
            target.unlink(missing_ok=True)
            logger.error("Failed to archive %s: %s", directory, exc)
            return ArchiveResult(directory, target, ArchiveStatus.FAILED, str(exc))

        logger.info("Archived %s -> %s", directory, target)
        if delete:
            shutil.rmtree(directory)
            logger.info("Deleted %s", directory)
        return ArchiveResult(directory, target, ArchiveStatus.DONE)
