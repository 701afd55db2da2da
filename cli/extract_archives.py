"""extract-archives: unpack archives into sibling directories with 7z or unrar."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from cli.common import (
    EXIT_FAILURE,
    EXIT_OK,
    EXIT_TOOL_MISSING,
    add_verbose_flag,
    configure_logging,
    load_settings,
    plural,
)
from filekeep.exceptions import AccessError, ToolNotFoundError
from filekeep.services.archive_service import (
    Archive,
    ArchiveExtractor,
    ArchiveStatus,
    archives_in,
    classify_archive,
)
from filekeep.services.tool_service import ExternalTool, require_tools

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="extract-archives",
        description=(
            "Extract each archive into a directory named after it. Directory arguments "
            "are scanned (not recursively) for archives. Existing destinations are skipped."
        ),
    )
    parser.add_argument("paths", nargs="*", type=Path, default=[Path(".")], help="Archives or directories")
    parser.add_argument("--delete", action="store_true", help="Delete archives after successful extraction")
    add_verbose_flag(parser)
    return parser


def collect_archives(paths: list[Path]) -> tuple[list[Archive], list[Path]]:
    """Resolve command-line paths to archives; also return the unusable paths."""
    archives: list[Archive] = []
    rejected: list[Path] = []
    for path in paths:
        if path.is_dir():
            try:
                archives.extend(archives_in(path))
            except AccessError as exc:
                logger.error("%s", exc)
                rejected.append(path)
            continue
        archive = classify_archive(path) if path.is_file() else None
        if archive is None:
            logger.error("Not an archive: %s", path)
            rejected.append(path)
            continue
        archives.append(archive)
    return archives, rejected


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(parser, debug=args.verbose)
    configure_logging(settings.debug)

    extractor = ArchiveExtractor(
        ExternalTool(settings.seven_zip_bin, timeout=settings.tool_timeout_seconds),
        ExternalTool(settings.unrar_bin, timeout=settings.tool_timeout_seconds),
    )
    archives, rejected = collect_archives(args.paths)

    counts = dict.fromkeys(ArchiveStatus, 0)
    try:
        require_tools(*extractor.required_tools(archives))
        for archive in archives:
            result = extractor.extract(archive, delete=args.delete)
            counts[result.status] += 1
    except ToolNotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_TOOL_MISSING

    print(
        f"{plural(counts[ArchiveStatus.DONE], 'archive')} extracted, "
        f"{counts[ArchiveStatus.SKIPPED]} skipped, {counts[ArchiveStatus.FAILED]} failed"
    )
    return EXIT_FAILURE if rejected or counts[ArchiveStatus.FAILED] else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
