"""dir2archive: pack directories into archives next to them."""

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
from filekeep.services.archive_service import ARCHIVE_FORMATS, ArchiveStatus, DirectoryArchiver
from filekeep.services.tool_service import ExternalTool, require_tools

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dir2archive",
        description="Create DIR.<format> for each DIR with 7z. Existing archives are skipped.",
    )
    parser.add_argument("directories", nargs="+", type=Path, help="Directories to pack")
    parser.add_argument(
        "--format",
        "-t",
        choices=ARCHIVE_FORMATS,
        default=None,
        help="Archive format (default: 7z, or FILEKEEP_ARCHIVE_FORMAT)",
    )
    parser.add_argument("--test", action="store_true", help="Test each archive after creating it")
    parser.add_argument(
        "--delete",
        action="store_true",
        help="Delete each directory once its archive was created (and tested)",
    )
    add_verbose_flag(parser)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(parser, debug=args.verbose, archive_format=args.format)
    configure_logging(settings.debug)

    seven_zip = ExternalTool(settings.seven_zip_bin, timeout=settings.tool_timeout_seconds)
    archiver = DirectoryArchiver(seven_zip, settings.archive_format)

    counts = dict.fromkeys(ArchiveStatus, 0)
    try:
        require_tools(seven_zip)
        for directory in args.directories:
            try:
                result = archiver.archive(directory.resolve(), test=args.test, delete=args.delete)
            except AccessError as exc:
                logger.error("%s", exc)
                counts[ArchiveStatus.FAILED] += 1
                continue
            counts[result.status] += 1
    except ToolNotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_TOOL_MISSING

    print(
        f"{plural(counts[ArchiveStatus.DONE], 'archive')} created, "
        f"{counts[ArchiveStatus.SKIPPED]} skipped, {counts[ArchiveStatus.FAILED]} failed"
    )
    return EXIT_FAILURE if counts[ArchiveStatus.FAILED] else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
