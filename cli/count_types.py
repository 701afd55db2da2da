"""count-types: count files per extension below a directory."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from cli.common import EXIT_FAILURE, EXIT_OK, add_verbose_flag, configure_logging, load_settings
from filekeep.exceptions import AccessError
from filekeep.services.inventory_service import NO_EXTENSION_LABEL, count_file_types, sorted_type_counts

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="count-types",
        description="Count regular files by extension, most frequent first.",
    )
    parser.add_argument("directory", nargs="?", type=Path, default=Path("."), help="Directory (default: current)")
    parser.add_argument(
        "--case-sensitive",
        action="store_true",
        help="Treat JPG and jpg as different types",
    )
    add_verbose_flag(parser)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(parser, debug=args.verbose)
    configure_logging(settings.debug)

    try:
        counts = count_file_types(args.directory, case_sensitive=args.case_sensitive)
    except AccessError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE

    width = len(str(max(counts.values(), default=0)))
    for ext, count in sorted_type_counts(counts):
        print(f"{count:>{width}} {ext or NO_EXTENSION_LABEL}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
