"""depth-stats: how many directories (or files) sit at each depth below a root."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from cli.common import EXIT_FAILURE, EXIT_OK, add_verbose_flag, configure_logging, load_settings
from filekeep.exceptions import AccessError
from filekeep.services.inventory_service import depth_distribution

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="depth-stats",
        description="Print '<depth> <count>' for every depth below ROOT (children are depth 1).",
    )
    parser.add_argument("root", nargs="?", type=Path, default=Path("."), help="Root directory (default: current)")
    parser.add_argument("--files", action="store_true", help="Count regular files instead of directories")
    parser.add_argument("--summary", action="store_true", help="Also print total and maximum depth")
    add_verbose_flag(parser)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(parser, debug=args.verbose)
    configure_logging(settings.debug)

    try:
        distribution = depth_distribution(args.root, files=args.files)
    except AccessError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE

    for depth in sorted(distribution):
        print(f"{depth} {distribution[depth]}")
    if args.summary:
        total = sum(distribution.values())
        print(f"total {total}")
        print(f"max {max(distribution, default=0)}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
