"""new-md5: add checksums of new files to per-directory manifests."""

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
    non_negative_int,
    plural,
)
from filekeep.exceptions import AccessError, ToolNotFoundError
from filekeep.services.checksum_service import get_strategy, list_strategies
from filekeep.services.reconcile_service import BatchReport, ReconcileReport, reconcile_tree
from filekeep.services.tool_service import require_tools

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="new-md5",
        description=(
            "Append checksums of files not yet recorded in a manifest. With DEPTH 0 one "
            "manifest covers ROOT; with DEPTH N every directory N levels below ROOT gets "
            "its own manifest. Recorded files missing from disk are reported, never removed."
        ),
    )
    parser.add_argument("depth", type=non_negative_int, help="Depth of the directories to process")
    parser.add_argument("root", type=Path, help="Root directory")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--mode",
        choices=list_strategies(),
        default=None,
        help="Checksum mode (default: hash, or FILEKEEP_CHECKSUM_MODE)",
    )
    mode.add_argument(
        "--bitrot",
        dest="mode",
        action="store_const",
        const="bitrot",
        help="Delegate to the bitrot tool (same as --mode bitrot)",
    )
    parser.add_argument("--algorithm", help="hashlib algorithm for hash mode (default: md5)")
    parser.add_argument("--manifest", help="Manifest file name inside each directory")
    parser.add_argument(
        "--export",
        action="store_true",
        default=None,
        help="In bitrot mode, also write the bitrot database as a manifest",
    )
    parser.add_argument(
        "--fsync",
        action="store_true",
        default=None,
        help="fsync the manifest after every appended record",
    )
    add_verbose_flag(parser)
    return parser


def _summary(report: ReconcileReport) -> str:
    parts = [plural(report.added_count, "new file")]
    if report.exported is not None:
        parts.append(plural(report.exported, "record") + " exported")
    if report.missing:
        parts.append(f"{len(report.missing)} missing")
    if report.unresolved:
        parts.append(f"{len(report.unresolved)} unresolved")
    return f"{report.directory}: {', '.join(parts)}"


def print_batch(batch: BatchReport) -> None:
    for report in batch.reports:
        print(_summary(report))
    if len(batch.reports) + len(batch.failures) > 1:
        print(
            f"Total: {plural(batch.added_count, 'new file')} in "
            f"{plural(len(batch.reports), 'directory', 'directories')}, "
            f"{len(batch.failures)} failed"
        )


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {
        "debug": args.verbose,
        "checksum_mode": args.mode,
        "hash_algorithm": args.algorithm,
        "bitrot_export": args.export,
        "fsync": args.fsync,
    }
    settings = load_settings(parser, **overrides)
    mode = settings.checksum_mode
    if args.manifest is not None:
        manifest_field = "bitrot_manifest_name" if mode == "bitrot" else "manifest_name"
        settings = load_settings(parser, **overrides, **{manifest_field: args.manifest})
    configure_logging(settings.debug)

    if mode != "bitrot" and args.export:
        parser.error("--export requires bitrot mode")
    if mode == "bitrot" and args.algorithm:
        parser.error("--algorithm only applies to hash mode")

    manifest_name = settings.manifest_name_for(mode)
    strategy = get_strategy(mode, settings)
    try:
        require_tools(*strategy.required_tools())
        batch = reconcile_tree(args.root, args.depth, strategy, manifest_name)
    except ToolNotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_TOOL_MISSING
    except AccessError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE

    print_batch(batch)
    return EXIT_OK if batch.ok else EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
