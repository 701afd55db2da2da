"""distinct-chars: list the distinct characters of files or stdin."""

from __future__ import annotations

import argparse
import codecs
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from cli.common import EXIT_FAILURE, EXIT_OK, add_verbose_flag, configure_logging, load_settings
from filekeep.services.text_service import describe_character, distinct_characters, printable_form

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

_READ_SIZE = 64 * 1024


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="distinct-chars",
        description="Print each distinct character of the input once, by code point.",
    )
    parser.add_argument("files", nargs="*", type=Path, help="Input files (default: stdin)")
    parser.add_argument("--count", action="store_true", help="Prefix each character with its frequency")
    parser.add_argument("--codepoints", action="store_true", help="Append code point and Unicode name")
    add_verbose_flag(parser)
    return parser


def _read_chunks(paths: list[Path], failed: list[Path]) -> Iterator[str]:
    if not paths:
        stream = getattr(sys.stdin, "buffer", None)
        if stream is None:
            yield from iter(lambda: sys.stdin.read(_READ_SIZE), "")
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        for block in iter(lambda: stream.read(_READ_SIZE), b""):
            yield decoder.decode(block)
        yield decoder.decode(b"", final=True)
        return
    for path in paths:
        try:
            with path.open(encoding="utf-8", errors="replace") as f:
                yield from iter(lambda: f.read(_READ_SIZE), "")
        except OSError as exc:
            logger.error("Cannot read %s: %s", path, exc.strerror or exc)
            failed.append(path)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(parser, debug=args.verbose)
    configure_logging(settings.debug)

    failed: list[Path] = []
    counts = distinct_characters(_read_chunks(args.files, failed))

    width = len(str(max(counts.values(), default=0)))
    for char in sorted(counts):
        line = printable_form(char)
        if args.count:
            line = f"{counts[char]:>{width}} {line}"
        if args.codepoints:
            line = f"{line}\t{describe_character(char)}"
        print(line)
    return EXIT_FAILURE if failed else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
