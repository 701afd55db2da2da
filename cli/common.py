"""Shared helpers for the filekeep command-line entry points."""

from __future__ import annotations

import argparse
import logging
import sys
import warnings
from typing import Any

from pydantic import ValidationError

from filekeep.config import Settings
from filekeep.exceptions import MissingFileWarning


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_TOOL_MISSING = 3


def configure_logging(debug: bool) -> None:
    """Configure logging on stderr; stdout is reserved for command output.

    Warnings such as MissingFileWarning are routed to the ``py.warnings`` logger.
    """
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stderr,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)
    warnings.simplefilter("always", MissingFileWarning)
    logging.captureWarnings(True)


def load_settings(parser: argparse.ArgumentParser, **overrides: Any) -> Settings:
    """Build settings from the environment plus non-None command-line overrides.

    Invalid values end the program through ``parser.error`` (exit status 2).
    """
    given = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**given)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in exc.errors()
        )
        parser.error(f"invalid configuration: {problems}")


def add_verbose_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=None,
        help="Log debug output (also FILEKEEP_DEBUG=1)",
    )


def non_negative_int(value: str) -> int:
    """argparse type for depths."""
    try:
        number = int(value)
    except ValueError:
        msg = f"expected an integer, got {value!r}"
        raise argparse.ArgumentTypeError(msg) from None
    if number < 0:
        msg = f"expected a non-negative integer, got {number}"
        raise argparse.ArgumentTypeError(msg)
    return number


def plural(count: int, singular: str, plural_form: str | None = None) -> str:
    """Return ``"1 file"`` / ``"2 files"`` style counts."""
    word = singular if count == 1 else (plural_form or f"{singular}s")
    return f"{count} {word}"
