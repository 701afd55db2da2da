"""Application-level exception types.

Convention:
- ``AccessError`` aborts work on one directory only; batch callers record it
  and move on to the next directory.
- ``HashError`` is recovered per file: the file is reported as unresolved and
  left out of the manifest.
- ``ExternalToolError`` wraps a failed ``7z``/``unrar``/``bitrot`` invocation.
  ``ToolNotFoundError`` is the variant for a binary missing from ``PATH``,
  which the command-line entry points treat as fatal.
- ``MissingFileWarning`` is informational and is only ever logged.
"""

from __future__ import annotations

from pathlib import Path


class FilekeepError(Exception):
    """Base class for filekeep errors."""


class AccessError(FilekeepError):
    """Raised when a directory or manifest cannot be read or written."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Cannot access {self.path}: {reason}")


class HashError(FilekeepError):
    """Raised when the checksum of a single file cannot be computed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot hash {path}: {reason}")


class ExternalToolError(FilekeepError):
    """Raised when an external binary fails or times out."""

    def __init__(
        self,
        tool: str,
        message: str,
        *,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"{tool}: {message}")


class ToolNotFoundError(ExternalToolError):
    """Raised when a required external binary is not installed."""

    def __init__(self, tool: str) -> None:
        super().__init__(tool, "not found on PATH; install it or point the settings at it")


class MissingFileWarning(UserWarning):
    """A path recorded in a manifest no longer exists on disk."""
