"""External tool service: thin wrapper around the 7z, unrar and bitrot binaries."""

from __future__ import annotations

import logging
import shutil
import subprocess
from typing import TYPE_CHECKING

from filekeep.exceptions import ExternalToolError, ToolNotFoundError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class ExternalTool:
    """Runs one external binary and turns its failures into ExternalToolError."""

    def __init__(self, executable: str, *, timeout: float | None = None) -> None:
        self.executable = executable
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"ExternalTool({self.executable!r})"

    def resolve(self) -> str:
        """Return the absolute path of the binary, or raise ToolNotFoundError."""
        found = shutil.which(self.executable)
        if found is None:
            raise ToolNotFoundError(self.executable)
        return found

    def run(
        self,
        *args: str,
        cwd: Path | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run the tool with ``args``.

        stdin is closed so that tools which would prompt (passwords, overwrite
        confirmations) fail instead of hanging. With ``check`` a non-zero exit
        raises ExternalToolError carrying the tool's stderr.
        """
        cmd = [self.executable, *args]
        logger.debug("Running %s (cwd=%s)", " ".join(cmd), cwd)
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolNotFoundError(self.executable) from exc
        except subprocess.TimeoutExpired as exc:
            msg = f"timed out after {self.timeout}s"
            raise ExternalToolError(self.executable, msg) from exc

        if check and result.returncode != 0:
            stderr = result.stderr.strip()
            msg = f"exited with status {result.returncode}"
            if stderr:
                msg = f"{msg}: {stderr.splitlines()[-1]}"
            raise ExternalToolError(
                self.executable,
                msg,
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result


def require_tools(*tools: ExternalTool) -> None:
    """Fail fast when any of ``tools`` is not installed."""
    for tool in tools:
        tool.resolve()
