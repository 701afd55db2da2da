"""Deterministic directory traversal that follows symbolic links."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from filekeep.exceptions import AccessError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)


def _raise_access_error(error: OSError) -> None:
    raise AccessError(error.filename or "?", error.strerror or str(error)) from error


def _walk(
    top: Path,
    onerror: Callable[[OSError], None] = _raise_access_error,
) -> Iterator[tuple[int, str, list[str], list[str]]]:
    """Yield ``(depth, rel_dir, dirnames, filenames)`` depth first, sorted by name.

    ``rel_dir`` is ``""`` for ``top`` and a ``/``-separated path otherwise.
    Symlinked directories are followed. A directory that is one of its own
    ancestors (same device and inode) is a link loop and is not entered;
    other directories reachable under several names are listed under each.
    Callers may prune ``dirnames`` in place.
    """
    # (device, inode) keys of the directories above each pending directory
    ancestors: dict[str, tuple[tuple[int, int], ...]] = {}
    for dirpath, dirnames, filenames in os.walk(top, onerror=onerror, followlinks=True):
        chain = ancestors.pop(dirpath, ())
        try:
            st = os.stat(dirpath)
        except OSError as exc:
            onerror(exc)
            dirnames[:] = []
            continue
        key = (st.st_dev, st.st_ino)
        if key in chain:
            logger.debug("Skipping symlink loop at %s", dirpath)
            dirnames[:] = []
            continue

        dirnames.sort()
        filenames.sort()
        rel = os.path.relpath(dirpath, top)
        if rel == os.curdir:
            rel_dir = ""
            depth = 0
        else:
            rel_dir = rel.replace(os.sep, "/")
            depth = rel_dir.count("/") + 1
        yield depth, rel_dir, dirnames, filenames
        below = (*chain, key)
        for name in dirnames:
            ancestors[os.path.join(dirpath, name)] = below


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name


def require_directory(path: Path) -> None:
    """Raise AccessError unless ``path`` is a readable directory."""
    if not path.exists():
        raise AccessError(path, "no such directory")
    if not path.is_dir():
        raise AccessError(path, "not a directory")
    if not os.access(path, os.R_OK | os.X_OK):
        raise AccessError(path, "permission denied")


def iter_files(directory: Path, exclude: frozenset[str] = frozenset()) -> Iterator[str]:
    """Yield relative paths of regular files below ``directory`` in discovery order.

    Symbolic links to files count as files; dangling links and special files
    are skipped. Any unreadable directory aborts the traversal with
    AccessError, since a partial snapshot would misreport missing files.
    """
    require_directory(directory)
    for _, rel_dir, _, filenames in _walk(directory):
        for name in filenames:
            rel = _join(rel_dir, name)
            if rel in exclude:
                continue
            full = directory / rel
            if not full.is_file():
                logger.debug("Skipping non-regular file %s", full)
                continue
            yield rel


def directories_at_depth(root: Path, depth: int) -> list[Path]:
    """Return directories exactly ``depth`` levels below ``root``, depth first.

    Depth 0 is ``root`` itself. Unreadable directories above the requested
    depth are logged and skipped; an unreadable root raises AccessError.
    """
    if depth < 0:
        msg = f"Depth must be >= 0, got {depth}"
        raise ValueError(msg)
    require_directory(root)
    if depth == 0:
        return [root]

    def onerror(error: OSError) -> None:
        if error.filename is not None and Path(error.filename) == root:
            _raise_access_error(error)
        logger.error("Cannot list %s: %s", error.filename, error.strerror or error)

    found: list[Path] = []
    for current, rel_dir, dirnames, _ in _walk(root, onerror=onerror):
        if current + 1 == depth:
            found.extend(root / _join(rel_dir, name) for name in dirnames)
            dirnames[:] = []
    return found


def iter_depths(root: Path, *, files: bool = False) -> Iterator[int]:
    """Yield the depth of every directory (or regular file) below ``root``.

    Children of ``root`` are at depth 1. Unreadable subdirectories are logged
    and skipped.
    """
    require_directory(root)

    def onerror(error: OSError) -> None:
        logger.error("Cannot list %s: %s", error.filename, error.strerror or error)

    for depth, rel_dir, dirnames, filenames in _walk(root, onerror=onerror):
        if files:
            for name in filenames:
                if (root / _join(rel_dir, name)).is_file():
                    yield depth + 1
        else:
            for _ in dirnames:
                yield depth + 1
