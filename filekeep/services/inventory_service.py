"""Inventory service: file-type counts and depth distributions of directory trees."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from filekeep.filesystem.walker import iter_depths, iter_files

if TYPE_CHECKING:
    from pathlib import Path

NO_EXTENSION_LABEL = "(none)"


def file_extension(name: str, *, case_sensitive: bool = False) -> str:
    """Return the text after the last dot of ``name``.

    Names without a dot, or whose only dot is the leading one of a hidden
    file, have no extension and yield ``""``.
    """
    stem = name.lstrip(".")
    if "." not in stem:
        return ""
    ext = stem.rsplit(".", 1)[1]
    return ext if case_sensitive else ext.lower()


def count_file_types(directory: Path, *, case_sensitive: bool = False) -> Counter[str]:
    """Count regular files under ``directory`` by extension."""
    counts: Counter[str] = Counter()
    for rel in iter_files(directory):
        counts[file_extension(rel.rsplit("/", 1)[-1], case_sensitive=case_sensitive)] += 1
    return counts


def sorted_type_counts(counts: Counter[str]) -> list[tuple[str, int]]:
    """Order counts by frequency (highest first), then by extension."""
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def depth_distribution(root: Path, *, files: bool = False) -> Counter[int]:
    """Count directories (or regular files) below ``root`` per depth.

    Children of ``root`` are at depth 1.
    """
    return Counter(iter_depths(root, files=files))
