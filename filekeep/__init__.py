"""Filesystem bookkeeping utilities: checksum manifests, archives, inventories."""

__version__ = "0.1.0"
