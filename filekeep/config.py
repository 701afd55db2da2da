"""Application configuration loaded from environment variables."""

from __future__ import annotations

import hashlib
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """filekeep settings.

    Every field can be set through a ``FILEKEEP_``-prefixed environment variable
    or a ``.env`` file; command-line flags take precedence over both.
    """

    model_config = SettingsConfigDict(
        env_prefix="FILEKEEP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False

    # Manifests
    manifest_name: str = "checksums.md5"
    hash_algorithm: str = "md5"
    checksum_mode: Literal["hash", "bitrot"] = "hash"
    fsync: bool = False

    # bitrot delegation
    bitrot_bin: str = "bitrot"
    bitrot_db_name: str = ".bitrot.db"
    bitrot_export: bool = False
    bitrot_manifest_name: str = "checksums.sha1"

    # Archives
    seven_zip_bin: str = "7z"
    unrar_bin: str = "unrar"
    archive_format: Literal["7z", "zip", "tar"] = "7z"

    # External tools
    tool_timeout_seconds: int | None = Field(default=None, ge=1)

    @field_validator("manifest_name", "bitrot_db_name", "bitrot_manifest_name")
    @classmethod
    def _plain_file_name(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value or value in {".", ".."}:
            msg = f"Expected a plain file name, got {value!r}"
            raise ValueError(msg)
        return value

    @field_validator("hash_algorithm")
    @classmethod
    def _known_algorithm(cls, value: str) -> str:
        name = value.lower()
        if name not in hashlib.algorithms_guaranteed:
            available = ", ".join(sorted(hashlib.algorithms_guaranteed))
            msg = f"Unsupported hash algorithm {value!r}. Available: {available}"
            raise ValueError(msg)
        return name

    def manifest_name_for(self, mode: str) -> str:
        """Return the manifest file name used by checksum ``mode``."""
        if mode == "bitrot":
            return self.bitrot_manifest_name
        return self.manifest_name
