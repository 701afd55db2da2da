"""SQLAlchemy ORM models for filekeep."""

from filekeep.models.base import Base
from filekeep.models.bitrot import BitrotEntry

__all__ = [
    "Base",
    "BitrotEntry",
]
