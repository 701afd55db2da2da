"""Model of the database maintained by the ``bitrot`` tool."""

from __future__ import annotations

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from filekeep.models.base import Base


class BitrotEntry(Base):
    """One file tracked by bitrot (``.bitrot.db``, table ``bitrot``)."""

    __tablename__ = "bitrot"

    path: Mapped[str] = mapped_column(Text, primary_key=True)
    mtime: Mapped[int | None] = mapped_column(Integer)
    hash: Mapped[str | None] = mapped_column(Text, index=True)
    timestamp: Mapped[str | None] = mapped_column(Text)
