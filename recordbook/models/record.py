"""
Recordbook Backend: Record SQLAlchemy Model
============================================

What:  ORM model representing the `records` table.
How:   Inherits from the shared DeclarativeBase; RecordStore creates the table
       from this metadata and queries it through async sessions.
Who:   Used by RecordStore for every read, insert, delete, and aggregate.

Table Design:
    - Integer autoincrement primary key: ids are assigned by the store and never
      reused (SQLite AUTOINCREMENT keyword enabled through the table kwargs)
    - date: caller-supplied string, compared as text by the stats query
    - grade: nullable at the storage level; rows written before the column
      existed keep NULL. The API only writes 高一 / 高二.
    - created_at: store-side CURRENT_TIMESTAMP, never client-settable

    Index on created_at DESC serves the list query (newest first).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from recordbook.database import Base

# Values accepted for Record.grade by the API
GRADES = ("高一", "高二")


class Record(Base):
    """
    A single logged entry.

    Lifecycle:
        1. Created by POST /api/records (id and created_at assigned by the store)
        2. Never updated
        3. Removed only by DELETE /api/records/{id}
    """

    __tablename__ = "records"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    date: Mapped[str] = mapped_column(Text, nullable=False)

    grade: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    department: Mapped[str] = mapped_column(Text, nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_records_created_at", created_at.desc()),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return (
            f"<Record(id={self.id}, date='{self.date}', grade='{self.grade}', "
            f"department='{self.department}')>"
        )
