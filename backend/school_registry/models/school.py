"""
School Registry Backend: School SQLAlchemy Model
==================================================

What:  ORM mapping of the `schools` table.
Who:   Database.init_schema() creates it; SchoolService builds Core
       insert/select statements against it.

Table layout:
    id          INTEGER      primary key, assigned by the database, never reused
    name        TEXT         NOT NULL
    address     TEXT         NOT NULL
    city        TEXT         NOT NULL
    state       TEXT         NOT NULL
    contact     BIGINT       NOT NULL (phone number)
    image       TEXT         NULL, relative URL /schoolImages/<file>
    email_id    TEXT         NOT NULL
    created_at  TIMESTAMPTZ  NOT NULL, set at insert time

Rows are never updated or deleted.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from school_registry.database import Base

# Largest value the INTEGER id column can hold
MAX_SCHOOL_ID = 2**31 - 1

# Largest value the BIGINT contact column can hold
MAX_CONTACT = 2**63 - 1


class School(Base):
    """A school record. Immutable once inserted."""

    __tablename__ = "schools"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str] = mapped_column(Text, nullable=False)
    state: Mapped[str] = mapped_column(Text, nullable=False)

    # Phone numbers exceed the 32-bit range
    contact: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Relative URL path; absolute URLs are built per request
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)

    email_id: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<School(id={self.id}, name='{self.name}', created_at='{self.created_at}')>"


# Listing is always newest first
Index("idx_schools_created_at", School.created_at.desc())
