"""
ORM base for Lectern tables.

All tables share one ``Base.metadata`` so Alembic and ``create_all``
see documents, chunks and chat history together.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """
    ``created_at`` is stamped in Python (UTC) when the row is built.
    ``updated_at`` stays NULL until a re-upload overwrites the row.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
