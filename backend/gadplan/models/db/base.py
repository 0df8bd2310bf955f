"""Re-export Base and provide common column helpers for ORM models."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from gadplan.database import Base

__all__ = ["Base", "JSONType", "TimestampMixin"]

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class TimestampMixin:
    """Mixin that adds ``created_at`` and ``updated_at`` columns.

    Both default to ``NOW()`` on the server side.  ``updated_at`` is also
    refreshed on every UPDATE via ``onupdate``.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
