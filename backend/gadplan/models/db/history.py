"""SQLAlchemy model for the append-only ``ppa_history`` table."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from gadplan.models.db.base import Base


class PpaHistory(Base):
    __tablename__ = "ppa_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ppa_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("gad_proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action_by: Mapped[str] = mapped_column(Text, nullable=False)
    action_type: Mapped[str] = mapped_column(Text, nullable=False)
    change_summary: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
