"""GAD proposal ORM models.

Maps to ``gad_proposals`` and its two child tables, ``ppa_indicators`` and
``ppa_budget_items``. Child rows are replaced wholesale on every save that
carries them.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gadplan.models.db.base import Base, JSONType, TimestampMixin

__all__ = ["GadProposal", "PpaIndicator", "PpaBudgetItem"]


class GadProposal(TimestampMixin, Base):
    __tablename__ = "gad_proposals"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Ownership (profiles.id of the submitting office)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    office_name: Mapped[str] = mapped_column(Text, nullable=False, server_default="")

    # Classification
    ppa_category: Mapped[str] = mapped_column(
        Text, nullable=False, server_default="Client-Focused"
    )
    focus_type: Mapped[str] = mapped_column(
        Text, nullable=False, server_default="CLIENT-FOCUSED"
    )
    category_type: Mapped[str] = mapped_column(
        Text, nullable=False, server_default="Gender Issue"
    )

    # Narrative
    issue_statement: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    issue_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    issue_source: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Legacy "Issue: / Data: / Source: " blob
    gender_issue: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    gad_objective: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    relevant_program: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    gad_activity: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Budget rollup
    total_mooe: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, server_default="0"
    )
    total_ps: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, server_default="0"
    )
    total_co: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, server_default="0"
    )
    gad_budget: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, server_default="0"
    )

    # Workflow
    status: Mapped[str] = mapped_column(
        Text, nullable=False, server_default="Draft", index=True
    )
    sectional_comments: Mapped[Optional[dict]] = mapped_column(
        JSONType, nullable=True
    )
    reviewer_comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    indicators: Mapped[List["PpaIndicator"]] = relationship(
        back_populates="proposal",
        cascade="all, delete-orphan",
        order_by="PpaIndicator.sort_order",
    )
    budget_items: Mapped[List["PpaBudgetItem"]] = relationship(
        back_populates="proposal",
        cascade="all, delete-orphan",
        order_by="PpaBudgetItem.sort_order",
    )


class PpaIndicator(Base):
    __tablename__ = "ppa_indicators"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ppa_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("gad_proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    indicator_text: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    target_text: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    sort_order: Mapped[int] = mapped_column(Integer, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    proposal: Mapped[GadProposal] = relationship(back_populates="indicators")


class PpaBudgetItem(Base):
    __tablename__ = "ppa_budget_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ppa_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("gad_proposals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    item_description: Mapped[str] = mapped_column(
        Text, nullable=False, server_default=""
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, server_default="0"
    )
    fund_type: Mapped[str] = mapped_column(Text, nullable=False, server_default="MOOE")
    sort_order: Mapped[int] = mapped_column(Integer, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    proposal: Mapped[GadProposal] = relationship(back_populates="budget_items")
