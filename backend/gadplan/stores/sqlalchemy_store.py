"""PostgreSQL record store built on the async SQLAlchemy ORM.

Each call opens its own session. Writes run inside ``session.begin()`` so
the body update, child replacement and history insert commit or roll back
together.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from gadplan.errors import AccountNotFound, ConflictError, StoreError
from gadplan.lifecycle import ProposalStatus
from gadplan.models.account import Account
from gadplan.models.db import (
    GadProposal,
    PpaBudgetItem,
    PpaHistory,
    PpaIndicator,
    Profile,
)
from gadplan.models.proposal import HistoryEntry, Proposal
from gadplan.stores.base import ORDER_CREATED, ORDER_OFFICE, ProposalStore, check_ordering
from gadplan.stores.rows import (
    budget_item_rows,
    history_to_row,
    indicator_rows,
    proposal_to_row,
    row_to_account,
    row_to_history,
    row_to_proposal,
)

logger = logging.getLogger(__name__)

# Columns the database fills in when the caller has no value.
_SERVER_DEFAULTED = ("created_at", "updated_at")


def _as_uuid(value: Any) -> Optional[uuid.UUID]:
    """Parse a string id; ``None`` for anything that is not a UUID."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _columns(obj: Any) -> Dict[str, Any]:
    return {col.key: getattr(obj, col.key) for col in obj.__table__.columns}


def _to_domain(record: GadProposal) -> Proposal:
    return row_to_proposal(
        _columns(record),
        [_columns(i) for i in record.indicators],
        [_columns(b) for b in record.budget_items],
    )


def _body_values(proposal: Proposal) -> Dict[str, Any]:
    values = proposal_to_row(proposal)
    values["user_id"] = _as_uuid(values["user_id"])
    for key in _SERVER_DEFAULTED:
        if values.get(key) is None:
            values.pop(key, None)
    return values


class SqlAlchemyProposalStore(ProposalStore):
    """Proposal store backed by an ``async_sessionmaker``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _with_children():
        return select(GadProposal).options(
            selectinload(GadProposal.indicators),
            selectinload(GadProposal.budget_items),
        )

    async def _fetch(self, stmt) -> List[Proposal]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [_to_domain(r) for r in result.scalars().unique().all()]
        except SQLAlchemyError as e:
            logger.exception("Proposal query failed")
            raise StoreError("Failed to read proposals", details=str(e)) from e

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_proposal(self, proposal_id: str) -> Optional[Proposal]:
        pid = _as_uuid(proposal_id)
        if pid is None:
            return None
        rows = await self._fetch(self._with_children().where(GadProposal.id == pid))
        return rows[0] if rows else None

    async def list_by_owner(self, owner_id: str) -> List[Proposal]:
        uid = _as_uuid(owner_id)
        if uid is None:
            return []
        return await self._fetch(
            self._with_children()
            .where(GadProposal.user_id == uid)
            .order_by(GadProposal.created_at.desc())
        )

    async def list_for_review(self, order_by: str = ORDER_CREATED) -> List[Proposal]:
        stmt = self._with_children().where(
            GadProposal.status != ProposalStatus.DRAFT.value
        )
        return await self._fetch(self._ordered(stmt, check_ordering(order_by)))

    async def list_by_status(
        self, status: ProposalStatus, order_by: str = ORDER_OFFICE
    ) -> List[Proposal]:
        values = [ProposalStatus(status).value]
        if ProposalStatus(status).is_revision:
            values = [ProposalStatus.FOR_REVISION.value, ProposalStatus.RETURNED.value]
        stmt = self._with_children().where(GadProposal.status.in_(values))
        return await self._fetch(self._ordered(stmt, check_ordering(order_by)))

    async def list_all(self) -> List[Proposal]:
        return await self._fetch(
            self._with_children().order_by(GadProposal.created_at.desc())
        )

    @staticmethod
    def _ordered(stmt, order_by: str):
        if order_by == ORDER_OFFICE:
            return stmt.order_by(
                GadProposal.office_name.asc(), GadProposal.created_at.desc()
            )
        return stmt.order_by(GadProposal.created_at.desc())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def insert_proposal(
        self, proposal: Proposal, history: HistoryEntry
    ) -> Proposal:
        pid = _as_uuid(proposal.id)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(GadProposal(id=pid, **_body_values(proposal)))
                    await session.flush()
                    self._add_children(session, pid, proposal)
                    session.add(self._history_record(pid, history))
        except SQLAlchemyError as e:
            logger.exception("Failed to insert proposal %s", proposal.id)
            raise StoreError("Failed to save proposal", details=str(e)) from e
        return proposal

    async def update_proposal(
        self,
        proposal: Proposal,
        *,
        expected_status: ProposalStatus,
        expected_version: int,
        replace_children: bool,
        history: HistoryEntry,
    ) -> Proposal:
        pid = _as_uuid(proposal.id)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(GadProposal)
                        .where(
                            GadProposal.id == pid,
                            GadProposal.status == ProposalStatus(expected_status).value,
                            GadProposal.version == expected_version,
                        )
                        .values(**_body_values(proposal))
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount == 0:
                        raise ConflictError(
                            "Proposal was changed by someone else",
                            details=proposal.id,
                        )
                    if replace_children:
                        await session.execute(
                            delete(PpaIndicator).where(PpaIndicator.ppa_id == pid)
                        )
                        await session.execute(
                            delete(PpaBudgetItem).where(PpaBudgetItem.ppa_id == pid)
                        )
                        self._add_children(session, pid, proposal)
                    session.add(self._history_record(pid, history))
        except SQLAlchemyError as e:
            logger.exception("Failed to update proposal %s", proposal.id)
            raise StoreError("Failed to save proposal", details=str(e)) from e
        return proposal

    @staticmethod
    def _add_children(session: AsyncSession, pid: uuid.UUID, proposal: Proposal) -> None:
        session.add_all(
            [
                PpaIndicator(**{**row, "ppa_id": pid})
                for row in indicator_rows(str(pid), proposal.indicators)
            ]
        )
        session.add_all(
            [
                PpaBudgetItem(**{**row, "ppa_id": pid})
                for row in budget_item_rows(str(pid), proposal.budget_items)
            ]
        )

    @staticmethod
    def _history_record(pid: uuid.UUID, history: HistoryEntry) -> PpaHistory:
        row = history_to_row(history)
        row["ppa_id"] = pid
        if row.get("created_at") is None:
            row.pop("created_at", None)
        if history.id:
            row["id"] = _as_uuid(history.id)
        return PpaHistory(**row)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def list_history(self, proposal_id: str) -> List[HistoryEntry]:
        pid = _as_uuid(proposal_id)
        if pid is None:
            return []
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(PpaHistory)
                    .where(PpaHistory.ppa_id == pid)
                    .order_by(PpaHistory.created_at.desc())
                )
                return [row_to_history(_columns(h)) for h in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.exception("Failed to read history for %s", proposal_id)
            raise StoreError("Failed to read history", details=str(e)) from e

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    async def get_profile(self, user_id: str) -> Optional[Account]:
        uid = _as_uuid(user_id)
        if uid is None:
            return None
        try:
            async with self._session_factory() as session:
                profile = await session.get(Profile, uid)
        except SQLAlchemyError as e:
            logger.exception("Failed to read profile %s", user_id)
            raise StoreError("Failed to read profile", details=str(e)) from e
        return row_to_account(_columns(profile)) if profile else None

    async def list_profiles(self) -> List[Account]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Profile).order_by(Profile.office_name.asc())
                )
                return [row_to_account(_columns(p)) for p in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.exception("Failed to list profiles")
            raise StoreError("Failed to read profiles", details=str(e)) from e

    async def set_profile_approval(self, user_id: str, approved: bool) -> Account:
        uid = _as_uuid(user_id)
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    profile = await session.get(Profile, uid) if uid else None
                    if profile is None:
                        raise AccountNotFound("Account not found", details=user_id)
                    profile.is_approved = approved
                    await session.flush()
                    account = row_to_account(_columns(profile))
        except SQLAlchemyError as e:
            logger.exception("Failed to update profile %s", user_id)
            raise StoreError("Failed to update profile", details=str(e)) from e
        return account
