"""Record store backed by the hosted Supabase (PostgREST) API.

PostgREST offers no multi-table transaction, so writes are ordered and
compensated: new child rows first, then the conditional proposal update,
then removal of the replaced child rows and the history entry. A failure
at any step undoes the earlier ones, so status, totals and line items
change together or not at all.

supabase-py is synchronous; every call runs in ``asyncio.to_thread`` so
the event loop is never blocked.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from gadplan.errors import AccountNotFound, ConflictError, StoreError
from gadplan.lifecycle import ProposalStatus
from gadplan.models.account import Account
from gadplan.models.proposal import HistoryEntry, Proposal
from gadplan.stores.base import ORDER_CREATED, ORDER_OFFICE, ProposalStore, check_ordering
from gadplan.stores.rows import (
    BUDGET_ITEMS_TABLE,
    HISTORY_TABLE,
    INDICATORS_TABLE,
    PROFILES_TABLE,
    PROPOSALS_TABLE,
    budget_item_rows,
    history_to_row,
    indicator_rows,
    proposal_to_row,
    row_to_account,
    row_to_history,
    row_to_proposal,
    to_json_row,
)

logger = logging.getLogger(__name__)


class SupabaseProposalStore(ProposalStore):
    """Proposal store that talks to Supabase through a service-role client."""

    def __init__(self, client: Client):
        self._client = client

    async def _run(self, operation: str, call: Callable[[], Any]) -> Any:
        """Execute one blocking query builder call off the event loop."""
        try:
            response = await asyncio.to_thread(call)
        except (APIError, httpx.HTTPError) as e:
            logger.exception("Supabase %s failed", operation)
            raise StoreError(f"Failed to {operation}", details=str(e)) from e
        return response.data or []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _attach_children(self, rows: List[Dict[str, Any]]) -> List[Proposal]:
        if not rows:
            return []
        ids = [str(r["id"]) for r in rows]
        indicators = await self._run(
            "read indicators",
            lambda: self._client.table(INDICATORS_TABLE)
            .select("*")
            .in_("ppa_id", ids)
            .execute(),
        )
        items = await self._run(
            "read budget items",
            lambda: self._client.table(BUDGET_ITEMS_TABLE)
            .select("*")
            .in_("ppa_id", ids)
            .execute(),
        )
        by_ind: Dict[str, list] = defaultdict(list)
        for r in indicators:
            by_ind[str(r["ppa_id"])].append(r)
        by_item: Dict[str, list] = defaultdict(list)
        for r in items:
            by_item[str(r["ppa_id"])].append(r)
        return [
            row_to_proposal(r, by_ind[str(r["id"])], by_item[str(r["id"])])
            for r in rows
        ]

    def _proposals(self):
        return self._client.table(PROPOSALS_TABLE).select("*")

    @staticmethod
    def _ordered(query, order_by: str):
        if order_by == ORDER_OFFICE:
            return query.order("office_name").order("created_at", desc=True)
        return query.order("created_at", desc=True)

    async def get_proposal(self, proposal_id: str) -> Optional[Proposal]:
        rows = await self._run(
            "read proposal",
            lambda: self._proposals().eq("id", str(proposal_id)).execute(),
        )
        proposals = await self._attach_children(rows)
        return proposals[0] if proposals else None

    async def list_by_owner(self, owner_id: str) -> List[Proposal]:
        rows = await self._run(
            "list proposals",
            lambda: self._proposals()
            .eq("user_id", str(owner_id))
            .order("created_at", desc=True)
            .execute(),
        )
        return await self._attach_children(rows)

    async def list_for_review(self, order_by: str = ORDER_CREATED) -> List[Proposal]:
        order_by = check_ordering(order_by)
        rows = await self._run(
            "list proposals",
            lambda: self._ordered(
                self._proposals().neq("status", ProposalStatus.DRAFT.value), order_by
            ).execute(),
        )
        return await self._attach_children(rows)

    async def list_by_status(
        self, status: ProposalStatus, order_by: str = ORDER_OFFICE
    ) -> List[Proposal]:
        order_by = check_ordering(order_by)
        values = [ProposalStatus(status).value]
        if ProposalStatus(status).is_revision:
            values = [ProposalStatus.FOR_REVISION.value, ProposalStatus.RETURNED.value]
        rows = await self._run(
            "list proposals",
            lambda: self._ordered(
                self._proposals().in_("status", values), order_by
            ).execute(),
        )
        return await self._attach_children(rows)

    async def list_all(self) -> List[Proposal]:
        rows = await self._run(
            "list proposals",
            lambda: self._proposals().order("created_at", desc=True).execute(),
        )
        return await self._attach_children(rows)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    #
    # New child rows go in before the body update and replaced ones come out
    # after it. A failed step undoes the earlier steps and re-raises.

    async def insert_proposal(
        self, proposal: Proposal, history: HistoryEntry
    ) -> Proposal:
        row = to_json_row({"id": proposal.id, **proposal_to_row(proposal)})
        await self._run(
            "save proposal",
            lambda: self._client.table(PROPOSALS_TABLE).insert(row).execute(),
        )
        new_children: Dict[str, List[str]] = {}
        try:
            new_children = await self._insert_children(proposal)
            await self._append_history(history)
        except StoreError:
            await self._discard_children(new_children)
            await self._compensate(
                "remove proposal",
                lambda: self._client.table(PROPOSALS_TABLE)
                .delete()
                .eq("id", proposal.id)
                .execute(),
            )
            raise
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
        previous = await self._run(
            "read proposal",
            lambda: self._client.table(PROPOSALS_TABLE)
            .select("*")
            .eq("id", proposal.id)
            .execute(),
        )
        if not previous:
            raise ConflictError(
                "Proposal was changed by someone else", details=proposal.id
            )

        old_children: Dict[str, List[Dict[str, Any]]] = {}
        new_children: Dict[str, List[str]] = {}
        if replace_children:
            old_children = await self._child_rows(proposal.id)
            new_children = await self._insert_children(proposal)

        body = proposal_to_row(proposal)
        body.pop("created_at", None)
        row = to_json_row(body)
        try:
            updated = await self._run(
                "save proposal",
                lambda: self._client.table(PROPOSALS_TABLE)
                .update(row)
                .eq("id", proposal.id)
                .eq("status", ProposalStatus(expected_status).value)
                .eq("version", expected_version)
                .execute(),
            )
        except StoreError:
            await self._discard_children(new_children)
            raise
        if not updated:
            await self._discard_children(new_children)
            raise ConflictError(
                "Proposal was changed by someone else", details=proposal.id
            )

        try:
            for table, rows in old_children.items():
                ids = [str(r["id"]) for r in rows]
                if ids:
                    await self._run(
                        f"replace rows in {table}",
                        lambda table=table, ids=ids: self._client.table(table)
                        .delete()
                        .in_("id", ids)
                        .execute(),
                    )
            await self._append_history(history)
        except StoreError:
            await self._restore(previous[0], proposal.version, old_children, new_children)
            raise
        return proposal

    async def _child_rows(self, proposal_id: str) -> Dict[str, List[Dict[str, Any]]]:
        rows = {}
        for table in (INDICATORS_TABLE, BUDGET_ITEMS_TABLE):
            rows[table] = await self._run(
                f"read {table}",
                lambda table=table: self._client.table(table)
                .select("*")
                .eq("ppa_id", proposal_id)
                .execute(),
            )
        return rows

    async def _insert_children(self, proposal: Proposal) -> Dict[str, List[str]]:
        """Insert fresh child rows and return their ids per table.

        If the second insert fails the first one is removed again.
        """
        batches = {
            INDICATORS_TABLE: [
                to_json_row({"id": str(uuid.uuid4()), **r})
                for r in indicator_rows(proposal.id, proposal.indicators)
            ],
            BUDGET_ITEMS_TABLE: [
                to_json_row({"id": str(uuid.uuid4()), **r})
                for r in budget_item_rows(proposal.id, proposal.budget_items)
            ],
        }
        inserted: Dict[str, List[str]] = {}
        try:
            for table, rows in batches.items():
                if not rows:
                    continue
                await self._run(
                    f"save rows in {table}",
                    lambda table=table, rows=rows: self._client.table(table)
                    .insert(rows)
                    .execute(),
                )
                inserted[table] = [r["id"] for r in rows]
        except StoreError:
            await self._discard_children(inserted)
            raise
        return inserted

    async def _append_history(self, history: HistoryEntry) -> None:
        row = history_to_row(history)
        row["id"] = history.id or str(uuid.uuid4())
        if row.get("created_at") is None:
            row.pop("created_at")
        payload = to_json_row(row)
        await self._run(
            "record history",
            lambda: self._client.table(HISTORY_TABLE).insert(payload).execute(),
        )

    # ------------------------------------------------------------------
    # Compensation
    # ------------------------------------------------------------------

    async def _compensate(self, operation: str, call: Callable[[], Any]) -> None:
        """Run one undo step; a failure is logged so the original error wins."""
        try:
            await self._run(operation, call)
        except StoreError:
            logger.error("Compensation step '%s' failed; manual repair may be needed", operation)

    async def _discard_children(self, inserted: Dict[str, List[str]]) -> None:
        for table, ids in inserted.items():
            if ids:
                await self._compensate(
                    f"discard rows in {table}",
                    lambda table=table, ids=ids: self._client.table(table)
                    .delete()
                    .in_("id", ids)
                    .execute(),
                )

    async def _restore(
        self,
        previous: Dict[str, Any],
        written_version: int,
        old_children: Dict[str, List[Dict[str, Any]]],
        new_children: Dict[str, List[str]],
    ) -> None:
        """Put back the body and children a failed update replaced."""
        body = {k: v for k, v in previous.items() if k != "id"}
        await self._compensate(
            "restore proposal",
            lambda: self._client.table(PROPOSALS_TABLE)
            .update(body)
            .eq("id", previous["id"])
            .eq("version", written_version)
            .execute(),
        )
        await self._discard_children(new_children)
        for table, rows in old_children.items():
            if not rows:
                continue
            ids = [str(r["id"]) for r in rows]
            try:
                remaining = await self._run(
                    f"read {table}",
                    lambda table=table, ids=ids: self._client.table(table)
                    .select("id")
                    .in_("id", ids)
                    .execute(),
                )
            except StoreError:
                logger.error("Could not check %s rows of %s during restore", table, previous["id"])
                continue
            present = {str(r["id"]) for r in remaining}
            missing = [r for r in rows if str(r["id"]) not in present]
            if missing:
                await self._compensate(
                    f"restore rows in {table}",
                    lambda table=table, missing=missing: self._client.table(table)
                    .insert(missing)
                    .execute(),
                )

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    async def list_history(self, proposal_id: str) -> List[HistoryEntry]:
        rows = await self._run(
            "read history",
            lambda: self._client.table(HISTORY_TABLE)
            .select("*")
            .eq("ppa_id", str(proposal_id))
            .order("created_at", desc=True)
            .execute(),
        )
        return [row_to_history(r) for r in rows]

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    async def get_profile(self, user_id: str) -> Optional[Account]:
        rows = await self._run(
            "read profile",
            lambda: self._client.table(PROFILES_TABLE)
            .select("*")
            .eq("id", str(user_id))
            .execute(),
        )
        return row_to_account(rows[0]) if rows else None

    async def list_profiles(self) -> List[Account]:
        rows = await self._run(
            "read profiles",
            lambda: self._client.table(PROFILES_TABLE)
            .select("*")
            .order("office_name")
            .execute(),
        )
        return [row_to_account(r) for r in rows]

    async def set_profile_approval(self, user_id: str, approved: bool) -> Account:
        rows = await self._run(
            "update profile",
            lambda: self._client.table(PROFILES_TABLE)
            .update({"is_approved": approved})
            .eq("id", str(user_id))
            .execute(),
        )
        if not rows:
            raise AccountNotFound("Account not found", details=str(user_id))
        return row_to_account(rows[0])
