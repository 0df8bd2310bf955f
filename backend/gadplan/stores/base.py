"""Record store contract used by the lifecycle engine.

A store holds four collections (proposals, indicators, budget items,
history) plus the externally owned profiles. Implementations must:

- read a proposal together with its indicators and budget items;
- write a proposal body, optionally replace its child collections, and
  append one history entry as a single logical unit;
- apply updates only while the stored ``status`` and ``version`` still
  match what the caller read, raising :class:`~gadplan.errors.ConflictError`
  when no row matches;
- raise :class:`~gadplan.errors.StoreError` (with the cause chained) for
  any backend failure.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from gadplan.lifecycle import ProposalStatus
from gadplan.models.account import Account
from gadplan.models.proposal import HistoryEntry, Proposal

ORDER_CREATED = "created_at"
ORDER_OFFICE = "office_name"
ORDERINGS = (ORDER_CREATED, ORDER_OFFICE)


class ProposalStore(ABC):
    """Abstract record store for proposals, children, history and profiles."""

    # -- proposals ---------------------------------------------------------

    @abstractmethod
    async def get_proposal(self, proposal_id: str) -> Optional[Proposal]:
        """Return the proposal with its children, or None."""

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> List[Proposal]:
        """Proposals of one office, newest first."""

    @abstractmethod
    async def list_for_review(self, order_by: str = ORDER_CREATED) -> List[Proposal]:
        """All non-Draft proposals, newest first or by office name."""

    @abstractmethod
    async def list_by_status(
        self, status: ProposalStatus, order_by: str = ORDER_OFFICE
    ) -> List[Proposal]:
        """Proposals in one status."""

    @abstractmethod
    async def list_all(self) -> List[Proposal]:
        """Every proposal regardless of status."""

    @abstractmethod
    async def insert_proposal(
        self, proposal: Proposal, history: HistoryEntry
    ) -> Proposal:
        """Insert a new proposal, its children and its first history entry."""

    @abstractmethod
    async def update_proposal(
        self,
        proposal: Proposal,
        *,
        expected_status: ProposalStatus,
        expected_version: int,
        replace_children: bool,
        history: HistoryEntry,
    ) -> Proposal:
        """Conditionally update a proposal and append one history entry."""

    # -- history -----------------------------------------------------------

    @abstractmethod
    async def list_history(self, proposal_id: str) -> List[HistoryEntry]:
        """History entries of one proposal, newest first."""

    # -- profiles ----------------------------------------------------------

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[Account]:
        """Return the profile of one account, or None."""

    @abstractmethod
    async def list_profiles(self) -> List[Account]:
        """All registered accounts ordered by office name."""

    @abstractmethod
    async def set_profile_approval(self, user_id: str, approved: bool) -> Account:
        """Set ``is_approved`` on one account and return it."""


def check_ordering(order_by: str) -> str:
    if order_by not in ORDERINGS:
        raise ValueError(
            f"Invalid order_by '{order_by}'. Must be one of: {', '.join(ORDERINGS)}"
        )
    return order_by
