"""Proposal lifecycle engine.

Every operation takes the acting :class:`~gadplan.lifecycle.Actor`
explicitly, checks the transition table, applies edits to a copy of the
stored proposal, recomputes budget totals, and hands the result plus one
history entry to the record store as a single conditional write.

Rejected operations raise before anything is written, so a failed call
never changes status or grows the history log.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from gadplan.errors import (
    AuthorizationError,
    ConflictError,
    ProposalNotFound,
    ValidationFailed,
)
from gadplan.lifecycle import (
    APPROVAL_STATUSES,
    Action,
    Actor,
    ActorClass,
    ProposalStatus,
    Transition,
    action_for,
    resolve_transition,
)
from gadplan.models.proposal import (
    AuditReport,
    HistoryEntry,
    Proposal,
    ProposalContent,
    ProposalEdits,
)
from gadplan.services.audit_service import score_proposal
from gadplan.services.budget_service import compute_rollup
from gadplan.services.comments import merge_comments
from gadplan.stores.base import ORDER_CREATED, ORDER_OFFICE, ProposalStore

logger = logging.getLogger(__name__)

REMARKS_UPDATED = "Remarks Updated"
DRAFT_UPDATED = "Draft Updated"

_CONTENT_FIELDS = tuple(ProposalContent.model_fields)
_CHILD_FIELDS = ("indicators", "budget_items")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_for_submission(proposal: Proposal) -> None:
    """Check the fields a proposal needs before it leaves Draft.

    Raises:
        ValidationFailed: If the gender issue statement or activity is blank.
    """
    missing = []
    if not proposal.gender_issue.statement.strip():
        missing.append("gender issue statement")
    if not proposal.activity_name.strip():
        missing.append("activity name")
    if missing:
        raise ValidationFailed("Required fields are missing", details=", ".join(missing))


class ProposalLifecycleService:
    """Runs proposal transitions against a :class:`ProposalStore`."""

    def __init__(
        self,
        store: ProposalStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, proposal_id: str) -> Proposal:
        proposal = await self.store.get_proposal(proposal_id)
        if proposal is None:
            raise ProposalNotFound("Proposal not found", details=str(proposal_id))
        return proposal

    async def get_for_actor(self, actor: Actor, proposal_id: str) -> Proposal:
        """Fetch a proposal the actor may see.

        Offices see only their own proposals; reviewers and executives see
        any proposal.
        """
        proposal = await self.get(proposal_id)
        if not actor.is_staff and proposal.owner_id != actor.user_id:
            raise AuthorizationError("Proposal belongs to another office")
        return proposal

    async def list_for_actor(
        self, actor: Actor, order_by: str = ORDER_CREATED
    ) -> List[Proposal]:
        """An office's own proposals, or the review queue for staff."""
        if actor.is_staff:
            return await self.store.list_for_review(order_by)
        return await self.store.list_by_owner(actor.user_id)

    async def history(self, actor: Actor, proposal_id: str) -> List[HistoryEntry]:
        await self.get_for_actor(actor, proposal_id)
        return await self.store.list_history(proposal_id)

    async def audit(self, actor: Actor, proposal_id: str) -> AuditReport:
        return score_proposal(await self.get_for_actor(actor, proposal_id))

    async def approved_plan(self) -> List[Proposal]:
        """Approved proposals ordered by office name, as exported."""
        return await self.store.list_by_status(ProposalStatus.APPROVED, ORDER_OFFICE)

    # ------------------------------------------------------------------
    # Office operations
    # ------------------------------------------------------------------

    async def create(
        self, actor: Actor, content: ProposalContent, submit: bool = False
    ) -> Proposal:
        """Create a new proposal as a Draft, or submit it directly.

        Args:
            actor: The owning office.
            content: Full proposal body.
            submit: Send straight to review instead of saving a draft.

        Returns:
            The stored proposal.

        Raises:
            AuthorizationError: Actor is not an approved office account.
            ValidationFailed: ``submit`` is set and required fields are blank.
            StoreError: The store rejected the write.
        """
        action = Action.SUBMIT if submit else Action.SAVE_DRAFT
        transition = resolve_transition(actor, action, None)

        now = self._clock()
        proposal = Proposal(
            id=str(uuid.uuid4()),
            owner_id=actor.user_id,
            office_name=actor.office_name,
            **self._content_updates(content),
        )
        if transition.target is not ProposalStatus.DRAFT:
            validate_for_submission(proposal)

        proposal = proposal.model_copy(
            update={
                **compute_rollup(proposal.budget_items).model_dump(),
                "status": transition.target,
                "version": 1,
                "created_at": now,
                "updated_at": now,
            }
        )
        entry = HistoryEntry(
            id=str(uuid.uuid4()),
            proposal_id=proposal.id,
            action_by=actor.label,
            action_type=transition.target.value,
            change_summary=_summary(transition, is_new=True),
            created_at=now,
        )
        stored = await self.store.insert_proposal(proposal, entry)
        logger.info(
            "Proposal %s created by %s as %s",
            proposal.id,
            actor.user_id,
            transition.target.value,
        )
        return stored

    async def save_draft(
        self,
        actor: Actor,
        proposal_id: str,
        content: ProposalContent,
        expected_version: Optional[int] = None,
    ) -> Proposal:
        return await self._apply(
            actor,
            Action.SAVE_DRAFT,
            proposal_id,
            content=content,
            expected_version=expected_version,
        )

    async def submit(
        self,
        actor: Actor,
        proposal_id: str,
        content: Optional[ProposalContent] = None,
        expected_version: Optional[int] = None,
    ) -> Proposal:
        """Submit a Draft, or resubmit a proposal returned for revision."""
        return await self._apply(
            actor,
            Action.SUBMIT,
            proposal_id,
            content=content,
            expected_version=expected_version,
        )

    # ------------------------------------------------------------------
    # Reviewer / executive operations
    # ------------------------------------------------------------------

    async def approve(
        self,
        actor: Actor,
        proposal_id: str,
        *,
        sectional_comments: Optional[Dict[str, str]] = None,
        reviewer_remark: Optional[str] = None,
        edits: Optional[ProposalEdits] = None,
        expected_version: Optional[int] = None,
    ) -> Proposal:
        """Approve a proposal (executives may mainstream it with edits)."""
        return await self._apply(
            actor,
            Action.APPROVE,
            proposal_id,
            edits=edits,
            sectional_comments=sectional_comments,
            reviewer_remark=reviewer_remark,
            expected_version=expected_version,
        )

    async def return_for_revision(
        self,
        actor: Actor,
        proposal_id: str,
        *,
        sectional_comments: Optional[Dict[str, str]] = None,
        reviewer_remark: Optional[str] = None,
        edits: Optional[ProposalEdits] = None,
        expected_version: Optional[int] = None,
    ) -> Proposal:
        return await self._apply(
            actor,
            Action.RETURN,
            proposal_id,
            edits=edits,
            sectional_comments=sectional_comments,
            reviewer_remark=reviewer_remark,
            expected_version=expected_version,
        )

    async def annotate(
        self,
        actor: Actor,
        proposal_id: str,
        *,
        sectional_comments: Optional[Dict[str, str]] = None,
        reviewer_remark: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Proposal:
        """Attach remarks to a non-Draft proposal without changing status."""
        return await self._apply(
            actor,
            Action.ANNOTATE,
            proposal_id,
            sectional_comments=sectional_comments,
            reviewer_remark=reviewer_remark,
            expected_version=expected_version,
        )

    async def transition_to(
        self,
        actor: Actor,
        proposal_id: str,
        target: ProposalStatus,
        **kwargs: Any,
    ) -> Proposal:
        """Move a proposal to ``target`` using whichever action connects them.

        Raises:
            InvalidTransition: No action leads from the current status to
                ``target``.
        """
        current = await self.get(proposal_id)
        action = action_for(current.status, ProposalStatus(target))
        handlers = {
            Action.SAVE_DRAFT: self.save_draft,
            Action.SUBMIT: self.submit,
            Action.APPROVE: self.approve,
            Action.RETURN: self.return_for_revision,
        }
        if action is Action.SAVE_DRAFT:
            content = kwargs.pop("content", None)
            if content is None:
                content = ProposalContent(
                    **{name: getattr(current, name) for name in _CONTENT_FIELDS}
                )
            return await self.save_draft(actor, proposal_id, content, **kwargs)
        return await handlers[action](actor, proposal_id, **kwargs)

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    async def _apply(
        self,
        actor: Actor,
        action: Action,
        proposal_id: str,
        *,
        content: Optional[ProposalContent] = None,
        edits: Optional[ProposalEdits] = None,
        sectional_comments: Optional[Dict[str, str]] = None,
        reviewer_remark: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Proposal:
        current = await self.get(proposal_id)
        if expected_version is not None and expected_version != current.version:
            raise ConflictError(
                "Proposal was changed by someone else",
                details=f"expected version {expected_version}, found {current.version}",
            )

        transition = resolve_transition(
            actor, action, current.status, owner_id=current.owner_id
        )

        updates: Dict[str, Any] = {}
        if content is not None:
            updates.update(self._content_updates(content))
        if edits is not None:
            updates.update(
                {
                    name: getattr(edits, name)
                    for name in ProposalEdits.model_fields
                    if getattr(edits, name) is not None
                }
            )
        if sectional_comments is not None:
            updates["sectional_comments"] = merge_comments(
                current.sectional_comments, sectional_comments
            )
        if reviewer_remark is not None:
            updates["reviewer_remark"] = reviewer_remark

        candidate = current.model_copy(update=updates)
        if transition.target is not ProposalStatus.DRAFT:
            validate_for_submission(candidate)

        now = self._clock()
        is_approval = (
            transition.action is Action.APPROVE
            and transition.target in APPROVAL_STATUSES
        )
        proposal = candidate.model_copy(
            update={
                **compute_rollup(candidate.budget_items).model_dump(),
                "status": transition.target,
                "version": current.version + 1,
                "updated_at": now,
                "approved_at": now if is_approval else current.approved_at,
            }
        )
        entry = HistoryEntry(
            id=str(uuid.uuid4()),
            proposal_id=proposal.id,
            action_by=actor.label,
            action_type=_action_type(transition, current.status),
            change_summary=_summary(transition),
            created_at=now,
        )
        stored = await self.store.update_proposal(
            proposal,
            expected_status=current.status,
            expected_version=current.version,
            replace_children=any(name in updates for name in _CHILD_FIELDS),
            history=entry,
        )
        logger.info(
            "Proposal %s: %s by %s (%s -> %s)",
            proposal.id,
            action.value,
            actor.role.value,
            current.status.value,
            transition.target.value,
        )
        return stored

    @staticmethod
    def _content_updates(content: ProposalContent) -> Dict[str, Any]:
        return {name: getattr(content, name) for name in _CONTENT_FIELDS}


# ---------------------------------------------------------------------------
# History wording
# ---------------------------------------------------------------------------


def _action_type(transition: Transition, previous: ProposalStatus) -> str:
    if transition.action is Action.ANNOTATE:
        return REMARKS_UPDATED
    if transition.target is ProposalStatus.DRAFT and previous is ProposalStatus.DRAFT:
        return DRAFT_UPDATED
    return transition.target.value


def _summary(transition: Transition, is_new: bool = False) -> str:
    if transition.action is Action.ANNOTATE:
        return "Sectional remarks saved."
    if transition.actor_class is ActorClass.OFFICE:
        if transition.target is ProposalStatus.SUBMITTED:
            if transition.source is ProposalStatus.FOR_REVISION:
                return "PPA record resubmitted for verification."
            return "PPA record submitted for verification."
        if is_new:
            return "PPA record saved as draft."
        return "PPA draft updated."
    return f"PPA status changed to {transition.target.value}. Sectional remarks saved."
