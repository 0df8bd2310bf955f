"""Proposal lifecycle vocabulary and transition rules.

Defines the literal status, role and section-key vocabulary shared with
stored data, the :class:`Actor` passed explicitly to every lifecycle
operation, and the transition table that decides which actor may move a
proposal from one status to another.

Everything here is pure: no I/O, no framework imports.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from gadplan.errors import AuthorizationError, InvalidTransition

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------


class ProposalStatus(str, Enum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    FOR_REVISION = "For Revision"
    # Legacy label for FOR_REVISION; read from old rows, never written.
    RETURNED = "Returned"
    APPROVED = "Approved"

    def canonical(self) -> "ProposalStatus":
        if self is ProposalStatus.RETURNED:
            return ProposalStatus.FOR_REVISION
        return self

    @property
    def is_revision(self) -> bool:
        return self.canonical() is ProposalStatus.FOR_REVISION


class Role(str, Enum):
    USER = "User"
    ADMIN = "Admin"
    GAD_UNIT = "GAD_UNIT"
    LCE = "LCE"
    MAYOR = "MAYOR"


class SectionKey(str, Enum):
    GENDER_ISSUE = "gender_issue"
    OBJECTIVES = "objectives"
    ACTIVITIES = "activities"
    INDICATORS = "indicators"
    BUDGET = "budget"


class FundType(str, Enum):
    MOOE = "MOOE"
    PS = "PS"
    CO = "CO"


class Action(str, Enum):
    SAVE_DRAFT = "save_draft"
    SUBMIT = "submit"
    APPROVE = "approve"
    RETURN = "return_for_revision"
    ANNOTATE = "annotate"


class ActorClass(str, Enum):
    OFFICE = "office"
    REVIEWER = "reviewer"
    EXECUTIVE = "executive"

    @property
    def roles(self) -> frozenset:
        return _ROLES_BY_CLASS[self]


OFFICE_ROLES = frozenset({Role.USER})
REVIEWER_ROLES = frozenset({Role.GAD_UNIT, Role.ADMIN})
EXECUTIVE_ROLES = frozenset({Role.LCE, Role.MAYOR})

_ROLES_BY_CLASS = {
    ActorClass.OFFICE: OFFICE_ROLES,
    ActorClass.REVIEWER: REVIEWER_ROLES,
    ActorClass.EXECUTIVE: EXECUTIVE_ROLES,
}

# History ``action_by`` labels for the non-office actor classes.
REVIEWER_LABEL = "GAD UNIT AUDITOR"
EXECUTIVE_LABEL = "LOCAL CHIEF EXECUTIVE"

APPROVAL_STATUSES = frozenset({ProposalStatus.APPROVED})


# ---------------------------------------------------------------------------
# Actor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Actor:
    """The authenticated principal performing a lifecycle operation."""

    user_id: str
    role: Role
    office_name: str = ""
    is_approved: bool = False

    @classmethod
    def from_profile(cls, profile: dict[str, Any]) -> "Actor":
        """Build an Actor from a ``profiles`` row.

        Raises:
            AuthorizationError: If the stored role is outside the known set.
        """
        raw_role = profile.get("role") or Role.USER.value
        try:
            role = Role(raw_role)
        except ValueError as exc:
            raise AuthorizationError(f"Unknown role '{raw_role}'") from exc
        return cls(
            user_id=str(profile["id"]),
            role=role,
            office_name=profile.get("office_name") or "",
            is_approved=bool(profile.get("is_approved")),
        )

    @property
    def actor_class(self) -> ActorClass:
        if self.role in REVIEWER_ROLES:
            return ActorClass.REVIEWER
        if self.role in EXECUTIVE_ROLES:
            return ActorClass.EXECUTIVE
        return ActorClass.OFFICE

    @property
    def is_staff(self) -> bool:
        """Reviewers and executives; exempt from the office approval gate."""
        return self.actor_class is not ActorClass.OFFICE

    @property
    def label(self) -> str:
        """Value recorded as ``action_by`` in the history log."""
        if self.actor_class is ActorClass.REVIEWER:
            return REVIEWER_LABEL
        if self.actor_class is ActorClass.EXECUTIVE:
            return EXECUTIVE_LABEL
        return self.office_name or "Office"


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Transition:
    source: Optional[ProposalStatus]  # None = proposal does not exist yet
    action: Action
    actor_class: ActorClass
    target: ProposalStatus


_S = ProposalStatus

TRANSITIONS: tuple[Transition, ...] = (
    # Office: create, edit, (re)submit
    Transition(None, Action.SAVE_DRAFT, ActorClass.OFFICE, _S.DRAFT),
    Transition(None, Action.SUBMIT, ActorClass.OFFICE, _S.SUBMITTED),
    Transition(_S.DRAFT, Action.SAVE_DRAFT, ActorClass.OFFICE, _S.DRAFT),
    Transition(_S.DRAFT, Action.SUBMIT, ActorClass.OFFICE, _S.SUBMITTED),
    Transition(_S.FOR_REVISION, Action.SUBMIT, ActorClass.OFFICE, _S.SUBMITTED),
    # GAD Unit review
    Transition(_S.SUBMITTED, Action.APPROVE, ActorClass.REVIEWER, _S.APPROVED),
    Transition(_S.SUBMITTED, Action.RETURN, ActorClass.REVIEWER, _S.FOR_REVISION),
    # Executive mainstreaming
    Transition(_S.SUBMITTED, Action.APPROVE, ActorClass.EXECUTIVE, _S.APPROVED),
    Transition(_S.FOR_REVISION, Action.APPROVE, ActorClass.EXECUTIVE, _S.APPROVED),
    Transition(_S.SUBMITTED, Action.RETURN, ActorClass.EXECUTIVE, _S.FOR_REVISION),
    Transition(
        _S.FOR_REVISION, Action.RETURN, ActorClass.EXECUTIVE, _S.FOR_REVISION
    ),
    # Remarks without a status change
    Transition(_S.SUBMITTED, Action.ANNOTATE, ActorClass.REVIEWER, _S.SUBMITTED),
    Transition(
        _S.FOR_REVISION, Action.ANNOTATE, ActorClass.REVIEWER, _S.FOR_REVISION
    ),
    Transition(_S.APPROVED, Action.ANNOTATE, ActorClass.REVIEWER, _S.APPROVED),
    Transition(_S.SUBMITTED, Action.ANNOTATE, ActorClass.EXECUTIVE, _S.SUBMITTED),
    Transition(
        _S.FOR_REVISION, Action.ANNOTATE, ActorClass.EXECUTIVE, _S.FOR_REVISION
    ),
    Transition(_S.APPROVED, Action.ANNOTATE, ActorClass.EXECUTIVE, _S.APPROVED),
)


def status_changing_edges() -> set[tuple[Optional[ProposalStatus], ProposalStatus]]:
    """All (source, target) pairs reachable through a status-changing action."""
    return {
        (t.source, t.target) for t in TRANSITIONS if t.action is not Action.ANNOTATE
    }


def action_for(
    source: Optional[ProposalStatus], target: ProposalStatus
) -> Action:
    """Map a requested (source, target) status pair onto its action.

    Raises:
        InvalidTransition: If no row of the table connects the two statuses.
    """
    src = source.canonical() if source is not None else None
    dst = target.canonical()
    for t in TRANSITIONS:
        if t.source is src and t.target is dst and t.action is not Action.ANNOTATE:
            return t.action
    raise InvalidTransition(
        f"No transition from '{_label(source)}' to '{target.value}'"
    )


def resolve_transition(
    actor: Actor,
    action: Action,
    current: Optional[ProposalStatus],
    owner_id: Optional[str] = None,
) -> Transition:
    """Check that ``actor`` may perform ``action`` and return the matching row.

    Args:
        actor: The acting principal.
        action: The requested operation.
        current: Current status, or ``None`` when creating a proposal.
        owner_id: Owning office account of an existing proposal.

    Returns:
        The Transition row that applies.

    Raises:
        InvalidTransition: The action is not defined from ``current``.
        AuthorizationError: The action exists but not for this actor.
    """
    src = current.canonical() if current is not None else None
    candidates = [t for t in TRANSITIONS if t.action is action and t.source is src]
    if not candidates:
        logger.warning(
            "Rejected %s on '%s' proposal: no such transition",
            action.value,
            _label(current),
        )
        raise InvalidTransition(
            f"Cannot {action.value.replace('_', ' ')} a proposal "
            f"in status '{_label(current)}'"
        )

    permitted = [t for t in candidates if actor.role in t.actor_class.roles]
    if not permitted:
        logger.warning(
            "Rejected %s on '%s' proposal: role %s not permitted",
            action.value,
            _label(current),
            actor.role.value,
        )
        raise AuthorizationError(
            f"Role '{actor.role.value}' may not "
            f"{action.value.replace('_', ' ')} a '{_label(current)}' proposal"
        )

    transition = permitted[0]
    if transition.actor_class is ActorClass.OFFICE:
        if not actor.is_approved:
            raise AuthorizationError(
                "Office account is pending approval",
                details=actor.office_name or actor.user_id,
            )
        if owner_id is not None and str(owner_id) != str(actor.user_id):
            raise AuthorizationError(
                "Only the owning office may edit or submit this proposal"
            )
    return transition


def _label(status: Optional[ProposalStatus]) -> str:
    return status.value if status is not None else "new"
