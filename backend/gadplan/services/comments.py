"""Sectional comments and executive remarks.

A proposal carries two remark channels: ``sectional_comments`` (one slot
per section key, set by reviewers and executives) and ``reviewer_remark``
(a single free-form note from the executive). Both are kept; the helpers
below report on each separately.
"""

from typing import Dict, Optional

from gadplan.errors import ValidationFailed
from gadplan.lifecycle import ProposalStatus, SectionKey
from gadplan.models.proposal import OfficeProposal, Proposal

SECTION_KEYS = tuple(key.value for key in SectionKey)


def merge_comments(
    existing: Dict[str, str], updates: Optional[Dict[str, str]]
) -> Dict[str, str]:
    """Overwrite only the supplied section keys.

    Raises:
        ValidationFailed: If ``updates`` names a key outside the five sections.
    """
    merged = dict(existing or {})
    if not updates:
        return merged
    unknown = sorted(set(updates) - set(SECTION_KEYS))
    if unknown:
        raise ValidationFailed(
            "Unknown section key(s)", details=", ".join(unknown)
        )
    for key, text in updates.items():
        merged[key] = text or ""
    return merged


def active_comments(proposal: Proposal) -> Dict[str, str]:
    """Non-blank sectional comments, regardless of status."""
    return {
        key: text
        for key, text in (proposal.sectional_comments or {}).items()
        if text and text.strip()
    }


def feedback_for_office(proposal: Proposal) -> Dict[str, str]:
    """Comments foregrounded to the owning office.

    Only a proposal sent back for revision surfaces its comments; comments
    left while approving stay stored but are not returned here.
    """
    if not ProposalStatus(proposal.status).is_revision:
        return {}
    return active_comments(proposal)


def has_outstanding_feedback(proposal: Proposal) -> bool:
    return bool(feedback_for_office(proposal))


def has_executive_remark(proposal: Proposal) -> bool:
    return bool(proposal.reviewer_remark and proposal.reviewer_remark.strip())


def office_view(proposal: Proposal) -> OfficeProposal:
    """Attach the office-facing feedback flags to a stored proposal."""
    feedback = feedback_for_office(proposal)
    return OfficeProposal(
        **proposal.model_dump(),
        feedback=feedback,
        has_outstanding_feedback=bool(feedback),
        has_executive_remark=has_executive_remark(proposal),
    )
