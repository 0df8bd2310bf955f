"""Review endpoints for the GAD Unit and the local chief executive.

Covers the review queue, proposal detail, audit trail, completeness check
and the approve / return / remarks decisions.
"""

import logging

from fastapi import APIRouter, Depends, Query

from gadplan.deps import get_current_actor, get_lifecycle_service
from gadplan.lifecycle import Actor
from gadplan.models.proposal import (
    AuditReport,
    HistoryListResponse,
    Proposal,
    ProposalListResponse,
    RemarksRequest,
    ReviewDecisionRequest,
)
from gadplan.services.lifecycle_service import ProposalLifecycleService
from gadplan.stores.base import ORDER_CREATED

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["reviews"])


@router.get("/proposals", response_model=ProposalListResponse)
async def list_proposals(
    order_by: str = Query(ORDER_CREATED, pattern="^(created_at|office_name)$"),
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """Review queue (all non-draft proposals) for staff; own proposals for offices."""
    proposals = await service.list_for_actor(actor, order_by)
    return ProposalListResponse(proposals=proposals, total=len(proposals))


@router.get("/proposals/{proposal_id}", response_model=Proposal)
async def get_proposal(
    proposal_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    return await service.get_for_actor(actor, proposal_id)


@router.get("/proposals/{proposal_id}/history", response_model=HistoryListResponse)
async def get_proposal_history(
    proposal_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """Audit trail of a proposal, newest first."""
    history = await service.history(actor, proposal_id)
    return HistoryListResponse(
        proposal_id=proposal_id, history=history, total=len(history)
    )


@router.get("/proposals/{proposal_id}/audit", response_model=AuditReport)
async def audit_proposal(
    proposal_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """Completeness score shown next to the review form."""
    return await service.audit(actor, proposal_id)


@router.post("/proposals/{proposal_id}/approve", response_model=Proposal)
async def approve_proposal(
    proposal_id: str,
    body: ReviewDecisionRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """Approve a proposal.

    Executives may include ``edits``; the corrected content is stored with
    the approval (mainstreaming).
    """
    return await service.approve(
        actor,
        proposal_id,
        sectional_comments=body.sectional_comments,
        reviewer_remark=body.reviewer_remark,
        edits=body.edits,
        expected_version=body.expected_version,
    )


@router.post("/proposals/{proposal_id}/return", response_model=Proposal)
async def return_proposal(
    proposal_id: str,
    body: ReviewDecisionRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """Send a proposal back to its office for revision."""
    return await service.return_for_revision(
        actor,
        proposal_id,
        sectional_comments=body.sectional_comments,
        reviewer_remark=body.reviewer_remark,
        edits=body.edits,
        expected_version=body.expected_version,
    )


@router.post("/proposals/{proposal_id}/remarks", response_model=Proposal)
async def update_remarks(
    proposal_id: str,
    body: RemarksRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """Save remarks without changing the proposal's status."""
    return await service.annotate(
        actor,
        proposal_id,
        sectional_comments=body.sectional_comments,
        reviewer_remark=body.reviewer_remark,
    )
