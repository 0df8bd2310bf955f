"""Office-facing proposal endpoints.

An office lists, creates, edits and submits its own PPA proposals.
Responses carry the comments the office must act on while a proposal is
back for revision. Workflow errors raised by the lifecycle engine are
translated to HTTP responses by the handler registered in
``gadplan.main``.
"""

import logging

from fastapi import APIRouter, Body, Depends, status

from gadplan.deps import get_current_actor, get_lifecycle_service
from gadplan.lifecycle import Actor
from gadplan.models.proposal import (
    OfficeProposal,
    OfficeProposalListResponse,
    ProposalContent,
    ProposalCreateRequest,
    ProposalSaveRequest,
)
from gadplan.services.comments import office_view
from gadplan.services.lifecycle_service import ProposalLifecycleService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["proposals"])


@router.get("/me/proposals", response_model=OfficeProposalListResponse)
async def list_my_proposals(
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """List the authenticated office's proposals, newest first."""
    proposals = await service.store.list_by_owner(actor.user_id)
    return OfficeProposalListResponse(
        proposals=[office_view(p) for p in proposals], total=len(proposals)
    )


@router.get("/me/proposals/{proposal_id}", response_model=OfficeProposal)
async def get_my_proposal(
    proposal_id: str,
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """One of the office's proposals with its outstanding feedback."""
    return office_view(await service.get_for_actor(actor, proposal_id))


@router.post(
    "/me/proposals",
    response_model=OfficeProposal,
    status_code=status.HTTP_201_CREATED,
)
async def create_proposal(
    body: ProposalCreateRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """Create a proposal as a draft, or submit it straight away.

    Args:
        body: Proposal content plus the ``submit`` flag.
        actor: Authenticated office (injected).

    Returns:
        The stored proposal.
    """
    content = ProposalContent(**body.model_dump(exclude={"submit"}))
    return office_view(await service.create(actor, content, submit=body.submit))


@router.put("/me/proposals/{proposal_id}", response_model=OfficeProposal)
async def save_draft(
    proposal_id: str,
    body: ProposalSaveRequest,
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """Save edits to a draft without changing its status."""
    proposal = await service.save_draft(
        actor, proposal_id, body.content(), expected_version=body.expected_version
    )
    return office_view(proposal)


@router.post("/me/proposals/{proposal_id}/submit", response_model=OfficeProposal)
async def submit_proposal(
    proposal_id: str,
    body: ProposalSaveRequest | None = Body(None),
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """Submit a draft, or resubmit a proposal returned for revision.

    The body is optional; when present it replaces the proposal content
    before submission.
    """
    if body is None:
        return office_view(await service.submit(actor, proposal_id))
    proposal = await service.submit(
        actor,
        proposal_id,
        content=body.content(),
        expected_version=body.expected_version,
    )
    return office_view(proposal)
