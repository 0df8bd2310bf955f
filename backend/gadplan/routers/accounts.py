"""Office account management for the GAD Unit."""

import logging

from fastapi import APIRouter, Depends

from gadplan.deps import get_current_actor, get_store
from gadplan.lifecycle import Actor
from gadplan.models.account import (
    Account,
    AccountApprovalRequest,
    AccountListResponse,
)
from gadplan.services import account_service
from gadplan.stores.base import ProposalStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["accounts"])


@router.get("/accounts", response_model=AccountListResponse)
async def list_accounts(
    actor: Actor = Depends(get_current_actor),
    store: ProposalStore = Depends(get_store),
):
    """All registered accounts with the number still pending approval."""
    accounts = await account_service.list_accounts(store, actor)
    return AccountListResponse(
        accounts=accounts,
        total=len(accounts),
        pending_count=account_service.pending_count(accounts),
    )


@router.post("/accounts/{account_id}/approval", response_model=Account)
async def set_account_approval(
    account_id: str,
    body: AccountApprovalRequest,
    actor: Actor = Depends(get_current_actor),
    store: ProposalStore = Depends(get_store),
):
    """Grant or revoke an office's access to the planning workflow."""
    return await account_service.set_account_approval(
        store, actor, account_id, body.approved
    )
