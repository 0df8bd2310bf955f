"""Dashboard analytics for the GAD Unit and the local chief executive."""

import logging

from fastapi import APIRouter, Depends

from gadplan.deps import get_current_actor, get_store
from gadplan.errors import AuthorizationError
from gadplan.lifecycle import OFFICE_ROLES, Actor
from gadplan.models.analytics import AnalyticsSummary
from gadplan.services import analytics_service
from gadplan.stores.base import ProposalStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["analytics"])


@router.get("/analytics/summary", response_model=AnalyticsSummary)
async def analytics_summary(
    actor: Actor = Depends(get_current_actor),
    store: ProposalStore = Depends(get_store),
):
    """Budget totals, status counts, top offices and submission rate.

    Staff only. Budget figures, the office ranking and the submission rate
    leave out Drafts; the submission rate is distinct submitting offices
    over registered office accounts.
    """
    if not actor.is_staff:
        raise AuthorizationError("Analytics are available to reviewers and executives")
    proposals = await store.list_all()
    profiles = await store.list_profiles()
    registered = sum(1 for p in profiles if p.role in {r.value for r in OFFICE_ROLES})
    return AnalyticsSummary(**analytics_service.summarize(proposals, registered))
