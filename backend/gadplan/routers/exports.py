"""Approved GAD plan export."""

import io
import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from gadplan.deps import get_current_actor, get_lifecycle_service
from gadplan.errors import AuthorizationError
from gadplan.lifecycle import Actor
from gadplan.security import EXPORT_RATE_LIMIT, limiter
from gadplan.services.export_service import PLAN_YEAR, export_plan_csv
from gadplan.services.lifecycle_service import ProposalLifecycleService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["exports"])


@router.get("/exports/approved-plan.csv")
@limiter.limit(EXPORT_RATE_LIMIT)
async def export_approved_plan(
    request: Request,
    year: str = Query(PLAN_YEAR, max_length=4),
    actor: Actor = Depends(get_current_actor),
    service: ProposalLifecycleService = Depends(get_lifecycle_service),
):
    """Download the consolidated plan of Approved proposals as CSV.

    Returns:
        StreamingResponse with CSV content.
    """
    if not actor.is_staff:
        raise AuthorizationError("The consolidated plan is available to reviewers and executives")
    proposals = await service.approved_plan()
    csv_content = export_plan_csv(proposals, year=year)

    filename = f"GAD_Plan_FY{year}.csv"
    return StreamingResponse(
        io.StringIO(csv_content),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
