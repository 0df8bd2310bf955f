"""Analytics response models for the GAD dashboard."""

from decimal import Decimal
from typing import Dict, List

from pydantic import BaseModel, Field

from gadplan.models.proposal import Money


class FundTotals(BaseModel):
    mooe: Money = Decimal("0.00")
    ps: Money = Decimal("0.00")
    co: Money = Decimal("0.00")


class OfficeBudget(BaseModel):
    office_name: str
    budget_total: Money


class AnalyticsSummary(BaseModel):
    """Response for the /api/v1/analytics/summary endpoint."""

    proposal_count: int = Field(0, ge=0)
    total_budget: Money = Decimal("0.00")
    approved_budget: Money = Decimal("0.00")
    fund_totals: FundTotals = Field(default_factory=FundTotals)
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_focus: Dict[str, int] = Field(default_factory=dict)
    budget_by_office: Dict[str, Money] = Field(default_factory=dict)
    top_offices: List[OfficeBudget] = Field(default_factory=list)
    registered_offices: int = Field(0, ge=0)
    submission_rate: float = Field(
        0.0, ge=0.0, description="Distinct submitting offices / registered offices"
    )
