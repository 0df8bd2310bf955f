"""Proposal models for the GAD plan workflow.

Domain records (``Proposal``, ``Indicator``, ``BudgetItem``,
``HistoryEntry``) shared by the lifecycle engine and both record stores,
plus the request/response bodies used by the API routers.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, Field, PlainSerializer, field_validator

from gadplan.lifecycle import FundType, ProposalStatus, SectionKey

# Two-decimal quantizer for money rounding
_TWO_PLACES = Decimal("0.01")

Money = Annotated[
    Decimal, PlainSerializer(float, return_type=float, when_used="json")
]

PPA_CATEGORIES = ("Client-Focused", "Agency-Focused")
FOCUS_TYPES = ("CLIENT-FOCUSED", "ORGANIZATION-FOCUSED")
CATEGORY_TYPES = ("Gender Issue", "GAD Mandate")
SECTION_KEYS = tuple(key.value for key in SectionKey)


def quantize_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def _check_choice(value: str, choices: tuple, field_name: str) -> str:
    if value not in choices:
        raise ValueError(
            f"Invalid {field_name} '{value}'. Must be one of: {', '.join(choices)}"
        )
    return value


def _check_section_keys(value: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    if value is None:
        return value
    unknown = sorted(set(value) - set(SECTION_KEYS))
    if unknown:
        raise ValueError(
            f"Unknown section key(s) {', '.join(unknown)}. "
            f"Must be one of: {', '.join(SECTION_KEYS)}"
        )
    return {k: (v or "") for k, v in value.items()}


# ---------------------------------------------------------------------------
# Child records
# ---------------------------------------------------------------------------


class GenderIssue(BaseModel):
    """Structured gender issue: statement, supporting data and its source."""

    statement: str = ""
    data_evidence: str = ""
    source: str = ""


class Indicator(BaseModel):
    """A success indicator and its target."""

    indicator_text: str = Field("", max_length=2000)
    target_text: str = Field("", max_length=500)


class BudgetItem(BaseModel):
    """A single budget line charged to one fund class."""

    item_description: str = Field("", max_length=2000)
    amount: Money = Field(Decimal("0"), ge=0)
    fund_type: FundType = FundType.MOOE

    @field_validator("amount")
    @classmethod
    def round_amount(cls, v: Decimal) -> Decimal:
        return quantize_money(v)


class BudgetRollup(BaseModel):
    """Per-fund totals derived from a proposal's budget items."""

    total_mooe: Money = Decimal("0.00")
    total_ps: Money = Decimal("0.00")
    total_co: Money = Decimal("0.00")
    budget_total: Money = Decimal("0.00")


# ---------------------------------------------------------------------------
# Proposal
# ---------------------------------------------------------------------------


class ProposalContent(BaseModel):
    """The full editable body an office saves or submits."""

    ppa_category: str = "Client-Focused"
    focus_type: str = "CLIENT-FOCUSED"
    category_type: str = "Gender Issue"
    gender_issue: GenderIssue = Field(default_factory=GenderIssue)
    objective: str = Field("", max_length=5000)
    relevant_program: str = Field("", max_length=2000)
    activity_name: str = Field("", max_length=2000)
    indicators: List[Indicator] = Field(default_factory=list)
    budget_items: List[BudgetItem] = Field(default_factory=list)

    @field_validator("ppa_category")
    @classmethod
    def validate_ppa_category(cls, v: str) -> str:
        return _check_choice(v, PPA_CATEGORIES, "ppa_category")

    @field_validator("focus_type")
    @classmethod
    def validate_focus_type(cls, v: str) -> str:
        return _check_choice(v, FOCUS_TYPES, "focus_type")

    @field_validator("category_type")
    @classmethod
    def validate_category_type(cls, v: str) -> str:
        return _check_choice(v, CATEGORY_TYPES, "category_type")


class ProposalEdits(BaseModel):
    """Corrections a reviewer or executive makes while deciding. All optional."""

    gender_issue: Optional[GenderIssue] = None
    objective: Optional[str] = Field(None, max_length=5000)
    relevant_program: Optional[str] = Field(None, max_length=2000)
    activity_name: Optional[str] = Field(None, max_length=2000)
    indicators: Optional[List[Indicator]] = None
    budget_items: Optional[List[BudgetItem]] = None


class Proposal(BaseModel):
    """A stored PPA proposal with its child collections."""

    id: str
    owner_id: str
    office_name: str = ""
    ppa_category: str = "Client-Focused"
    focus_type: str = "CLIENT-FOCUSED"
    category_type: str = "Gender Issue"
    gender_issue: GenderIssue = Field(default_factory=GenderIssue)
    objective: str = ""
    relevant_program: str = ""
    activity_name: str = ""
    indicators: List[Indicator] = Field(default_factory=list)
    budget_items: List[BudgetItem] = Field(default_factory=list)
    total_mooe: Money = Decimal("0.00")
    total_ps: Money = Decimal("0.00")
    total_co: Money = Decimal("0.00")
    budget_total: Money = Decimal("0.00")
    status: ProposalStatus = ProposalStatus.DRAFT
    sectional_comments: Dict[str, str] = Field(default_factory=dict)
    reviewer_remark: Optional[str] = None
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None


class HistoryEntry(BaseModel):
    """One append-only audit record for a proposal."""

    id: Optional[str] = None
    proposal_id: str
    action_by: str
    action_type: str
    change_summary: str = ""
    created_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# API request / response bodies
# ---------------------------------------------------------------------------


class ProposalCreateRequest(ProposalContent):
    """Create a proposal; ``submit`` sends it straight to review."""

    submit: bool = False


class ProposalSaveRequest(ProposalContent):
    """Replace a proposal's body; used for draft saves and resubmission."""

    expected_version: Optional[int] = Field(
        None, ge=1, description="Version the office saw; stale versions conflict"
    )

    def content(self) -> ProposalContent:
        return ProposalContent(**self.model_dump(exclude={"expected_version"}))


class ReviewDecisionRequest(BaseModel):
    """Approve or return a proposal, optionally with remarks and corrections."""

    sectional_comments: Optional[Dict[str, str]] = None
    reviewer_remark: Optional[str] = Field(None, max_length=5000)
    edits: Optional[ProposalEdits] = None
    expected_version: Optional[int] = Field(
        None, ge=1, description="Version the reviewer saw; stale versions conflict"
    )

    @field_validator("sectional_comments")
    @classmethod
    def validate_sections(cls, v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        return _check_section_keys(v)


class RemarksRequest(BaseModel):
    """Attach remarks without changing status."""

    sectional_comments: Optional[Dict[str, str]] = None
    reviewer_remark: Optional[str] = Field(None, max_length=5000)

    @field_validator("sectional_comments")
    @classmethod
    def validate_sections(cls, v: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
        return _check_section_keys(v)


class ProposalListResponse(BaseModel):
    """List of proposals."""

    proposals: List[Proposal]
    total: int


class OfficeProposal(Proposal):
    """A proposal as its owning office sees it, with the feedback to act on.

    ``feedback`` holds the non-blank sectional comments while the proposal
    is back for revision and is empty otherwise.
    """

    feedback: Dict[str, str] = Field(default_factory=dict)
    has_outstanding_feedback: bool = False
    has_executive_remark: bool = False


class OfficeProposalListResponse(BaseModel):
    """The authenticated office's proposals."""

    proposals: List[OfficeProposal]
    total: int


class HistoryListResponse(BaseModel):
    """Audit trail of one proposal, newest first."""

    proposal_id: str
    history: List[HistoryEntry]
    total: int


class AuditReport(BaseModel):
    """Completeness check shown to reviewers before they decide."""

    proposal_id: str
    score: int = Field(..., ge=0, le=100)
    findings: List[str] = Field(default_factory=list)
