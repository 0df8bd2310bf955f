"""
GAD Plan API Models

Pydantic models for data validation and serialization.
"""

from .proposal import (
    # Child records
    GenderIssue,
    Indicator,
    BudgetItem,
    BudgetRollup,
    # Proposal
    ProposalContent,
    ProposalEdits,
    Proposal,
    HistoryEntry,
    # Request / response bodies
    ProposalCreateRequest,
    ProposalSaveRequest,
    ReviewDecisionRequest,
    RemarksRequest,
    ProposalListResponse,
    OfficeProposal,
    OfficeProposalListResponse,
    HistoryListResponse,
    AuditReport,
)

from .account import (
    Account,
    AccountApprovalRequest,
    AccountListResponse,
)

from .analytics import (
    FundTotals,
    OfficeBudget,
    AnalyticsSummary,
)

__all__ = [
    "GenderIssue",
    "Indicator",
    "BudgetItem",
    "BudgetRollup",
    "ProposalContent",
    "ProposalEdits",
    "Proposal",
    "HistoryEntry",
    "ProposalCreateRequest",
    "ProposalSaveRequest",
    "ReviewDecisionRequest",
    "RemarksRequest",
    "ProposalListResponse",
    "OfficeProposal",
    "OfficeProposalListResponse",
    "HistoryListResponse",
    "AuditReport",
    "Account",
    "AccountApprovalRequest",
    "AccountListResponse",
    "FundTotals",
    "OfficeBudget",
    "AnalyticsSummary",
]
