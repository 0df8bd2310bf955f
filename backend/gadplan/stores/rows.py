"""Column mapping between domain models and stored rows.

Both stores share the same table layout, so row conversion lives here.
Column names follow the existing database (``user_id``, ``gad_objective``,
``gad_activity``, ``gad_budget``, ``reviewer_comments``); the gender issue
is stored in three native columns plus its legacy single-string form.
"""

import uuid as _uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from gadplan.errors import StoreError
from gadplan.lifecycle import ProposalStatus
from gadplan.models.account import Account
from gadplan.models.proposal import (
    BudgetItem,
    GenderIssue,
    HistoryEntry,
    Indicator,
    Proposal,
)
from gadplan.services import gender_issue

PROPOSALS_TABLE = "gad_proposals"
INDICATORS_TABLE = "ppa_indicators"
BUDGET_ITEMS_TABLE = "ppa_budget_items"
HISTORY_TABLE = "ppa_history"
PROFILES_TABLE = "profiles"


def _plain(value: Any) -> Any:
    """Convert UUID / datetime / Decimal values for JSON transport."""
    if isinstance(value, _uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def to_json_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _plain(value) for key, value in row.items()}


def _decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value))


def _gender_issue(row: Dict[str, Any]) -> GenderIssue:
    """Prefer the native columns; fall back to decoding the legacy blob."""
    native = (row.get("issue_statement"), row.get("issue_data"), row.get("issue_source"))
    if any(value is not None for value in native):
        return GenderIssue(
            statement=native[0] or "",
            data_evidence=native[1] or "",
            source=native[2] or "",
        )
    return gender_issue.decode(row.get("gender_issue"))


def proposal_to_row(proposal: Proposal) -> Dict[str, Any]:
    """Proposal body columns (children and id excluded)."""
    return {
        "user_id": proposal.owner_id,
        "office_name": proposal.office_name,
        "ppa_category": proposal.ppa_category,
        "focus_type": proposal.focus_type,
        "category_type": proposal.category_type,
        "issue_statement": proposal.gender_issue.statement,
        "issue_data": proposal.gender_issue.data_evidence,
        "issue_source": proposal.gender_issue.source,
        # Legacy single-string form, kept for readers of the old column
        "gender_issue": gender_issue.encode(proposal.gender_issue),
        "gad_objective": proposal.objective,
        "relevant_program": proposal.relevant_program,
        "gad_activity": proposal.activity_name,
        "total_mooe": proposal.total_mooe,
        "total_ps": proposal.total_ps,
        "total_co": proposal.total_co,
        "gad_budget": proposal.budget_total,
        "status": ProposalStatus(proposal.status).value,
        "sectional_comments": dict(proposal.sectional_comments or {}),
        "reviewer_comments": proposal.reviewer_remark,
        "version": proposal.version,
        "created_at": proposal.created_at,
        "updated_at": proposal.updated_at,
        "approved_at": proposal.approved_at,
    }


def indicator_rows(proposal_id: str, indicators: Iterable[Indicator]) -> List[Dict[str, Any]]:
    return [
        {
            "ppa_id": proposal_id,
            "indicator_text": ind.indicator_text,
            "target_text": ind.target_text,
            "sort_order": idx,
        }
        for idx, ind in enumerate(indicators)
    ]


def budget_item_rows(proposal_id: str, items: Iterable[BudgetItem]) -> List[Dict[str, Any]]:
    return [
        {
            "ppa_id": proposal_id,
            "item_description": item.item_description,
            "amount": item.amount,
            "fund_type": item.fund_type.value,
            "sort_order": idx,
        }
        for idx, item in enumerate(items)
    ]


def history_to_row(entry: HistoryEntry) -> Dict[str, Any]:
    return {
        "ppa_id": entry.proposal_id,
        "action_by": entry.action_by,
        "action_type": entry.action_type,
        "change_summary": entry.change_summary,
        "created_at": entry.created_at,
    }


def row_to_proposal(
    row: Dict[str, Any],
    indicators: Optional[List[Dict[str, Any]]] = None,
    budget_items: Optional[List[Dict[str, Any]]] = None,
) -> Proposal:
    """Build a Proposal from a ``gad_proposals`` row and its child rows.

    Raises:
        StoreError: The row holds a status or value the workflow cannot read.
    """
    raw_status = row.get("status") or ProposalStatus.DRAFT.value
    try:
        status = ProposalStatus(raw_status)
    except ValueError as e:
        raise StoreError(
            "Unreadable proposal row", details=f"{row.get('id')}: unknown status {raw_status!r}"
        ) from e
    ind_rows = sorted(indicators or [], key=lambda r: r.get("sort_order") or 0)
    bud_rows = sorted(budget_items or [], key=lambda r: r.get("sort_order") or 0)
    try:
        return _build_proposal(row, ind_rows, bud_rows, status)
    except ValidationError as e:
        raise StoreError("Unreadable proposal row", details=str(row.get("id"))) from e


def _build_proposal(row, ind_rows, bud_rows, status) -> Proposal:
    total_mooe = _decimal(row.get("total_mooe"))
    total_ps = _decimal(row.get("total_ps"))
    total_co = _decimal(row.get("total_co"))
    return Proposal(
        id=str(row["id"]),
        owner_id=str(row.get("user_id") or ""),
        office_name=row.get("office_name") or "",
        ppa_category=row.get("ppa_category") or "Client-Focused",
        focus_type=row.get("focus_type") or "CLIENT-FOCUSED",
        category_type=row.get("category_type") or "Gender Issue",
        gender_issue=_gender_issue(row),
        objective=row.get("gad_objective") or "",
        relevant_program=row.get("relevant_program") or "",
        activity_name=row.get("gad_activity") or "",
        indicators=[
            Indicator(
                indicator_text=r.get("indicator_text") or "",
                target_text=r.get("target_text") or "",
            )
            for r in ind_rows
        ],
        budget_items=[
            BudgetItem(
                item_description=r.get("item_description") or "",
                amount=_decimal(r.get("amount")),
                fund_type=r.get("fund_type") or "MOOE",
            )
            for r in bud_rows
        ],
        total_mooe=total_mooe,
        total_ps=total_ps,
        total_co=total_co,
        budget_total=total_mooe + total_ps + total_co,
        status=status,
        sectional_comments={
            key: text or ""
            for key, text in (row.get("sectional_comments") or {}).items()
        },
        reviewer_remark=row.get("reviewer_comments"),
        version=row.get("version") or 1,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
        approved_at=row.get("approved_at"),
    )


def row_to_history(row: Dict[str, Any]) -> HistoryEntry:
    return HistoryEntry(
        id=str(row["id"]) if row.get("id") is not None else None,
        proposal_id=str(row["ppa_id"]),
        action_by=row.get("action_by") or "",
        action_type=row.get("action_type") or "",
        change_summary=row.get("change_summary") or "",
        created_at=row.get("created_at"),
    )


def row_to_account(row: Dict[str, Any]) -> Account:
    return Account(
        id=str(row["id"]),
        office_name=row.get("office_name") or "",
        role=row.get("role") or "User",
        is_approved=bool(row.get("is_approved")),
        email=row.get("email"),
        created_at=row.get("created_at"),
    )
