"""
Unit Tests for Budget Rollup and Dashboard Aggregation

Tests:
- compute_rollup folds budget items by fund type
- Aggregation helpers return zero/empty values for empty input
- Status counting treats legacy "Returned" as For Revision
- Submission rate and top-office ranking, which ignore Drafts

Usage:
    cd backend && pytest tests/test_budget_and_analytics.py -v
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from gadplan.lifecycle import ProposalStatus
from gadplan.models.proposal import BudgetItem, Proposal
from gadplan.services import analytics_service
from gadplan.services.audit_service import score_proposal
from gadplan.services.budget_service import (
    breakdown_lines,
    compute_rollup,
    rollup_is_consistent,
)

from helpers import generate_uuid


# ============================================================================
# TEST DATA FACTORIES
# ============================================================================

def make_proposal(
    office_name: str = "Municipal Health Office",
    status: ProposalStatus = ProposalStatus.SUBMITTED,
    mooe: str = "0",
    ps: str = "0",
    co: str = "0",
    focus_type: str = "CLIENT-FOCUSED",
    **kwargs,
) -> Proposal:
    """Factory function to create a stored proposal with a given rollup."""
    total = Decimal(mooe) + Decimal(ps) + Decimal(co)
    return Proposal(
        id=generate_uuid(),
        owner_id=generate_uuid(),
        office_name=office_name,
        focus_type=focus_type,
        status=status,
        total_mooe=Decimal(mooe),
        total_ps=Decimal(ps),
        total_co=Decimal(co),
        budget_total=total,
        **kwargs,
    )


def item(amount: str, fund_type: str = "MOOE") -> BudgetItem:
    return BudgetItem(item_description=f"{fund_type} item", amount=Decimal(amount), fund_type=fund_type)


# ============================================================================
# BUDGET ROLLUP
# ============================================================================

class TestComputeRollup:
    """Tests for the single rollup function."""

    def test_folds_by_fund_type(self):
        rollup = compute_rollup([item("100.10"), item("200", "PS"), item("0.90"), item("50", "CO")])
        assert rollup.total_mooe == Decimal("101.00")
        assert rollup.total_ps == Decimal("200.00")
        assert rollup.total_co == Decimal("50.00")
        assert rollup.budget_total == Decimal("351.00")

    def test_total_equals_sum_of_funds(self):
        rollup = compute_rollup([item("1.11"), item("2.22", "PS"), item("3.33", "CO")])
        assert rollup.budget_total == rollup.total_mooe + rollup.total_ps + rollup.total_co

    def test_order_independent_and_idempotent(self):
        items = [item("10"), item("20", "PS"), item("30", "CO")]
        first = compute_rollup(items)
        assert compute_rollup(list(reversed(items))) == first
        assert compute_rollup(items) == first

    def test_empty_is_zero(self):
        rollup = compute_rollup([])
        assert rollup.budget_total == Decimal("0.00")
        assert rollup.total_mooe == rollup.total_ps == rollup.total_co == Decimal("0.00")

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            BudgetItem(item_description="refund", amount=Decimal("-1"), fund_type="MOOE")

    def test_unknown_fund_type_rejected(self):
        with pytest.raises(ValidationError):
            BudgetItem(item_description="grant", amount=Decimal("1"), fund_type="GRANT")

    def test_amount_rounded_to_centavos(self):
        assert BudgetItem(amount=Decimal("10.005")).amount == Decimal("10.01")

    def test_consistency_check(self):
        budget_items = [item("500"), item("250", "CO")]
        good = make_proposal(mooe="500", co="250", budget_items=budget_items)
        bad = make_proposal(mooe="400", co="250", budget_items=budget_items)
        assert rollup_is_consistent(good)
        assert not rollup_is_consistent(bad)

    def test_breakdown_lines(self):
        lines = breakdown_lines([BudgetItem(item_description="Venue", amount=Decimal("12500"))])
        assert lines == ["- Venue: ₱12,500.00"]


# ============================================================================
# AGGREGATION
# ============================================================================

class TestEmptyAggregation:
    """Every reducer is defined on empty input."""

    def test_empty_input(self):
        assert analytics_service.total_budget([]) == Decimal("0.00")
        assert analytics_service.fund_totals([]) == {
            "mooe": Decimal("0.00"), "ps": Decimal("0.00"), "co": Decimal("0.00"),
        }
        assert analytics_service.count_by_status([]) == {}
        assert analytics_service.count_by_focus([]) == {}
        assert analytics_service.budget_by_office([]) == {}
        assert analytics_service.top_offices([]) == []
        assert analytics_service.approved_budget([]) == Decimal("0.00")
        assert analytics_service.submission_rate([], 0) == 0.0

    def test_summarize_empty(self):
        summary = analytics_service.summarize([])
        assert summary["proposal_count"] == 0
        assert summary["total_budget"] == Decimal("0.00")
        assert summary["submission_rate"] == 0.0


class TestAggregation:
    """Reducers over a small portfolio."""

    @pytest.fixture
    def portfolio(self):
        return [
            make_proposal("MHO", ProposalStatus.APPROVED, mooe="10000"),
            make_proposal("MHO", ProposalStatus.SUBMITTED, ps="5000"),
            make_proposal("MSWDO", ProposalStatus.RETURNED, co="20000", focus_type="ORGANIZATION-FOCUSED"),
            make_proposal("MAO", ProposalStatus.FOR_REVISION, mooe="2500"),
            make_proposal("MENRO", ProposalStatus.DRAFT, mooe="100"),
        ]

    def test_total_and_fund_totals(self, portfolio):
        assert analytics_service.total_budget(portfolio) == Decimal("37600")
        totals = analytics_service.fund_totals(portfolio)
        assert totals["mooe"] == Decimal("12600")
        assert totals["ps"] == Decimal("5000")
        assert totals["co"] == Decimal("20000")

    def test_returned_counts_as_for_revision(self, portfolio):
        counts = analytics_service.count_by_status(portfolio)
        assert counts == {"Approved": 1, "Submitted": 1, "For Revision": 2, "Draft": 1}

    def test_count_by_focus(self, portfolio):
        assert analytics_service.count_by_focus(portfolio) == {
            "CLIENT-FOCUSED": 4,
            "ORGANIZATION-FOCUSED": 1,
        }

    def test_top_offices(self, portfolio):
        ranked = analytics_service.top_offices(portfolio, limit=2)
        assert ranked == [("MSWDO", Decimal("20000")), ("MHO", Decimal("15000"))]

    def test_top_offices_ties_by_name(self):
        tied = [make_proposal("B Office", mooe="10"), make_proposal("A Office", mooe="10")]
        assert [name for name, _ in analytics_service.top_offices(tied)] == ["A Office", "B Office"]

    def test_approved_budget(self, portfolio):
        assert analytics_service.approved_budget(portfolio) == Decimal("10000")

    def test_submission_rate(self, portfolio):
        assert analytics_service.submission_rate(portfolio, 8) == pytest.approx(3 / 8)

    def test_draft_only_office_has_not_submitted(self):
        proposals = [
            make_proposal("MHO", ProposalStatus.SUBMITTED, mooe="5000"),
            make_proposal("MENRO", ProposalStatus.DRAFT, mooe="90000"),
        ]
        summary = analytics_service.summarize(proposals, 2)

        assert summary["submission_rate"] == pytest.approx(0.5)
        assert [o["office_name"] for o in summary["top_offices"]] == ["MHO"]
        assert "MENRO" not in summary["budget_by_office"]
        assert summary["total_budget"] == Decimal("5000")
        assert summary["proposal_count"] == 2
        assert summary["by_status"] == {"Submitted": 1, "Draft": 1}

    def test_summary_budget_excludes_drafts(self, portfolio):
        summary = analytics_service.summarize(portfolio, 8)
        assert summary["total_budget"] == Decimal("37500")
        assert summary["fund_totals"]["mooe"] == Decimal("12500")
        assert summary["proposal_count"] == 5

    def test_aggregates_are_order_independent(self, portfolio):
        assert analytics_service.summarize(portfolio, 8) == analytics_service.summarize(
            list(reversed(portfolio)), 8
        )


# ============================================================================
# COMPLETENESS SCORE
# ============================================================================

class TestAuditScore:
    """Reviewer-facing completeness check."""

    def test_complete_proposal_scores_full(self):
        from gadplan.models.proposal import Indicator

        proposal = make_proposal(
            objective="Increase women's participation in training by half",
            indicators=[Indicator(indicator_text="participants", target_text="50")],
        )
        report = score_proposal(proposal)
        assert report.score == 100
        assert report.findings == []

    def test_deductions(self):
        report = score_proposal(make_proposal(objective="short"))
        assert report.score == 50
        assert report.findings == ["Objective is too brief.", "CRITICAL: Missing Success Indicators."]
