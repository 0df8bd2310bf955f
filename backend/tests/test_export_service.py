"""
Unit Tests for the Approved GAD Plan Export

Tests:
- Only Approved proposals appear
- Grouping into client-focused and agency-focused parts
- Rows ordered by office name
- Details cell and fund source
- CSV layout and consolidated total footer

Usage:
    cd backend && pytest tests/test_export_service.py -v
"""

import csv
import io
from decimal import Decimal

from gadplan.lifecycle import ProposalStatus
from gadplan.models.proposal import BudgetItem, GenderIssue, Indicator, Proposal
from gadplan.services.export_service import (
    AGENCY_SECTION,
    CLIENT_SECTION,
    COLUMNS,
    PLAN_TITLE,
    TOTAL_LABEL,
    build_plan_rows,
    export_plan_csv,
    plan_row,
)

from helpers import generate_uuid


def make_approved(
    office_name: str,
    ppa_category: str = "Client-Focused",
    status: ProposalStatus = ProposalStatus.APPROVED,
    budget_items=None,
) -> Proposal:
    """Factory function for a proposal whose rollup matches its items."""
    if budget_items is None:
        budget_items = [BudgetItem(item_description="Venue", amount=Decimal("1000"), fund_type="MOOE")]
    totals = {"MOOE": Decimal("0"), "PS": Decimal("0"), "CO": Decimal("0")}
    for item in budget_items:
        totals[item.fund_type.value] += item.amount
    return Proposal(
        id=generate_uuid(),
        owner_id=generate_uuid(),
        office_name=office_name,
        ppa_category=ppa_category,
        focus_type="CLIENT-FOCUSED" if ppa_category == "Client-Focused" else "ORGANIZATION-FOCUSED",
        gender_issue=GenderIssue(statement=f"{office_name} issue", data_evidence="data", source="survey"),
        objective="Objective",
        relevant_program="Program",
        activity_name="Activity",
        indicators=[Indicator(indicator_text="women trained", target_text="50")],
        budget_items=budget_items,
        total_mooe=totals["MOOE"],
        total_ps=totals["PS"],
        total_co=totals["CO"],
        budget_total=sum(totals.values()),
        status=status,
    )


class TestBuildPlanRows:
    """Tests for grouping and filtering."""

    def test_only_approved_included(self):
        proposals = [
            make_approved("MHO"),
            make_approved("MAO", status=ProposalStatus.SUBMITTED),
            make_approved("MSWDO", status=ProposalStatus.FOR_REVISION),
            make_approved("MENRO", status=ProposalStatus.DRAFT),
        ]
        plan = build_plan_rows(proposals)
        assert [row[8] for row in plan["client_focused"]] == ["MHO"]
        assert plan["agency_focused"] == []
        assert plan["grand_total"] == Decimal("1000")

    def test_grouped_and_ordered_by_office(self):
        proposals = [
            make_approved("MSWDO"),
            make_approved("HRMO", ppa_category="Agency-Focused"),
            make_approved("MAO"),
            make_approved("Accounting", ppa_category="Agency-Focused"),
        ]
        plan = build_plan_rows(proposals)
        assert [row[8] for row in plan["client_focused"]] == ["MAO", "MSWDO"]
        assert [row[8] for row in plan["agency_focused"]] == ["Accounting", "HRMO"]
        assert plan["grand_total"] == Decimal("4000")

    def test_empty(self):
        plan = build_plan_rows([])
        assert plan == {"client_focused": [], "agency_focused": [], "grand_total": Decimal("0.00")}


class TestPlanRow:
    """Tests for a single plan row."""

    def test_cells(self):
        proposal = make_approved(
            "MHO",
            budget_items=[
                BudgetItem(item_description="Honoraria", amount=Decimal("5000"), fund_type="PS"),
                BudgetItem(item_description="Meals", amount=Decimal("2500"), fund_type="MOOE"),
            ],
        )
        row = plan_row(proposal)
        assert row[0] == "MHO issue"
        assert row[1] == "data\nSource: survey"
        assert row[5] == (
            "TARGETS:\n• 50 women trained\n\n"
            "BREAKDOWN:\n- Honoraria: ₱5,000.00\n- Meals: ₱2,500.00"
        )
        assert row[6] == Decimal("7500")
        assert row[7] == "PS"
        assert len(row) == len(COLUMNS)

    def test_fund_source_defaults_to_mooe(self):
        assert plan_row(make_approved("MHO", budget_items=[]))[7] == "MOOE"


class TestExportCsv:
    """Tests for the rendered CSV layout."""

    def test_layout(self):
        content = export_plan_csv(
            [make_approved("MHO"), make_approved("HRMO", ppa_category="Agency-Focused")],
            year="2027",
            organization="Municipal Government of Pililla, Rizal",
        )
        rows = list(csv.reader(io.StringIO(content)))
        assert rows[0] == [PLAN_TITLE]
        assert rows[1] == ["FY 2027"]
        assert rows[3][1] == "Municipal Government of Pililla, Rizal"
        assert rows[4] == ["Total GAD Budget:", "2000.00"]
        assert rows[6] == COLUMNS
        assert rows[7] == [CLIENT_SECTION]
        assert rows[8][8] == "MHO"
        assert rows[8][6] == "1000.00"
        assert rows[9] == [AGENCY_SECTION]
        assert rows[10][8] == "HRMO"
        assert rows[-1] == ["", "", "", "", "", TOTAL_LABEL, "2000.00"]

    def test_no_approved_rows(self):
        rows = list(csv.reader(io.StringIO(export_plan_csv([], year="2027"))))
        assert rows[7] == [CLIENT_SECTION]
        assert rows[8] == [AGENCY_SECTION]
        assert rows[-1][-1] == "0.00"
