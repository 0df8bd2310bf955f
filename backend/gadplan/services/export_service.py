"""
Export Service for the Annual GAD Plan and Budget.

Builds the consolidated plan table from Approved proposals: one row per
PPA, grouped into client-focused and agency-focused parts, with a grand
total footer. The plan is written as CSV rather than an Excel workbook,
so cell merges, borders and column widths are not carried.

Usage:
    rows = build_plan_rows(proposals)
    csv_content = export_plan_csv(proposals)
"""

import csv
import io
import logging
import os
from decimal import Decimal
from typing import Iterable, List, Optional

from dotenv import load_dotenv

from gadplan.lifecycle import FundType, ProposalStatus
from gadplan.models.proposal import Proposal
from gadplan.services.analytics_service import proposal_total
from gadplan.services.budget_service import breakdown_lines

load_dotenv()

logger = logging.getLogger(__name__)

PLAN_YEAR = os.getenv("GAD_PLAN_YEAR", "2027")
ORGANIZATION = os.getenv("GAD_ORGANIZATION", "Municipal Government of Pililla, Rizal")

PLAN_TITLE = "ANNUAL GENDER AND DEVELOPMENT (GAD) PLAN AND BUDGET"
CLIENT_SECTION = "A. CLIENT-FOCUSED (External)"
AGENCY_SECTION = "B. AGENCY-FOCUSED (Internal)"
TOTAL_LABEL = "TOTAL CONSOLIDATED GAD BUDGET:"

COLUMNS = [
    "Gender Issue / GAD Mandate (1)",
    "Cause of Issue / Data (2)",
    "GAD Result Statement (3)",
    "Relevant Org Program (4)",
    "GAD Activity (5)",
    "Indicators & Budget (6)",
    "GAD Budget (7)",
    "Source (8)",
    "Responsible Office (9)",
]


def _approved_by_office(proposals: Iterable[Proposal]) -> List[Proposal]:
    approved = [
        p for p in proposals if ProposalStatus(p.status) is ProposalStatus.APPROVED
    ]
    return sorted(approved, key=lambda p: p.office_name)


def _details(proposal: Proposal) -> str:
    targets = "\n".join(
        f"• {ind.target_text} {ind.indicator_text}" for ind in proposal.indicators
    )
    breakdown = "\n".join(breakdown_lines(proposal.budget_items))
    return f"TARGETS:\n{targets}\n\nBREAKDOWN:\n{breakdown}"


def _fund_source(proposal: Proposal) -> str:
    if proposal.budget_items:
        return FundType(proposal.budget_items[0].fund_type).value
    return FundType.MOOE.value


def plan_row(proposal: Proposal) -> list:
    """One table row for an approved proposal."""
    issue = proposal.gender_issue
    return [
        issue.statement,
        f"{issue.data_evidence}\nSource: {issue.source}",
        proposal.objective,
        proposal.relevant_program,
        proposal.activity_name,
        _details(proposal),
        proposal_total(proposal),
        _fund_source(proposal),
        proposal.office_name,
    ]


def build_plan_rows(proposals: Iterable[Proposal]) -> dict:
    """Group approved proposals into the two plan parts.

    Non-approved proposals are skipped; each part is ordered by office name.

    Returns:
        Dict with ``client_focused`` and ``agency_focused`` row lists and
        the ``grand_total`` across both.
    """
    approved = _approved_by_office(proposals)
    client = [p for p in approved if p.ppa_category == "Client-Focused"]
    agency = [p for p in approved if p.ppa_category == "Agency-Focused"]
    grand_total = sum((proposal_total(p) for p in client + agency), Decimal("0.00"))
    return {
        "client_focused": [plan_row(p) for p in client],
        "agency_focused": [plan_row(p) for p in agency],
        "grand_total": grand_total,
    }


def export_plan_csv(
    proposals: Iterable[Proposal],
    year: Optional[str] = None,
    organization: Optional[str] = None,
) -> str:
    """Render the approved plan as CSV text.

    Layout: title and fiscal year, organization line, total budget line,
    column header, part A rows, part B rows, consolidated total footer.
    """
    plan = build_plan_rows(proposals)
    grand_total = plan["grand_total"]

    output = io.StringIO()
    writer = csv.writer(output)

    writer.writerow([PLAN_TITLE])
    writer.writerow([f"FY {year or PLAN_YEAR}"])
    writer.writerow([])
    writer.writerow(
        ["Organization:", organization or ORGANIZATION, "", "Category:", "Local Government Unit"]
    )
    writer.writerow(["Total GAD Budget:", f"{grand_total:.2f}"])
    writer.writerow([])
    writer.writerow(COLUMNS)

    writer.writerow([CLIENT_SECTION])
    for row in plan["client_focused"]:
        writer.writerow(_csv_row(row))
    writer.writerow([AGENCY_SECTION])
    for row in plan["agency_focused"]:
        writer.writerow(_csv_row(row))

    writer.writerow(["", "", "", "", "", TOTAL_LABEL, f"{grand_total:.2f}"])

    logger.info(
        "Exported GAD plan: %d client-focused, %d agency-focused rows",
        len(plan["client_focused"]),
        len(plan["agency_focused"]),
    )
    return output.getvalue()


def _csv_row(row: list) -> list:
    return [f"{v:.2f}" if isinstance(v, Decimal) else v for v in row]
