"""Dashboard aggregation over a set of proposals.

Pure reducers used by the GAD Unit analytics view and the executive
summary. All functions are order-independent and return zero or empty
values for an empty input.

Drafts are private to their office until submitted, so budget figures,
the office ranking and the submission rate in ``summarize`` only count
proposals that have left Draft. Status and focus counts cover everything.
"""

from collections import Counter, defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from gadplan.lifecycle import ProposalStatus
from gadplan.models.proposal import Proposal

_ZERO = Decimal("0.00")


def submitted_only(proposals: Iterable[Proposal]) -> List[Proposal]:
    """Proposals that have left Draft."""
    return [p for p in proposals if ProposalStatus(p.status) is not ProposalStatus.DRAFT]


def proposal_total(proposal: Proposal) -> Decimal:
    """Budget total of one proposal, taken from its stored rollup."""
    return proposal.total_mooe + proposal.total_ps + proposal.total_co


def total_budget(proposals: Iterable[Proposal]) -> Decimal:
    return sum((proposal_total(p) for p in proposals), _ZERO)


def fund_totals(proposals: Iterable[Proposal]) -> Dict[str, Decimal]:
    """Sum MOOE, PS and CO across proposals."""
    totals = {"mooe": _ZERO, "ps": _ZERO, "co": _ZERO}
    for p in proposals:
        totals["mooe"] += p.total_mooe
        totals["ps"] += p.total_ps
        totals["co"] += p.total_co
    return totals


def count_by_status(proposals: Iterable[Proposal]) -> Dict[str, int]:
    """Count proposals per status; legacy ``Returned`` counts as For Revision."""
    counts: Counter = Counter()
    for p in proposals:
        counts[ProposalStatus(p.status).canonical().value] += 1
    return dict(counts)


def count_by_focus(proposals: Iterable[Proposal]) -> Dict[str, int]:
    counts: Counter = Counter(p.focus_type for p in proposals)
    return dict(counts)


def budget_by_office(proposals: Iterable[Proposal]) -> Dict[str, Decimal]:
    totals: Dict[str, Decimal] = defaultdict(lambda: _ZERO)
    for p in proposals:
        totals[p.office_name] += proposal_total(p)
    return dict(totals)


def top_offices(
    proposals: Iterable[Proposal], limit: int = 5
) -> List[Tuple[str, Decimal]]:
    """Offices ranked by total proposed budget, largest first.

    Ties are broken by office name so the ranking does not depend on input
    order.
    """
    ranked = sorted(
        budget_by_office(proposals).items(), key=lambda kv: (-kv[1], kv[0])
    )
    return ranked[:limit]


def approved_budget(proposals: Iterable[Proposal]) -> Decimal:
    return total_budget(
        p for p in proposals if ProposalStatus(p.status) is ProposalStatus.APPROVED
    )


def submission_rate(proposals: Iterable[Proposal], registered_offices: int) -> float:
    """Fraction of registered offices that have submitted a proposal.

    An office with only Drafts has not submitted. Returns 0.0 when no
    offices are registered.
    """
    if registered_offices <= 0:
        return 0.0
    distinct = {p.office_name for p in submitted_only(proposals)}
    return len(distinct) / registered_offices


def summarize(proposals: Iterable[Proposal], registered_offices: int = 0) -> dict:
    """Combine every aggregate into one dashboard payload."""
    items = list(proposals)
    submitted = submitted_only(items)
    return {
        "proposal_count": len(items),
        "total_budget": total_budget(submitted),
        "approved_budget": approved_budget(submitted),
        "fund_totals": fund_totals(submitted),
        "by_status": count_by_status(items),
        "by_focus": count_by_focus(items),
        "budget_by_office": budget_by_office(submitted),
        "top_offices": [
            {"office_name": name, "budget_total": amount}
            for name, amount in top_offices(submitted)
        ],
        "registered_offices": registered_offices,
        "submission_rate": submission_rate(submitted, registered_offices),
    }
