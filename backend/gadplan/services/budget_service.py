"""Budget rollup for PPA proposals.

The one place that derives ``total_mooe``, ``total_ps``, ``total_co`` and
``budget_total`` from a proposal's budget items. Every write path in the
lifecycle engine goes through :func:`compute_rollup` so the stored totals
cannot drift from the line items.
"""

from decimal import Decimal
from typing import Iterable, List

from gadplan.lifecycle import FundType
from gadplan.models.proposal import BudgetItem, BudgetRollup, quantize_money

# Fund classes in standard display order
FUND_ORDER = [FundType.MOOE, FundType.PS, FundType.CO]

_ZERO = Decimal("0")


def compute_rollup(items: Iterable[BudgetItem]) -> BudgetRollup:
    """Fold budget items into per-fund totals.

    Order-independent and side-effect free; an empty collection yields an
    all-zero rollup.
    """
    totals = {fund: _ZERO for fund in FUND_ORDER}
    for item in items:
        totals[FundType(item.fund_type)] += item.amount or _ZERO

    mooe = quantize_money(totals[FundType.MOOE])
    ps = quantize_money(totals[FundType.PS])
    co = quantize_money(totals[FundType.CO])
    return BudgetRollup(
        total_mooe=mooe,
        total_ps=ps,
        total_co=co,
        budget_total=mooe + ps + co,
    )


def rollup_is_consistent(proposal) -> bool:
    """True when a proposal's stored totals match its budget items."""
    expected = compute_rollup(proposal.budget_items)
    return (
        proposal.total_mooe == expected.total_mooe
        and proposal.total_ps == expected.total_ps
        and proposal.total_co == expected.total_co
        and proposal.budget_total == expected.budget_total
    )


def breakdown_lines(items: Iterable[BudgetItem]) -> List[str]:
    """Render budget items as ``- description: ₱amount`` lines for reports."""
    return [
        f"- {item.item_description}: ₱{item.amount:,.2f}" for item in items
    ]
