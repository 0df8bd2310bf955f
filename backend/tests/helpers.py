"""
Shared test doubles and data factories.

MockSupabaseClient keeps rows in memory per table and supports the subset
of the supabase-py query builder the record store uses (select, insert,
update, delete, eq, neq, in_, order, execute). Failures can be injected
per (table, operation) to exercise store error handling.
"""

import copy
import uuid
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from gadplan.lifecycle import Actor, Role
from gadplan.models.proposal import (
    BudgetItem,
    GenderIssue,
    Indicator,
    ProposalContent,
)


# ============================================================================
# TEST DATA FACTORIES
# ============================================================================

def generate_uuid() -> str:
    """Generate a valid UUID string."""
    return str(uuid.uuid4())


def make_actor(
    role: Role = Role.USER,
    user_id: str = None,
    office_name: str = "Municipal Health Office",
    is_approved: bool = True,
) -> Actor:
    """Factory function to create an acting principal."""
    return Actor(
        user_id=user_id or generate_uuid(),
        role=role,
        office_name=office_name,
        is_approved=is_approved,
    )


def make_content(
    statement: str = "Low female participation in livelihood programs",
    activity_name: str = "Women's livelihood skills training",
    objective: str = "Increase women's participation in livelihood programs by 50%",
    indicators: Optional[List[Indicator]] = None,
    budget_items: Optional[List[BudgetItem]] = None,
    ppa_category: str = "Client-Focused",
) -> ProposalContent:
    """Factory function to create a proposal body.

    Defaults to the happy-path proposal: one indicator and one MOOE item.
    """
    if indicators is None:
        indicators = [Indicator(indicator_text="Female participation", target_text="50")]
    if budget_items is None:
        budget_items = [
            BudgetItem(item_description="Training materials", amount=Decimal("10000"), fund_type="MOOE")
        ]
    return ProposalContent(
        ppa_category=ppa_category,
        focus_type="CLIENT-FOCUSED" if ppa_category == "Client-Focused" else "ORGANIZATION-FOCUSED",
        gender_issue=GenderIssue(
            statement=statement,
            data_evidence="Only 12% of trainees in 2025 were women",
            source="MSWDO 2025 report",
        ),
        objective=objective,
        relevant_program="Livelihood Program",
        activity_name=activity_name,
        indicators=indicators,
        budget_items=budget_items,
    )


def make_profile_row(
    user_id: str = None,
    office_name: str = "Municipal Health Office",
    role: str = "User",
    is_approved: bool = True,
) -> Dict[str, Any]:
    """Factory function to create a ``profiles`` row."""
    return {
        "id": user_id or generate_uuid(),
        "office_name": office_name,
        "role": role,
        "is_approved": is_approved,
        "email": f"{office_name.lower().replace(' ', '.')}@pililla.gov.ph",
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc).isoformat(),
    }


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime = None):
        self.current = start or datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


# ============================================================================
# MOCK SUPABASE CLIENT
# ============================================================================

class MockSupabaseResponse:
    """Mock Supabase response object."""
    def __init__(self, data: List[Dict] = None):
        self.data = data if data is not None else []


class MockSupabaseQuery:
    """Mock Supabase query builder with chainable methods over a shared table."""
    def __init__(self, client: "MockSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._op = "select"
        self._payload = None
        self._filters = []
        self._orders = []

    def select(self, *args, **kwargs):
        self._op = "select"
        return self

    def insert(self, rows):
        self._op = "insert"
        self._payload = rows
        return self

    def update(self, values: Dict[str, Any]):
        self._op = "update"
        self._payload = values
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, field: str, value: Any):
        self._filters.append(lambda row: row.get(field) == value)
        return self

    def neq(self, field: str, value: Any):
        self._filters.append(lambda row: row.get(field) != value)
        return self

    def in_(self, field: str, values: List):
        self._filters.append(lambda row: row.get(field) in values)
        return self

    def order(self, field: str, desc: bool = False):
        self._orders.append((field, desc))
        return self

    def execute(self):
        self._client.calls.append((self._table, self._op))
        if self._client.should_fail(self._table, self._op):
            raise APIError(
                {"message": f"{self._op} on {self._table} failed", "code": "XX000"}
            )

        rows = self._client.tables[self._table]
        if self._op == "insert":
            payload = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = []
            for row in payload:
                stored = copy.deepcopy(row)
                stored.setdefault("id", generate_uuid())
                stored.setdefault("created_at", datetime.now(timezone.utc).isoformat())
                rows.append(stored)
                inserted.append(copy.deepcopy(stored))
            return MockSupabaseResponse(inserted)

        matched = [row for row in rows if all(f(row) for f in self._filters)]
        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return MockSupabaseResponse(copy.deepcopy(matched))
        if self._op == "delete":
            self._client.tables[self._table] = [row for row in rows if row not in matched]
            return MockSupabaseResponse(copy.deepcopy(matched))

        result = copy.deepcopy(matched)
        for field, desc in reversed(self._orders):
            result.sort(key=lambda row: row.get(field) or "", reverse=desc)
        return MockSupabaseResponse(result)


class MockSupabaseClient:
    """In-memory stand-in for ``supabase.Client``."""
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.failures: Dict[tuple, Optional[int]] = {}
        self.calls = []

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)

    def fail(self, table: str, op: str, times: Optional[int] = None) -> None:
        """Make ``op`` on ``table`` raise APIError.

        With ``times`` the failure clears after that many calls; otherwise
        every subsequent call fails.
        """
        self.failures[(table, op)] = times

    def should_fail(self, table: str, op: str) -> bool:
        key = (table, op)
        if key not in self.failures:
            return False
        remaining = self.failures[key]
        if remaining is not None:
            if remaining <= 1:
                del self.failures[key]
            else:
                self.failures[key] = remaining - 1
        return True
