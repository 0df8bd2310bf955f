"""
Pytest Configuration and Shared Fixtures
Purpose: Provide the in-memory Supabase double, stores and services used
across the test modules.
"""

import os
import sys

import pytest

# Add backend to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Keep the per-IP limiter out of the way of the API tests
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "10000")

from gadplan.lifecycle import Role
from gadplan.services.lifecycle_service import ProposalLifecycleService
from gadplan.stores.supabase_store import SupabaseProposalStore

from helpers import MockSupabaseClient, TickingClock, make_actor


# ============================================================================
# Function-scoped fixtures (run for each test)
# ============================================================================

@pytest.fixture
def mock_client() -> MockSupabaseClient:
    """Fresh in-memory Supabase tables for each test."""
    return MockSupabaseClient()


@pytest.fixture
def store(mock_client) -> SupabaseProposalStore:
    return SupabaseProposalStore(mock_client)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def service(store, clock) -> ProposalLifecycleService:
    return ProposalLifecycleService(store, clock=clock)


@pytest.fixture
def office():
    """An approved office account."""
    return make_actor(Role.USER, office_name="Municipal Health Office")


@pytest.fixture
def other_office():
    return make_actor(Role.USER, office_name="Municipal Agriculture Office")


@pytest.fixture
def reviewer():
    return make_actor(Role.GAD_UNIT, office_name="GAD Focal Point")


@pytest.fixture
def executive():
    return make_actor(Role.MAYOR, office_name="Office of the Mayor")
