"""
Integration Tests for the SQLAlchemy Record Store

Runs the lifecycle engine against an in-memory SQLite database through
aiosqlite. Each test builds its own engine and tables inside a single
event loop.

Usage:
    cd backend && pytest tests/test_sqlalchemy_store.py -v
"""

import asyncio
import uuid
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from gadplan.database import create_all, make_session_factory
from gadplan.errors import AccountNotFound, ConflictError, InvalidTransition
from gadplan.lifecycle import ProposalStatus, Role
from gadplan.models.db import Profile
from gadplan.models.proposal import BudgetItem
from gadplan.services.lifecycle_service import ProposalLifecycleService
from gadplan.stores.base import ORDER_OFFICE
from gadplan.stores.sqlalchemy_store import SqlAlchemyProposalStore

from helpers import TickingClock, make_actor, make_content


def run_with_store(scenario):
    """Run ``scenario(store, service)`` against a fresh SQLite database."""

    async def _main():
        engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        try:
            await create_all(engine)
            store = SqlAlchemyProposalStore(make_session_factory(engine))
            service = ProposalLifecycleService(store, clock=TickingClock())
            return await scenario(store, service)
        finally:
            await engine.dispose()

    return asyncio.run(_main())


def office_actor(office_name="Municipal Health Office"):
    return make_actor(Role.USER, user_id=str(uuid.uuid4()), office_name=office_name)


# ============================================================================
# LIFECYCLE THROUGH THE ORM
# ============================================================================

class TestSqlAlchemyLifecycle:
    """Tests for the engine persisted through SQLAlchemy."""

    def test_create_and_read_back(self):
        office = office_actor()

        async def scenario(store, service):
            created = await service.create(office, make_content())
            return created, await store.get_proposal(created.id)

        created, stored = run_with_store(scenario)
        assert stored.status is ProposalStatus.DRAFT
        assert stored.owner_id == office.user_id
        assert stored.gender_issue == created.gender_issue
        assert stored.budget_total == Decimal("10000.00")
        assert [i.indicator_text for i in stored.indicators] == ["Female participation"]
        assert stored.version == 1

    def test_full_revision_loop(self):
        office = office_actor()
        reviewer = make_actor(Role.GAD_UNIT)
        executive = make_actor(Role.LCE)

        async def scenario(store, service):
            draft = await service.create(office, make_content())
            await service.submit(office, draft.id)
            await service.return_for_revision(
                reviewer, draft.id, sectional_comments={"budget": "Split PS and MOOE"}
            )
            revised = make_content(
                budget_items=[
                    BudgetItem(item_description="Honoraria", amount=Decimal("6000"), fund_type="PS"),
                    BudgetItem(item_description="Meals", amount=Decimal("4000"), fund_type="MOOE"),
                ]
            )
            await service.submit(office, draft.id, content=revised)
            await service.approve(executive, draft.id)
            return await store.get_proposal(draft.id), await store.list_history(draft.id)

        final, history = run_with_store(scenario)
        assert final.status is ProposalStatus.APPROVED
        assert final.approved_at is not None
        assert final.total_ps == Decimal("6000.00")
        assert final.total_mooe == Decimal("4000.00")
        assert [b.item_description for b in final.budget_items] == ["Honoraria", "Meals"]
        assert final.sectional_comments["budget"] == "Split PS and MOOE"
        assert final.version == 5
        assert [h.action_type for h in history] == [
            "Approved", "Submitted", "For Revision", "Submitted", "Draft",
        ]

    def test_rejected_operation_writes_nothing(self):
        office = office_actor()
        reviewer = make_actor(Role.GAD_UNIT)

        async def scenario(store, service):
            draft = await service.create(office, make_content())
            with pytest.raises(InvalidTransition):
                await service.approve(reviewer, draft.id)
            return await store.get_proposal(draft.id), await store.list_history(draft.id)

        proposal, history = run_with_store(scenario)
        assert proposal.status is ProposalStatus.DRAFT
        assert len(history) == 1

    def test_stale_version_conflicts(self):
        office = office_actor()

        async def scenario(store, service):
            draft = await service.create(office, make_content())
            await service.save_draft(office, draft.id, make_content(activity_name="First"))
            with pytest.raises(ConflictError):
                await service.save_draft(
                    office, draft.id, make_content(activity_name="Second"), expected_version=1
                )
            return await store.get_proposal(draft.id)

        proposal = run_with_store(scenario)
        assert proposal.activity_name == "First"
        assert proposal.version == 2

    def test_conditional_update_rejects_stale_status(self):
        office = office_actor()

        async def scenario(store, service):
            draft = await service.create(office, make_content())
            await service.submit(office, draft.id)
            stale = draft.model_copy(update={"status": ProposalStatus.SUBMITTED, "version": 2})
            with pytest.raises(ConflictError):
                await store.update_proposal(
                    stale,
                    expected_status=ProposalStatus.DRAFT,
                    expected_version=1,
                    replace_children=False,
                    history=(await store.list_history(draft.id))[0],
                )

        run_with_store(scenario)


# ============================================================================
# QUERIES
# ============================================================================

class TestSqlAlchemyQueries:
    """Tests for listing and lookups."""

    def test_listing(self):
        mho = office_actor("MHO")
        mao = office_actor("MAO")

        async def scenario(store, service):
            await service.create(mho, make_content(), submit=True)
            await service.create(mho, make_content())
            await service.create(mao, make_content(), submit=True)
            return (
                await store.list_by_owner(mho.user_id),
                await store.list_for_review(ORDER_OFFICE),
                await store.list_by_status(ProposalStatus.SUBMITTED),
                await store.list_all(),
            )

        owned, queue, submitted, everything = run_with_store(scenario)
        assert len(owned) == 2
        assert [p.office_name for p in queue] == ["MAO", "MHO"]
        assert len(submitted) == 2
        assert len(everything) == 3

    def test_unknown_ids(self):
        async def scenario(store, service):
            return (
                await store.get_proposal("not-a-uuid"),
                await store.get_proposal(str(uuid.uuid4())),
                await store.list_history("not-a-uuid"),
                await store.get_profile("not-a-uuid"),
            )

        assert run_with_store(scenario) == (None, None, [], None)


class TestSqlAlchemyProfiles:
    """Tests for profile reads and the approval toggle."""

    def test_profile_approval(self):
        user_id = uuid.uuid4()

        async def scenario(store, service):
            async with store._session_factory() as session:
                async with session.begin():
                    session.add(
                        Profile(id=user_id, office_name="MENRO", role="User", is_approved=False)
                    )
            before = await store.get_profile(str(user_id))
            after = await store.set_profile_approval(str(user_id), True)
            profiles = await store.list_profiles()
            with pytest.raises(AccountNotFound):
                await store.set_profile_approval(str(uuid.uuid4()), True)
            return before, after, profiles

        before, after, profiles = run_with_store(scenario)
        assert not before.is_approved
        assert after.is_approved
        assert [p.office_name for p in profiles] == ["MENRO"]
