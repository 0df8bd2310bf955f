"""
Unit Tests for Office Account Approval

Tests:
- Only Admin and GAD_UNIT may list or approve accounts
- Approval toggles the gate the transition rules check
- Unknown accounts raise AccountNotFound

Usage:
    cd backend && pytest tests/test_accounts.py -v
"""

import asyncio

import pytest

from gadplan.errors import AccountNotFound, AuthorizationError
from gadplan.lifecycle import Actor, Role
from gadplan.services import account_service

from helpers import make_actor, make_content, make_profile_row

run = asyncio.run


@pytest.fixture
def pending_row(mock_client):
    row = make_profile_row(office_name="MENRO", is_approved=False)
    mock_client.tables["profiles"].append(row)
    return row


class TestAccountManagement:
    """Tests for listing and approving accounts."""

    def test_list_accounts(self, store, mock_client, reviewer, pending_row):
        mock_client.tables["profiles"].append(make_profile_row(office_name="MAO"))
        mock_client.tables["profiles"].append(make_profile_row(office_name="GAD Unit", role="GAD_UNIT"))

        accounts = run(account_service.list_accounts(store, reviewer))

        assert [a.office_name for a in accounts] == ["GAD Unit", "MAO", "MENRO"]
        assert account_service.pending_count(accounts) == 1

    @pytest.mark.parametrize("role", [Role.USER, Role.LCE, Role.MAYOR])
    def test_non_managers_rejected(self, store, role, pending_row):
        with pytest.raises(AuthorizationError):
            run(account_service.list_accounts(store, make_actor(role)))
        with pytest.raises(AuthorizationError):
            run(account_service.set_account_approval(store, make_actor(role), pending_row["id"], True))

    def test_approve_and_revoke(self, store, pending_row):
        admin = make_actor(Role.ADMIN)
        approved = run(account_service.set_account_approval(store, admin, pending_row["id"], True))
        assert approved.is_approved

        revoked = run(account_service.set_account_approval(store, admin, pending_row["id"], False))
        assert not revoked.is_approved

    def test_unknown_account(self, store, reviewer):
        with pytest.raises(AccountNotFound):
            run(account_service.set_account_approval(store, reviewer, "missing", True))

    def test_approval_unlocks_proposal_creation(self, store, service, reviewer, pending_row):
        pending = Actor.from_profile(pending_row)
        with pytest.raises(AuthorizationError):
            run(service.create(pending, make_content()))

        run(account_service.set_account_approval(store, reviewer, pending_row["id"], True))
        account = run(store.get_profile(pending_row["id"]))
        proposal = run(service.create(Actor.from_profile(account.model_dump()), make_content()))
        assert proposal.office_name == "MENRO"
