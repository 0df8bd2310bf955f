"""Office account approval.

New office accounts register through the identity provider and wait for
the GAD Unit to grant access. Until approved, an office cannot create or
submit proposals (enforced by the transition rules).
"""

import logging
from typing import List

from gadplan.errors import AuthorizationError
from gadplan.lifecycle import REVIEWER_ROLES, Actor
from gadplan.models.account import Account
from gadplan.stores.base import ProposalStore

logger = logging.getLogger(__name__)


def _require_manager(actor: Actor) -> None:
    if actor.role not in REVIEWER_ROLES:
        raise AuthorizationError(
            f"Role '{actor.role.value}' may not manage office accounts"
        )


async def list_accounts(store: ProposalStore, actor: Actor) -> List[Account]:
    _require_manager(actor)
    return await store.list_profiles()


def pending_count(accounts: List[Account]) -> int:
    """Office accounts still waiting for approval."""
    return sum(1 for a in accounts if a.role == "User" and not a.is_approved)


async def set_account_approval(
    store: ProposalStore, actor: Actor, account_id: str, approved: bool
) -> Account:
    """Grant or revoke an account's access.

    Args:
        store: Record store holding the profiles.
        actor: Must be Admin or GAD_UNIT.
        account_id: Profile id to update.
        approved: New value of ``is_approved``.

    Raises:
        AuthorizationError: The actor may not manage accounts.
        AccountNotFound: No profile with that id.
    """
    _require_manager(actor)
    account = await store.set_profile_approval(account_id, approved)
    logger.info(
        "Account %s %s by %s",
        account_id,
        "approved" if approved else "revoked",
        actor.user_id,
    )
    return account
