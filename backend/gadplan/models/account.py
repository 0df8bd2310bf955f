"""Office account (profile) models.

Profiles are owned by the identity provider's sign-up flow; this backend
only reads them and toggles the ``is_approved`` gate.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class Account(BaseModel):
    """A registered office or staff account."""

    id: str
    office_name: str = ""
    role: str = "User"
    is_approved: bool = False
    email: Optional[str] = None
    created_at: Optional[datetime] = None


class AccountApprovalRequest(BaseModel):
    approved: bool = Field(..., description="Grant (true) or revoke (false) access")


class AccountListResponse(BaseModel):
    accounts: List[Account]
    total: int
    pending_count: int
