"""Profile ORM model.

Rows are created by the identity provider's sign-up flow (one per office or
staff account); ``id`` matches the auth user id carried in access tokens.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Text, Uuid, false, func
from sqlalchemy.orm import Mapped, mapped_column

from gadplan.models.db.base import Base


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    office_name: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    role: Mapped[str] = mapped_column(Text, nullable=False, server_default="User")
    is_approved: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=false()
    )
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
