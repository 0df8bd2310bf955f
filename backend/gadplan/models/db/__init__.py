"""SQLAlchemy 2.0 ORM models for the GAD plan workflow.

Import all models here so Alembic's ``env.py`` can discover them via::

    from gadplan.models.db import Base  # noqa: F401

Every model must be imported at module level to register with the
``DeclarativeBase`` metadata.
"""

from gadplan.models.db.base import Base, TimestampMixin  # noqa: F401

from gadplan.models.db.profile import Profile  # noqa: F401
from gadplan.models.db.proposal import (  # noqa: F401
    GadProposal,
    PpaBudgetItem,
    PpaIndicator,
)
from gadplan.models.db.history import PpaHistory  # noqa: F401

__all__ = [
    "Base",
    "TimestampMixin",
    "Profile",
    "GadProposal",
    "PpaIndicator",
    "PpaBudgetItem",
    "PpaHistory",
]
