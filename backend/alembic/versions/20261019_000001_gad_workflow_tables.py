"""Create GAD proposal workflow tables.

Creates gad_proposals with its indicator, budget item and history child
tables. The profiles table is normally owned by the identity provider's
sign-up flow; it is only created here when missing (self-hosted
PostgreSQL without Supabase).

Revision ID: 0001_gad_workflow
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "0001_gad_workflow"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()

    # --- profiles (only when the identity provider has not created it) ---
    if not sa.inspect(bind).has_table("profiles"):
        op.create_table(
            "profiles",
            sa.Column(
                "id",
                UUID(),
                server_default=sa.text("gen_random_uuid()"),
                primary_key=True,
            ),
            sa.Column("office_name", sa.Text(), server_default="", nullable=False),
            sa.Column("role", sa.Text(), server_default="User", nullable=False),
            sa.Column(
                "is_approved", sa.Boolean(), server_default=sa.false(), nullable=False
            ),
            sa.Column("email", sa.Text(), nullable=True),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
            ),
            sa.CheckConstraint(
                "role IN ('User','Admin','GAD_UNIT','LCE','MAYOR')",
                name="profiles_role_check",
            ),
        )

    # --- gad_proposals ---
    op.create_table(
        "gad_proposals",
        sa.Column(
            "id",
            UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("user_id", UUID(), nullable=False),
        sa.Column("office_name", sa.Text(), server_default="", nullable=False),
        # Classification
        sa.Column(
            "ppa_category", sa.Text(), server_default="Client-Focused", nullable=False
        ),
        sa.Column(
            "focus_type", sa.Text(), server_default="CLIENT-FOCUSED", nullable=False
        ),
        sa.Column(
            "category_type", sa.Text(), server_default="Gender Issue", nullable=False
        ),
        # Narrative
        sa.Column("issue_statement", sa.Text(), nullable=True),
        sa.Column("issue_data", sa.Text(), nullable=True),
        sa.Column("issue_source", sa.Text(), nullable=True),
        sa.Column("gender_issue", sa.Text(), nullable=True),
        sa.Column("gad_objective", sa.Text(), nullable=True),
        sa.Column("relevant_program", sa.Text(), nullable=True),
        sa.Column("gad_activity", sa.Text(), nullable=True),
        # Budget rollup
        sa.Column("total_mooe", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("total_ps", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("total_co", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("gad_budget", sa.Numeric(14, 2), server_default="0", nullable=False),
        # Workflow
        sa.Column("status", sa.Text(), server_default="Draft", nullable=False),
        sa.Column("sectional_comments", JSONB(), nullable=True),
        sa.Column("reviewer_comments", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint(
            "status IN ('Draft','Submitted','For Revision','Returned','Approved')",
            name="gad_proposals_status_check",
        ),
        sa.CheckConstraint(
            "ppa_category IN ('Client-Focused','Agency-Focused')",
            name="gad_proposals_ppa_category_check",
        ),
        sa.CheckConstraint(
            "gad_budget = total_mooe + total_ps + total_co",
            name="gad_proposals_budget_rollup_check",
        ),
    )
    op.create_index("idx_gad_proposals_user", "gad_proposals", ["user_id"])
    op.create_index("idx_gad_proposals_status", "gad_proposals", ["status"])

    # --- ppa_indicators ---
    op.create_table(
        "ppa_indicators",
        sa.Column(
            "id",
            UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column(
            "ppa_id",
            UUID(),
            sa.ForeignKey("gad_proposals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("indicator_text", sa.Text(), server_default="", nullable=False),
        sa.Column("target_text", sa.Text(), server_default="", nullable=False),
        sa.Column("sort_order", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_ppa_indicators_ppa", "ppa_indicators", ["ppa_id"])

    # --- ppa_budget_items ---
    op.create_table(
        "ppa_budget_items",
        sa.Column(
            "id",
            UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column(
            "ppa_id",
            UUID(),
            sa.ForeignKey("gad_proposals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("item_description", sa.Text(), server_default="", nullable=False),
        sa.Column("amount", sa.Numeric(14, 2), server_default="0", nullable=False),
        sa.Column("fund_type", sa.Text(), server_default="MOOE", nullable=False),
        sa.Column("sort_order", sa.Integer(), server_default="0", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("amount >= 0", name="ppa_budget_items_amount_check"),
        sa.CheckConstraint(
            "fund_type IN ('MOOE','PS','CO')",
            name="ppa_budget_items_fund_type_check",
        ),
    )
    op.create_index("idx_ppa_budget_items_ppa", "ppa_budget_items", ["ppa_id"])

    # --- ppa_history ---
    op.create_table(
        "ppa_history",
        sa.Column(
            "id",
            UUID(),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column(
            "ppa_id",
            UUID(),
            sa.ForeignKey("gad_proposals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action_by", sa.Text(), nullable=False),
        sa.Column("action_type", sa.Text(), nullable=False),
        sa.Column("change_summary", sa.Text(), server_default="", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "idx_ppa_history_ppa_created", "ppa_history", ["ppa_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_table("ppa_history")
    op.drop_table("ppa_budget_items")
    op.drop_table("ppa_indicators")
    op.drop_table("gad_proposals")
    # profiles is left in place; it may belong to the identity provider
