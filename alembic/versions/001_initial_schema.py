"""Initial schema — providers, service orders, assignments, negotiations.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Providers
    op.create_table(
        "providers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), unique=True, nullable=False),
        sa.Column("country_code", sa.String(2), nullable=False),
        sa.Column("tier", sa.Integer, nullable=False, server_default="2"),
        sa.Column("risk_status", sa.String(20), nullable=False, server_default="OK"),
        sa.Column(
            "certifications", ARRAY(sa.String(50)), nullable=False, server_default="{}"
        ),
        sa.Column("active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("available", sa.Boolean, nullable=False, server_default="true"),
        sa.CheckConstraint("tier BETWEEN 1 AND 3", name="ck_providers_tier"),
    )
    op.create_index("idx_providers_country", "providers", ["country_code"])

    # Work teams
    op.create_table(
        "work_teams",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "provider_id",
            sa.Integer,
            sa.ForeignKey("providers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column(
            "certifications", ARRAY(sa.String(50)), nullable=False, server_default="{}"
        ),
    )
    op.create_index("idx_work_teams_provider", "work_teams", ["provider_id"])

    # Service orders
    op.create_table(
        "service_orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("external_ref", sa.String(100), unique=True, nullable=True),
        sa.Column("country_code", sa.String(2), nullable=False),
        sa.Column("service_type", sa.String(50), nullable=False),
        sa.Column("scheduled_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="CREATED"),
        sa.Column(
            "required_certifications",
            ARRAY(sa.String(50)),
            nullable=False,
            server_default="{}",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_service_orders_country", "service_orders", ["country_code"])

    # Assignments
    op.create_table(
        "assignments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "service_order_id",
            sa.Integer,
            sa.ForeignKey("service_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("provider_id", sa.Integer, sa.ForeignKey("providers.id"), nullable=False),
        sa.Column("work_team_id", sa.Integer, sa.ForeignKey("work_teams.id"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("assignment_mode", sa.String(20), nullable=False),
        sa.Column("original_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("proposed_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("date_negotiation_round", sa.Integer, nullable=False, server_default="0"),
        sa.Column("offer_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refused_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refusal_reason", sa.Text, nullable=True),
        sa.Column("provider_score", sa.Float, nullable=True),
        sa.Column("funnel", JSONB, nullable=True),
        sa.Column(
            "candidate_provider_ids", ARRAY(sa.Integer), nullable=False, server_default="{}"
        ),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "date_negotiation_round BETWEEN 0 AND 3", name="ck_assignments_round"
        ),
    )
    op.create_index("idx_assignments_provider", "assignments", ["provider_id"])
    op.create_index(
        "idx_assignments_status_expiry", "assignments", ["status", "offer_expires_at"]
    )
    # At most one PENDING assignment per service order
    op.create_index(
        "uq_assignments_pending_order",
        "assignments",
        ["service_order_id"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    # Date negotiations
    op.create_table(
        "date_negotiations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "assignment_id",
            sa.Integer,
            sa.ForeignKey("assignments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("round", sa.Integer, nullable=False),
        sa.Column("proposed_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("proposed_by", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("assignment_id", "round", name="uq_date_negotiations_round"),
        sa.CheckConstraint("round BETWEEN 1 AND 3", name="ck_date_negotiations_round"),
    )


def downgrade() -> None:
    op.drop_table("date_negotiations")
    op.drop_index("uq_assignments_pending_order", table_name="assignments")
    op.drop_table("assignments")
    op.drop_table("service_orders")
    op.drop_table("work_teams")
    op.drop_table("providers")
