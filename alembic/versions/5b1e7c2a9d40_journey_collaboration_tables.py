"""feat: journey collaboration tables

Revision ID: 5b1e7c2a9d40
Revises:
Create Date: 2026-10-19 10:12:44.281903

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5b1e7c2a9d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("firebase_uid", sa.String(128), nullable=False, unique=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("username", sa.String(50), nullable=True, unique=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_email_lower", "users", [sa.text("lower(email)")])

    op.create_table(
        "journeys",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("destination", sa.String(255), nullable=True),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("owner_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Index("ix_journeys_owner_id", "owner_id"),
    )

    op.create_table(
        "journey_collaborators",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("journey_id", sa.Integer, sa.ForeignKey("journeys.id", ondelete="CASCADE"), nullable=False),
        # NULL until an invitee without an account signs up and responds
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        # NULL only on an owner row whose account has no e-mail
        sa.Column("invitee_email", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="contributor"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("message", sa.String(500), nullable=True),
        sa.Column("invited_by", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("invited_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("responded_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint("role IN ('owner', 'contributor')", name="ck_journey_collaborators_role"),
        sa.CheckConstraint("status IN ('pending', 'accepted', 'declined')", name="ck_journey_collaborators_status"),
        sa.CheckConstraint(
            "role = 'owner' OR invitee_email IS NOT NULL", name="ck_journey_collaborators_invitee_email"
        ),
        sa.Index("ix_journey_collaborators_journey_id", "journey_id"),
        sa.Index("ix_journey_collaborators_user_id", "user_id"),
    )
    # One open (pending/accepted) row per email per journey; declined rows are history
    op.create_index(
        "uq_journey_collaborators_open_email",
        "journey_collaborators",
        ["journey_id", "invitee_email"],
        unique=True,
        postgresql_where=sa.text("status <> 'declined'"),
    )
    # Exactly one owner row per journey
    op.create_index(
        "uq_journey_collaborators_owner",
        "journey_collaborators",
        ["journey_id"],
        unique=True,
        postgresql_where=sa.text("role = 'owner'"),
    )

    op.create_table(
        "journey_experiences",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("journey_id", sa.Integer, sa.ForeignKey("journeys.id", ondelete="CASCADE"), nullable=False),
        sa.Column("day", sa.Integer, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("type", sa.String(30), nullable=False, server_default="other"),
        sa.Column("time", sa.Time, nullable=True),
        sa.Column("latitude", sa.Float, nullable=True),
        sa.Column("longitude", sa.Float, nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("place_id", sa.String(255), nullable=True),
        sa.Column("tags", postgresql.JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("suggested_by", sa.Integer, sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("approval_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("reviewed_by", sa.Integer, sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("reviewed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("review_notes", sa.String(500), nullable=True),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint("day >= 1", name="ck_journey_experiences_day"),
        sa.CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected')",
            name="ck_journey_experiences_approval_status",
        ),
        sa.Index("ix_journey_experiences_journey_status", "journey_id", "approval_status"),
        sa.Index("ix_journey_experiences_suggested_by", "suggested_by"),
    )


def downgrade() -> None:
    op.drop_table("journey_experiences")
    op.drop_index("uq_journey_collaborators_owner", table_name="journey_collaborators")
    op.drop_index("uq_journey_collaborators_open_email", table_name="journey_collaborators")
    op.drop_table("journey_collaborators")
    op.drop_table("journeys")
    op.drop_index("ix_users_email_lower", table_name="users")
    op.drop_table("users")
