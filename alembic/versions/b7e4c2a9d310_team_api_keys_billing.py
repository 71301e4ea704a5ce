"""team_api_keys_billing

Revision ID: b7e4c2a9d310
Revises: a1b2c3d4e5f6
Create Date: 2026-10-17 12:00:00.000000

  - users.hashed_password nullable (invited members have none until they accept)
  - team_invitations
  - tenants: api_key_hash and Stripe subscription state
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic
revision: str = "b7e4c2a9d310"
down_revision: str | None = "a1b2c3d4e5f6"
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    with op.batch_alter_table("users") as batch_op:
        batch_op.alter_column("hashed_password", existing_type=sa.String(), nullable=True)

    with op.batch_alter_table("tenants") as batch_op:
        batch_op.add_column(sa.Column("api_key_hash", sa.String(64), nullable=True))
        batch_op.add_column(sa.Column("stripe_customer_id", sa.String(255), nullable=True))
        batch_op.add_column(sa.Column("stripe_subscription_id", sa.String(255), nullable=True))
        batch_op.add_column(sa.Column("subscription_status", sa.String(30), nullable=True))
        batch_op.add_column(sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=True))
        batch_op.add_column(
            sa.Column("cancel_at_period_end", sa.Boolean(), nullable=False, server_default=sa.false())
        )
        batch_op.add_column(sa.Column("billing_event_at", sa.Integer(), nullable=True))
        batch_op.create_index(batch_op.f("ix_tenants_api_key_hash"), ["api_key_hash"], unique=True)
        batch_op.create_unique_constraint("uq_tenants_stripe_customer_id", ["stripe_customer_id"])

    op.create_table(
        "team_invitations",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("tenant_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("invited_by", sa.String(36), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["invited_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_team_invitations_tenant_id"), "team_invitations", ["tenant_id"], unique=False)
    op.create_index(op.f("ix_team_invitations_user_id"), "team_invitations", ["user_id"], unique=False)
    op.create_index(op.f("ix_team_invitations_token_hash"), "team_invitations", ["token_hash"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_team_invitations_token_hash"), table_name="team_invitations")
    op.drop_index(op.f("ix_team_invitations_user_id"), table_name="team_invitations")
    op.drop_index(op.f("ix_team_invitations_tenant_id"), table_name="team_invitations")
    op.drop_table("team_invitations")

    with op.batch_alter_table("tenants") as batch_op:
        batch_op.drop_constraint("uq_tenants_stripe_customer_id", type_="unique")
        batch_op.drop_index(batch_op.f("ix_tenants_api_key_hash"))
        batch_op.drop_column("billing_event_at")
        batch_op.drop_column("cancel_at_period_end")
        batch_op.drop_column("current_period_end")
        batch_op.drop_column("subscription_status")
        batch_op.drop_column("stripe_subscription_id")
        batch_op.drop_column("stripe_customer_id")
        batch_op.drop_column("api_key_hash")

    # pending members have no password to restore
    op.execute("DELETE FROM users WHERE hashed_password IS NULL")
    with op.batch_alter_table("users") as batch_op:
        batch_op.alter_column("hashed_password", existing_type=sa.String(), nullable=False)
