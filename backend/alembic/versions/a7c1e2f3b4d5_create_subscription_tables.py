"""Create user, webhook_event and daily_usage tables.

Revision ID: a7c1e2f3b4d5
Revises:
Create Date: 2026-03-01 12:00:00.000000

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = "a7c1e2f3b4d5"
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns():
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "modified_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    ]


def upgrade():
    """Create the subscription state, webhook ledger and usage counter tables.

    subscription_version is the compare-and-set token: every write to the
    subscription columns is ``UPDATE ... WHERE subscription_version = :read``.
    """
    op.create_table(
        "user",
        *_audit_columns(),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("xp", sa.Integer(), server_default="0", nullable=False),
        # Subscription state
        sa.Column("plan", sa.String(16), server_default="free", nullable=False),
        sa.Column("subscription_status", sa.String(16), server_default="none", nullable=False),
        sa.Column("trial_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("trial_ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("paid_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("past_due_since", sa.DateTime(timezone=True), nullable=True),
        sa.Column("billing_customer_id", sa.String(), nullable=True, unique=True),
        sa.Column("billing_subscription_id", sa.String(), nullable=True),
        sa.Column(
            "one_time_bonus_granted", sa.Boolean(), server_default="false", nullable=False
        ),
        sa.Column("last_billing_event_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("subscription_version", sa.Integer(), server_default="0", nullable=False),
    )
    op.create_index("idx_user_billing_subscription_id", "user", ["billing_subscription_id"])

    op.create_table(
        "webhook_event",
        *_audit_columns(),
        sa.Column("event_id", sa.String(), nullable=False, unique=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("session_id", sa.String(), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("payload_summary", postgresql.JSONB(), nullable=True),
        sa.Column(
            "processed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["user.id"], ondelete="SET NULL", name="fk_webhook_event_user_id"
        ),
    )
    op.create_index("idx_webhook_event_user_id", "webhook_event", ["user_id"])

    op.create_table(
        "daily_usage",
        *_audit_columns(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("usage_date", sa.Date(), nullable=False),
        sa.Column("images_sent", sa.Integer(), server_default="0", nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["user.id"], ondelete="CASCADE", name="fk_daily_usage_user_id"
        ),
        sa.UniqueConstraint("user_id", "usage_date", name="uq_daily_usage_user_date"),
    )


def downgrade():
    """Drop the tables in reverse dependency order."""
    op.drop_table("daily_usage")
    op.drop_index("idx_webhook_event_user_id", table_name="webhook_event")
    op.drop_table("webhook_event")
    op.drop_index("idx_user_billing_subscription_id", table_name="user")
    op.drop_table("user")
