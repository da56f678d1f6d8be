"""Activity log, skill impacts and reward settlement tables."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = "20261002_activity_skills_rewards"
down_revision = "20261001_core_init"
branch_labels = None
depends_on = None


def upgrade():
    conn = op.get_bind()
    inspector = inspect(conn)

    def _has_table(name: str) -> bool:
        return name in inspector.get_table_names()

    def _has_index(table: str, name: str) -> bool:
        return any(ix["name"] == name for ix in inspector.get_indexes(table))

    def _ensure_index(table: str, name: str, columns: list[str]) -> None:
        if not _has_index(table, name):
            op.create_index(name, table, columns)

    # activity_event table
    if not _has_table("activity_event"):
        op.create_table(
            "activity_event",
            sa.Column("id", sa.String(length=32), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("event_type", sa.String(length=64), nullable=False),
            sa.Column("source_type", sa.String(length=32), nullable=False),
            sa.Column("source_id", sa.String(length=128), nullable=False),
            sa.Column("source_name", sa.String(length=255), nullable=True),
            sa.Column("score", sa.Float(), nullable=True),
            sa.Column("skill_ids", sa.JSON(), nullable=False),
            sa.Column("attempt_id", sa.String(length=128), nullable=True),
            sa.Column("idempotency_key", sa.String(length=512), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=False),
            sa.Column("occurred_at", sa.DateTime(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.UniqueConstraint("idempotency_key", name="ux_activity_event_idempotency_key"),
        )
    _ensure_index("activity_event", "ix_activity_event_user_id", ["user_id"])
    _ensure_index("activity_event", "ix_activity_event_organization_id", ["organization_id"])
    _ensure_index("activity_event", "ix_activity_event_user_occurred_at", ["user_id", "occurred_at"])
    _ensure_index("activity_event", "ix_activity_event_source", ["source_type", "source_id"])

    # skill_impact_event table
    if not _has_table("skill_impact_event"):
        op.create_table(
            "skill_impact_event",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("skill_id", sa.String(length=64), nullable=False),
            sa.Column("source_type", sa.String(length=32), nullable=False),
            sa.Column("source_id", sa.String(length=128), nullable=True),
            sa.Column("impact_type", sa.String(length=32), nullable=False),
            sa.Column("impact_value", sa.Float(), nullable=False, server_default="0"),
            sa.Column("normalized_score", sa.Float(), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
    _ensure_index("skill_impact_event", "ix_skill_impact_event_user_id", ["user_id"])
    _ensure_index("skill_impact_event", "ix_skill_impact_event_organization_id", ["organization_id"])
    _ensure_index("skill_impact_event", "ix_skill_impact_event_created_at", ["created_at"])
    _ensure_index(
        "skill_impact_event",
        "ix_skill_impact_user_skill_created_at",
        ["user_id", "skill_id", "created_at"],
    )
    _ensure_index("skill_impact_event", "ix_skill_impact_source", ["source_type", "source_id"])

    # reward_config table
    if not _has_table("reward_config"):
        op.create_table(
            "reward_config",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("activity_type", sa.String(length=128), nullable=False),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("config", sa.JSON(), nullable=False),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
    _ensure_index("reward_config", "ix_reward_config_activity_org", ["activity_type", "organization_id"])

    # reward_transaction table
    if not _has_table("reward_transaction"):
        op.create_table(
            "reward_transaction",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("source_type", sa.String(length=32), nullable=False),
            sa.Column("source_id", sa.String(length=128), nullable=False),
            sa.Column("attempt_id", sa.String(length=128), nullable=True),
            sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("coins", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("target_met", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("participation", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("reason", sa.String(length=64), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
    _ensure_index("reward_transaction", "ix_reward_transaction_organization_id", ["organization_id"])
    _ensure_index(
        "reward_transaction", "ix_reward_transaction_user_created_at", ["user_id", "created_at"]
    )
    _ensure_index(
        "reward_transaction",
        "ix_reward_transaction_user_source",
        ["user_id", "source_type", "source_id"],
    )

    # user_balance table
    if not _has_table("user_balance"):
        op.create_table(
            "user_balance",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False, unique=True),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("coins", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
    _ensure_index("user_balance", "ix_user_balance_organization_id", ["organization_id"])

    # user_streak table
    if not _has_table("user_streak"):
        op.create_table(
            "user_streak",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False, unique=True),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("total_active_days", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("last_active_date", sa.Date(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )


def downgrade():
    op.drop_table("user_streak")
    op.drop_table("user_balance")
    op.drop_table("reward_transaction")
    op.drop_table("reward_config")
    op.drop_table("skill_impact_event")
    op.drop_table("activity_event")
