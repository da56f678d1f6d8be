"""Development plans, goal progress audit, linked actions and assessments."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = "20261003_pdi_assessments"
down_revision = "20261002_activity_skills_rewards"
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

    # development_plan table
    if not _has_table("development_plan"):
        op.create_table(
            "development_plan",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
            sa.Column("created_by", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
    _ensure_index("development_plan", "ix_development_plan_organization_id", ["organization_id"])
    _ensure_index("development_plan", "ix_development_plan_user_status", ["user_id", "status"])

    # development_goal table
    if not _has_table("development_goal"):
        op.create_table(
            "development_goal",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "plan_id",
                sa.Integer(),
                sa.ForeignKey("development_plan.id"),
                nullable=False,
            ),
            sa.Column("skill_id", sa.String(length=64), nullable=True),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("target_date", sa.Date(), nullable=True),
            sa.Column("priority", sa.String(length=16), nullable=False, server_default="medium"),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="not_started"),
            sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("linked_training_ids", sa.JSON(), nullable=False),
            sa.Column("linked_challenge_ids", sa.JSON(), nullable=False),
            sa.Column("linked_cognitive_test_ids", sa.JSON(), nullable=False),
            sa.Column("related_games", sa.JSON(), nullable=False),
            sa.Column("auto_progress_enabled", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("xp_reward", sa.Integer(), nullable=True),
            sa.Column("weight", sa.Float(), nullable=False, server_default="1.0"),
            sa.Column("last_auto_update", sa.DateTime(), nullable=True),
            sa.Column("stagnant_since", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
    _ensure_index("development_goal", "ix_development_goal_plan_id", ["plan_id"])
    _ensure_index("development_goal", "ix_development_goal_skill_id", ["skill_id"])

    # goal_progress_event table
    if not _has_table("goal_progress_event"):
        op.create_table(
            "goal_progress_event",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "goal_id",
                sa.Integer(),
                sa.ForeignKey("development_goal.id"),
                nullable=False,
            ),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("source_type", sa.String(length=32), nullable=False),
            sa.Column("source_id", sa.String(length=128), nullable=True),
            sa.Column("source_name", sa.String(length=255), nullable=True),
            sa.Column("progress_before", sa.Integer(), nullable=False),
            sa.Column("progress_after", sa.Integer(), nullable=False),
            sa.Column("progress_delta", sa.Integer(), nullable=False),
            sa.Column("xp_earned", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("metadata", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
    _ensure_index("goal_progress_event", "ix_goal_progress_event_user_id", ["user_id"])
    _ensure_index(
        "goal_progress_event", "ix_goal_progress_event_goal_created_at", ["goal_id", "created_at"]
    )

    # pdi_linked_action table
    if not _has_table("pdi_linked_action"):
        op.create_table(
            "pdi_linked_action",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column(
                "goal_id",
                sa.Integer(),
                sa.ForeignKey("development_goal.id"),
                nullable=False,
            ),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("action_type", sa.String(length=32), nullable=False),
            sa.Column("action_id", sa.String(length=128), nullable=True),
            sa.Column("action_name", sa.String(length=255), nullable=False),
            sa.Column("priority", sa.Integer(), nullable=False, server_default="2"),
            sa.Column("expected_progress_impact", sa.Integer(), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=False),
            sa.Column("suggested_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column("completed_at", sa.DateTime(), nullable=True),
            sa.Column("dismissed_at", sa.DateTime(), nullable=True),
        )
    _ensure_index("pdi_linked_action", "ix_pdi_linked_action_goal_id", ["goal_id"])
    _ensure_index(
        "pdi_linked_action",
        "ix_pdi_linked_action_user_pending",
        ["user_id", "completed_at", "dismissed_at"],
    )

    # assessment_submission table
    if not _has_table("assessment_submission"):
        op.create_table(
            "assessment_submission",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("evaluator_id", sa.String(length=64), nullable=True),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("assessment_type", sa.String(length=32), nullable=False),
            sa.Column("context_id", sa.String(length=128), nullable=True),
            sa.Column("responses", sa.JSON(), nullable=False),
            sa.Column("total_score", sa.Float(), nullable=True),
            sa.Column("skill_scores", sa.JSON(), nullable=False),
            sa.Column("skill_ids", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )
    _ensure_index(
        "assessment_submission", "ix_assessment_submission_organization_id", ["organization_id"]
    )
    _ensure_index(
        "assessment_submission",
        "ix_assessment_submission_user_created_at",
        ["user_id", "created_at"],
    )

    # assessment_consequence table
    if not _has_table("assessment_consequence"):
        op.create_table(
            "assessment_consequence",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("assessment_type", sa.String(length=32), nullable=True),
            sa.Column(
                "assessment_id",
                sa.Integer(),
                sa.ForeignKey("assessment_submission.id"),
                nullable=True,
            ),
            sa.Column("consequence_type", sa.String(length=32), nullable=False),
            sa.Column("target_type", sa.String(length=32), nullable=True),
            sa.Column("target_id", sa.String(length=128), nullable=True),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("skill_ids", sa.JSON(), nullable=False),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
            sa.Column("metadata", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column("accepted_at", sa.DateTime(), nullable=True),
            sa.Column("dismissed_at", sa.DateTime(), nullable=True),
        )
    _ensure_index(
        "assessment_consequence", "ix_assessment_consequence_user_status", ["user_id", "status"]
    )
    _ensure_index(
        "assessment_consequence",
        "ix_assessment_consequence_dedupe",
        ["user_id", "consequence_type", "target_id"],
    )


def downgrade():
    op.drop_table("assessment_consequence")
    op.drop_table("assessment_submission")
    op.drop_table("pdi_linked_action")
    op.drop_table("goal_progress_event")
    op.drop_table("development_goal")
    op.drop_table("development_plan")
