"""Contextual assessment requests."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = "20261004_assessment_requests"
down_revision = "20261003_pdi_assessments"
branch_labels = None
depends_on = None


def upgrade():
    conn = op.get_bind()
    inspector = inspect(conn)

    def _has_index(table: str, name: str) -> bool:
        return any(ix["name"] == name for ix in inspector.get_indexes(table))

    if "contextual_assessment_request" not in inspector.get_table_names():
        op.create_table(
            "contextual_assessment_request",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("organization_id", sa.String(length=64), nullable=True),
            sa.Column("origin_type", sa.String(length=32), nullable=False),
            sa.Column("origin_id", sa.String(length=128), nullable=True),
            sa.Column("assessment_type", sa.String(length=32), nullable=False, server_default="self"),
            sa.Column("skill_ids", sa.JSON(), nullable=False),
            sa.Column(
                "consequence_id",
                sa.Integer(),
                sa.ForeignKey("assessment_consequence.id"),
                nullable=True,
            ),
            sa.Column(
                "assessment_id",
                sa.Integer(),
                sa.ForeignKey("assessment_submission.id"),
                nullable=True,
            ),
            sa.Column("status", sa.String(length=16), nullable=False, server_default="open"),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column("completed_at", sa.DateTime(), nullable=True),
        )
    for name, columns in (
        ("ix_contextual_assessment_request_user_status", ["user_id", "status"]),
        ("ix_contextual_assessment_request_origin", ["user_id", "origin_id"]),
    ):
        if not _has_index("contextual_assessment_request", name):
            op.create_index(name, "contextual_assessment_request", columns)


def downgrade():
    op.drop_table("contextual_assessment_request")
