"""journey_map_tables

Create the journey persistence tables: journeys, job_performers (global
registry), micro_jobs, microjob_performers and connections.

Revision ID: a1c3e5f7b901
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "a1c3e5f7b901"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "journeys" not in existing_tables:
        op.create_table(
            "journeys",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_journeys_updated_at", "journeys", ["updated_at"])

    if "job_performers" not in existing_tables:
        op.create_table(
            "job_performers",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("group_name", sa.String(length=200), nullable=True, comment="Taxonomy group"),
            sa.Column("color", sa.String(length=16), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    if "micro_jobs" not in existing_tables:
        op.create_table(
            "micro_jobs",
            sa.Column("journey_id", sa.String(length=36), nullable=False),
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("sequence", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("job_domain_stage", sa.String(length=300), nullable=True),
            sa.Column("main_job", sa.String(length=500), nullable=True),
            sa.Column("micro_job", sa.String(length=500), nullable=True),
            sa.Column("phase", sa.String(length=200), nullable=True),
            sa.Column("high_level_description", sa.Text(), nullable=True),
            sa.Column("detail_description", sa.Text(), nullable=True),
            sa.Column("product_team", sa.String(length=200), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("position_x", sa.Float(), nullable=False, server_default="0"),
            sa.Column("position_y", sa.Float(), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["journey_id"], ["journeys.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("journey_id", "id"),
        )
        op.create_index(
            "ix_micro_jobs_journey_sequence", "micro_jobs", ["journey_id", "sequence"],
        )

    if "microjob_performers" not in existing_tables:
        op.create_table(
            "microjob_performers",
            sa.Column("journey_id", sa.String(length=36), nullable=False),
            sa.Column("microjob_id", sa.String(length=64), nullable=False),
            sa.Column("job_performer_id", sa.String(length=64), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
            sa.ForeignKeyConstraint(
                ["journey_id", "microjob_id"],
                ["micro_jobs.journey_id", "micro_jobs.id"],
                ondelete="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["job_performer_id"], ["job_performers.id"], ondelete="CASCADE",
            ),
            sa.PrimaryKeyConstraint("journey_id", "microjob_id", "job_performer_id"),
        )

    if "connections" not in existing_tables:
        op.create_table(
            "connections",
            sa.Column("journey_id", sa.String(length=36), nullable=False),
            sa.Column("id", sa.String(length=128), nullable=False),
            sa.Column("source_microjob_id", sa.String(length=64), nullable=False),
            sa.Column("target_microjob_id", sa.String(length=64), nullable=False),
            sa.Column("label", sa.String(length=300), nullable=True),
            sa.Column(
                "type", sa.String(length=30), nullable=True,
                comment="normal | feedback | conditional (legacy rows: smoothstep)",
            ),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column(
                "shape", sa.String(length=20), nullable=True,
                comment="Canvas line geometry: smoothstep | step | straight | default",
            ),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["journey_id"], ["journeys.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(
                ["journey_id", "source_microjob_id"],
                ["micro_jobs.journey_id", "micro_jobs.id"],
                ondelete="CASCADE",
            ),
            sa.ForeignKeyConstraint(
                ["journey_id", "target_microjob_id"],
                ["micro_jobs.journey_id", "micro_jobs.id"],
                ondelete="CASCADE",
            ),
            sa.PrimaryKeyConstraint("journey_id", "id"),
        )


def downgrade():
    op.drop_table("connections")
    op.drop_table("microjob_performers")
    op.drop_index("ix_micro_jobs_journey_sequence", table_name="micro_jobs")
    op.drop_table("micro_jobs")
    op.drop_table("job_performers")
    op.drop_index("ix_journeys_updated_at", table_name="journeys")
    op.drop_table("journeys")
