"""initial_compliance_schema

Create organisation, submission and risk register tables.

Revision ID: 6f1d2c3b4a50
Revises:
Create Date: 2025-01-06 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "6f1d2c3b4a50"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "campuses" not in existing_tables:
        op.create_table(
            "campuses",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("location", sa.String(length=300), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )

    if "units" not in existing_tables:
        op.create_table(
            "units",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("vice_president_id", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_units_vice_president_id", "units", ["vice_president_id"])

    if "unit_campuses" not in existing_tables:
        op.create_table(
            "unit_campuses",
            sa.Column("unit_id", sa.String(length=64), nullable=False),
            sa.Column("campus_id", sa.String(length=64), nullable=False),
            sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["campus_id"], ["campuses.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("unit_id", "campus_id"),
        )

    if "submissions" not in existing_tables:
        op.create_table(
            "submissions",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("unit_id", sa.String(length=64), nullable=False),
            sa.Column("campus_id", sa.String(length=64), nullable=False),
            sa.Column("year", sa.Integer(), nullable=False),
            sa.Column("cycle_id", sa.String(length=10), nullable=False, comment="first | final"),
            sa.Column("report_type", sa.String(length=60), nullable=False, comment="report catalog code"),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("link", sa.String(length=1000), nullable=False, comment="external content reference"),
            sa.Column("risk_rating", sa.String(length=20), nullable=True, comment="registry only: low | medium-high"),
            sa.Column("control_number", sa.String(length=80), nullable=True),
            sa.Column("comments", sa.JSON(), nullable=True),
            sa.Column("submitted_by", sa.String(length=64), nullable=True),
            sa.Column("submitted_by_name", sa.String(length=200), nullable=True),
            sa.Column("carried_over_from_id", sa.String(length=36), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["campus_id"], ["campuses.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_submissions_unit_id", "submissions", ["unit_id"])
        op.create_index("ix_submissions_campus_id", "submissions", ["campus_id"])
        op.create_index("ix_submissions_year", "submissions", ["year"])
        op.create_index("ix_submissions_status", "submissions", ["status"])
        op.create_index("ix_submissions_created_at", "submissions", ["created_at"])
        op.create_index(
            "ix_submissions_key",
            "submissions",
            ["unit_id", "campus_id", "year", "cycle_id", "report_type"],
        )

    if "risks" not in existing_tables:
        op.create_table(
            "risks",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("unit_id", sa.String(length=64), nullable=False),
            sa.Column("campus_id", sa.String(length=64), nullable=False),
            sa.Column("year", sa.Integer(), nullable=False),
            sa.Column("objective", sa.String(length=500), nullable=False),
            sa.Column("type", sa.String(length=20), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("current_controls", sa.Text(), nullable=True),
            sa.Column("likelihood", sa.Integer(), nullable=False, comment="1-5 scale"),
            sa.Column("consequence", sa.Integer(), nullable=False, comment="1-5 scale"),
            sa.Column("magnitude", sa.Integer(), nullable=False, comment="likelihood × consequence"),
            sa.Column("rating", sa.String(length=10), nullable=False, comment="Low / Medium / High"),
            sa.Column("treatment_action", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=True),
            sa.Column("created_by", sa.String(length=64), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["unit_id"], ["units.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["campus_id"], ["campuses.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_risks_unit_id", "risks", ["unit_id"])
        op.create_index("ix_risks_campus_id", "risks", ["campus_id"])
        op.create_index("ix_risks_year", "risks", ["year"])
        op.create_index("ix_risks_status", "risks", ["status"])


def downgrade():
    op.drop_table("risks")
    op.drop_table("submissions")
    op.drop_table("unit_campuses")
    op.drop_table("units")
    op.drop_table("campuses")
