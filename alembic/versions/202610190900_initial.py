"""initial schema

Revision ID: 202610190900
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202610190900"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade():
    op.create_table(
        "tags",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        "entities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.Integer(), nullable=False),
        sa.Column(
            "origin", sa.Enum("project", "offer", name="origin"), nullable=False
        ),
        sa.Column("name", sa.String(length=255)),
        sa.Column("company_name", sa.String(length=255)),
        *_timestamps(),
        sa.UniqueConstraint(
            "origin", "external_id", name="uq_entity_origin_external"
        ),
    )

    op.create_table(
        "entity_tags",
        sa.Column(
            "entity_id", sa.Integer(), sa.ForeignKey("entities.id"), primary_key=True
        ),
        sa.Column("tag_id", sa.Integer(), sa.ForeignKey("tags.id"), primary_key=True),
    )

    op.create_table(
        "billing_lines",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column(
            "entity_id", sa.Integer(), sa.ForeignKey("entities.id"), nullable=False
        ),
        sa.Column("name", sa.String(length=255)),
        sa.Column("quantity", sa.String(length=32)),
        sa.Column("rate", sa.String(length=32)),
        sa.Column("invoiced_quantity", sa.String(length=32)),
        sa.Column(
            "invoice_basis",
            sa.Enum("normal", "cost_plus", "no_charge", name="invoicebasis"),
            nullable=False,
        ),
        *_timestamps(),
    )
    op.create_index("ix_billing_lines_entity", "billing_lines", ["entity_id"])

    op.create_table(
        "hour_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("work_date", sa.String(length=32)),
        sa.Column("quantity", sa.String(length=32)),
        sa.Column("billing_line_id", sa.Integer()),
        sa.Column("entity_origin", sa.String(length=32)),
        sa.Column("entity_external_id", sa.Integer()),
        *_timestamps(),
    )
    op.create_index("ix_hour_records_work_date", "hour_records", ["work_date"])
    op.create_index(
        "ix_hour_records_entity",
        "hour_records",
        ["entity_origin", "entity_external_id"],
    )

    op.create_table(
        "prior_consumptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "entity_id", sa.Integer(), sa.ForeignKey("entities.id"), nullable=False
        ),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("amount", sa.String(length=32), nullable=False, server_default="0"),
        sa.Column(
            "unit",
            sa.Enum("revenue", "hours", name="consumptionunit"),
            nullable=False,
        ),
        *_timestamps(),
        sa.UniqueConstraint(
            "entity_id", "year", name="uq_prior_consumption_entity_year"
        ),
    )

    op.create_table(
        "kpi_values",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column(
            "field",
            sa.Enum("target_revenue", "final_revenue", name="kpifield"),
            nullable=False,
        ),
        sa.Column("value_cents", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("year", "month", "field", name="uq_kpi_year_month_field"),
    )
    op.create_index("ix_kpi_values_year", "kpi_values", ["year"])


def downgrade():
    op.drop_index("ix_kpi_values_year", table_name="kpi_values")
    op.drop_table("kpi_values")
    op.drop_table("prior_consumptions")
    op.drop_index("ix_hour_records_entity", table_name="hour_records")
    op.drop_index("ix_hour_records_work_date", table_name="hour_records")
    op.drop_table("hour_records")
    op.drop_index("ix_billing_lines_entity", table_name="billing_lines")
    op.drop_table("billing_lines")
    op.drop_table("entity_tags")
    op.drop_table("entities")
    op.drop_table("tags")
