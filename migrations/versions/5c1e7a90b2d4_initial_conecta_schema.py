"""initial_conecta_schema

Create the directory, catalog, project request, quotation and project
execution tables.

Revision ID: 5c1e7a90b2d4
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "5c1e7a90b2d4"
down_revision = None
branch_labels = None
depends_on = None


def _soft_delete_columns():
    return [
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _timestamps(updated=True):
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False))
    return columns


def _catalog_columns():
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("num", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by", sa.String(length=150), nullable=False, server_default="system"),
        *_timestamps(),
        *_soft_delete_columns(),
    ]


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    # ── Directory ────────────────────────────────────────────────────────
    if "clients" not in existing_tables:
        op.create_table(
            "clients",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=250), nullable=False),
            sa.Column("rfc", sa.String(length=20), nullable=True),
            *_timestamps(updated=False),
            *_soft_delete_columns(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_clients_is_deleted", "clients", ["is_deleted"])

    if "companies" not in existing_tables:
        op.create_table(
            "companies",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("comercial_name", sa.String(length=250), nullable=False),
            sa.Column("contact_name", sa.String(length=200), nullable=True),
            sa.Column("email", sa.String(length=200), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(updated=False),
            *_soft_delete_columns(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_companies_is_deleted", "companies", ["is_deleted"])

    # ── Catalogs ─────────────────────────────────────────────────────────
    if "specialties" not in existing_tables:
        op.create_table("specialties", *_catalog_columns(), sa.PrimaryKeyConstraint("id"))

    if "scopes" not in existing_tables:
        op.create_table(
            "scopes",
            *_catalog_columns(),
            sa.Column("specialty_id", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["specialty_id"], ["specialties.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_scopes_specialty_id", "scopes", ["specialty_id"])

    if "subscopes" not in existing_tables:
        op.create_table(
            "subscopes",
            *_catalog_columns(),
            sa.Column("scope_id", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["scope_id"], ["scopes.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_subscopes_scope_id", "subscopes", ["scope_id"])

    if "certifications" not in existing_tables:
        op.create_table("certifications", *_catalog_columns(), sa.PrimaryKeyConstraint("id"))

    # ── Project requests ─────────────────────────────────────────────────
    if "project_requests" not in existing_tables:
        op.create_table(
            "project_requests",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("client_id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=250), nullable=False),
            sa.Column("status_id", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("observations", sa.Text(), nullable=True),
            sa.Column("created_by", sa.String(length=150), nullable=False, server_default="system"),
            *_timestamps(),
            *_soft_delete_columns(),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="RESTRICT"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_project_requests_client_id", "project_requests", ["client_id"])

    if "project_requirements" not in existing_tables:
        op.create_table(
            "project_requirements",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_request_id", sa.Integer(), nullable=False),
            sa.Column("requirement_name", sa.String(length=250), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("specialty_id", sa.Integer(), nullable=True),
            sa.Column("scope_id", sa.Integer(), nullable=True),
            sa.Column("subscope_id", sa.Integer(), nullable=True),
            *_timestamps(updated=False),
            *_soft_delete_columns(),
            sa.ForeignKeyConstraint(["project_request_id"], ["project_requests.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["specialty_id"], ["specialties.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["scope_id"], ["scopes.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["subscope_id"], ["subscopes.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_project_requirements_project_request_id",
            "project_requirements", ["project_request_id"],
        )

    if "requirement_certifications" not in existing_tables:
        op.create_table(
            "requirement_certifications",
            sa.Column("requirement_id", sa.Integer(), nullable=False),
            sa.Column("certification_id", sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(["requirement_id"], ["project_requirements.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["certification_id"], ["certifications.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("requirement_id", "certification_id"),
        )

    if "project_request_companies" not in existing_tables:
        op.create_table(
            "project_request_companies",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_request_id", sa.Integer(), nullable=False),
            sa.Column("requirement_id", sa.Integer(), nullable=False),
            sa.Column("company_id", sa.Integer(), nullable=False),
            sa.Column("status_id", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(updated=False),
            *_soft_delete_columns(),
            sa.ForeignKeyConstraint(["project_request_id"], ["project_requests.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["requirement_id"], ["project_requirements.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="RESTRICT"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("requirement_id", "company_id", name="uq_participant_requirement_company"),
        )
        op.create_index(
            "ix_project_request_companies_project_request_id",
            "project_request_companies", ["project_request_id"],
        )
        op.create_index(
            "ix_project_request_companies_company_id",
            "project_request_companies", ["company_id"],
        )

    if "project_request_logs" not in existing_tables:
        op.create_table(
            "project_request_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_request_id", sa.Integer(), nullable=False),
            sa.Column("event_type", sa.String(length=60), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("actor", sa.String(length=150), nullable=False, server_default="system"),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(["project_request_id"], ["project_requests.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_request_log_request", "project_request_logs", ["project_request_id"])
        op.create_index("idx_request_log_event", "project_request_logs", ["event_type"])

    # ── Quotations ───────────────────────────────────────────────────────
    if "requirement_quotations" not in existing_tables:
        op.create_table(
            "requirement_quotations",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("participant_id", sa.Integer(), nullable=False),
            sa.Column("material_cost", sa.Numeric(14, 2), nullable=True),
            sa.Column("direct_cost", sa.Numeric(14, 2), nullable=True),
            sa.Column("indirect_cost", sa.Numeric(14, 2), nullable=True),
            sa.Column("price", sa.Numeric(14, 2), nullable=True),
            sa.Column("additional_details", sa.Text(), nullable=True),
            sa.Column("is_client_selected", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("is_client_approved", sa.Boolean(), nullable=True),
            sa.Column("non_approval_reason", sa.Text(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(
                ["participant_id"], ["project_request_companies.id"], ondelete="CASCADE",
            ),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("participant_id"),
        )

    if "quotation_segments" not in existing_tables:
        op.create_table(
            "quotation_segments",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("quotation_id", sa.Integer(), nullable=False),
            sa.Column("estimated_delivery_date", sa.Date(), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            sa.ForeignKeyConstraint(["quotation_id"], ["requirement_quotations.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_quotation_segments_quotation_id", "quotation_segments", ["quotation_id"])

    if "client_quotations" not in existing_tables:
        op.create_table(
            "client_quotations",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_request_id", sa.Integer(), nullable=False),
            sa.Column("quotation_file_name", sa.String(length=255), nullable=True),
            sa.Column("quotation_file", sa.LargeBinary(), nullable=True),
            sa.Column("client_price", sa.Numeric(14, 2), nullable=False),
            sa.Column("observations", sa.Text(), nullable=True),
            sa.Column("date_quotation_client", sa.Date(), nullable=False),
            sa.Column("date_quotation_sent", sa.Date(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_by", sa.String(length=150), nullable=False, server_default="system"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_request_id"], ["project_requests.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint("client_price > 0", name="ck_client_quotation_price_positive"),
        )
        op.create_index(
            "ix_client_quotations_project_request_id",
            "client_quotations", ["project_request_id"],
        )

    # ── Project execution ────────────────────────────────────────────────
    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_request_id", sa.Integer(), nullable=True),
            sa.Column("title", sa.String(length=250), nullable=False),
            sa.Column("observations", sa.Text(), nullable=True),
            sa.Column("created_by", sa.String(length=150), nullable=False, server_default="system"),
            *_timestamps(),
            *_soft_delete_columns(),
            sa.ForeignKeyConstraint(["project_request_id"], ["project_requests.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_project_request_id", "projects", ["project_request_id"])

    if "project_categories" not in existing_tables:
        op.create_table(
            "project_categories",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("created_by", sa.String(length=150), nullable=False, server_default="system"),
            *_timestamps(),
            *_soft_delete_columns(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_project_categories_project_id", "project_categories", ["project_id"])

    if "project_category_activities" not in existing_tables:
        op.create_table(
            "project_category_activities",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_category_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(length=250), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status_id", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("date_tentative_start", sa.Date(), nullable=True),
            sa.Column("date_tentative_end", sa.Date(), nullable=True),
            sa.Column("assigned_to", sa.String(length=150), nullable=True),
            sa.Column("observations", sa.Text(), nullable=True),
            sa.Column("created_by", sa.String(length=150), nullable=False, server_default="system"),
            *_timestamps(),
            *_soft_delete_columns(),
            sa.ForeignKeyConstraint(
                ["project_category_id"], ["project_categories.id"], ondelete="CASCADE",
            ),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_project_category_activities_project_category_id",
            "project_category_activities", ["project_category_id"],
        )


def downgrade():
    for table in (
        "project_category_activities",
        "project_categories",
        "projects",
        "client_quotations",
        "quotation_segments",
        "requirement_quotations",
        "project_request_logs",
        "project_request_companies",
        "requirement_certifications",
        "project_requirements",
        "project_requests",
        "certifications",
        "subscopes",
        "scopes",
        "specialties",
        "companies",
        "clients",
    ):
        op.drop_table(table)
