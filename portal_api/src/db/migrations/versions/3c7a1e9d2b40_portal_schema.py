"""Portal schema with multi-tenancy and RLS.

- tenants
- users, roles, user_roles
- commission_submissions
- requests
- warranty_requests
- audit_log

Indexes support the pending-review worklist queries (status + created_at,
submitted_by + status + updated_at).
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3c7a1e9d2b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TENANT_DEFAULT = sa.text("current_setting('app.tenant_id', true)::uuid")

TENANT_SCOPED_TABLES = [
    "users",
    "roles",
    "user_roles",
    "commission_submissions",
    "requests",
    "warranty_requests",
    "audit_log",
]


def _id_column() -> sa.Column:
    return sa.Column("id", sa.UUID(), primary_key=True, server_default=sa.text("uuid_generate_v4()"))


def _tenant_column() -> sa.Column:
    return sa.Column("tenant_id", sa.UUID(), nullable=False, server_default=TENANT_DEFAULT)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _reviewable_columns() -> list[sa.Column]:
    return [
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("submitted_by", sa.UUID(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
    ]


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp";')

    op.create_table(
        "tenants",
        _id_column(),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
        sa.Column("slug", sa.Text(), nullable=False, unique=True),
        *_timestamps(),
    )

    op.create_table(
        "users",
        _id_column(),
        _tenant_column(),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("hashed_password", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )

    op.create_table(
        "roles",
        _id_column(),
        _tenant_column(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),
    )

    op.create_table(
        "user_roles",
        _id_column(),
        _tenant_column(),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("role_id", sa.UUID(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("tenant_id", "user_id", "role_id", name="uq_user_roles_tenant_user_role"),
    )

    op.create_table(
        "commission_submissions",
        _id_column(),
        _tenant_column(),
        *_reviewable_columns(),
        sa.Column("job_name", sa.Text(), nullable=False),
        sa.Column("job_address", sa.Text(), nullable=False),
        sa.Column("job_type", sa.Text(), nullable=True),
        sa.Column("approval_stage", sa.Text(), nullable=True),
        sa.Column("is_manager_submission", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("contract_amount", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("net_commission_owed", sa.Numeric(12, 2), nullable=True),
        sa.Column("reviewer_notes", sa.Text(), nullable=True),
        sa.Column("revision_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("manager_approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("manager_approved_by", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["submitted_by"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["manager_approved_by"], ["users.id"], ondelete="SET NULL"),
        sa.Index("ix_commission_submissions_status_created_at", "tenant_id", "status", "created_at"),
        sa.Index("ix_commission_submissions_submitter_status", "submitted_by", "status", "updated_at"),
    )

    op.create_table(
        "requests",
        _id_column(),
        _tenant_column(),
        *_reviewable_columns(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("manager_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["submitted_by"], ["users.id"], ondelete="SET NULL"),
        sa.Index("ix_requests_status_created_at", "tenant_id", "status", "created_at"),
        sa.Index("ix_requests_submitter_status", "submitted_by", "status", "updated_at"),
    )

    op.create_table(
        "warranty_requests",
        _id_column(),
        _tenant_column(),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("job_address", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), server_default=sa.text("'new'"), nullable=False),
        sa.Column("priority_level", sa.Text(), server_default=sa.text("'medium'"), nullable=False),
        sa.Column("issue_description", sa.Text(), nullable=True),
        sa.Column("roof_type", sa.Text(), nullable=True),
        sa.Column("date_submitted", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.Index("ix_warranty_requests_status_created_at", "tenant_id", "status", "created_at"),
    )

    op.create_table(
        "audit_log",
        _id_column(),
        _tenant_column(),
        sa.Column("actor_user_id", sa.UUID(), nullable=True),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("entity_type", sa.Text(), nullable=True),
        sa.Column("entity_id", sa.UUID(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
        sa.Index("ix_audit_log_tenant_created_at", "tenant_id", "created_at"),
        sa.Index("ix_audit_log_entity", "entity_type", "entity_id"),
    )

    # Row-Level Security
    op.execute("ALTER TABLE tenants ENABLE ROW LEVEL SECURITY;")
    op.execute(
        """
        CREATE POLICY tenant_row_access ON tenants
        USING (id = current_setting('app.tenant_id', true)::uuid)
        WITH CHECK (id = current_setting('app.tenant_id', true)::uuid);
        """
    )
    for tbl in TENANT_SCOPED_TABLES:
        op.execute(f"ALTER TABLE {tbl} ENABLE ROW LEVEL SECURITY;")
        op.execute(
            f"""
            CREATE POLICY {tbl}_tenant_isolation ON {tbl}
            USING (tenant_id = current_setting('app.tenant_id', true)::uuid)
            WITH CHECK (tenant_id = current_setting('app.tenant_id', true)::uuid);
            """
        )


def downgrade() -> None:
    op.execute("DROP POLICY IF EXISTS tenant_row_access ON tenants;")
    for tbl in TENANT_SCOPED_TABLES:
        op.execute(f"DROP POLICY IF EXISTS {tbl}_tenant_isolation ON {tbl};")
        op.execute(f"ALTER TABLE {tbl} DISABLE ROW LEVEL SECURITY;")
    op.execute("ALTER TABLE tenants DISABLE ROW LEVEL SECURITY;")

    for tbl in reversed(TENANT_SCOPED_TABLES):
        op.drop_table(tbl)
    op.drop_table("tenants")
