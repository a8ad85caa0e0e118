"""initial schema

Users and auth sessions, jobs, proposals, contracts, conversation messages
and file uploads.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = sa.Enum("CLIENT", "EMPLOYEE", name="user_role")
job_status = sa.Enum("OPEN", "IN_PROGRESS", "COMPLETED", "CANCELLED", name="job_status")
proposal_status = sa.Enum("PENDING", "ACCEPTED", "REJECTED", name="proposal_status")
contract_status = sa.Enum("ACTIVE", "COMPLETED", "CANCELLED", name="contract_status")
conversation_kind = sa.Enum("CONTRACT", "PROPOSAL", name="conversation_kind")
upload_type = sa.Enum(
    "JOB_ATTACHMENT",
    "PROPOSAL_ATTACHMENT",
    "RESUME",
    "PROFILE_PICTURE",
    "MESSAGE_ATTACHMENT",
    name="upload_type",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("full_name", sa.String(200), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("location", sa.String(200), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("skills", sa.JSON(), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("company_name", sa.String(200), nullable=True),
        sa.Column("website", sa.String(500), nullable=True),
        sa.Column("resume_url", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_created_at", "users", ["created_at"])

    op.create_table(
        "auth_sessions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("refreshed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_auth_sessions_user_id", "auth_sessions", ["user_id"])
    op.create_index("ix_auth_sessions_created_at", "auth_sessions", ["created_at"])

    op.create_table(
        "jobs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("budget_min", sa.Numeric(12, 2), nullable=True),
        sa.Column("budget_max", sa.Numeric(12, 2), nullable=True),
        sa.Column("timeline", sa.String(100), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("required_skills", sa.JSON(), nullable=False),
        sa.Column("status", job_status, nullable=False, server_default="OPEN"),
        *_timestamps(),
    )
    op.create_index("ix_jobs_client_id", "jobs", ["client_id"])
    op.create_index("ix_jobs_category", "jobs", ["category"])
    op.create_index("ix_jobs_status", "jobs", ["status"])
    op.create_index("ix_jobs_created_at", "jobs", ["created_at"])

    op.create_table(
        "proposals",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("job_id", sa.Uuid(), sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("employee_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("cover_letter", sa.Text(), nullable=True),
        sa.Column("proposed_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("estimated_duration", sa.String(100), nullable=True),
        sa.Column("status", proposal_status, nullable=False, server_default="PENDING"),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("job_id", "employee_id", name="uq_proposals_job_employee"),
    )
    op.create_index("ix_proposals_job_id", "proposals", ["job_id"])
    op.create_index("ix_proposals_employee_id", "proposals", ["employee_id"])
    op.create_index("ix_proposals_created_at", "proposals", ["created_at"])

    op.create_table(
        "contracts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("job_id", sa.Uuid(), sa.ForeignKey("jobs.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("client_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("employee_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column(
            "proposal_id",
            sa.Uuid(),
            sa.ForeignKey("proposals.id", ondelete="RESTRICT"),
            nullable=False,
            unique=True,
        ),
        sa.Column("agreed_rate", sa.Numeric(10, 2), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", contract_status, nullable=False, server_default="ACTIVE"),
        *_timestamps(),
    )
    op.create_index("ix_contracts_job_id", "contracts", ["job_id"])
    op.create_index("ix_contracts_client_id", "contracts", ["client_id"])
    op.create_index("ix_contracts_employee_id", "contracts", ["employee_id"])
    op.create_index("ix_contracts_created_at", "contracts", ["created_at"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("kind", conversation_kind, nullable=False),
        sa.Column("contract_id", sa.Uuid(), sa.ForeignKey("contracts.id", ondelete="CASCADE"), nullable=True),
        sa.Column("proposal_id", sa.Uuid(), sa.ForeignKey("proposals.id", ondelete="CASCADE"), nullable=True),
        sa.Column("sender_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "(kind = 'CONTRACT' AND contract_id IS NOT NULL AND proposal_id IS NULL)"
            " OR (kind = 'PROPOSAL' AND proposal_id IS NOT NULL AND contract_id IS NULL)",
            name="ck_messages_single_anchor",
        ),
    )
    op.create_index("ix_messages_sender_id", "messages", ["sender_id"])
    op.create_index("ix_messages_contract_created", "messages", ["contract_id", "created_at"])
    op.create_index("ix_messages_proposal_created", "messages", ["proposal_id", "created_at"])

    op.create_table(
        "file_uploads",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("job_id", sa.Uuid(), sa.ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True),
        sa.Column("proposal_id", sa.Uuid(), sa.ForeignKey("proposals.id", ondelete="SET NULL"), nullable=True),
        sa.Column("contract_id", sa.Uuid(), sa.ForeignKey("contracts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_url", sa.Text(), nullable=False),
        sa.Column("storage_path", sa.Text(), nullable=False),
        sa.Column("file_type", sa.String(150), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=True),
        sa.Column("upload_type", upload_type, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_file_uploads_user_id", "file_uploads", ["user_id"])
    op.create_index("ix_file_uploads_created_at", "file_uploads", ["created_at"])


def downgrade() -> None:
    op.drop_table("file_uploads")
    op.drop_table("messages")
    op.drop_table("contracts")
    op.drop_table("proposals")
    op.drop_table("jobs")
    op.drop_table("auth_sessions")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (upload_type, conversation_kind, contract_status, proposal_status, job_status, user_role):
        enum_type.drop(bind, checkfirst=True)
