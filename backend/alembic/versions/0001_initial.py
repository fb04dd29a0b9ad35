from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None

TEMPLATE_CATEGORY = sa.Enum(
    "ADMISSION", "SAFETY", "BENEFITS", "CONFIDENTIALITY", "TERMINATION", "OTHER",
    name="templatecategory",
)
DOCUMENT_STATUS = sa.Enum(
    "DRAFT", "PENDING_SIGNATURE", "SENT", "SIGNED", "EXPIRED", "CANCELLED",
    name="generateddocumentstatus",
)
SIGNATURE_TYPE = sa.Enum("DRAWN", "TYPED", "UPLOADED", name="signaturetype")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    # Tabelas de cadastro (mantidas por outros módulos; criadas aqui para ambientes isolados)
    op.create_table(
        "departments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_departments_name", "departments", ["name"])

    op.create_table(
        "employees",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("cpf", sa.String(length=14), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("position", sa.String(length=100), nullable=True),
        sa.Column("department_id", sa.Uuid(), sa.ForeignKey("departments.id"), nullable=True),
        sa.Column("admission_date", sa.DateTime(), nullable=True),
        sa.Column("salary", sa.Numeric(10, 2), nullable=True),
        sa.Column("work_hours", sa.String(length=50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_employees_cpf", "employees", ["cpf"], unique=True)
    op.create_index("ix_employees_department_id", "employees", ["department_id"])

    op.create_table(
        "company_settings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("trade_name", sa.String(length=255), nullable=True),
        sa.Column("cnpj", sa.String(length=18), nullable=True),
        sa.Column("state_registration", sa.String(length=32), nullable=True),
        sa.Column("municipal_registration", sa.String(length=32), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("address_number", sa.String(length=16), nullable=True),
        sa.Column("address_complement", sa.String(length=64), nullable=True),
        sa.Column("neighborhood", sa.String(length=100), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=2), nullable=True),
        sa.Column("zip_code", sa.String(length=10), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("legal_rep_name", sa.String(length=200), nullable=True),
        sa.Column("legal_rep_cpf", sa.String(length=14), nullable=True),
        sa.Column("legal_rep_position", sa.String(length=100), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "document_templates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.Column("category", TEMPLATE_CATEGORY, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("requires_signature", sa.Boolean(), nullable=False),
        sa.Column("requires_witness", sa.Boolean(), nullable=False),
        sa.Column("witness_count", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_document_templates_name", "document_templates", ["name"])

    # Tabelas do fluxo de assinatura
    op.create_table(
        "generated_documents",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("template_id", sa.Uuid(), sa.ForeignKey("document_templates.id"), nullable=False),
        sa.Column("employee_id", sa.Uuid(), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("generated_content", sa.Text(), nullable=False),
        sa.Column("filled_data", sa.JSON(), nullable=True),
        sa.Column("status", DOCUMENT_STATUS, nullable=False),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.Column("sent_to", sa.String(length=320), nullable=True),
        sa.Column("sent_by", sa.Uuid(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("verification_code_secret", sa.String(length=64), nullable=True),
        sa.Column("verification_code_counter", sa.Integer(), nullable=True),
        sa.Column("verification_code_expires_at", sa.DateTime(), nullable=True),
        sa.Column("verification_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("verification_locked_until", sa.DateTime(), nullable=True),
        sa.Column("identity_verified_at", sa.DateTime(), nullable=True),
        sa.Column("signed_name", sa.String(length=200), nullable=True),
        sa.Column("signed_cpf", sa.String(length=14), nullable=True),
        sa.Column("signed_birth_date", sa.Date(), nullable=True),
        sa.Column("signature_image", sa.Text(), nullable=True),
        sa.Column("signature_image_sha256", sa.String(length=64), nullable=True),
        sa.Column("signature_type", SIGNATURE_TYPE, nullable=True),
        sa.Column("signed_at", sa.DateTime(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=512), nullable=True),
        sa.Column("certificate_hash", sa.String(length=64), nullable=True),
        sa.Column("certificate_url", sa.String(length=512), nullable=True),
        sa.Column("certificate_path", sa.String(length=512), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_generated_documents_token", "generated_documents", ["token"], unique=True)
    op.create_index("ix_generated_documents_status", "generated_documents", ["status"])
    op.create_index("ix_generated_documents_template_id", "generated_documents", ["template_id"])
    op.create_index("ix_generated_documents_employee_id", "generated_documents", ["employee_id"])
    op.create_index("ix_generated_documents_certificate_hash", "generated_documents", ["certificate_hash"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("document_id", sa.Uuid(), sa.ForeignKey("generated_documents.id"), nullable=True),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=True),
        sa.Column("actor_role", sa.String(), nullable=True),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("user_agent", sa.String(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_audit_logs_document_id", "audit_logs", ["document_id"])
    op.create_index("ix_audit_logs_event_type", "audit_logs", ["event_type"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("generated_documents")
    op.drop_table("document_templates")
    op.drop_table("company_settings")
    op.drop_table("employees")
    op.drop_table("departments")
    bind = op.get_bind()
    for enum in (SIGNATURE_TYPE, DOCUMENT_STATUS, TEMPLATE_CATEGORY):
        enum.drop(bind, checkfirst=True)
