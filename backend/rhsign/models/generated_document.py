from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Text
from sqlmodel import Field

from rhsign.models.base import TimestampedModel, UUIDModel


class GeneratedDocumentStatus(str, Enum):
    DRAFT = "draft"
    PENDING_SIGNATURE = "pending_signature"
    SENT = "sent"
    SIGNED = "signed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class SignatureType(str, Enum):
    DRAWN = "drawn"
    TYPED = "typed"
    UPLOADED = "uploaded"


SIGNABLE_STATUSES = (GeneratedDocumentStatus.PENDING_SIGNATURE, GeneratedDocumentStatus.SENT)
TERMINAL_STATUSES = (
    GeneratedDocumentStatus.SIGNED,
    GeneratedDocumentStatus.EXPIRED,
    GeneratedDocumentStatus.CANCELLED,
)


class GeneratedDocument(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "generated_documents"

    template_id: UUID = Field(foreign_key="document_templates.id", index=True)
    employee_id: UUID = Field(foreign_key="employees.id", index=True)
    created_by: UUID | None = Field(default=None)

    generated_content: str = Field(sa_type=Text)
    filled_data: dict | None = Field(default_factory=dict, sa_type=JSON)

    status: GeneratedDocumentStatus = Field(default=GeneratedDocumentStatus.DRAFT, index=True)
    sent_at: datetime | None = Field(default=None)
    sent_to: str | None = Field(default=None, max_length=320)
    sent_by: UUID | None = Field(default=None)
    cancelled_at: datetime | None = Field(default=None)

    token: str = Field(max_length=64, unique=True, index=True)
    expires_at: datetime

    verification_code_secret: str | None = Field(default=None, max_length=64)
    verification_code_counter: int | None = Field(default=None)
    verification_code_expires_at: datetime | None = Field(default=None)
    verification_attempts: int = Field(default=0)
    verification_locked_until: datetime | None = Field(default=None)
    identity_verified_at: datetime | None = Field(default=None)

    signed_name: str | None = Field(default=None, max_length=200)
    signed_cpf: str | None = Field(default=None, max_length=14)
    signed_birth_date: date | None = Field(default=None)
    signature_image: str | None = Field(default=None, sa_type=Text)
    signature_image_sha256: str | None = Field(default=None, max_length=64)
    signature_type: SignatureType | None = Field(default=None)
    signed_at: datetime | None = Field(default=None)
    ip_address: str | None = Field(default=None, max_length=64)
    user_agent: str | None = Field(default=None, max_length=512)
    certificate_hash: str | None = Field(default=None, max_length=64, index=True)
    certificate_url: str | None = Field(default=None, max_length=512)
    certificate_path: str | None = Field(default=None, max_length=512)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_signable(self) -> bool:
        return self.status in SIGNABLE_STATUSES
