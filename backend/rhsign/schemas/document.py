from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from rhsign.models.generated_document import GeneratedDocumentStatus, SignatureType
from rhsign.schemas.common import IDModel, Timestamped


# -------------------------------------------------------------------------
# Modelos de documento / variáveis
# -------------------------------------------------------------------------

class VariableInfo(BaseModel):
    name: str
    placeholder: str
    alias: str | None = None
    description: str


class VariableCatalog(BaseModel):
    employee: list[VariableInfo]
    company: list[VariableInfo]
    dates: list[VariableInfo]
    other: list[VariableInfo]


class PreviewRequest(BaseModel):
    employee_id: UUID


class PreviewResponse(BaseModel):
    content: str


# -------------------------------------------------------------------------
# Documentos gerados
# -------------------------------------------------------------------------

class GeneratedDocumentCreate(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: UUID
    employee_id: UUID
    expiration_days: int = Field(default=7)


class GeneratedDocumentRead(IDModel, Timestamped):
    template_id: UUID
    employee_id: UUID
    created_by: UUID | None = None
    generated_content: str
    filled_data: dict | None = None
    status: GeneratedDocumentStatus
    expires_at: datetime
    sent_at: datetime | None = None
    sent_to: str | None = None
    sent_by: UUID | None = None
    cancelled_at: datetime | None = None
    signed_name: str | None = None
    signature_type: SignatureType | None = None
    signed_at: datetime | None = None
    certificate_hash: str | None = None
    certificate_url: str | None = None


class SendResponse(BaseModel):
    document: GeneratedDocumentRead
    signing_url: str
    notified: bool
    verification_code: str | None = None


class SweepResponse(BaseModel):
    expired: int


class CertificateVerification(BaseModel):
    document_id: UUID
    certificate_hash: str | None
    recomputed_hash: str
    valid: bool
