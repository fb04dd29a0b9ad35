from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from rhsign.models.generated_document import GeneratedDocumentStatus, SignatureType


class PublicDocumentInfo(BaseModel):
    id: UUID
    status: GeneratedDocumentStatus
    expires_at: datetime
    identity_verified: bool
    generated_content: str | None = None


class PublicEmployeeInfo(BaseModel):
    name: str


class PublicModelInfo(BaseModel):
    name: str
    category: str
    description: str | None = None


class PublicDocumentRead(BaseModel):
    document: PublicDocumentInfo
    employee: PublicEmployeeInfo
    model: PublicModelInfo


class VerifyIdentityPayload(BaseModel):
    cpf: str
    birth_date: str
    code: str | None = None


class VerifyIdentityResponse(BaseModel):
    success: bool
    error: str | None = None
    valid_until: datetime | None = None
    session_token: str | None = Field(default=None, description="enviar no cabeçalho X-Signing-Session")


class SignPayload(BaseModel):
    signed_name: str
    signed_cpf: str
    signed_birth_date: date | str
    signature_type: SignatureType
    signature_data: str | None = Field(default=None, description="data URL/base64 da imagem ou o nome digitado")


class SignResponse(BaseModel):
    certificate_url: str
    certificate_hash: str
    signed_at: datetime
