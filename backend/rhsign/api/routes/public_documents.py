from __future__ import annotations

import hmac
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import Response
from sqlmodel import Session

from rhsign.api.deps import client_info, get_db, to_http_error
from rhsign.core.logging_setup import logger
from rhsign.models.employee import Employee
from rhsign.models.generated_document import GeneratedDocument, GeneratedDocumentStatus
from rhsign.models.template import DocumentTemplate
from rhsign.schemas.public import (
    PublicDocumentInfo,
    PublicDocumentRead,
    PublicEmployeeInfo,
    PublicModelInfo,
    SignPayload,
    SignResponse,
    VerifyIdentityPayload,
    VerifyIdentityResponse,
)
from rhsign.services.certificate import CertificateGenerator
from rhsign.services.errors import IdentityRejected, SigningError
from rhsign.services.identity import IdentityVerifier, has_signing_session
from rhsign.services.lifecycle import DocumentLifecycle
from rhsign.services.tokens import AccessTokenController

router = APIRouter(prefix="/public", tags=["public-documents"])

SigningSession = Annotated[str | None, Header(alias="X-Signing-Session")]


@router.get("/documents/{token}", response_model=PublicDocumentRead)
def read_document(
    token: str,
    session: Annotated[Session, Depends(get_db)],
    signing_session: SigningSession = None,
) -> PublicDocumentRead:
    try:
        document = AccessTokenController(session).resolve(token)
    except SigningError as exc:
        raise to_http_error(exc) from exc

    employee = session.get(Employee, document.employee_id)
    template = session.get(DocumentTemplate, document.template_id)
    verified = has_signing_session(document, token, signing_session)
    return PublicDocumentRead(
        document=PublicDocumentInfo(
            id=document.id,
            status=document.status,
            expires_at=document.expires_at,
            identity_verified=verified,
            generated_content=document.generated_content if verified else None,
        ),
        employee=PublicEmployeeInfo(name=employee.name if employee else ""),
        model=PublicModelInfo(
            name=template.name if template else "",
            category=template.category.value if template else "",
            description=template.description if template else None,
        ),
    )


@router.post("/documents/{token}/verify-identity", response_model=VerifyIdentityResponse)
def verify_identity(
    token: str,
    payload: VerifyIdentityPayload,
    request: Request,
    session: Annotated[Session, Depends(get_db)],
) -> VerifyIdentityResponse:
    ip_address, user_agent = client_info(request)
    try:
        verified = IdentityVerifier(session).verify(
            token,
            payload.cpf,
            payload.birth_date,
            code=payload.code,
            ip_address=ip_address,
            user_agent=user_agent,
        )
    except IdentityRejected as exc:
        return VerifyIdentityResponse(success=False, error=exc.public_detail)
    except SigningError as exc:
        raise to_http_error(exc) from exc
    return VerifyIdentityResponse(
        success=True,
        valid_until=verified.valid_until,
        session_token=verified.session_token,
    )


@router.post("/documents/{token}/sign", response_model=SignResponse)
def sign_document(
    token: str,
    payload: SignPayload,
    request: Request,
    session: Annotated[Session, Depends(get_db)],
    signing_session: SigningSession = None,
) -> SignResponse:
    ip_address, user_agent = client_info(request)
    try:
        document = DocumentLifecycle(session).sign(
            token,
            signed_name=payload.signed_name,
            signed_cpf=payload.signed_cpf,
            signed_birth_date=payload.signed_birth_date,
            signature_type=payload.signature_type,
            signature_payload=payload.signature_data,
            session_token=signing_session,
            ip_address=ip_address,
            user_agent=user_agent,
        )
    except SigningError as exc:
        raise to_http_error(exc) from exc
    return SignResponse(
        certificate_url=document.certificate_url,
        certificate_hash=document.certificate_hash,
        signed_at=document.signed_at,
    )


@router.get("/certificates/{document_id}")
def download_certificate(
    document_id: UUID,
    session: Annotated[Session, Depends(get_db)],
    hash_value: Annotated[str, Query(alias="hash", min_length=64, max_length=64)],
) -> Response:
    document = session.get(GeneratedDocument, document_id)
    if (
        not document
        or document.status != GeneratedDocumentStatus.SIGNED
        or not document.certificate_hash
        or not hmac.compare_digest(document.certificate_hash, hash_value.lower())
    ):
        logger.info(f"[CERT] Certificado solicitado com referência inválida: {document_id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificado não encontrado.")

    pdf = CertificateGenerator(session).load_pdf(document)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="certificado-{document.id}.pdf"'},
    )
