from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from rhsign.api.deps import get_current_operator, get_db, to_http_error
from rhsign.core.logging_setup import logger
from rhsign.models.generated_document import GeneratedDocumentStatus
from rhsign.schemas.document import (
    CertificateVerification,
    GeneratedDocumentCreate,
    GeneratedDocumentRead,
    SendResponse,
    SweepResponse,
)
from rhsign.services.certificate import CertificateGenerator
from rhsign.services.errors import SigningError
from rhsign.services.generator import DocumentGenerator, SendResult
from rhsign.services.tokens import AccessTokenController

router = APIRouter(prefix="/generated-documents", tags=["generated-documents"])


def _send_response(result: SendResult) -> SendResponse:
    return SendResponse(
        document=GeneratedDocumentRead.model_validate(result.document),
        signing_url=result.signing_url,
        notified=result.notified,
        verification_code=result.verification_code,
    )


@router.post("", response_model=GeneratedDocumentRead, status_code=201)
def generate_document(
    payload: GeneratedDocumentCreate,
    session: Annotated[Session, Depends(get_db)],
    operator_id: Annotated[UUID, Depends(get_current_operator)],
) -> GeneratedDocumentRead:
    try:
        document = DocumentGenerator(session).generate(
            payload.model_id,
            payload.employee_id,
            payload.expiration_days,
            created_by=operator_id,
        )
    except SigningError as exc:
        raise to_http_error(exc) from exc
    return GeneratedDocumentRead.model_validate(document)


@router.get("", response_model=list[GeneratedDocumentRead])
def list_documents(
    session: Annotated[Session, Depends(get_db)],
    _: Annotated[UUID, Depends(get_current_operator)],
    status_filter: Annotated[GeneratedDocumentStatus | None, Query(alias="status")] = None,
    employee_id: UUID | None = None,
) -> list[GeneratedDocumentRead]:
    documents = DocumentGenerator(session).list(status=status_filter, employee_id=employee_id)
    return [GeneratedDocumentRead.model_validate(document) for document in documents]


@router.post("/sweep-expired", response_model=SweepResponse)
def sweep_expired(
    session: Annotated[Session, Depends(get_db)],
    operator_id: Annotated[UUID, Depends(get_current_operator)],
) -> SweepResponse:
    expired = AccessTokenController(session).sweep_expired()
    logger.info(f"[SWEEP] Operador {operator_id} expirou {expired} documento(s)")
    return SweepResponse(expired=expired)


@router.get("/{document_id}", response_model=GeneratedDocumentRead)
def get_document(
    document_id: UUID,
    session: Annotated[Session, Depends(get_db)],
    _: Annotated[UUID, Depends(get_current_operator)],
) -> GeneratedDocumentRead:
    try:
        document = DocumentGenerator(session).get(document_id)
    except SigningError as exc:
        raise to_http_error(exc) from exc
    return GeneratedDocumentRead.model_validate(document)


@router.post("/{document_id}/mark-pending", response_model=GeneratedDocumentRead)
def mark_pending(
    document_id: UUID,
    session: Annotated[Session, Depends(get_db)],
    _: Annotated[UUID, Depends(get_current_operator)],
) -> GeneratedDocumentRead:
    try:
        document = DocumentGenerator(session).mark_pending(document_id)
    except SigningError as exc:
        raise to_http_error(exc) from exc
    return GeneratedDocumentRead.model_validate(document)


@router.post("/{document_id}/send", response_model=SendResponse)
def send_document(
    document_id: UUID,
    session: Annotated[Session, Depends(get_db)],
    operator_id: Annotated[UUID, Depends(get_current_operator)],
) -> SendResponse:
    try:
        result = DocumentGenerator(session).send(document_id, sent_by=operator_id)
    except SigningError as exc:
        raise to_http_error(exc) from exc
    return _send_response(result)


@router.post("/{document_id}/resend-code", response_model=SendResponse)
def resend_code(
    document_id: UUID,
    session: Annotated[Session, Depends(get_db)],
    operator_id: Annotated[UUID, Depends(get_current_operator)],
) -> SendResponse:
    try:
        result = DocumentGenerator(session).resend_code(document_id, actor_id=operator_id)
    except SigningError as exc:
        raise to_http_error(exc) from exc
    return _send_response(result)


@router.post("/{document_id}/cancel", response_model=GeneratedDocumentRead)
def cancel_document(
    document_id: UUID,
    session: Annotated[Session, Depends(get_db)],
    operator_id: Annotated[UUID, Depends(get_current_operator)],
) -> GeneratedDocumentRead:
    try:
        document = DocumentGenerator(session).cancel(document_id, actor_id=operator_id)
    except SigningError as exc:
        raise to_http_error(exc) from exc
    return GeneratedDocumentRead.model_validate(document)


@router.get("/{document_id}/certificate/verify", response_model=CertificateVerification)
def verify_certificate(
    document_id: UUID,
    session: Annotated[Session, Depends(get_db)],
    _: Annotated[UUID, Depends(get_current_operator)],
) -> CertificateVerification:
    try:
        document = DocumentGenerator(session).get(document_id)
        certificates = CertificateGenerator(session)
        recomputed = certificates.recompute(document)
        valid = certificates.verify(document)
    except SigningError as exc:
        raise to_http_error(exc) from exc
    return CertificateVerification(
        document_id=document.id,
        certificate_hash=document.certificate_hash,
        recomputed_hash=recomputed,
        valid=valid,
    )
