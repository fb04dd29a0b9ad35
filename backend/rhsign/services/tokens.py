import secrets
from datetime import datetime
from uuid import UUID

from sqlalchemy import update
from sqlmodel import Session, select

from rhsign.core.logging_setup import logger
from rhsign.models.base import utcnow
from rhsign.models.generated_document import GeneratedDocument, GeneratedDocumentStatus
from rhsign.services.audit import AuditService
from rhsign.services.errors import AlreadyFinalized, ExpiredToken, TokenNotFound

TOKEN_BYTES = 32

EXPIRABLE_STATUSES = (
    GeneratedDocumentStatus.DRAFT,
    GeneratedDocumentStatus.PENDING_SIGNATURE,
    GeneratedDocumentStatus.SENT,
)


def token_fingerprint(token: str | None) -> str:
    """Prefixo do token para logs."""
    return f"{(token or '')[:8]}..."


class AccessTokenController:
    def __init__(self, session: Session, audit_service: AuditService | None = None) -> None:
        self.session = session
        self.audit_service = audit_service or AuditService(session)

    @staticmethod
    def mint() -> str:
        return secrets.token_hex(TOKEN_BYTES)

    def _mark_expired(self, document_id: UUID, now: datetime) -> bool:
        """Transição condicional para ``expired``; retorna True se esta chamada a efetivou."""
        result = self.session.execute(
            update(GeneratedDocument)
            .where(GeneratedDocument.id == document_id)
            .where(GeneratedDocument.status.in_(EXPIRABLE_STATUSES))
            .where(GeneratedDocument.expires_at <= now)
            .values(status=GeneratedDocumentStatus.EXPIRED, updated_at=now)
        )
        self.session.commit()
        if result.rowcount != 1:
            return False
        logger.info(f"[TOKEN] Documento {document_id} expirado")
        self.audit_service.record_event(
            event_type="document_expired",
            document_id=document_id,
            details={"expired_at": now.isoformat()},
        )
        return True

    def expire_if_overdue(self, document: GeneratedDocument, now: datetime | None = None) -> bool:
        """Expira o documento se o prazo passou; retorna True quando o documento está expirado."""
        moment = now or utcnow()
        if document.status == GeneratedDocumentStatus.EXPIRED:
            return True
        if document.status not in EXPIRABLE_STATUSES or moment < document.expires_at:
            return False
        self._mark_expired(document.id, moment)
        self.session.refresh(document)
        return document.status == GeneratedDocumentStatus.EXPIRED

    def resolve(self, token: str, now: datetime | None = None) -> GeneratedDocument:
        value = (token or "").strip().lower()
        if len(value) != TOKEN_BYTES * 2:
            logger.info(f"[TOKEN] Token malformado {token_fingerprint(value)}")
            raise TokenNotFound("Token malformado.")

        document = self.session.exec(select(GeneratedDocument).where(GeneratedDocument.token == value)).first()
        if not document or document.status == GeneratedDocumentStatus.DRAFT:
            logger.info(f"[TOKEN] Token desconhecido {token_fingerprint(value)}")
            raise TokenNotFound("Token não encontrado.")

        self.expire_if_overdue(document, now)

        if document.status == GeneratedDocumentStatus.EXPIRED:
            logger.info(f"[TOKEN] Acesso a documento expirado {document.id}")
            raise ExpiredToken(f"Documento {document.id} expirado.")
        if document.status in (GeneratedDocumentStatus.SIGNED, GeneratedDocumentStatus.CANCELLED):
            logger.info(f"[TOKEN] Acesso a documento finalizado {document.id} ({document.status.value})")
            raise AlreadyFinalized(document.status.value)
        return document

    def sweep_expired(self, now: datetime | None = None) -> int:
        moment = now or utcnow()
        candidates = self.session.exec(
            select(GeneratedDocument.id)
            .where(GeneratedDocument.status.in_(EXPIRABLE_STATUSES))
            .where(GeneratedDocument.expires_at <= moment)
        ).all()
        expired = sum(1 for document_id in candidates if self._mark_expired(document_id, moment))
        if expired:
            logger.info(f"[TOKEN] Varredura expirou {expired} documento(s)")
        return expired
