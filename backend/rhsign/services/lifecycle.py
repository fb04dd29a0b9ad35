from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import update
from sqlmodel import Session

from rhsign.core.config import Settings, get_settings
from rhsign.core.logging_setup import logger
from rhsign.models.base import utcnow
from rhsign.models.employee import Employee
from rhsign.models.generated_document import (
    SIGNABLE_STATUSES,
    GeneratedDocument,
    GeneratedDocumentStatus,
    SignatureType,
)
from rhsign.services.audit import AuditService
from rhsign.services.certificate import CertificateGenerator, compute_digest, sha256_hex, signing_metadata
from rhsign.services.errors import (
    AlreadyFinalized,
    EmptySignature,
    ExpiredToken,
    IdentityNotVerified,
    IdentityRejected,
)
from rhsign.services.identity import (
    IdentityVerifier,
    has_signing_session,
    matches_employee,
    normalize_cpf,
    parse_birth_date,
)
from rhsign.services.signature_capture import SignatureCapture, parse_signature_type, to_data_url
from rhsign.services.storage import StorageBackend
from rhsign.services.tokens import AccessTokenController
from rhsign.utils.formatting import mask_cpf


class DocumentLifecycle:
    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        storage: StorageBackend | None = None,
        audit_service: AuditService | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.audit_service = audit_service or AuditService(session)
        self.tokens = AccessTokenController(session, self.audit_service)
        self.identity = IdentityVerifier(session, self.settings, self.audit_service)
        self.capture = SignatureCapture(self.settings)
        self.certificates = CertificateGenerator(session, self.settings, storage, self.audit_service)

    def sign(
        self,
        token: str,
        signed_name: str,
        signed_cpf: str,
        signed_birth_date: date | str,
        signature_type: SignatureType | str,
        signature_payload: str | bytes | None,
        session_token: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        now: datetime | None = None,
    ) -> GeneratedDocument:
        moment = now or utcnow()
        document = self.tokens.resolve(token, moment)
        if document.status not in SIGNABLE_STATUSES:
            raise AlreadyFinalized(document.status.value)

        if not has_signing_session(document, token, session_token, moment):
            logger.info(f"[SIGN] Assinatura sem verificação vigente, documento {document.id}")
            raise IdentityNotVerified(f"Identidade não verificada para documento {document.id}.")

        self.identity.check_lock(document, moment, ip_address, user_agent)
        employee = self.session.get(Employee, document.employee_id)
        birth_date = parse_birth_date(signed_birth_date)
        if not employee or not matches_employee(employee, signed_cpf, birth_date):
            logger.warning(f"[SIGN] Dados do signatário divergentes documento={document.id} cpf={mask_cpf(signed_cpf)}")
            self.audit_service.record_event(
                event_type="signature_rejected",
                document_id=document.id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "identity_mismatch"},
            )
            self.identity.register_failure(document, "signer_mismatch", moment, signed_cpf, ip_address, user_agent)
            raise IdentityRejected("Dados do signatário não conferem com o cadastro.")

        name = " ".join((signed_name or "").split())
        if not name:
            raise EmptySignature("Nome do signatário em branco.")

        kind = parse_signature_type(signature_type)
        if kind == SignatureType.TYPED and not signature_payload:
            signature_payload = name
        png = self.capture.normalize(kind, signature_payload)

        signed_at = moment.replace(microsecond=0)
        cpf_digits = normalize_cpf(signed_cpf)
        digest = compute_digest(
            document.generated_content,
            png,
            signing_metadata(document.id, name, cpf_digits, birth_date, signed_at),
        )

        result = self.session.execute(
            update(GeneratedDocument)
            .where(GeneratedDocument.id == document.id)
            .where(GeneratedDocument.status.in_(SIGNABLE_STATUSES))
            .where(GeneratedDocument.expires_at > moment)
            .values(
                status=GeneratedDocumentStatus.SIGNED,
                signed_name=name,
                signed_cpf=cpf_digits,
                signed_birth_date=birth_date,
                signature_image=to_data_url(png),
                signature_image_sha256=sha256_hex(png),
                signature_type=kind,
                signed_at=signed_at,
                ip_address=ip_address,
                user_agent=(user_agent or "")[:512] or None,
                certificate_hash=digest,
                updated_at=moment,
            )
        )
        self.session.commit()
        self.session.refresh(document)

        if result.rowcount != 1:
            if self.tokens.expire_if_overdue(document, moment):
                raise ExpiredToken(f"Documento {document.id} expirou durante a assinatura.")
            logger.info(f"[SIGN] Assinatura concorrente descartada, documento {document.id} ({document.status.value})")
            raise AlreadyFinalized(document.status.value)

        logger.info(f"[SIGN] Documento {document.id} assinado ({document.signature_type.value})")
        self.audit_service.record_event(
            event_type="document_signed",
            document_id=document.id,
            ip_address=ip_address,
            user_agent=user_agent,
            details={"certificate_hash": digest, "signature_type": document.signature_type.value},
        )
        return self.certificates.ensure_artifact(document)
