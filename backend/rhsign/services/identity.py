import hmac
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from uuid import UUID

from sqlalchemy import update
from sqlmodel import Session

from rhsign.core.config import Settings, get_settings
from rhsign.core.logging_setup import logger
from rhsign.models.base import utcnow
from rhsign.models.employee import Employee
from rhsign.models.generated_document import GeneratedDocument
from rhsign.services.audit import AuditService
from rhsign.services.errors import IdentityRejected, RateLimited
from rhsign.services.tokens import AccessTokenController
from rhsign.utils.formatting import mask_cpf, only_digits
from rhsign.utils.security import (
    create_signing_session_token,
    decode_signing_session_token,
    verify_one_time_code,
)

_BIRTH_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y")


def normalize_cpf(value: str | None) -> str | None:
    digits = only_digits(value)
    if len(digits) != 11:
        return None
    return digits


def parse_birth_date(value: date | str | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    for fmt in _BIRTH_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def matches_employee(employee: Employee, cpf: str | None, birth_date: date | str | None) -> bool:
    """Confere CPF (somente dígitos) e data de nascimento com o cadastro."""
    supplied_cpf = normalize_cpf(cpf)
    expected_cpf = normalize_cpf(employee.cpf)
    if not supplied_cpf or not expected_cpf:
        return False
    if not hmac.compare_digest(supplied_cpf, expected_cpf):
        return False
    supplied_birth = parse_birth_date(birth_date)
    return supplied_birth is not None and employee.birth_date is not None and supplied_birth == employee.birth_date


def has_signing_session(
    document: GeneratedDocument,
    link_token: str,
    credential: str | None,
    now: datetime | None = None,
) -> bool:
    """True quando o cliente apresenta uma credencial de verificação válida para este documento."""
    if not credential:
        return False
    try:
        decode_signing_session_token(credential, document.id, link_token, now)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class Verified:
    document_id: UUID
    verified_at: datetime
    valid_until: datetime
    session_token: str


class IdentityVerifier:
    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        audit_service: AuditService | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.audit_service = audit_service or AuditService(session)
        self.tokens = AccessTokenController(session, self.audit_service)

    def verify(
        self,
        token: str,
        cpf: str | None,
        birth_date: date | str | None,
        code: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        now: datetime | None = None,
    ) -> Verified:
        moment = now or utcnow()
        document = self.tokens.resolve(token, moment)

        self.check_lock(document, moment, ip_address, user_agent)

        employee = self.session.get(Employee, document.employee_id)
        reason = self._rejection_reason(document, employee, cpf, birth_date, code, moment)
        if reason:
            self.register_failure(document, reason, moment, cpf, ip_address, user_agent)
            raise IdentityRejected(f"Verificação recusada: {reason}")

        self.session.execute(
            update(GeneratedDocument)
            .where(GeneratedDocument.id == document.id)
            .values(
                verification_attempts=0,
                verification_locked_until=None,
                identity_verified_at=moment,
                updated_at=moment,
            )
        )
        self.session.commit()
        self.session.refresh(document)

        logger.info(f"[IDENTITY] Identidade confirmada para documento {document.id}")
        self.audit_service.record_event(
            event_type="identity_verified",
            document_id=document.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        valid_until = moment + timedelta(minutes=self.settings.identity_session_minutes)
        return Verified(
            document_id=document.id,
            verified_at=moment,
            valid_until=valid_until,
            session_token=create_signing_session_token(document.id, document.token, valid_until),
        )

    def check_lock(
        self,
        document: GeneratedDocument,
        now: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        """Levanta ``RateLimited`` enquanto o bloqueio vigora; libera bloqueios vencidos."""
        if not document.verification_locked_until:
            return
        if now < document.verification_locked_until:
            logger.warning(f"[IDENTITY] Tentativa bloqueada para documento {document.id}")
            self.audit_service.record_event(
                event_type="identity_rate_limited",
                document_id=document.id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"locked_until": document.verification_locked_until.isoformat()},
            )
            raise RateLimited(document.verification_locked_until)
        self._release_lock(document, now)

    def _rejection_reason(
        self,
        document: GeneratedDocument,
        employee: Employee | None,
        cpf: str | None,
        birth_date: date | str | None,
        code: str | None,
        now: datetime,
    ) -> str | None:
        if not employee or not matches_employee(employee, cpf, birth_date):
            return "identity_mismatch"
        if document.verification_code_secret:
            if not code:
                return "code_missing"
            if document.verification_code_expires_at and now > document.verification_code_expires_at:
                return "code_expired"
            if not verify_one_time_code(
                document.verification_code_secret,
                document.verification_code_counter or 0,
                code,
            ):
                return "code_invalid"
        return None

    def _release_lock(self, document: GeneratedDocument, now: datetime) -> None:
        self.session.execute(
            update(GeneratedDocument)
            .where(GeneratedDocument.id == document.id)
            .where(GeneratedDocument.verification_locked_until == document.verification_locked_until)
            .values(verification_attempts=0, verification_locked_until=None, updated_at=now)
        )
        self.session.commit()
        self.session.refresh(document)

    def register_failure(
        self,
        document: GeneratedDocument,
        reason: str,
        now: datetime,
        cpf: str | None,
        ip_address: str | None,
        user_agent: str | None,
    ) -> None:
        self.session.execute(
            update(GeneratedDocument)
            .where(GeneratedDocument.id == document.id)
            .values(verification_attempts=GeneratedDocument.verification_attempts + 1, updated_at=now)
        )
        self.session.commit()
        self.session.refresh(document)
        attempts = document.verification_attempts

        logger.warning(
            f"[IDENTITY] Falha de verificação ({reason}) documento={document.id} "
            f"cpf={mask_cpf(cpf)} tentativas={attempts}"
        )
        self.audit_service.record_event(
            event_type="identity_verification_failed",
            document_id=document.id,
            ip_address=ip_address,
            user_agent=user_agent,
            details={"reason": reason, "attempts": attempts},
        )

        if attempts < self.settings.identity_max_attempts:
            return
        locked_until = now + timedelta(minutes=self.settings.identity_lockout_minutes)
        result = self.session.execute(
            update(GeneratedDocument)
            .where(GeneratedDocument.id == document.id)
            .where(GeneratedDocument.verification_locked_until.is_(None))
            .values(verification_locked_until=locked_until)
        )
        self.session.commit()
        self.session.refresh(document)
        if result.rowcount == 1:
            logger.warning(f"[IDENTITY] Documento {document.id} bloqueado até {locked_until.isoformat()}")
            self.audit_service.record_event(
                event_type="identity_locked",
                document_id=document.id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"locked_until": locked_until.isoformat(), "attempts": attempts},
            )
