from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from sqlalchemy import update
from sqlmodel import Session, select

from rhsign.core.config import Settings, get_settings
from rhsign.core.logging_setup import logger
from rhsign.models.base import utcnow
from rhsign.models.employee import Employee
from rhsign.models.generated_document import GeneratedDocument, GeneratedDocumentStatus
from rhsign.models.template import DocumentTemplate
from rhsign.services.audit import AuditService
from rhsign.services.errors import (
    DocumentNotFound,
    EmployeeNotFound,
    InvalidExpiration,
    InvalidStateTransition,
    TemplateNotFound,
)
from rhsign.services.notification import NotificationService
from rhsign.services.renderer import render
from rhsign.services.tokens import AccessTokenController
from rhsign.services.variables import VariableResolver
from rhsign.utils.formatting import format_cpf
from rhsign.utils.security import generate_code_secret, issue_one_time_code

SENDABLE_STATUSES = (GeneratedDocumentStatus.DRAFT, GeneratedDocumentStatus.PENDING_SIGNATURE)
CANCELLABLE_STATUSES = (
    GeneratedDocumentStatus.DRAFT,
    GeneratedDocumentStatus.PENDING_SIGNATURE,
    GeneratedDocumentStatus.SENT,
)


@dataclass
class SendResult:
    document: GeneratedDocument
    signing_url: str
    notified: bool
    # Só é devolvido ao operador quando a entrega automática não aconteceu.
    verification_code: str | None = None


class DocumentGenerator:
    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        notifier: NotificationService | None = None,
        audit_service: AuditService | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.audit_service = audit_service or AuditService(session)
        self.notifier = notifier or NotificationService.from_settings(self.settings, self.audit_service)
        self.resolver = VariableResolver(session)
        self.tokens = AccessTokenController(session, self.audit_service)

    def _get_template(self, template_id: UUID) -> DocumentTemplate:
        template = self.session.get(DocumentTemplate, template_id)
        if not template or not template.is_active:
            raise TemplateNotFound(f"Modelo {template_id} não encontrado ou inativo.")
        return template

    def _get_employee(self, employee_id: UUID) -> Employee:
        employee = self.session.get(Employee, employee_id)
        if not employee:
            raise EmployeeNotFound(f"Funcionário {employee_id} não encontrado.")
        return employee

    def preview(self, template_id: UUID, employee_id: UUID) -> str:
        template = self._get_template(template_id)
        self._get_employee(employee_id)
        return render(template.content, self.resolver.resolve(employee_id))

    def generate(
        self,
        template_id: UUID,
        employee_id: UUID,
        expiration_days: int | None = None,
        created_by: UUID | None = None,
    ) -> GeneratedDocument:
        days = self.settings.document_default_expiration_days if expiration_days is None else expiration_days
        if isinstance(days, bool) or not isinstance(days, int) or not 1 <= days <= self.settings.document_max_expiration_days:
            raise InvalidExpiration(
                f"O prazo deve estar entre 1 e {self.settings.document_max_expiration_days} dias."
            )

        template = self._get_template(template_id)
        employee = self._get_employee(employee_id)

        document_id = uuid4()
        document_number = document_id.hex[:8].upper()
        variables = self.resolver.resolve(employee_id, document_number=document_number, now=datetime.now())
        content = render(template.content, variables)

        now = utcnow()
        document = GeneratedDocument(
            id=document_id,
            template_id=template.id,
            employee_id=employee.id,
            created_by=created_by,
            generated_content=content,
            filled_data={
                "employee_name": employee.name,
                "employee_cpf": format_cpf(employee.cpf),
                "template_name": template.name,
                "document_number": document_number,
                "generated_at": now.isoformat(),
            },
            status=GeneratedDocumentStatus.DRAFT,
            token=self.tokens.mint(),
            expires_at=now + timedelta(days=days),
            created_at=now,
        )
        self.session.add(document)
        self.session.commit()
        self.session.refresh(document)

        logger.info(f"[GENERATE] Documento {document.id} gerado a partir do modelo {template.id}")
        self.audit_service.record_event(
            event_type="document_generated",
            actor_id=created_by,
            actor_role="operator",
            document_id=document.id,
            details={"template_id": str(template.id), "employee_id": str(employee.id), "expiration_days": days},
        )
        return document

    def get(self, document_id: UUID) -> GeneratedDocument:
        document = self.session.get(GeneratedDocument, document_id)
        if not document:
            raise DocumentNotFound(f"Documento {document_id} não encontrado.")
        return document

    def list(
        self,
        status: GeneratedDocumentStatus | None = None,
        employee_id: UUID | None = None,
    ) -> list[GeneratedDocument]:
        query = select(GeneratedDocument)
        if status:
            query = query.where(GeneratedDocument.status == status)
        if employee_id:
            query = query.where(GeneratedDocument.employee_id == employee_id)
        return list(self.session.exec(query.order_by(GeneratedDocument.created_at.desc())).all())

    def _transition(
        self,
        document: GeneratedDocument,
        allowed: tuple[GeneratedDocumentStatus, ...],
        values: dict,
    ) -> None:
        """Atualização condicionada ao status atual; falha se outro fluxo mudou o documento."""
        result = self.session.execute(
            update(GeneratedDocument)
            .where(GeneratedDocument.id == document.id)
            .where(GeneratedDocument.status.in_(allowed))
            .values(**values)
        )
        self.session.commit()
        self.session.refresh(document)
        if result.rowcount != 1:
            raise InvalidStateTransition(
                f"Documento {document.id} com status {document.status.value} não permite esta operação."
            )

    def _ensure_not_expired(self, document: GeneratedDocument) -> None:
        if self.tokens.expire_if_overdue(document):
            raise InvalidStateTransition(f"Documento {document.id} expirado.")

    def mark_pending(self, document_id: UUID) -> GeneratedDocument:
        document = self.get(document_id)
        self._ensure_not_expired(document)
        self._transition(
            document,
            (GeneratedDocumentStatus.DRAFT,),
            {"status": GeneratedDocumentStatus.PENDING_SIGNATURE, "updated_at": utcnow()},
        )
        logger.info(f"[GENERATE] Documento {document.id} aguardando envio")
        return document

    def send(self, document_id: UUID, sent_by: UUID | None = None) -> SendResult:
        document = self.get(document_id)
        self._ensure_not_expired(document)
        if document.status not in SENDABLE_STATUSES:
            raise InvalidStateTransition(
                f"Documento {document.id} com status {document.status.value} não pode ser enviado."
            )
        employee = self._get_employee(document.employee_id)

        now = utcnow()
        secret = generate_code_secret()
        code_expires_at = now + timedelta(hours=self.settings.verification_code_ttl_hours)
        self._transition(
            document,
            SENDABLE_STATUSES,
            {
                "status": GeneratedDocumentStatus.SENT,
                "sent_at": now,
                "sent_to": employee.email,
                "sent_by": sent_by,
                "verification_code_secret": secret,
                "verification_code_counter": 0,
                "verification_code_expires_at": code_expires_at,
                "verification_attempts": 0,
                "verification_locked_until": None,
                "updated_at": now,
            },
        )
        code = issue_one_time_code(secret, 0)
        signing_url = self.settings.signing_url(document.token)

        logger.info(f"[SEND] Documento {document.id} enviado para assinatura")
        self.audit_service.record_event(
            event_type="document_sent",
            actor_id=sent_by,
            actor_role="operator",
            document_id=document.id,
            details={"sent_to": employee.email, "code_expires_at": code_expires_at.isoformat()},
        )
        notified = self.notifier.send_signing_invitation(
            document=document,
            employee=employee,
            signing_url=signing_url,
            code=code,
            code_expires_at=code_expires_at,
        )
        return SendResult(
            document=document,
            signing_url=signing_url,
            notified=notified,
            verification_code=None if notified else code,
        )

    def resend_code(self, document_id: UUID, actor_id: UUID | None = None) -> SendResult:
        """Emite um novo código (contador HOTP + 1) para um documento já enviado."""
        document = self.get(document_id)
        self._ensure_not_expired(document)
        if document.status != GeneratedDocumentStatus.SENT or not document.verification_code_secret:
            raise InvalidStateTransition(f"Documento {document.id} ainda não foi enviado.")
        employee = self._get_employee(document.employee_id)

        now = utcnow()
        counter = (document.verification_code_counter or 0) + 1
        code_expires_at = now + timedelta(hours=self.settings.verification_code_ttl_hours)
        self._transition(
            document,
            (GeneratedDocumentStatus.SENT,),
            {
                "verification_code_counter": counter,
                "verification_code_expires_at": code_expires_at,
                "updated_at": now,
            },
        )
        code = issue_one_time_code(document.verification_code_secret, counter)
        signing_url = self.settings.signing_url(document.token)

        logger.info(f"[SEND] Novo código emitido para documento {document.id}")
        self.audit_service.record_event(
            event_type="verification_code_reissued",
            actor_id=actor_id,
            actor_role="operator",
            document_id=document.id,
            details={"code_expires_at": code_expires_at.isoformat()},
        )
        notified = self.notifier.send_signing_invitation(
            document=document,
            employee=employee,
            signing_url=signing_url,
            code=code,
            code_expires_at=code_expires_at,
        )
        return SendResult(
            document=document,
            signing_url=signing_url,
            notified=notified,
            verification_code=None if notified else code,
        )

    def cancel(self, document_id: UUID, actor_id: UUID | None = None) -> GeneratedDocument:
        document = self.get(document_id)
        self._ensure_not_expired(document)
        now = utcnow()
        self._transition(
            document,
            CANCELLABLE_STATUSES,
            {"status": GeneratedDocumentStatus.CANCELLED, "cancelled_at": now, "updated_at": now},
        )
        logger.info(f"[CANCEL] Documento {document.id} cancelado")
        self.audit_service.record_event(
            event_type="document_cancelled",
            actor_id=actor_id,
            actor_role="operator",
            document_id=document.id,
        )
        return document
