from __future__ import annotations

import smtplib
from dataclasses import dataclass
from datetime import datetime
from email.message import EmailMessage
from typing import Optional

from rhsign.core.config import Settings
from rhsign.core.logging_setup import logger
from rhsign.models.employee import Employee
from rhsign.models.generated_document import GeneratedDocument
from rhsign.services.audit import AuditService
from rhsign.utils.formatting import format_date


@dataclass
class EmailConfig:
    host: str
    port: int
    username: str | None
    password: str | None
    sender: str
    starttls: bool


class NotificationService:
    """Entrega do link de assinatura e do código de verificação por e-mail."""

    def __init__(
        self,
        audit_service: Optional[AuditService] = None,
        email_config: Optional[EmailConfig] = None,
    ) -> None:
        self.audit_service = audit_service
        self.email_config = email_config

    @classmethod
    def from_settings(cls, settings: Settings, audit_service: Optional[AuditService] = None) -> "NotificationService":
        email_config = None
        if settings.smtp_host:
            email_config = EmailConfig(
                host=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username,
                password=settings.smtp_password,
                sender=settings.smtp_sender or settings.smtp_username or "no-reply@rhsign.local",
                starttls=bool(settings.smtp_starttls),
            )
        return cls(audit_service=audit_service, email_config=email_config)

    def _record_event(self, *, event_type: str, document: GeneratedDocument, extra: dict | None = None) -> None:
        if not self.audit_service:
            return
        details: dict[str, object | None] = {"channel": "email"}
        if extra:
            details.update(extra)
        self.audit_service.record_event(
            event_type=event_type,
            document_id=document.id,
            details=details,
        )

    def send_signing_invitation(
        self,
        *,
        document: GeneratedDocument,
        employee: Employee,
        signing_url: str,
        code: str | None,
        code_expires_at: datetime | None = None,
    ) -> bool:
        if not self.email_config:
            logger.info(f"[NOTIFY] SMTP não configurado; envio do documento {document.id} ignorado")
            self._record_event(event_type="notification_skipped", document=document, extra={"reason": "smtp_not_configured"})
            return False
        if not employee.email:
            logger.info(f"[NOTIFY] Funcionário sem e-mail; documento {document.id}")
            self._record_event(event_type="notification_skipped", document=document, extra={"reason": "missing_email"})
            return False

        lines = [
            f"Olá, {employee.name}.",
            "",
            "Um documento foi disponibilizado para sua assinatura eletrônica.",
            f"Acesse: {signing_url}",
        ]
        if code:
            lines.append(f"Código de verificação: {code}")
            if code_expires_at:
                lines.append(f"O código é válido até {format_date(code_expires_at)} {code_expires_at:%H:%M} (UTC).")
        lines.append(f"O link expira em {format_date(document.expires_at)}.")
        lines.extend(["", "Para confirmar sua identidade serão solicitados CPF e data de nascimento."])

        message = EmailMessage()
        message["Subject"] = "Documento disponível para assinatura"
        message["From"] = self.email_config.sender
        message["To"] = employee.email
        message.set_content("\n".join(lines), subtype="plain", charset="utf-8")

        try:
            with smtplib.SMTP(self.email_config.host, self.email_config.port, timeout=30) as smtp:
                if self.email_config.starttls:
                    smtp.starttls()
                if self.email_config.username and self.email_config.password:
                    smtp.login(self.email_config.username, self.email_config.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"[NOTIFY] Falha ao enviar e-mail do documento {document.id}: {exc}")
            self._record_event(event_type="notification_error", document=document, extra={"reason": str(exc)})
            return False

        logger.info(f"[NOTIFY] Convite de assinatura enviado para documento {document.id}")
        self._record_event(event_type="notification_sent", document=document)
        return True
