from uuid import UUID

from sqlmodel import Session, select

from rhsign.models.audit import AuditLog


class AuditService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def record_event(
        self,
        event_type: str,
        actor_id: UUID | None = None,
        actor_role: str | None = None,
        document_id: UUID | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        details: dict | None = None,
    ) -> None:
        log = AuditLog(
            document_id=document_id,
            event_type=event_type,
            actor_id=actor_id,
            actor_role=actor_role,
            ip_address=ip_address,
            user_agent=user_agent,
            details=details or {},
        )
        self.session.add(log)
        self.session.commit()

    def list_events(self, document_id: UUID, event_type: str | None = None) -> list[AuditLog]:
        query = select(AuditLog).where(AuditLog.document_id == document_id)
        if event_type:
            query = query.where(AuditLog.event_type == event_type)
        return list(self.session.exec(query.order_by(AuditLog.created_at)).all())
