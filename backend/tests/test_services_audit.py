from datetime import datetime, timedelta, timezone
from uuid import uuid4

from sqlmodel import Session, select

from rhsign.models.audit import AuditLog
from rhsign.models.base import utcnow
from rhsign.services.audit import AuditService


def test_audit_service_records_events(db_session: Session, sent_document) -> None:
    service = AuditService(db_session)
    document, _ = sent_document
    operator_id = uuid4()

    service.record_event(
        event_type="certificate_downloaded",
        actor_id=operator_id,
        actor_role="operator",
        document_id=document.id,
        ip_address="127.0.0.1",
        user_agent="pytest",
        details={"source": "painel"},
    )

    stored = db_session.exec(select(AuditLog).where(AuditLog.event_type == "certificate_downloaded")).one()
    assert stored.document_id == document.id
    assert stored.actor_id == operator_id
    assert stored.details["source"] == "painel"


def test_audit_service_lists_events_per_document(db_session: Session, generator, hr_context: dict) -> None:
    service = AuditService(db_session)
    first = generator.generate(hr_context["template"].id, hr_context["employee"].id, 7)
    second = generator.generate(hr_context["template"].id, hr_context["employee"].id, 7)

    service.record_event("document_viewed", document_id=first.id)

    events = service.list_events(first.id)
    assert [event.event_type for event in events] == ["document_generated", "document_viewed"]
    assert service.list_events(first.id, "document_viewed")[0].details == {}
    assert [event.event_type for event in service.list_events(second.id)] == ["document_generated"]


def test_timestamps_are_naive_utc(db_session: Session, sent_document) -> None:
    document, _ = sent_document
    reference = datetime.now(timezone.utc).replace(tzinfo=None)
    moment = utcnow()

    assert moment.tzinfo is None
    assert abs(moment - reference) < timedelta(seconds=5)
    event = AuditService(db_session).list_events(document.id)[0]
    assert event.created_at.tzinfo is None
    assert abs(event.created_at - reference) < timedelta(minutes=1)
