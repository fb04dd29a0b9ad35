from datetime import timedelta
from uuid import uuid4

import pytest
from sqlmodel import Session, select

from rhsign.models.generated_document import GeneratedDocument, GeneratedDocumentStatus
from rhsign.models.template import DocumentTemplate
from rhsign.services.audit import AuditService
from rhsign.services.errors import (
    EmployeeNotFound,
    InvalidExpiration,
    InvalidStateTransition,
    TemplateNotFound,
)
from rhsign.services.generator import DocumentGenerator
from rhsign.utils.security import verify_one_time_code

EXPECTED_CONTENT = "<p>Ana Silva - Acme Ltda</p><p>quatro mil e quinhentos reais e cinquenta centavos</p>"


def test_generate_creates_draft_with_rendered_content(generator: DocumentGenerator, hr_context: dict) -> None:
    document = generator.generate(hr_context["template"].id, hr_context["employee"].id, 7)

    assert document.status == GeneratedDocumentStatus.DRAFT
    assert document.generated_content == EXPECTED_CONTENT
    assert len(document.token) == 64
    assert document.expires_at - document.created_at == timedelta(days=7)
    assert document.filled_data["employee_name"] == "Ana Silva"
    assert document.filled_data["document_number"] == document.id.hex[:8].upper()


def test_generate_uses_default_expiration(generator: DocumentGenerator, hr_context: dict) -> None:
    document = generator.generate(hr_context["template"].id, hr_context["employee"].id)

    assert document.expires_at - document.created_at == timedelta(days=7)


@pytest.mark.parametrize("days", [0, -1, 31, 365])
def test_generate_rejects_expiration_out_of_range(
    generator: DocumentGenerator, hr_context: dict, db_session: Session, days: int
) -> None:
    with pytest.raises(InvalidExpiration):
        generator.generate(hr_context["template"].id, hr_context["employee"].id, days)

    assert db_session.exec(select(GeneratedDocument)).all() == []


def test_generate_requires_active_template(generator: DocumentGenerator, hr_context: dict, db_session: Session) -> None:
    template: DocumentTemplate = hr_context["template"]
    template.is_active = False
    db_session.add(template)
    db_session.commit()

    with pytest.raises(TemplateNotFound):
        generator.generate(template.id, hr_context["employee"].id, 7)
    with pytest.raises(TemplateNotFound):
        generator.generate(uuid4(), hr_context["employee"].id, 7)


def test_generate_requires_existing_employee(generator: DocumentGenerator, hr_context: dict) -> None:
    with pytest.raises(EmployeeNotFound):
        generator.generate(hr_context["template"].id, uuid4(), 7)


def test_preview_does_not_persist(generator: DocumentGenerator, hr_context: dict, db_session: Session) -> None:
    content = generator.preview(hr_context["template"].id, hr_context["employee"].id)

    assert content == EXPECTED_CONTENT
    assert db_session.exec(select(GeneratedDocument)).all() == []


def test_send_issues_code_when_email_is_not_delivered(generator: DocumentGenerator, hr_context: dict) -> None:
    document = generator.generate(hr_context["template"].id, hr_context["employee"].id, 7)

    result = generator.send(document.id)

    assert result.notified is False
    assert result.signing_url == f"https://rh.example.com/sign/{document.token}"
    assert result.document.status == GeneratedDocumentStatus.SENT
    assert result.document.sent_to == "ana.silva@example.com"
    assert result.document.sent_at is not None
    assert result.verification_code is not None
    assert len(result.verification_code) == 6
    assert verify_one_time_code(result.document.verification_code_secret, 0, result.verification_code)


def test_send_accepts_pending_documents(generator: DocumentGenerator, hr_context: dict) -> None:
    document = generator.generate(hr_context["template"].id, hr_context["employee"].id, 7)

    pending = generator.mark_pending(document.id)
    assert pending.status == GeneratedDocumentStatus.PENDING_SIGNATURE

    result = generator.send(document.id)
    assert result.document.status == GeneratedDocumentStatus.SENT


def test_send_twice_is_rejected(generator: DocumentGenerator, sent_document) -> None:
    document, _ = sent_document

    with pytest.raises(InvalidStateTransition):
        generator.send(document.id)
    with pytest.raises(InvalidStateTransition):
        generator.mark_pending(document.id)


def test_cancel_is_terminal(generator: DocumentGenerator, sent_document) -> None:
    document, _ = sent_document

    cancelled = generator.cancel(document.id)

    assert cancelled.status == GeneratedDocumentStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert cancelled.generated_content == EXPECTED_CONTENT
    with pytest.raises(InvalidStateTransition):
        generator.cancel(document.id)
    with pytest.raises(InvalidStateTransition):
        generator.send(document.id)


def test_overdue_draft_expires_instead_of_sending(
    generator: DocumentGenerator, hr_context: dict, db_session: Session
) -> None:
    document = generator.generate(hr_context["template"].id, hr_context["employee"].id, 1)
    document.expires_at = document.created_at - timedelta(minutes=1)
    db_session.add(document)
    db_session.commit()

    with pytest.raises(InvalidStateTransition):
        generator.send(document.id)

    db_session.refresh(document)
    assert document.status == GeneratedDocumentStatus.EXPIRED


def test_resend_code_advances_counter(generator: DocumentGenerator, sent_document) -> None:
    document, _ = sent_document

    result = generator.resend_code(document.id)

    assert result.document.verification_code_counter == 1
    assert verify_one_time_code(result.document.verification_code_secret, 1, result.verification_code)


def test_resend_code_requires_sent_document(generator: DocumentGenerator, hr_context: dict) -> None:
    document = generator.generate(hr_context["template"].id, hr_context["employee"].id, 7)

    with pytest.raises(InvalidStateTransition):
        generator.resend_code(document.id)


def test_list_filters_by_status(generator: DocumentGenerator, hr_context: dict) -> None:
    draft = generator.generate(hr_context["template"].id, hr_context["employee"].id, 7)
    sent = generator.generate(hr_context["template"].id, hr_context["employee"].id, 7)
    generator.send(sent.id)

    drafts = generator.list(status=GeneratedDocumentStatus.DRAFT)
    everything = generator.list(employee_id=hr_context["employee"].id)

    assert [item.id for item in drafts] == [draft.id]
    assert {item.id for item in everything} == {draft.id, sent.id}


def test_lifecycle_events_are_audited(generator: DocumentGenerator, hr_context: dict, db_session: Session, operator_id) -> None:
    document = generator.generate(hr_context["template"].id, hr_context["employee"].id, 7, created_by=operator_id)
    generator.send(document.id, sent_by=operator_id)

    events = [event.event_type for event in AuditService(db_session).list_events(document.id)]

    assert events[:2] == ["document_generated", "document_sent"]
    assert "notification_skipped" in events
    generated = AuditService(db_session).list_events(document.id, "document_generated")[0]
    assert generated.actor_id == operator_id
    assert generated.actor_role == "operator"
