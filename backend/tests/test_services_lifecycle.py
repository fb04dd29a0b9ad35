import threading
from datetime import timedelta

import pytest
from sqlmodel import Session

from rhsign.core.config import Settings
from rhsign.models.generated_document import GeneratedDocument, GeneratedDocumentStatus, SignatureType
from rhsign.services.audit import AuditService
from rhsign.services.errors import (
    AlreadyFinalized,
    EmptySignature,
    ExpiredToken,
    IdentityNotVerified,
    IdentityRejected,
    RateLimited,
    SigningError,
)
from rhsign.services.generator import DocumentGenerator
from rhsign.services.identity import IdentityVerifier, Verified
from rhsign.services.lifecycle import DocumentLifecycle
from rhsign.services.storage import get_storage
from rhsign.utils.security import create_access_token
from tests.conftest import EMPLOYEE_BIRTH_DATE, EMPLOYEE_CPF, blank_signature, drawn_signature


def _verify(session: Session, settings: Settings, document: GeneratedDocument, code: str) -> Verified:
    return IdentityVerifier(session, settings).verify(document.token, EMPLOYEE_CPF, EMPLOYEE_BIRTH_DATE, code)


def _sign(
    session: Session,
    settings: Settings,
    document: GeneratedDocument,
    session_token: str | None,
    **overrides,
) -> GeneratedDocument:
    arguments = {
        "session_token": session_token,
        "signed_name": "Ana Silva",
        "signed_cpf": EMPLOYEE_CPF,
        "signed_birth_date": EMPLOYEE_BIRTH_DATE,
        "signature_type": SignatureType.DRAWN,
        "signature_payload": drawn_signature(),
        "ip_address": "203.0.113.10",
        "user_agent": "pytest",
    }
    arguments.update(overrides)
    return DocumentLifecycle(session, settings).sign(document.token, **arguments)


def test_sign_records_evidence_and_certificate(db_session: Session, test_settings: Settings, sent_document) -> None:
    document, code = sent_document
    verified = _verify(db_session, test_settings, document, code)
    original_content = document.generated_content

    signed = _sign(db_session, test_settings, document, verified.session_token)

    assert signed.status == GeneratedDocumentStatus.SIGNED
    assert signed.generated_content == original_content
    assert signed.signed_name == "Ana Silva"
    assert signed.signed_cpf == "12345678909"
    assert signed.signed_birth_date == EMPLOYEE_BIRTH_DATE
    assert signed.signed_at.microsecond == 0
    assert signed.signature_type == SignatureType.DRAWN
    assert signed.signature_image.startswith("data:image/png;base64,")
    assert signed.ip_address == "203.0.113.10"
    assert len(signed.certificate_hash) == 64
    assert signed.certificate_url == f"/public/certificates/{signed.id}?hash={signed.certificate_hash}"
    assert get_storage().load_bytes(signed.certificate_path).startswith(b"%PDF")

    events = [event.event_type for event in AuditService(db_session).list_events(signed.id)]
    assert "document_signed" in events
    assert events[-1] == "certificate_issued"


def test_typed_signature_defaults_to_signer_name(db_session: Session, test_settings: Settings, sent_document) -> None:
    document, code = sent_document
    verified = _verify(db_session, test_settings, document, code)

    signed = _sign(db_session, test_settings, document, verified.session_token, signature_type="typed", signature_payload=None)

    assert signed.signature_type == SignatureType.TYPED
    assert signed.status == GeneratedDocumentStatus.SIGNED


def test_sign_requires_identity_verification(db_session: Session, test_settings: Settings, sent_document) -> None:
    document, _ = sent_document

    with pytest.raises(IdentityNotVerified):
        _sign(db_session, test_settings, document, None)


def test_verification_belongs_to_the_client_that_passed_it(
    db_session: Session, test_settings: Settings, generator: DocumentGenerator, hr_context: dict, sent_document
) -> None:
    document, code = sent_document
    _verify(db_session, test_settings, document, code)
    second = generator.generate(hr_context["template"].id, hr_context["employee"].id, 7)
    other = generator.send(second.id)
    foreign = _verify(db_session, test_settings, other.document, other.verification_code)

    with pytest.raises(IdentityNotVerified):
        _sign(db_session, test_settings, document, None)
    with pytest.raises(IdentityNotVerified):
        _sign(db_session, test_settings, document, foreign.session_token)
    with pytest.raises(IdentityNotVerified):
        _sign(db_session, test_settings, document, create_access_token(str(document.id)))

    db_session.refresh(document)
    assert document.status == GeneratedDocumentStatus.SENT


def test_verification_window_elapses(db_session: Session, test_settings: Settings, sent_document) -> None:
    document, code = sent_document
    verified = _verify(db_session, test_settings, document, code)

    with pytest.raises(IdentityNotVerified):
        _sign(db_session, test_settings, document, verified.session_token, now=verified.valid_until + timedelta(minutes=1))


def test_signer_data_must_match_employee(db_session: Session, test_settings: Settings, sent_document) -> None:
    document, code = sent_document
    verified = _verify(db_session, test_settings, document, code)

    with pytest.raises(IdentityRejected):
        _sign(db_session, test_settings, document, verified.session_token, signed_cpf="111.111.111-11")

    db_session.refresh(document)
    assert document.status == GeneratedDocumentStatus.SENT
    assert document.signed_at is None
    assert len(AuditService(db_session).list_events(document.id, "signature_rejected")) == 1


def test_signer_mismatches_share_the_attempt_limit(
    db_session: Session, test_settings: Settings, sent_document
) -> None:
    document, code = sent_document
    verified = _verify(db_session, test_settings, document, code)

    for _ in range(test_settings.identity_max_attempts):
        with pytest.raises(IdentityRejected):
            _sign(db_session, test_settings, document, verified.session_token, signed_birth_date="2000-01-01")

    with pytest.raises(RateLimited):
        _sign(db_session, test_settings, document, verified.session_token)

    db_session.refresh(document)
    assert document.status == GeneratedDocumentStatus.SENT
    assert document.verification_attempts == test_settings.identity_max_attempts
    assert document.verification_locked_until is not None


@pytest.mark.parametrize(
    "overrides",
    [{"signature_payload": blank_signature()}, {"signed_name": "   "}],
)
def test_empty_signature_leaves_no_partial_evidence(
    db_session: Session, test_settings: Settings, sent_document, overrides
) -> None:
    document, code = sent_document
    verified = _verify(db_session, test_settings, document, code)

    with pytest.raises(EmptySignature):
        _sign(db_session, test_settings, document, verified.session_token, **overrides)

    db_session.refresh(document)
    assert document.status == GeneratedDocumentStatus.SENT
    assert document.signature_image is None
    assert document.certificate_hash is None


def test_signed_document_is_final(db_session: Session, test_settings: Settings, sent_document) -> None:
    document, code = sent_document
    verified = _verify(db_session, test_settings, document, code)
    signed = _sign(db_session, test_settings, document, verified.session_token)
    first_hash = signed.certificate_hash

    with pytest.raises(AlreadyFinalized):
        _sign(db_session, test_settings, document, verified.session_token)
    with pytest.raises(AlreadyFinalized):
        _verify(db_session, test_settings, document, code)

    db_session.refresh(document)
    assert document.certificate_hash == first_hash


def test_sign_after_deadline(db_session: Session, test_settings: Settings, sent_document) -> None:
    document, code = sent_document
    verified = _verify(db_session, test_settings, document, code)

    with pytest.raises(ExpiredToken):
        _sign(db_session, test_settings, document, verified.session_token, now=document.expires_at + timedelta(seconds=1))

    db_session.refresh(document)
    assert document.status == GeneratedDocumentStatus.EXPIRED


def test_concurrent_signing_has_single_winner(db_engine, test_settings: Settings, sent_document) -> None:
    document, code = sent_document
    document_id = document.id
    with Session(db_engine) as session:
        verified = _verify(session, test_settings, session.get(GeneratedDocument, document_id), code)

    attempts = 4
    barrier = threading.Barrier(attempts)
    outcomes: list[object] = []
    lock = threading.Lock()

    def worker() -> None:
        with Session(db_engine) as session:
            target = session.get(GeneratedDocument, document_id)
            barrier.wait()
            try:
                result = _sign(session, test_settings, target, verified.session_token)
                outcome: object = result.certificate_hash
            except SigningError as exc:
                outcome = exc
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(attempts)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winners = [item for item in outcomes if isinstance(item, str)]
    losers = [item for item in outcomes if not isinstance(item, str)]
    assert len(winners) == 1
    assert len(losers) == attempts - 1
    assert all(isinstance(item, AlreadyFinalized) for item in losers)

    with Session(db_engine) as session:
        stored = session.get(GeneratedDocument, document_id)
        assert stored.status == GeneratedDocumentStatus.SIGNED
        assert stored.certificate_hash == winners[0]
        assert len(AuditService(session).list_events(document_id, "document_signed")) == 1
