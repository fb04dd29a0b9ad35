from datetime import date, datetime

import pytest
from sqlmodel import Session

from rhsign.core.config import Settings
from rhsign.services.certificate import CertificateGenerator, canonical_json, compute_digest, signing_metadata
from rhsign.services.errors import InvalidStateTransition
from rhsign.services.identity import IdentityVerifier
from rhsign.services.lifecycle import DocumentLifecycle
from tests.conftest import EMPLOYEE_BIRTH_DATE, EMPLOYEE_CPF, drawn_signature


@pytest.fixture()
def signed_document(db_session: Session, test_settings: Settings, sent_document):
    document, code = sent_document
    verified = IdentityVerifier(db_session, test_settings).verify(document.token, EMPLOYEE_CPF, EMPLOYEE_BIRTH_DATE, code)
    return DocumentLifecycle(db_session, test_settings).sign(
        document.token,
        signed_name="Ana Silva",
        signed_cpf=EMPLOYEE_CPF,
        signed_birth_date="1990-05-10",
        signature_type="drawn",
        signature_payload=drawn_signature(),
        session_token=verified.session_token,
    )


def test_canonical_json_is_sorted_and_compact() -> None:
    assert canonical_json({"b": 1, "a": "ç"}) == '{"a":"ç","b":1}'.encode("utf-8")


def test_signing_metadata_normalizes_fields() -> None:
    metadata = signing_metadata(
        "doc-1", "Ana Silva", "123.456.789-09", date(1990, 5, 10), datetime(2026, 10, 18, 12, 30, 15, 987654)
    )

    assert metadata == {
        "document_id": "doc-1",
        "signed_name": "Ana Silva",
        "signed_cpf": "12345678909",
        "signed_birth_date": "1990-05-10",
        "signed_at": "2026-10-18T12:30:15",
    }


def test_digest_depends_on_every_input() -> None:
    metadata = signing_metadata("doc-1", "Ana Silva", "12345678909", date(1990, 5, 10), datetime(2026, 10, 18))
    baseline = compute_digest("<p>conteúdo</p>", b"png", metadata)

    assert compute_digest("<p>conteúdo</p>", b"png", dict(metadata)) == baseline
    assert compute_digest("<p>conteudo</p>", b"png", metadata) != baseline
    assert compute_digest("<p>conteúdo</p>", b"png2", metadata) != baseline
    assert compute_digest("<p>conteúdo</p>", b"png", {**metadata, "signed_name": "Ana S."}) != baseline


def test_recompute_matches_stored_hash(db_session: Session, test_settings: Settings, signed_document) -> None:
    certificates = CertificateGenerator(db_session, test_settings)

    assert certificates.recompute(signed_document) == signed_document.certificate_hash
    assert certificates.verify(signed_document) is True


def test_tampering_is_detected(db_session: Session, test_settings: Settings, signed_document) -> None:
    certificates = CertificateGenerator(db_session, test_settings)

    signed_document.generated_content = signed_document.generated_content + "<p>cláusula extra</p>"

    assert certificates.verify(signed_document) is False
    db_session.rollback()


def test_certificate_pdf_contents(db_session: Session, test_settings: Settings, signed_document) -> None:
    certificates = CertificateGenerator(db_session, test_settings)

    certificate = certificates.certify(signed_document)
    pdf = certificates.render_pdf(certificate)

    assert pdf.startswith(b"%PDF")
    assert certificate.signer_cpf == "123.456.789-09"
    assert certificate.template_name == "Termo de confidencialidade"
    assert certificate.verification_url == (
        f"https://rh.example.com/public/certificates/{signed_document.id}?hash={signed_document.certificate_hash}"
    )


def test_missing_artifact_is_regenerated(db_session: Session, test_settings: Settings, signed_document) -> None:
    certificates = CertificateGenerator(db_session, test_settings)
    signed_document.certificate_path = None
    db_session.add(signed_document)
    db_session.commit()

    pdf = certificates.load_pdf(signed_document)

    assert pdf.startswith(b"%PDF")
    assert signed_document.certificate_path is not None


def test_unsigned_documents_have_no_certificate(db_session: Session, test_settings: Settings, sent_document) -> None:
    document, _ = sent_document

    with pytest.raises(InvalidStateTransition):
        CertificateGenerator(db_session, test_settings).recompute(document)
