from __future__ import annotations

import hashlib
import hmac
import io
import json
from dataclasses import dataclass
from datetime import date, datetime
from html import escape
from typing import Any
from uuid import UUID

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Image as PdfImage
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle
from sqlalchemy import update
from sqlmodel import Session

from rhsign.core.config import Settings, get_settings
from rhsign.core.logging_setup import logger
from rhsign.models.base import utcnow
from rhsign.models.generated_document import GeneratedDocument, GeneratedDocumentStatus
from rhsign.models.template import DocumentTemplate
from rhsign.services.audit import AuditService
from rhsign.services.errors import InvalidStateTransition
from rhsign.services.signature_capture import decode_image_payload
from rhsign.services.storage import StorageBackend, get_storage
from rhsign.utils.formatting import format_cpf, only_digits


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def canonical_json(payload: dict[str, Any]) -> bytes:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def signing_metadata(
    document_id: UUID | str,
    signed_name: str,
    signed_cpf: str,
    signed_birth_date: date,
    signed_at: datetime,
) -> dict[str, str]:
    """Campos do evento de assinatura cobertos pelo hash do certificado."""
    return {
        "document_id": str(document_id),
        "signed_name": signed_name,
        "signed_cpf": only_digits(signed_cpf),
        "signed_birth_date": signed_birth_date.isoformat(),
        "signed_at": signed_at.replace(microsecond=0, tzinfo=None).isoformat(),
    }


def compute_digest(content: str, signature_png: bytes, metadata: dict[str, str]) -> str:
    """SHA-256 do JSON canônico que liga conteúdo, imagem da assinatura e metadados."""
    payload = {
        "content_sha256": sha256_hex((content or "").encode("utf-8")),
        "signature_sha256": sha256_hex(signature_png),
        "metadata": metadata,
    }
    return sha256_hex(canonical_json(payload))


@dataclass(frozen=True)
class Certificate:
    document_id: UUID
    digest: str
    template_name: str
    signer_name: str
    signer_cpf: str
    signer_birth_date: date
    signed_at: datetime
    signature_type: str
    ip_address: str | None
    user_agent: str | None
    content_sha256: str
    signature_sha256: str
    legal_basis: str
    verification_url: str
    signature_png: bytes


class CertificateGenerator:
    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        storage: StorageBackend | None = None,
        audit_service: AuditService | None = None,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self._storage = storage
        self.audit_service = audit_service or AuditService(session)

    @property
    def storage(self) -> StorageBackend:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    @staticmethod
    def certificate_link(document_id: UUID, digest: str) -> str:
        return f"/public/certificates/{document_id}?hash={digest}"

    def verification_url(self, document_id: UUID, digest: str) -> str:
        base = (self.settings.public_base_url or "").rstrip("/")
        return f"{base}{self.certificate_link(document_id, digest)}"

    @staticmethod
    def _require_signed(document: GeneratedDocument) -> None:
        if document.status != GeneratedDocumentStatus.SIGNED or not document.signed_at or not document.signature_image:
            raise InvalidStateTransition(f"Documento {document.id} não está assinado.")

    @staticmethod
    def _signature_png(document: GeneratedDocument) -> bytes:
        content, _ = decode_image_payload(document.signature_image or "")
        return content

    def recompute(self, document: GeneratedDocument) -> str:
        self._require_signed(document)
        metadata = signing_metadata(
            document.id,
            document.signed_name or "",
            document.signed_cpf or "",
            document.signed_birth_date,
            document.signed_at,
        )
        return compute_digest(document.generated_content, self._signature_png(document), metadata)

    def verify(self, document: GeneratedDocument) -> bool:
        if not document.certificate_hash:
            return False
        recomputed = self.recompute(document)
        image_ok = document.signature_image_sha256 == sha256_hex(self._signature_png(document))
        return image_ok and hmac.compare_digest(recomputed, document.certificate_hash)

    def certify(self, document: GeneratedDocument) -> Certificate:
        self._require_signed(document)
        template = self.session.get(DocumentTemplate, document.template_id)
        signature_png = self._signature_png(document)
        digest = document.certificate_hash or self.recompute(document)
        return Certificate(
            document_id=document.id,
            digest=digest,
            template_name=template.name if template else "-",
            signer_name=document.signed_name or "",
            signer_cpf=format_cpf(document.signed_cpf),
            signer_birth_date=document.signed_birth_date,
            signed_at=document.signed_at,
            signature_type=getattr(document.signature_type, "value", str(document.signature_type)),
            ip_address=document.ip_address,
            user_agent=document.user_agent,
            content_sha256=sha256_hex(document.generated_content.encode("utf-8")),
            signature_sha256=sha256_hex(signature_png),
            legal_basis=self.settings.signature_legal_basis,
            verification_url=self.verification_url(document.id, digest),
            signature_png=signature_png,
        )

    def render_pdf(self, certificate: Certificate) -> bytes:
        buffer = io.BytesIO()
        generated_at = utcnow()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=0.8 * inch,
            rightMargin=0.8 * inch,
            topMargin=1 * inch,
            bottomMargin=0.75 * inch,
        )
        doc.title = f"Certificado de assinatura {certificate.document_id}"

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "CertificateTitle",
            parent=styles["Heading1"],
            alignment=1,
            fontSize=16,
            leading=19,
            textColor=colors.HexColor("#11284b"),
            spaceAfter=4,
        )
        section_style = ParagraphStyle(
            "SectionHeading",
            parent=styles["Heading2"],
            fontSize=12,
            leading=14,
            textColor=colors.HexColor("#0f5298"),
            spaceBefore=14,
            spaceAfter=6,
        )
        body_style = ParagraphStyle(
            "CertificateBody",
            parent=styles["BodyText"],
            fontSize=10,
            leading=14,
            textColor=colors.HexColor("#101820"),
        )
        mono_style = ParagraphStyle("CertificateHash", parent=body_style, fontName="Courier", fontSize=8, leading=10)
        muted_style = ParagraphStyle(
            "MutedBody",
            parent=body_style,
            fontSize=9,
            textColor=colors.HexColor("#5f6d7a"),
        )

        def fmt_datetime(value: datetime | None) -> str:
            if not value:
                return "-"
            return value.strftime("%d/%m/%Y %H:%M:%S UTC")

        def key_value_table(rows: list[tuple[str, str]], style: ParagraphStyle = body_style) -> Table:
            table = Table(
                [
                    [Paragraph(f"<b>{escape(label)}</b>", body_style), Paragraph(escape(value or "-"), style)]
                    for label, value in rows
                ],
                colWidths=[doc.width * 0.3, doc.width * 0.7],
                hAlign="LEFT",
            )
            table.setStyle(
                TableStyle(
                    [
                        ("VALIGN", (0, 0), (-1, -1), "TOP"),
                        ("ROWBACKGROUNDS", (0, 0), (-1, -1), [colors.white, colors.HexColor("#f4f6fb")]),
                        ("INNERGRID", (0, 0), (-1, -1), 0.25, colors.HexColor("#d6dbe7")),
                        ("BOX", (0, 0), (-1, -1), 0.5, colors.HexColor("#b7c2d7")),
                        ("LEFTPADDING", (0, 0), (-1, -1), 8),
                        ("RIGHTPADDING", (0, 0), (-1, -1), 8),
                    ]
                )
            )
            return table

        story: list = [
            Paragraph("Certificado de assinatura eletrônica", title_style),
            Paragraph("Todos os horários estão no fuso UTC.", muted_style),
            Spacer(1, 14),
            Paragraph("Documento", section_style),
            key_value_table(
                [
                    ("Documento ID", str(certificate.document_id)),
                    ("Modelo", certificate.template_name),
                    ("Hash do conteúdo", certificate.content_sha256),
                ]
            ),
            Paragraph("Signatário", section_style),
            key_value_table(
                [
                    ("Nome", certificate.signer_name),
                    ("CPF", certificate.signer_cpf),
                    ("Nascimento", certificate.signer_birth_date.strftime("%d/%m/%Y")),
                    ("Assinado em", fmt_datetime(certificate.signed_at)),
                    ("Modalidade", certificate.signature_type),
                    ("Endereço IP", certificate.ip_address or "-"),
                    ("Navegador", certificate.user_agent or "-"),
                ]
            ),
            Paragraph("Assinatura", section_style),
            PdfImage(io.BytesIO(certificate.signature_png), width=3 * inch, height=1 * inch),
            Paragraph("Integridade", section_style),
            key_value_table(
                [
                    ("Hash do certificado", certificate.digest),
                    ("Hash da assinatura", certificate.signature_sha256),
                ],
                mono_style,
            ),
            Spacer(1, 10),
            Paragraph(escape(certificate.legal_basis), body_style),
            Spacer(1, 6),
            Paragraph(f"Verificação: {escape(certificate.verification_url)}", muted_style),
        ]

        def draw_header_footer(pdf_canvas, doc_template) -> None:
            pdf_canvas.saveState()
            header_y = A4[1] - 0.65 * inch
            footer_y = 0.6 * inch
            pdf_canvas.setFillColor(colors.HexColor("#102a43"))
            pdf_canvas.setFont("Helvetica-Bold", 10)
            pdf_canvas.drawString(doc_template.leftMargin, header_y, f"{self.settings.project_name} · Certificado")
            pdf_canvas.setFont("Helvetica", 8)
            pdf_canvas.setFillColor(colors.HexColor("#5c677d"))
            pdf_canvas.drawRightString(A4[0] - doc_template.rightMargin, header_y, f"Documento {certificate.document_id}")
            pdf_canvas.drawString(doc_template.leftMargin, footer_y, f"Gerado em {fmt_datetime(generated_at)}")
            pdf_canvas.drawRightString(A4[0] - doc_template.rightMargin, footer_y, f"Página {pdf_canvas.getPageNumber()}")
            pdf_canvas.restoreState()

        doc.build(story, onFirstPage=draw_header_footer, onLaterPages=draw_header_footer)
        return buffer.getvalue()

    def store(self, document: GeneratedDocument, pdf: bytes) -> str:
        return self.storage.save_bytes(
            root=f"certificates/{document.id}",
            name=f"certificado-{document.certificate_hash[:12]}.pdf",
            data=pdf,
        )

    def ensure_artifact(self, document: GeneratedDocument) -> GeneratedDocument:
        """Gera e armazena o PDF do certificado caso ainda não exista."""
        self._require_signed(document)
        if document.certificate_path and document.certificate_url:
            return document

        certificate = self.certify(document)
        path = self.store(document, self.render_pdf(certificate))
        self.session.execute(
            update(GeneratedDocument)
            .where(GeneratedDocument.id == document.id)
            .where(GeneratedDocument.certificate_hash == certificate.digest)
            .values(
                certificate_path=path,
                certificate_url=self.certificate_link(document.id, certificate.digest),
                updated_at=utcnow(),
            )
        )
        self.session.commit()
        self.session.refresh(document)

        logger.info(f"[CERT] Certificado armazenado para documento {document.id}")
        self.audit_service.record_event(
            event_type="certificate_issued",
            document_id=document.id,
            details={"certificate_hash": certificate.digest, "path": path},
        )
        return document

    def load_pdf(self, document: GeneratedDocument) -> bytes:
        document = self.ensure_artifact(document)
        return self.storage.load_bytes(document.certificate_path)
