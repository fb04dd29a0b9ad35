from __future__ import annotations

import base64
import io
import os
import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from PIL import Image, ImageDraw
from sqlmodel import Session, SQLModel, create_engine

import rhsign.db.base  # noqa: F401
from rhsign.api.deps import get_db
from rhsign.core.config import Settings
from rhsign.main import app
from rhsign.models.company import CompanySettings
from rhsign.models.employee import Department, Employee
from rhsign.models.template import DocumentTemplate, TemplateCategory
from rhsign.services.audit import AuditService
from rhsign.services.generator import DocumentGenerator
from rhsign.services.notification import NotificationService
from rhsign.utils.security import create_access_token

EMPLOYEE_CPF = "123.456.789-09"
EMPLOYEE_BIRTH_DATE = date(1990, 5, 10)


@pytest.fixture()
def db_engine(tmp_path):
    test_database_url = os.getenv("TEST_DATABASE_URL")
    if not test_database_url:
        db_path = tmp_path / f"test_{uuid.uuid4().hex}.db"
        test_database_url = f"sqlite:///{db_path}"

    engine = create_engine(test_database_url, connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(bind=engine)

    def override_dependency():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_dependency

    yield engine

    app.dependency_overrides.pop(get_db, None)
    engine.dispose()


@pytest.fixture(autouse=True)
def storage_env(monkeypatch, tmp_path) -> None:
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir(exist_ok=True)
    monkeypatch.setenv("RHSIGN_STORAGE", str(storage_dir))
    yield


@pytest.fixture()
def client(db_engine) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def db_session(db_engine) -> Session:
    with Session(db_engine) as session:
        yield session


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        smtp_host=None,
        public_base_url="https://rh.example.com",
        public_app_url="https://app.rh.example.com",
    )


@pytest.fixture()
def hr_context(db_session: Session) -> dict:
    department = Department(name="Operações")
    employee = Employee(
        name="Ana Silva",
        cpf=EMPLOYEE_CPF,
        birth_date=EMPLOYEE_BIRTH_DATE,
        email="ana.silva@example.com",
        phone="(11) 99999-0000",
        position="Analista de RH",
        department_id=department.id,
        admission_date=datetime(2024, 3, 1),
        salary=Decimal("4500.50"),
        work_hours="08:00-17:00",
    )
    company = CompanySettings(
        company_name="Acme Ltda",
        trade_name="Acme",
        cnpj="12345678000195",
        address="Rua das Flores",
        address_number="100",
        neighborhood="Centro",
        city="São Paulo",
        state="SP",
        zip_code="01000-000",
        legal_rep_name="Carlos Souza",
        legal_rep_cpf="98765432100",
        legal_rep_position="Diretor",
    )
    template = DocumentTemplate(
        name="Termo de confidencialidade",
        category=TemplateCategory.CONFIDENTIALITY,
        content="<p>{{employee.name}} - {{company.name}}</p><p>{{funcionario_salario_extenso}}</p>",
    )
    db_session.add_all([department, employee, company, template])
    db_session.commit()
    return {"department": department, "employee": employee, "company": company, "template": template}


@pytest.fixture()
def operator_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def operator_headers(operator_id: uuid.UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(operator_id))}"}


@pytest.fixture()
def generator(db_session: Session, test_settings: Settings) -> DocumentGenerator:
    audit_service = AuditService(db_session)
    return DocumentGenerator(
        db_session,
        settings=test_settings,
        notifier=NotificationService(audit_service=audit_service),
        audit_service=audit_service,
    )


@pytest.fixture()
def sent_document(generator: DocumentGenerator, hr_context: dict, operator_id: uuid.UUID):
    """Documento enviado; retorna (documento, código de verificação)."""
    document = generator.generate(hr_context["template"].id, hr_context["employee"].id, 7, created_by=operator_id)
    result = generator.send(document.id, sent_by=operator_id)
    return result.document, result.verification_code


def png_data_url(image: Image.Image, fmt: str = "PNG") -> str:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    mime = "image/png" if fmt == "PNG" else "image/jpeg"
    return f"data:{mime};base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def drawn_signature() -> str:
    image = Image.new("RGBA", (400, 150), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    draw.line([(20, 120), (120, 30), (220, 110), (360, 40)], fill=(0, 0, 0, 255), width=4)
    return png_data_url(image)


def blank_signature() -> str:
    return png_data_url(Image.new("RGBA", (400, 150), (0, 0, 0, 0)))
