from datetime import datetime
from uuid import uuid4

import pytest
from sqlmodel import Session

from rhsign.models.employee import Employee
from rhsign.services.errors import EmployeeNotFound, UnknownVariableError
from rhsign.services.renderer import placeholders, render
from rhsign.services.variables import CATALOG, VariableMap, VariableResolver, variable_catalog


def test_render_replaces_known_placeholders() -> None:
    variables = {"employee.name": "Ana Silva", "company.name": "Acme Ltda"}

    result = render("<p>{{employee.name}} - {{company.name}}</p>", variables)

    assert result == "<p>Ana Silva - Acme Ltda</p>"


def test_render_keeps_unknown_placeholders_verbatim() -> None:
    variables = {"employee.name": "Ana Silva"}

    result = render("{{ employee.name }} / {{ employee.shoe_size }} / {{not valid}}", variables)

    assert result == "Ana Silva / {{ employee.shoe_size }} / {{not valid}}"


def test_render_is_deterministic() -> None:
    variables = {"employee.name": "Ana Silva", "company.name": "Acme Ltda"}
    markup = "{{company.name}}{{employee.name}}{{company.name}}"

    assert render(markup, variables) == render(markup, variables) == "Acme LtdaAna SilvaAcme Ltda"
    assert placeholders(markup) == ["company.name", "employee.name"]


def test_resolver_builds_closed_map(db_session: Session, hr_context: dict) -> None:
    employee = hr_context["employee"]

    variables = VariableResolver(db_session).resolve(
        employee.id, document_number="ABC123", now=datetime(2026, 10, 18, 9, 30)
    )

    assert isinstance(variables, VariableMap)
    assert len(variables) == len(CATALOG)
    assert variables["employee.name"] == "Ana Silva"
    assert variables["employee.cpf"] == "123.456.789-09"
    assert variables["employee.department"] == "Operações"
    assert variables["employee.salary"] == "R$ 4.500,50"
    assert variables["employee.salary_words"] == "quatro mil e quinhentos reais e cinquenta centavos"
    assert variables["employee.admission_date"] == "01/03/2024"
    assert variables["employee.rg"] == ""
    assert variables["company.cnpj"] == "12.345.678/0001-95"
    assert variables["company.address"] == "Rua das Flores, 100 - Centro, São Paulo - SP, CEP 01000-000"
    assert variables["company.representative_cpf"] == "987.654.321-00"
    assert variables["dates.today"] == "18/10/2026"
    assert variables["dates.today_words"] == "18 de outubro de 2026"
    assert variables["dates.month"] == "outubro"
    assert variables["dates.time"] == "09:30"
    assert variables["other.document_number"] == "ABC123"
    assert variables["other.signing_place"] == "São Paulo"


def test_resolver_accepts_legacy_aliases(db_session: Session, hr_context: dict) -> None:
    variables = VariableResolver(db_session).resolve(hr_context["employee"].id)

    assert variables["funcionario_nome"] == variables["employee.name"]
    assert variables["empresa_cnpj"] == variables["company.cnpj"]
    assert render("{{funcionario_nome}}, {{empresa_razao_social}}", variables) == "Ana Silva, Acme Ltda"


def test_unknown_variable_is_a_programming_error(db_session: Session, hr_context: dict) -> None:
    variables = VariableResolver(db_session).resolve(hr_context["employee"].id)

    assert "employee.shoe_size" not in variables
    with pytest.raises(UnknownVariableError):
        variables["employee.shoe_size"]
    with pytest.raises(UnknownVariableError):
        VariableMap({"employee.shoe_size": "42"})


def test_missing_facts_resolve_to_empty_strings(db_session: Session) -> None:
    employee = Employee(name="Bruno Lima", cpf="11122233396")
    db_session.add(employee)
    db_session.commit()

    variables = VariableResolver(db_session).resolve(employee.id)

    assert variables["employee.email"] == ""
    assert variables["employee.salary"] == ""
    assert variables["employee.department"] == ""
    assert variables["company.name"] == ""
    assert variables["company.address"] == ""
    assert variables.group("employee")["employee.name"] == "Bruno Lima"


def test_resolver_requires_existing_employee(db_session: Session) -> None:
    with pytest.raises(EmployeeNotFound):
        VariableResolver(db_session).resolve(uuid4())


def test_variable_catalog_is_grouped() -> None:
    catalog = variable_catalog()

    assert list(catalog) == ["employee", "company", "dates", "other"]
    names = {entry["name"] for group in catalog.values() for entry in group}
    assert names == {spec.name for spec in CATALOG}
    first = catalog["employee"][0]
    assert first["placeholder"] == "{{employee.name}}"
    assert first["alias"] == "funcionario_nome"
