from __future__ import annotations

import secrets
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlmodel import Session, select

from rhsign.models.company import CompanySettings
from rhsign.models.employee import Department, Employee
from rhsign.services.errors import EmployeeNotFound, UnknownVariableError
from rhsign.utils.formatting import (
    currency_to_words,
    format_cnpj,
    format_cpf,
    format_currency,
    format_date,
    format_long_date,
    month_name,
)


@dataclass(frozen=True)
class VariableSpec:
    name: str
    group: str
    description: str
    alias: str | None = None


CATALOG: tuple[VariableSpec, ...] = (
    VariableSpec("employee.name", "employee", "Nome completo do funcionário", "funcionario_nome"),
    VariableSpec("employee.cpf", "employee", "CPF do funcionário", "funcionario_cpf"),
    VariableSpec("employee.rg", "employee", "RG do funcionário", "funcionario_rg"),
    VariableSpec("employee.email", "employee", "Email do funcionário", "funcionario_email"),
    VariableSpec("employee.phone", "employee", "Telefone do funcionário", "funcionario_telefone"),
    VariableSpec("employee.position", "employee", "Cargo/Função", "funcionario_cargo"),
    VariableSpec("employee.department", "employee", "Departamento", "funcionario_departamento"),
    VariableSpec("employee.salary", "employee", "Salário (R$)", "funcionario_salario"),
    VariableSpec("employee.salary_words", "employee", "Salário por extenso", "funcionario_salario_extenso"),
    VariableSpec("employee.work_hours", "employee", "Horário de trabalho", "funcionario_horario"),
    VariableSpec("employee.admission_date", "employee", "Data de admissão", "funcionario_admissao"),
    VariableSpec(
        "employee.admission_date_words", "employee", "Data de admissão por extenso", "funcionario_admissao_extenso"
    ),
    VariableSpec("employee.birth_date", "employee", "Data de nascimento", "funcionario_nascimento"),
    VariableSpec("company.name", "company", "Razão social da empresa", "empresa_razao_social"),
    VariableSpec("company.trade_name", "company", "Nome fantasia", "empresa_nome_fantasia"),
    VariableSpec("company.cnpj", "company", "CNPJ da empresa", "empresa_cnpj"),
    VariableSpec("company.state_registration", "company", "Inscrição estadual", "empresa_inscricao_estadual"),
    VariableSpec("company.municipal_registration", "company", "Inscrição municipal", "empresa_inscricao_municipal"),
    VariableSpec("company.address", "company", "Endereço completo", "empresa_endereco_completo"),
    VariableSpec("company.city", "company", "Cidade", "empresa_cidade"),
    VariableSpec("company.state", "company", "Estado (UF)", "empresa_estado"),
    VariableSpec("company.zip_code", "company", "CEP", "empresa_cep"),
    VariableSpec("company.phone", "company", "Telefone da empresa", "empresa_telefone"),
    VariableSpec("company.email", "company", "Email da empresa", "empresa_email"),
    VariableSpec("company.representative_name", "company", "Nome do representante legal", "empresa_representante_nome"),
    VariableSpec("company.representative_cpf", "company", "CPF do representante legal", "empresa_representante_cpf"),
    VariableSpec(
        "company.representative_position", "company", "Cargo do representante legal", "empresa_representante_cargo"
    ),
    VariableSpec("dates.today", "dates", "Data atual (DD/MM/YYYY)", "data_atual"),
    VariableSpec("dates.today_words", "dates", "Data atual por extenso", "data_atual_extenso"),
    VariableSpec("dates.month", "dates", "Mês atual", "mes_atual"),
    VariableSpec("dates.year", "dates", "Ano atual", "ano_atual"),
    VariableSpec("dates.time", "dates", "Hora atual", "hora_atual"),
    VariableSpec("other.document_number", "other", "Número do documento", "numero_documento"),
    VariableSpec("other.signing_place", "other", "Local para assinatura (cidade)", "local_assinatura"),
)

GROUPS = ("employee", "company", "dates", "other")
_NAMES = tuple(spec.name for spec in CATALOG)
_BY_NAME = {spec.name: spec for spec in CATALOG}
_ALIASES = {spec.alias: spec.name for spec in CATALOG if spec.alias}


def canonical_name(name: str) -> str:
    """Converte um alias legado no nome do catálogo; nomes desconhecidos geram erro."""
    key = (name or "").strip()
    if key in _BY_NAME:
        return key
    if key in _ALIASES:
        return _ALIASES[key]
    raise UnknownVariableError(name)


def is_known_variable(name: str) -> bool:
    key = (name or "").strip()
    return key in _BY_NAME or key in _ALIASES


def variable_catalog() -> dict[str, list[dict[str, str | None]]]:
    """Catálogo de variáveis agrupado, para a tela de edição de modelos."""
    catalog: dict[str, list[dict[str, str | None]]] = {group: [] for group in GROUPS}
    for spec in CATALOG:
        catalog[spec.group].append(
            {
                "name": spec.name,
                "placeholder": "{{" + spec.name + "}}",
                "alias": spec.alias,
                "description": spec.description,
            }
        )
    return catalog


class VariableMap(Mapping[str, str]):
    """Valores resolvidos para um conjunto fechado de variáveis.

    Aceita tanto os nomes do catálogo quanto os aliases legados; qualquer outro
    nome levanta ``UnknownVariableError``.
    """

    def __init__(self, values: Mapping[str, str]) -> None:
        unknown = set(values) - set(_NAMES)
        if unknown:
            raise UnknownVariableError(sorted(unknown)[0])
        self._values = {name: str(values.get(name) or "") for name in _NAMES}

    def __getitem__(self, name: str) -> str:
        return self._values[canonical_name(name)]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and is_known_variable(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def group(self, group: str) -> dict[str, str]:
        if group not in GROUPS:
            raise UnknownVariableError(group)
        return {name: value for name, value in self._values.items() if _BY_NAME[name].group == group}

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)


def _company_address(company: CompanySettings | None) -> str:
    if not company:
        return ""
    street = company.address or ""
    if company.address_number:
        street = f"{street}, {company.address_number}" if street else company.address_number
    if company.address_complement:
        street = f"{street} {company.address_complement}".strip()
    parts = [street]
    if company.neighborhood:
        parts.append(f"- {company.neighborhood}")
    locality = " - ".join(value for value in (company.city, company.state) if value)
    text = " ".join(part for part in parts if part)
    if locality:
        text = f"{text}, {locality}" if text else locality
    if company.zip_code:
        text = f"{text}, CEP {company.zip_code}" if text else f"CEP {company.zip_code}"
    return text.strip()


class VariableResolver:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _company(self) -> CompanySettings | None:
        return self.session.exec(select(CompanySettings).order_by(CompanySettings.created_at)).first()

    def resolve(
        self,
        employee_id: UUID,
        *,
        document_number: str | None = None,
        now: datetime | None = None,
    ) -> VariableMap:
        employee = self.session.get(Employee, employee_id)
        if not employee:
            raise EmployeeNotFound(f"Funcionário {employee_id} não encontrado.")

        department = self.session.get(Department, employee.department_id) if employee.department_id else None
        company = self._company()
        moment = now or datetime.now()

        values = {
            "employee.name": employee.name or "",
            "employee.cpf": format_cpf(employee.cpf),
            "employee.rg": "",
            "employee.email": employee.email or "",
            "employee.phone": employee.phone or "",
            "employee.position": employee.position or "",
            "employee.department": department.name if department else "",
            "employee.salary": format_currency(employee.salary) if employee.salary is not None else "",
            "employee.salary_words": currency_to_words(employee.salary) if employee.salary is not None else "",
            "employee.work_hours": employee.work_hours or "",
            "employee.admission_date": format_date(employee.admission_date),
            "employee.admission_date_words": format_long_date(employee.admission_date),
            "employee.birth_date": format_date(employee.birth_date),
            "company.name": (company.company_name if company else None) or "",
            "company.trade_name": (company.trade_name or company.company_name or "") if company else "",
            "company.cnpj": format_cnpj(company.cnpj) if company and company.cnpj else "",
            "company.state_registration": (company.state_registration if company else None) or "",
            "company.municipal_registration": (company.municipal_registration if company else None) or "",
            "company.address": _company_address(company),
            "company.city": (company.city if company else None) or "",
            "company.state": (company.state if company else None) or "",
            "company.zip_code": (company.zip_code if company else None) or "",
            "company.phone": (company.phone if company else None) or "",
            "company.email": (company.email if company else None) or "",
            "company.representative_name": (company.legal_rep_name if company else None) or "",
            "company.representative_cpf": format_cpf(company.legal_rep_cpf) if company and company.legal_rep_cpf else "",
            "company.representative_position": (company.legal_rep_position if company else None) or "",
            "dates.today": format_date(moment),
            "dates.today_words": format_long_date(moment),
            "dates.month": month_name(moment),
            "dates.year": str(moment.year),
            "dates.time": moment.strftime("%H:%M"),
            "other.document_number": document_number or secrets.token_hex(4).upper(),
            "other.signing_place": (company.city if company else None) or "",
        }
        return VariableMap(values)
