from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlmodel import Field, Relationship

from rhsign.models.base import TimestampedModel, UUIDModel


class Department(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "departments"

    name: str = Field(index=True, max_length=100)

    employees: List["Employee"] = Relationship(back_populates="department")


class Employee(UUIDModel, TimestampedModel, table=True):
    """Registro de funcionário mantido pelo cadastro de RH (somente leitura aqui)."""

    __tablename__ = "employees"

    name: str = Field(max_length=200)
    cpf: str = Field(max_length=14, unique=True, index=True)
    birth_date: date | None = Field(default=None)
    email: str | None = Field(default=None, max_length=320)
    phone: str | None = Field(default=None, max_length=20)
    position: str | None = Field(default=None, max_length=100)
    department_id: UUID | None = Field(default=None, foreign_key="departments.id", index=True)
    admission_date: datetime | None = Field(default=None)
    salary: Decimal | None = Field(default=None, max_digits=10, decimal_places=2)
    work_hours: str | None = Field(default="08:00-17:00", max_length=50)

    department: Optional[Department] = Relationship(back_populates="employees")
