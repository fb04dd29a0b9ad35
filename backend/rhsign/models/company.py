from rhsign.models.base import TimestampedModel, UUIDModel
from sqlmodel import Field


class CompanySettings(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "company_settings"

    company_name: str | None = Field(default=None, max_length=255)
    trade_name: str | None = Field(default=None, max_length=255)
    cnpj: str | None = Field(default=None, max_length=18)
    state_registration: str | None = Field(default=None, max_length=32)
    municipal_registration: str | None = Field(default=None, max_length=32)
    address: str | None = Field(default=None, max_length=255)
    address_number: str | None = Field(default=None, max_length=16)
    address_complement: str | None = Field(default=None, max_length=64)
    neighborhood: str | None = Field(default=None, max_length=100)
    city: str | None = Field(default=None, max_length=100)
    state: str | None = Field(default=None, max_length=2)
    zip_code: str | None = Field(default=None, max_length=10)
    phone: str | None = Field(default=None, max_length=20)
    email: str | None = Field(default=None, max_length=320)
    legal_rep_name: str | None = Field(default=None, max_length=200)
    legal_rep_cpf: str | None = Field(default=None, max_length=14)
    legal_rep_position: str | None = Field(default=None, max_length=100)
