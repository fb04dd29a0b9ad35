from enum import Enum

from sqlmodel import Field
from sqlalchemy import Text

from rhsign.models.base import TimestampedModel, UUIDModel


class TemplateCategory(str, Enum):
    ADMISSION = "admission"
    SAFETY = "safety"
    BENEFITS = "benefits"
    CONFIDENTIALITY = "confidentiality"
    TERMINATION = "termination"
    OTHER = "other"


class DocumentTemplate(UUIDModel, TimestampedModel, table=True):
    __tablename__ = "document_templates"

    name: str = Field(index=True, max_length=255)
    description: str | None = Field(default=None)
    category: TemplateCategory = Field(default=TemplateCategory.OTHER)
    content: str = Field(sa_type=Text)
    requires_signature: bool = Field(default=True)
    requires_witness: bool = Field(default=False)
    witness_count: int = Field(default=0, ge=0)
    is_active: bool = Field(default=True)
