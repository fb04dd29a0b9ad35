# noqa: F401 to ensure models are imported for metadata
from rhsign.models.audit import AuditLog
from rhsign.models.company import CompanySettings
from rhsign.models.employee import Department, Employee
from rhsign.models.generated_document import GeneratedDocument
from rhsign.models.template import DocumentTemplate

__all__ = [
    "AuditLog",
    "CompanySettings",
    "Department",
    "Employee",
    "GeneratedDocument",
    "DocumentTemplate",
]
