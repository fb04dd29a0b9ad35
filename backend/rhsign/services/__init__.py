from rhsign.services.audit import AuditService
from rhsign.services.certificate import CertificateGenerator
from rhsign.services.generator import DocumentGenerator, SendResult
from rhsign.services.identity import IdentityVerifier
from rhsign.services.lifecycle import DocumentLifecycle
from rhsign.services.notification import NotificationService
from rhsign.services.signature_capture import SignatureCapture
from rhsign.services.tokens import AccessTokenController
from rhsign.services.variables import VariableMap, VariableResolver

__all__ = [
    "AccessTokenController",
    "AuditService",
    "CertificateGenerator",
    "DocumentGenerator",
    "DocumentLifecycle",
    "IdentityVerifier",
    "NotificationService",
    "SendResult",
    "SignatureCapture",
    "VariableMap",
    "VariableResolver",
]
