import calendar
import hashlib
from datetime import datetime, timedelta
from typing import Any, Mapping
from uuid import UUID, uuid4

import pyotp
from jose import JWTError, jwt

from rhsign.core.config import settings
from rhsign.models.base import utcnow

SIGNING_SESSION_TOKEN_TYPE = "signing_session"


def create_access_token(subject: str, extra_claims: Mapping[str, Any] | None = None) -> str:
    """Emite um JWT de operador (usado pelo sistema interno e pelos testes)."""
    expire = utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode = {
        "sub": subject,
        "exp": expire,
        "token_type": "access",
        "jti": str(uuid4()),
    }
    if extra_claims:
        to_encode.update(extra_claims)
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    if payload.get("token_type") != "access":
        raise ValueError("Invalid token payload")
    return payload


def link_fingerprint(link_token: str) -> str:
    return hashlib.sha256((link_token or "").strip().lower().encode("utf-8")).hexdigest()[:32]


def create_signing_session_token(document_id: UUID, link_token: str, expires_at: datetime) -> str:
    """Credencial entregue ao cliente que passou pela verificação de identidade."""
    to_encode = {
        "sub": str(document_id),
        "tfp": link_fingerprint(link_token),
        "exp": expires_at,
        "token_type": SIGNING_SESSION_TOKEN_TYPE,
        "jti": str(uuid4()),
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_signing_session_token(
    credential: str,
    document_id: UUID,
    link_token: str,
    now: datetime | None = None,
) -> dict[str, Any]:
    # Expiração conferida contra ``now`` (UTC ingênuo) e não contra o relógio da biblioteca.
    try:
        payload = jwt.decode(
            credential,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"verify_exp": False},
        )
    except JWTError as exc:
        raise ValueError("Invalid signing session") from exc
    if payload.get("token_type") != SIGNING_SESSION_TOKEN_TYPE:
        raise ValueError("Invalid signing session payload")
    if payload.get("sub") != str(document_id) or payload.get("tfp") != link_fingerprint(link_token):
        raise ValueError("Signing session issued for another document")
    expires = payload.get("exp")
    moment = calendar.timegm((now or utcnow()).utctimetuple())
    if not isinstance(expires, (int, float)) or moment >= expires:
        raise ValueError("Signing session expired")
    return payload


def generate_code_secret() -> str:
    return pyotp.random_base32()


def issue_one_time_code(secret: str, counter: int) -> str:
    return pyotp.HOTP(secret, digits=settings.verification_code_digits).at(counter)


def verify_one_time_code(secret: str, counter: int, code: str) -> bool:
    candidate = "".join(ch for ch in (code or "") if ch.isdigit())
    if not candidate:
        return False
    return pyotp.HOTP(secret, digits=settings.verification_code_digits).verify(candidate, counter)
