from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from rhsign.core.config import settings
from rhsign.db.session import get_session
from rhsign.services.errors import SigningError
from rhsign.utils.security import decode_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_v1_str}/auth/login")


def get_db() -> Session:
    yield from get_session()


def get_current_operator(token: Annotated[str, Depends(oauth2_scheme)]) -> UUID:
    """Identificador do operador autenticado pelo sistema interno (claim ``sub``)."""
    try:
        payload = decode_token(token)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    try:
        return UUID(str(payload["sub"]))
    except (KeyError, ValueError, TypeError) as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject") from exc


def client_info(request: Request) -> tuple[str | None, str | None]:
    ip_address = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    return ip_address, user_agent


def to_http_error(exc: SigningError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.public_detail)
