from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlmodel import Session

from rhsign.api.deps import get_current_operator, get_db, to_http_error
from rhsign.schemas.document import PreviewRequest, PreviewResponse, VariableCatalog
from rhsign.services.errors import SigningError
from rhsign.services.generator import DocumentGenerator
from rhsign.services.variables import variable_catalog

router = APIRouter(prefix="/document-models", tags=["document-models"])


@router.get("/variables", response_model=VariableCatalog)
def list_variables(_: Annotated[UUID, Depends(get_current_operator)]) -> VariableCatalog:
    return VariableCatalog(**variable_catalog())


@router.post("/{model_id}/preview", response_model=PreviewResponse)
def preview_model(
    model_id: UUID,
    payload: PreviewRequest,
    session: Annotated[Session, Depends(get_db)],
    _: Annotated[UUID, Depends(get_current_operator)],
) -> PreviewResponse:
    try:
        content = DocumentGenerator(session).preview(model_id, payload.employee_id)
    except SigningError as exc:
        raise to_http_error(exc) from exc
    return PreviewResponse(content=content)
