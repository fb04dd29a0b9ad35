from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import RedirectResponse

from rhsign.api.routes import document_models, generated_documents, health, public_documents
from rhsign.core.config import settings
from rhsign.core.logging_setup import logger
from rhsign.db.session import init_db


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncGenerator[None, None]:
    init_db()
    yield


def _normalize_origin(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = value.strip().rstrip("/")
    return cleaned or None


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.project_name,
        debug=settings.debug,
        lifespan=lifespan,
    )

    logger.info("RHSign API inicializada")

    # ===============================================================
    # CORS
    # ===============================================================
    public_front_base = settings.resolved_public_app_url()
    raw_origins = settings.allowed_origins + ([public_front_base] if public_front_base else [])

    origins: list[str] = []
    for item in raw_origins:
        normalized = _normalize_origin(item)
        if normalized and normalized not in origins:
            origins.append(normalized)

    logger.info(f"CORS configurado com origins: {origins}")

    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ===============================================================
    # ROTAS
    # ===============================================================
    application.include_router(health.router, prefix="/health")
    application.include_router(document_models.router, prefix=settings.api_v1_str)
    application.include_router(generated_documents.router, prefix=settings.api_v1_str)
    application.include_router(public_documents.router, prefix="")

    # ===============================================================
    # REDIRECIONAMENTO PARA A PÁGINA DE ASSINATURA
    # ===============================================================
    @application.get("/sign/{token}", include_in_schema=False)
    def public_sign_entry(token: str) -> RedirectResponse:
        return RedirectResponse(
            url=settings.signing_page_url(token),
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
        )

    @application.get("/")
    def root():
        return {"service": settings.project_name}

    return application


app = create_app()
