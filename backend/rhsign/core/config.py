from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configurações globais do RHSign.
    Lê automaticamente variáveis do arquivo .env.
    """

    # Configuração base
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Projeto
    project_name: str = "RHSign API"
    api_v1_str: str = "/api/v1"
    debug: bool = False

    # Segurança / JWT dos operadores (emitido pelo sistema de autenticação interno)
    secret_key: str = "changeme"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Banco de dados
    database_url: str = "sqlite:///./dev.db"

    # Armazenamento S3 / MinIO
    s3_endpoint_url: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_bucket_documents: str = "rhsign-documents"
    rhsign_storage: str = "_storage"

    # CORS
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # URLs públicas (links enviados por e-mail)
    public_base_url: str = "http://localhost:8000"
    public_app_url: str = "http://localhost:5173"

    # Documentos gerados
    document_default_expiration_days: int = 7
    document_max_expiration_days: int = 30

    # Verificação de identidade
    identity_max_attempts: int = 5
    identity_lockout_minutes: int = 15
    identity_session_minutes: int = 30
    verification_code_ttl_hours: int = 24
    verification_code_digits: int = 6

    # Assinatura
    signature_image_max_bytes: int = 2 * 1024 * 1024
    typed_signature_font_path: Optional[str] = None
    signature_legal_basis: str = (
        "Assinatura eletrônica simples, nos termos do art. 10, § 2º, da MP nº 2.200-2/2001 "
        "e do art. 4º, inciso I, da Lei nº 14.063/2020."
    )

    # E-mail (SMTP)
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_sender: Optional[str] = None
    smtp_starttls: bool = True

    # Logging
    log_level: str = "INFO"
    log_dir: str = "log"

    def resolved_public_app_url(self) -> str:
        """Resolve a URL pública base (usada nos e-mails e nos links de assinatura)."""
        base = (self.public_app_url or "").strip()
        if base:
            return base.rstrip("/")
        return (self.public_base_url or "").rstrip("/")

    def signing_url(self, token: str) -> str:
        """Link enviado ao signatário; redireciona para a página de assinatura."""
        return f"{(self.public_base_url or '').rstrip('/')}/sign/{token}"

    def signing_page_url(self, token: str) -> str:
        return f"{self.resolved_public_app_url()}/assinar/{token}"


@lru_cache
def get_settings() -> Settings:
    """Retorna a instância de configurações globais (cacheada)."""
    return Settings()


settings = get_settings()
