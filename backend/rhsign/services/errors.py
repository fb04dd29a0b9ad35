"""Erros de domínio do fluxo de geração e assinatura de documentos.

Todos derivam de ``ValueError`` para que as rotas possam tratá-los como as
demais falhas de validação. ``public_detail`` é a mensagem exibida ao
signatário; ``str(exc)`` pode conter detalhes destinados apenas ao log.
"""

from fastapi import status


class SigningError(ValueError):
    status_code: int = status.HTTP_400_BAD_REQUEST
    public_detail: str = "Não foi possível processar a solicitação."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_detail)


class TemplateNotFound(SigningError):
    status_code = status.HTTP_404_NOT_FOUND
    public_detail = "Modelo de documento não encontrado."


class EmployeeNotFound(SigningError):
    status_code = status.HTTP_404_NOT_FOUND
    public_detail = "Funcionário não encontrado."


class DocumentNotFound(SigningError):
    status_code = status.HTTP_404_NOT_FOUND
    public_detail = "Documento não encontrado."


class InvalidStateTransition(SigningError):
    status_code = status.HTTP_409_CONFLICT
    public_detail = "Operação não permitida para o status atual do documento."


class InvalidExpiration(SigningError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    public_detail = "Prazo de expiração inválido."


class TokenNotFound(SigningError):
    status_code = status.HTTP_404_NOT_FOUND
    public_detail = "Documento indisponível."


class ExpiredToken(SigningError):
    status_code = status.HTTP_404_NOT_FOUND
    public_detail = "Documento indisponível."


class AlreadyFinalized(SigningError):
    status_code = status.HTTP_409_CONFLICT
    public_detail = "Este documento já foi finalizado."

    def __init__(self, document_status: str, message: str | None = None) -> None:
        self.document_status = document_status
        super().__init__(message or f"Documento finalizado com status {document_status}.")


class IdentityRejected(SigningError):
    status_code = status.HTTP_403_FORBIDDEN
    public_detail = "Dados não conferem."


class IdentityNotVerified(SigningError):
    status_code = status.HTTP_403_FORBIDDEN
    public_detail = "Verifique sua identidade antes de assinar."


class EmptySignature(SigningError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    public_detail = "A assinatura está em branco."


class InvalidSignatureImage(SigningError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    public_detail = "Imagem de assinatura inválida."


class RateLimited(SigningError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    public_detail = "Muitas tentativas. Tente novamente mais tarde."

    def __init__(self, locked_until=None, message: str | None = None) -> None:
        self.locked_until = locked_until
        super().__init__(message)


class UnknownVariableError(KeyError):
    """Nome de variável fora do catálogo (erro de programação, não do usuário)."""
