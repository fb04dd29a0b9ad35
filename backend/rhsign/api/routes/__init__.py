from rhsign.api.routes import document_models, generated_documents, health, public_documents

__all__ = ["document_models", "generated_documents", "health", "public_documents"]
