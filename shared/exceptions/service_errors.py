"""Error taxonomy of the document service.

Each error carries the HTTP status it maps to; the API server renders all of
them as ``{"error": str(exc)}``. Authentication failures are not part of this
hierarchy: they are raised by the access gate as ``HTTPException`` and never
reach the service layer.
"""


class ServiceError(Exception):
    """Base class. Subclasses set ``status_code``."""

    status_code: int = 500


class DocumentValidationError(ServiceError):
    """A required field is missing or malformed. Raised before any external call."""

    status_code = 400


class DocumentNotFoundError(ServiceError):
    """Exact-id lookup found nothing."""

    status_code = 404

    def __init__(self, doc_id: str):
        super().__init__("Document not found")
        self.doc_id = doc_id


class EmbeddingError(ServiceError):
    """The embedding model call failed or returned an unusable vector."""


class VectorIndexError(ServiceError):
    """A call to the backing vector store failed."""
