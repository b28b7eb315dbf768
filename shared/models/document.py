"""Pydantic models for documents as returned to clients.

Hierarchy:
  Document      — a stored document: id, text and the opaque metadata.
  SearchResult  — a Document plus the similarity score of a search hit.
"""

from typing import Any

from pydantic import BaseModel


class Document(BaseModel):
    """A stored document. Metadata is opaque and returned exactly as it was written."""

    id: str
    text: str
    metadata: dict[str, Any] | None = None

    def to_response(self) -> dict[str, Any]:
        """Serialise for the HTTP surface, leaving out metadata that was never set."""
        body = self.model_dump()
        if body["metadata"] is None:
            body.pop("metadata")
        return body


class SearchResult(Document):
    """A nearest-neighbour hit."""

    score: float
