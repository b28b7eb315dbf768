"""IndexMatch model — one entry returned by a vector index lookup or query."""

from typing import Any

from pydantic import BaseModel


class IndexMatch(BaseModel):
    """An index entry as seen by the document service.

    Attributes:
        id:       Document id the entry is keyed by.
        score:    Similarity to the query vector for nearest-neighbour results.
                  Exact-id lookups always carry 1.0; the two are not comparable.
        metadata: Stored payload, {"text": ..., "metadata": {...}} for documents.
    """

    id: str
    score: float
    metadata: dict[str, Any] | None = None
