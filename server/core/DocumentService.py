"""Document service — orchestrates embedding and vector index calls.

Each operation touches a single document and is atomic from the caller's
point of view: the text is embedded first, then written with one upsert (or
removed with one delete). Failures abort the operation and are never retried
here; callers that process many documents account for failures per document.
"""

from typing import Any

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.clients.index.models.IndexMatch import IndexMatch
from shared.exceptions.service_errors import DocumentValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import Document, SearchResult

TEXT_FIELD = "text"
METADATA_FIELD = "metadata"


class DocumentService:
    """Create/update, fetch, delete and search documents."""

    def __init__(
        self,
        helper_config: HelperConfig,
        index_client: IndexClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._index = index_client
        self._embed = embed_client
        self.default_limit = int(helper_config.get_number_val("SEARCH_DEFAULT_LIMIT", default=10))
        self.max_limit = int(helper_config.get_number_val("SEARCH_MAX_LIMIT", default=20))

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_create_or_update(self, doc_id: str, text: str, metadata: dict[str, Any] | None = None) -> str:
        """Embed ``text`` and store it under ``doc_id``, replacing any previous document.

        Args:
            doc_id (str): Caller-supplied id, also the index key.
            text (str): Document text, source of the embedding.
            metadata (dict | None): Opaque payload stored verbatim.

        Returns:
            str: The stored id.

        Raises:
            DocumentValidationError: If id or text is empty, or metadata is not an object.
                Raised before the embedding model is called.
            EmbeddingError: If the embedding could not be generated.
            VectorIndexError: If the upsert failed.
        """
        self._require_string("id", doc_id)
        self._require_string("text", text)
        if metadata is not None and not isinstance(metadata, dict):
            raise DocumentValidationError("metadata must be an object")

        vector = await self._embed.embed_text(text)
        await self._index.do_upsert(doc_id, vector, self._build_payload(text, metadata))

        self.logging.info("Indexed document id=%r (%d chars)", doc_id, len(text))
        return doc_id

    async def do_get_by_id(self, doc_id: str) -> Document | None:
        """Fetch a document by exact id.

        Returns:
            Document | None: The document, or None when no entry has this id.
        """
        self._require_string("id", doc_id)
        match = await self._index.do_get_by_id(doc_id)
        if match is None:
            self.logging.debug("Document id=%r not found", doc_id)
            return None
        return Document(**self._unpack(match))

    async def do_delete_by_id(self, doc_id: str) -> bool:
        """Delete a document. Deleting an id that is not stored also succeeds."""
        self._require_string("id", doc_id)
        await self._index.do_delete_by_ids([doc_id])
        self.logging.info("Deleted document id=%r", doc_id)
        return True

    async def do_search(self, query: str, limit: int | None = None) -> list[SearchResult]:
        """Return the documents closest to ``query``, most similar first.

        Args:
            query (str): Free text to embed and search with.
            limit (int | None): Maximum number of results; SEARCH_DEFAULT_LIMIT when None,
                clamped to SEARCH_MAX_LIMIT.

        Returns:
            list[SearchResult]: Possibly empty, in the index's similarity order.

        Raises:
            DocumentValidationError: If query is empty or limit is not a positive integer.
            EmbeddingError: If the query could not be embedded.
            VectorIndexError: If the index query failed.
        """
        self._require_string("query", query)
        limit = self._resolve_limit(limit)

        self.logging.info("Searching query=%r limit=%d", query[:80], limit)
        vector = await self._embed.embed_text(query)
        matches = await self._index.do_query(vector, limit)

        results = [SearchResult(**self._unpack(match), score=match.score) for match in matches]
        self.logging.info("Search complete — %d result(s)", len(results))
        return results

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _require_string(self, field: str, value: Any) -> None:
        if not isinstance(value, str) or not value.strip():
            raise DocumentValidationError(f"{field} is required and must be a non-empty string")

    def _resolve_limit(self, limit: Any) -> int:
        if limit is None:
            return self.default_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise DocumentValidationError("limit must be a positive integer")
        if limit > self.max_limit:
            self.logging.debug("Clamping search limit %d to %d", limit, self.max_limit)
            return self.max_limit
        return limit

    def _build_payload(self, text: str, metadata: dict[str, Any] | None) -> dict[str, Any]:
        payload: dict[str, Any] = {TEXT_FIELD: text}
        if metadata is not None:
            payload[METADATA_FIELD] = metadata
        return payload

    def _unpack(self, match: IndexMatch) -> dict[str, Any]:
        payload = match.metadata or {}
        return {
            "id": match.id,
            "text": payload.get(TEXT_FIELD, ""),
            "metadata": payload.get(METADATA_FIELD),
        }
