from abc import abstractmethod
from typing import Any

import httpx
from shared.clients.ClientInterface import ClientInterface
from shared.clients.index.models.IndexMatch import IndexMatch
from shared.exceptions.service_errors import VectorIndexError
from shared.helper.HelperConfig import HelperConfig

EXACT_MATCH_SCORE = 1.0


class IndexClientInterface(ClientInterface):
    """Uniform upsert / delete / get / query interface over a vector store.

    Entries are keyed by document id. Every request method wraps backend and
    transport failures into a VectorIndexError whose message names the
    operation that failed.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "index"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_upsert(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_delete(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_get(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_query(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_check_index_existence(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_create_index(self) -> str:
        pass

    ################ REQUEST SHAPE ##################
    def _get_method_upsert(self) -> str:
        return "POST"

    def _get_method_create_index(self) -> str:
        return "POST"

    def _get_write_params(self) -> dict:
        """
        Query parameters added to mutating requests (e.g. Qdrant's wait=true).
        """
        return {}

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    @abstractmethod
    def get_upsert_body(self, doc_id: str, vector: list[float], metadata: dict[str, Any] | None) -> tuple[str, str]:
        """
        Serialises one entry for the upsert endpoint.

        Returns:
            tuple[str, str]: The request body and its Content-Type.
        """
        pass

    @abstractmethod
    def get_delete_payload(self, doc_ids: list[str]) -> dict:
        pass

    @abstractmethod
    def get_fetch_payload(self, doc_ids: list[str]) -> dict:
        pass

    @abstractmethod
    def get_query_payload(self, vector: list[float], limit: int) -> dict:
        pass

    @abstractmethod
    def get_create_index_payload(self, dimension: int, metric: str) -> dict:
        """
        Builds the index creation body.

        Args:
            dimension (int): Vector length.
            metric (str): "cosine", "euclidean" or "dot-product".
        """
        pass

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def extract_fetched_entries(self, raw_response: dict) -> list[dict]:
        """
        Extracts the entries of a get-by-ids response.

        Returns:
            list[dict]: Dicts with keys "id" (document id) and "metadata".
        """
        pass

    @abstractmethod
    def extract_query_matches(self, raw_response: dict) -> list[dict]:
        """
        Extracts the matches of a query response, in backend order.

        Returns:
            list[dict]: Dicts with keys "id" (document id), "score" and "metadata".
        """
        pass

    @abstractmethod
    def extract_index_exists(self, response: httpx.Response) -> bool:
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_upsert(self, doc_id: str, vector: list[float], metadata: dict[str, Any] | None = None) -> None:
        """Insert or replace the entry keyed by doc_id.

        Raises:
            VectorIndexError: "Failed to upsert vector: ..."
        """
        try:
            body, content_type = self.get_upsert_body(doc_id, vector, metadata)
            await self.do_request(
                method=self._get_method_upsert(),
                content=body,
                params=self._get_write_params(),
                endpoint=self._get_endpoint_upsert(),
                additional_headers={"Content-Type": content_type},
                raise_on_error=True,
            )
        except Exception as exc:
            raise VectorIndexError(f"Failed to upsert vector: {exc}") from exc
        self.logging.debug("Upserted vector id=%r (%d dims) into %s", doc_id, len(vector), self.get_engine_name())

    async def do_delete_by_ids(self, doc_ids: list[str]) -> None:
        """Remove the entries for doc_ids. Ids that are not stored are ignored.

        Raises:
            VectorIndexError: "Failed to delete vectors: ..."
        """
        if not doc_ids:
            return
        try:
            await self.do_request(
                method="POST",
                json=self.get_delete_payload(doc_ids),
                params=self._get_write_params(),
                endpoint=self._get_endpoint_delete(),
                raise_on_error=True,
            )
        except Exception as exc:
            raise VectorIndexError(f"Failed to delete vectors: {exc}") from exc
        self.logging.debug("Deleted %d vector id(s) from %s", len(doc_ids), self.get_engine_name())

    async def do_get_by_id(self, doc_id: str) -> IndexMatch | None:
        """Exact-key lookup.

        Returns:
            IndexMatch | None: The entry with score 1.0, or None if doc_id is not stored.

        Raises:
            VectorIndexError: "Failed to fetch vector by id: ..."
        """
        try:
            resp = await self.do_request(
                method="POST",
                json=self.get_fetch_payload([doc_id]),
                endpoint=self._get_endpoint_get(),
                raise_on_error=True,
            )
            entries = self.extract_fetched_entries(resp.json())
        except Exception as exc:
            raise VectorIndexError(f"Failed to fetch vector by id: {exc}") from exc

        for entry in entries:
            if entry.get("id") == doc_id:
                return IndexMatch(id=doc_id, score=EXACT_MATCH_SCORE, metadata=entry.get("metadata"))
        return None

    async def do_query(self, vector: list[float], limit: int = 10) -> list[IndexMatch]:
        """Nearest-neighbour search.

        Returns:
            list[IndexMatch]: Up to ``limit`` matches, most similar first.

        Raises:
            VectorIndexError: "Failed to query vectors: ..."
        """
        try:
            resp = await self.do_request(
                method="POST",
                json=self.get_query_payload(vector, limit),
                endpoint=self._get_endpoint_query(),
                raise_on_error=True,
            )
            matches = [
                IndexMatch(id=str(match["id"]), score=float(match["score"]), metadata=match.get("metadata"))
                for match in self.extract_query_matches(resp.json())
            ]
        except Exception as exc:
            raise VectorIndexError(f"Failed to query vectors: {exc}") from exc
        return matches[:limit]

    async def do_existence_check(self) -> bool:
        """Check whether the configured index/collection exists."""
        resp = await self.do_request(method="GET", endpoint=self._get_endpoint_check_index_existence())
        return self.extract_index_exists(resp)

    async def do_create_index(self, dimension: int = 256, metric: str = "cosine") -> httpx.Response:
        """Create the configured index/collection. The metric is fixed from here on."""
        return await self.do_request(
            method=self._get_method_create_index(),
            json=self.get_create_index_payload(dimension, metric),
            endpoint=self._get_endpoint_create_index(),
            raise_on_error=True,
        )
