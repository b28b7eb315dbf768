"""Qdrant implementation of IndexClientInterface.

Qdrant only accepts UUIDs or unsigned integers as point ids, so every
document id is mapped to a deterministic UUID5 and the original id is kept in
the point payload under ``doc_id``. Reads restore it and strip it from the
metadata handed back to callers.
"""

import json
import uuid
from typing import Any

import httpx

from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

# Changing this namespace orphans every stored point.
_POINT_ID_NAMESPACE = uuid.UUID("0b6e3f52-7c1d-4d8a-9a57-2f1c8e4b6d90")
_DOC_ID_FIELD = "doc_id"
_DISTANCES = {"cosine": "Cosine", "euclidean": "Euclid", "dot-product": "Dot"}


def make_point_id(doc_id: str) -> str:
    """Map a document id to its Qdrant point id."""
    return str(uuid.uuid5(_POINT_ID_NAMESPACE, doc_id))


class IndexClientQdrant(IndexClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string"),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": self._api_key}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_upsert(self) -> str:
        return f"/collections/{self._collection_name}/points"

    def _get_endpoint_delete(self) -> str:
        return f"/collections/{self._collection_name}/points/delete"

    def _get_endpoint_get(self) -> str:
        return f"/collections/{self._collection_name}/points"

    def _get_endpoint_query(self) -> str:
        return f"/collections/{self._collection_name}/points/query"

    def _get_endpoint_check_index_existence(self) -> str:
        return f"/collections/{self._collection_name}/exists"

    def _get_endpoint_create_index(self) -> str:
        return f"/collections/{self._collection_name}"

    ################ REQUEST SHAPE ##################
    def _get_method_upsert(self) -> str:
        return "PUT"

    def _get_method_create_index(self) -> str:
        return "PUT"

    def _get_write_params(self) -> dict:
        # block until the write is applied so the id is immediately readable
        return {"wait": "true"}

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_upsert_body(self, doc_id: str, vector: list[float], metadata: dict[str, Any] | None) -> tuple[str, str]:
        payload = {**(metadata or {}), _DOC_ID_FIELD: doc_id}
        point = {"id": make_point_id(doc_id), "vector": vector, "payload": payload}
        return json.dumps({"points": [point]}), "application/json"

    def get_delete_payload(self, doc_ids: list[str]) -> dict:
        return {"points": [make_point_id(doc_id) for doc_id in doc_ids]}

    def get_fetch_payload(self, doc_ids: list[str]) -> dict:
        return {
            "ids": [make_point_id(doc_id) for doc_id in doc_ids],
            "with_payload": True,
            "with_vector": False,
        }

    def get_query_payload(self, vector: list[float], limit: int) -> dict:
        return {
            "query": vector,
            "limit": limit,
            "with_payload": True,
            "with_vector": False,
        }

    def get_create_index_payload(self, dimension: int, metric: str) -> dict:
        distance = _DISTANCES.get(metric.lower())
        if distance is None:
            raise ValueError(f"Unsupported metric '{metric}' for Qdrant. Use one of {sorted(_DISTANCES)}.")
        return {"vectors": {"size": dimension, "distance": distance}}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _split_payload(self, point: dict) -> tuple[str, dict | None]:
        payload = dict(point.get("payload") or {})
        doc_id = payload.pop(_DOC_ID_FIELD, None)
        if doc_id is None:
            raise ValueError(f"Qdrant point {point.get('id')} has no '{_DOC_ID_FIELD}' in its payload")
        return str(doc_id), payload or None

    def extract_fetched_entries(self, raw_response: dict) -> list[dict]:
        entries = []
        for point in raw_response.get("result") or []:
            doc_id, metadata = self._split_payload(point)
            entries.append({"id": doc_id, "metadata": metadata})
        return entries

    def extract_query_matches(self, raw_response: dict) -> list[dict]:
        result = raw_response.get("result") or {}
        # /points/query nests points; the legacy /points/search returned a bare list
        points = result.get("points", []) if isinstance(result, dict) else result
        matches = []
        for point in points:
            doc_id, metadata = self._split_payload(point)
            matches.append({"id": doc_id, "score": point.get("score", 0.0), "metadata": metadata})
        return matches

    def extract_index_exists(self, response: httpx.Response) -> bool:
        if response.status_code >= 300:
            raise Exception(f"Qdrant existence check failed with status {response.status_code}")
        return bool(response.json().get("result", {}).get("exists"))
