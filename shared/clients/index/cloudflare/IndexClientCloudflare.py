import json
from typing import Any

import httpx

from shared.clients.index.IndexClientInterface import IndexClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class IndexClientCloudflare(IndexClientInterface):
    """Cloudflare Vectorize (v2) over the REST API."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.cloudflare.com/client/v4", val_type="string")
        self._account_id = self.get_config_val("ACCOUNT_ID", default=None, val_type="string")
        self._api_token = self.get_config_val("API_TOKEN", default=None, val_type="string")
        self._index_name = self.get_config_val("INDEX_NAME", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Cloudflare"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.cloudflare.com/client/v4"),
            EnvConfig(env_key="ACCOUNT_ID", val_type="string"),
            EnvConfig(env_key="API_TOKEN", val_type="string"),
            EnvConfig(env_key="INDEX_NAME", val_type="string"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_token}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_indexes(self) -> str:
        return f"/accounts/{self._account_id}/vectorize/v2/indexes"

    def _get_endpoint_index(self) -> str:
        return f"{self._get_endpoint_indexes()}/{self._index_name}"

    def _get_endpoint_healthcheck(self) -> str:
        # the index itself may not exist yet at startup
        return self._get_endpoint_indexes()

    def _get_endpoint_upsert(self) -> str:
        return f"{self._get_endpoint_index()}/upsert"

    def _get_endpoint_delete(self) -> str:
        return f"{self._get_endpoint_index()}/delete_by_ids"

    def _get_endpoint_get(self) -> str:
        return f"{self._get_endpoint_index()}/get_by_ids"

    def _get_endpoint_query(self) -> str:
        return f"{self._get_endpoint_index()}/query"

    def _get_endpoint_check_index_existence(self) -> str:
        return self._get_endpoint_index()

    def _get_endpoint_create_index(self) -> str:
        return self._get_endpoint_indexes()

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_upsert_body(self, doc_id: str, vector: list[float], metadata: dict[str, Any] | None) -> tuple[str, str]:
        # Vectorize ingests newline-delimited JSON, one vector per line
        record: dict[str, Any] = {"id": doc_id, "values": vector}
        if metadata is not None:
            record["metadata"] = metadata
        return json.dumps(record) + "\n", "application/x-ndjson"

    def get_delete_payload(self, doc_ids: list[str]) -> dict:
        return {"ids": doc_ids}

    def get_fetch_payload(self, doc_ids: list[str]) -> dict:
        return {"ids": doc_ids}

    def get_query_payload(self, vector: list[float], limit: int) -> dict:
        return {
            "vector": vector,
            "topK": limit,
            "returnMetadata": "all",
            "returnValues": False,
        }

    def get_create_index_payload(self, dimension: int, metric: str) -> dict:
        return {
            "name": self._index_name,
            "config": {"dimensions": dimension, "metric": metric},
        }

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _extract_result(self, raw_response: dict) -> Any:
        if not raw_response.get("success", True):
            raise ValueError(f"Vectorize reported errors: {raw_response.get('errors')}")
        return raw_response.get("result")

    def extract_fetched_entries(self, raw_response: dict) -> list[dict]:
        result = self._extract_result(raw_response) or []
        return [{"id": entry["id"], "metadata": entry.get("metadata")} for entry in result]

    def extract_query_matches(self, raw_response: dict) -> list[dict]:
        result = self._extract_result(raw_response) or {}
        return [
            {"id": match["id"], "score": match["score"], "metadata": match.get("metadata")}
            for match in result.get("matches", [])
        ]

    def extract_index_exists(self, response: httpx.Response) -> bool:
        if response.status_code == 404:
            return False
        if response.status_code >= 300:
            raise Exception(f"Vectorize index lookup failed with status {response.status_code}")
        return True
