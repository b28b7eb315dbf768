from urllib.parse import quote

import httpx

from shared.auth.KeyRegistry import parse_key_list
from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

DEFAULT_BASE_URL = "http://localhost:8000"


class SearchApiClient(ClientInterface):
    """Client of this service's own public HTTP API, used by batch tooling.

    Settings: REINDEX_API_BASE_URL and REINDEX_API_KEY. Without an explicit key
    the legacy API_KEY and then the first API_KEY_WRITER token are used.
    """

    def __init__(self, helper_config: HelperConfig, base_url: str | None = None):
        super().__init__(helper_config=helper_config)
        self._base_url = base_url or self.get_config_val("BASE_URL", default=DEFAULT_BASE_URL, val_type="string")
        self._api_key = self._resolve_api_key()

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "reindex"

    def _get_engine_name(self) -> str:
        return "Api"

    def get_base_url(self) -> str:
        return self._base_url

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=DEFAULT_BASE_URL),
            EnvConfig(env_key="KEY", val_type="string", default=""),
        ]

    def _resolve_api_key(self) -> str:
        api_key = self.get_config_val("KEY", default="", val_type="string")
        if not api_key:
            api_key = self._helper_config.get_string_val("API_KEY", default="")
        if not api_key:
            writer_keys = parse_key_list(self._helper_config.get_string_val("API_KEY_WRITER", default=""))
            api_key = writer_keys[0] if writer_keys else ""
        if not api_key:
            raise ValueError("REINDEX_API_KEY, API_KEY or API_KEY_WRITER environment variable is required.")
        return api_key

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_documents(self) -> str:
        return "/v1/documents"

    def _get_endpoint_document(self, doc_id: str) -> str:
        return f"/v1/documents/{quote(doc_id, safe='')}"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_index_document(self, document: dict) -> httpx.Response:
        """POST one seed document to /v1/documents."""
        return await self.do_request(method="POST", json=document, endpoint=self._get_endpoint_documents())

    async def do_delete_document(self, doc_id: str) -> httpx.Response:
        """DELETE /v1/documents/{doc_id}."""
        return await self.do_request(method="DELETE", endpoint=self._get_endpoint_document(doc_id))
