from abc import ABC, abstractmethod
from typing import Any

import httpx
from httpx._types import QueryParamTypes, RequestContent

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Common base of the embedding model, vector index and reindex API clients.

    Each subclass names its type ("embed", "index", "reindex") and engine
    ("cloudflare", "openai", "qdrant", "api"); together they prefix every
    setting the client reads, e.g. INDEX_CLOUDFLARE_INDEX_NAME. A missing
    required setting fails construction, so the API server refuses to start
    with a half-configured backend. Requests are only possible between boot()
    and close(), which the FastAPI lifespan and the reindex runner call.
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Reads every setting listed by _get_required_config().

        Raises:
            ValueError: If a setting without default is unset, or a number setting is not numeric.
        """
        for config in self._get_required_config():
            _ = self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns "embed", "index" or "reindex".
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """
        Returns the backend name in lowercase, e.g. "cloudflare" or "qdrant".
        """
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns the engine's settings. Entries without default are mandatory.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Reads one engine setting, e.g. raw_key "ACCOUNT_ID" on the Vectorize client
        reads INDEX_CLOUDFLARE_ACCOUNT_ID.

        Args:
            raw_key (str): Setting suffix.
            default (Any): Returned when the variable is unset. None makes it mandatory.
            val_type (str): "string", "number", "bool" or "list".
        """
        key = self._get_config_key_name(raw_key)
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        if val_type not in readers:
            raise ValueError(f"Unsupported config value type '{val_type}' for setting '{key}'.")
        return readers[val_type](key, default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """
        Returns the credential header: a Cloudflare API token, a Qdrant api-key,
        or this service's own bearer key. {} when the backend is open.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """
        Returns a path that answers 2xx whenever the backend is reachable and the
        credentials are valid, independent of any index or collection existing.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """Check the backend once; used by the API server before it accepts traffic."""
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck())

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        content: RequestContent | None = None,
        json: dict | None = None,
        params: QueryParamTypes | None = None,
        endpoint: str = "",
        additional_headers: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send one request to the backend.

        JSON bodies cover embedding calls, Qdrant and the search API; ``content``
        carries the raw NDJSON lines Vectorize ingests, with the Content-Type set
        through ``additional_headers``.

        Args:
            method: HTTP method.
            content: Raw body. Takes precedence over ``json``.
            json: JSON-serialisable body.
            params: Query parameters, e.g. Qdrant's wait=true.
            endpoint: Path below the base URL.
            additional_headers: Headers merged over the auth header.
            raise_on_error: Raise on any status >= 300 instead of returning the response.

        Returns:
            httpx.Response: The raw response.

        Raises:
            Exception: If boot() was not called, or the status is an error and raise_on_error is set.
            httpx.HTTPError: On transport failures.
        """
        if self._client is None:
            raise Exception(f"{self.get_client_type()} client '{self.get_engine_name()}' is not booted.")

        url = self._build_url(endpoint)
        headers = {**self._get_auth_header(), **(additional_headers or {})}

        kwargs: dict = {"headers": headers, "timeout": self.timeout, "params": params}
        if content is not None:
            kwargs["content"] = content
        elif json is not None:
            kwargs["json"] = json

        response = await self._client.request(method, url, **kwargs)

        if raise_on_error and response.status_code >= 300:
            self.logging.error(
                "%s %s failed with status %d: %s", method, url, response.status_code, response.text[:200]
            )
            raise Exception(f"{method} {url} failed with status {response.status_code}")

        return response

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _build_url(self, endpoint: str) -> str:
        endpoint = endpoint.strip()
        path = "/" + endpoint.lstrip("/") if endpoint else ""
        return f"{self._get_base_url().rstrip('/')}{path}"
