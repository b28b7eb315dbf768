from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientCloudflare(EmbedClientInterface):
    """Cloudflare Workers AI embedding models over the REST API."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default="https://api.cloudflare.com/client/v4", val_type="string")
        self._account_id = self.get_config_val("ACCOUNT_ID", default=None, val_type="string")
        self._api_token = self.get_config_val("API_TOKEN", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Cloudflare"

    def _get_default_model(self) -> str | None:
        # 768 native dims, matryoshka-trained
        return "@cf/google/embeddinggemma-300m"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default="https://api.cloudflare.com/client/v4"),
            EnvConfig(env_key="ACCOUNT_ID", val_type="string"),
            EnvConfig(env_key="API_TOKEN", val_type="string"),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_token}"}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/user/tokens/verify"

    def get_endpoint_embedding(self) -> str:
        return f"/accounts/{self._account_id}/ai/run/{self.embed_model}"

    ################ PAYLOAD BUILDER ##################
    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"text": texts}

    ##########################################
    ############ RESPONSE PARSER #############
    ##########################################

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract vectors from a Workers AI response.

        The REST API wraps the model output as {"result": {"shape": [...], "data": [[...]]}};
        the bare {"data": [[...]]} form of the worker binding is accepted too.

        Raises:
            ValueError: If the response does not contain a data array.
        """
        if not isinstance(response_data, dict):
            raise ValueError(f"Invalid response from Workers AI: {response_data!r}")
        result = response_data.get("result", response_data)
        data = result.get("data") if isinstance(result, dict) else None
        if not isinstance(data, list) or not data:
            raise ValueError(f"Invalid response from Workers AI, keys: {list(response_data.keys())}")
        return data
