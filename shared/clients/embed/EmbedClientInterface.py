from abc import abstractmethod
from numbers import Real

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions.service_errors import EmbeddingError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    """Embedding model client.

    Models may return more dimensions than the index holds (matryoshka
    embeddings); embed_text() keeps the leading ``embed_dimension`` values and
    rejects anything shorter. Values are never padded.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=self._get_default_model())
        self.embed_dimension = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_DIMENSION", default=256))

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "embed"

    def _get_default_model(self) -> str | None:
        """
        Returns the model used when EMBED_MODEL is unset. None makes EMBED_MODEL required.
        """
        return None

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests (e.g. "/embeddings").
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        """Build the backend-specific request body for an embedding request.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ############ RESPONSE PARSER #############
    ##########################################

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """Extract embedding vectors from a raw embedding API response.

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            list[list[float]]: Embedding vectors in the same order as the input texts.

        Raises:
            ValueError: If the response does not contain embeddings.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        """Send an embedding request and return the raw model vectors.

        Args:
            texts (list[str] | str): One or more texts to embed.

        Returns:
            list[list[float]]: Untruncated vectors in input order.

        Raises:
            Exception: If the request fails (status != 200).
            ValueError: If the response does not contain embeddings.
        """
        texts = [texts] if isinstance(texts, str) else texts
        body = self.get_embed_payload(texts)
        response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=body)
        if response.status_code != 200:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise Exception("Embedding request failed with status %d." % response.status_code)
        return self.extract_embeddings_from_response(response.json())

    async def embed_text(self, text: str) -> list[float]:
        """Embed a single text and fit the vector to the index dimension.

        Args:
            text (str): The text to embed.

        Returns:
            list[float]: Exactly ``embed_dimension`` values, the prefix of the model output.

        Raises:
            EmbeddingError: On any transport, model or payload failure.
        """
        try:
            vectors = await self.do_embed([text])
            if not vectors:
                raise ValueError("Model returned no embeddings")
            return self._fit_dimension(vectors[0])
        except Exception as exc:
            self.logging.error("Embedding generation error (%s): %s", self.get_engine_name(), exc)
            raise EmbeddingError(f"Failed to generate embedding: {exc}") from exc

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _fit_dimension(self, vector: list) -> list[float]:
        if not isinstance(vector, list):
            raise ValueError(f"Embedding payload is not a list: {type(vector).__name__}")
        if any(isinstance(value, bool) or not isinstance(value, Real) for value in vector):
            raise ValueError("Embedding payload contains non-numeric values")
        if len(vector) < self.embed_dimension:
            raise ValueError(
                f"Embedding length {len(vector)} is smaller than required dimension {self.embed_dimension}"
            )
        return [float(value) for value in vector[: self.embed_dimension]]
