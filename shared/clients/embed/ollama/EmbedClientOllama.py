import httpx

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.exceptions import EmptyTextError, ModelUnavailableError, NoTokensError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class EmbedClientOllama(EmbedClientInterface, HttpClientInterface):
    """Embedding provider backed by an Ollama server (/api/embed)."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        if not self.embed_model:
            raise ValueError("Environment variable 'EMBED_MODEL' is required for the Ollama embed engine.")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ollama"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        # lists local models, cheap and auth-free
        return "/api/tags"

    def _get_endpoint_embedding(self) -> str:
        return "/api/embed"

    ################ PAYLOAD BUILDER ##################
    def _get_embed_payload(self, texts: list[str]) -> dict:
        """Build the Ollama embedding request body.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            dict: {"model": "...", "input": [...]}
        """
        return {"model": self.embed_model, "input": texts}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _read_json(self, response: httpx.Response) -> dict:
        # proxies and truncated bodies answer 200 with something that is not our JSON
        try:
            data = response.json()
        except ValueError as exc:
            raise ModelUnavailableError(f"Ollama returned a non-JSON body: {response.text[:100]!r}") from exc
        if not isinstance(data, dict):
            raise ModelUnavailableError(f"Ollama returned an unexpected JSON payload: {type(data).__name__}")
        return data

    def _extract_embeddings_from_response(self, response_data: dict, expected: int) -> list[list[float]]:
        """Extract embedding vectors from an Ollama /api/embed response.

        Args:
            response_data (dict): The parsed JSON response body.
            expected (int): Number of texts that were sent.

        Returns:
            list[list[float]]: Embedding vectors in input order.

        Raises:
            NoTokensError: If the response holds fewer vectors than texts, or an empty vector.
            ModelUnavailableError: If a vector is not a list of numbers.
        """
        embeddings = response_data.get("embeddings") or []
        if not isinstance(embeddings, list) or len(embeddings) != expected or any(not vector for vector in embeddings):
            raise NoTokensError(
                "Ollama response does not contain a vector for every text. "
                f"Response keys: {list(response_data.keys())}"
            )
        try:
            return [[float(value) for value in vector] for vector in embeddings]
        except (TypeError, ValueError) as exc:
            raise ModelUnavailableError(f"Ollama returned a malformed embedding vector: {exc}") from exc

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _compute_embeddings(self, texts: list[str]) -> list[list[float]]:
        try:
            response = await self.do_request(
                method="POST",
                endpoint=self._get_endpoint_embedding(),
                json=self._get_embed_payload(texts),
                raise_on_error=True,
            )
        except (httpx.HTTPError, RuntimeError) as exc:
            raise ModelUnavailableError(f"Ollama embedding request failed: {exc}") from exc
        return self._extract_embeddings_from_response(self._read_json(response), expected=len(texts))

    async def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Embed all texts with a single /api/embed request; Ollama keeps input order.

        Raises:
            EmptyTextError: If any text is blank.
        """
        if not texts:
            return []
        if any(not text or not text.strip() for text in texts):
            raise EmptyTextError()
        return await self._compute_embeddings(texts)
