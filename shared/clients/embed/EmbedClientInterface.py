import asyncio
from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.exceptions import EmptyTextError
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    """Embedding provider contract: text in, fixed-dimension vector out.

    Engines only implement _compute_embeddings(); blank-text validation,
    bounded concurrency and order preservation live here so every engine
    behaves the same towards the ingest and query paths.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and batching config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default="")
        self.embed_concurrency = max(int(helper_config.get_number_val(f"{self.get_client_type().upper()}_CONCURRENCY", default=4)), 1)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "embed"
        """
        return "embed"

    ##########################################
    ################ ENGINE ##################
    ##########################################

    @abstractmethod
    async def _compute_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Compute one vector per text with the engine's backend.

        Texts are guaranteed to be non-blank.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            list[list[float]]: Vectors in the same order as the inputs.

        Raises:
            ModelUnavailableError: If the backend cannot be loaded or reached.
            NoTokensError: If a text yields no resolvable terms.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def generate_embedding(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text (str): The text to embed.

        Returns:
            list[float]: The embedding vector.

        Raises:
            EmptyTextError: If the text is blank after trimming.
            ModelUnavailableError: If the backend cannot be loaded or reached.
            NoTokensError: If the text yields no resolvable terms.
        """
        if not text or not text.strip():
            raise EmptyTextError()
        vectors = await self._compute_embeddings([text])
        return vectors[0]

    async def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Embed many texts concurrently, returning vectors in input order.

        At most embed_concurrency texts are in flight at once. Results are
        placed by their original index, never by completion order.

        Args:
            texts (list[str]): The texts to embed.

        Returns:
            list[list[float]]: One vector per input text, same order.

        Raises:
            EmbeddingError: The first failure among the texts.
        """
        sem = asyncio.Semaphore(self.embed_concurrency)
        results: list[list[float] | None] = [None] * len(texts)

        async def _embed_at(index: int, text: str) -> None:
            async with sem:
                results[index] = await self.generate_embedding(text)

        await asyncio.gather(*[_embed_at(index, text) for index, text in enumerate(texts)])
        self.logging.debug("Embedded batch of %d texts with %s.", len(texts), self.get_engine_name())
        return [vector for vector in results if vector is not None]
