"""Retrieval service.

Answers a free-text query with the most similar stored chunks and builds the
augmented prompt sent to a language model. Retrieval never fails the caller:
a disabled gate, a blank query, an embedding failure or an unreadable store
all degrade to "no results".
"""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.exceptions import EmbeddingError, StorageError
from shared.helper.HelperChunking import strip_chunk_marker
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperSimilarity import search
from shared.models.config import RAGSettings
from shared.models.knowledge import KnowledgeChunk, KnowledgeDocument, SearchResult


class RetrievalService:
    """Embeds a query, ranks the cached chunks against it and formats the context."""

    def __init__(
        self,
        helper_config: HelperConfig,
        settings: RAGSettings,
        store_client: StoreClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._settings = settings
        self._store_client = store_client
        self._embed_client = embed_client

        # session cache, dropped by invalidate()
        self._cache_chunks: list[KnowledgeChunk] | None = None
        self._cache_documents: dict[str, KnowledgeDocument] | None = None

    ##########################################
    ################ CACHE ###################
    ##########################################

    def invalidate(self) -> None:
        """Drop the cached chunks and documents; the next search reloads them from the store."""
        self._cache_chunks = None
        self._cache_documents = None
        self.logging.debug("Retrieval cache invalidated.")

    async def _load_cache(self) -> tuple[list[KnowledgeChunk], dict[str, KnowledgeDocument]]:
        if self._cache_chunks is None or self._cache_documents is None:
            chunks = await self._store_client.fetch_all_chunks()
            documents = await self._store_client.fetch_all_documents()
            self._cache_chunks = chunks
            self._cache_documents = {doc.id: doc for doc in documents}
            self.logging.debug("Retrieval cache filled: %d chunks of %d documents.", len(chunks), len(documents))
        return self._cache_chunks, self._cache_documents

    ##########################################
    ############### SEARCH ###################
    ##########################################

    async def search(self, query: str) -> list[SearchResult]:
        """Find the chunks most similar to a query.

        Args:
            query (str): The user query.

        Returns:
            list[SearchResult]: At most top_k results, best first, each with the
                title of its document. Empty when retrieval is disabled or fails.
        """
        if not self._settings.is_enabled:
            return []
        if not query or not query.strip():
            return []

        try:
            query_embedding = await self._embed_client.generate_embedding(query)
        except EmbeddingError as exc:
            self.logging.warning("Could not embed query, continuing without knowledge: %s", exc)
            return []

        try:
            chunks, documents = await self._load_cache()
        except StorageError as exc:
            self.logging.error("Could not load knowledge chunks, continuing without knowledge: %s", exc)
            return []

        results = search(query_embedding, chunks, self._settings.top_k)
        for result in results:
            document = documents.get(result.chunk.document_id)
            result.document_title = document.title if document else ""

        self.logging.info("Retrieved %d chunk(s) for query '%s'.", len(results), query[:50])
        return results

    ##########################################
    ############### PROMPT ###################
    ##########################################

    def format_context(self, results: list[SearchResult]) -> str:
        """Render results as numbered sources, e.g. "[Source 1] Title (similarity: 0.87)" plus the chunk text."""
        blocks = []
        for index, result in enumerate(results, start=1):
            header = f"[Source {index}] {result.document_title} (similarity: {result.similarity:.2f})"
            blocks.append(f"{header}\n{strip_chunk_marker(result.chunk.content)}")
        return "\n\n".join(blocks)

    def build_prompt(self, query: str, results: list[SearchResult]) -> str:
        """Fill the active prompt template with the formatted context and the query."""
        template = self._settings.get_prompt_template()
        return template.replace("{context}", self.format_context(results)).replace("{query}", query)

    async def do_build_augmented_prompt(self, query: str) -> str:
        """Search and build the prompt in one go. Without results the plain query is returned."""
        results = await self.search(query)
        if not results:
            return query
        return self.build_prompt(query, results)
