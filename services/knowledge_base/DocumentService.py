"""Document service.

Turns text into stored knowledge: chunks a document with the configured
delimiter and size, embeds every chunk, and saves the document together with
its chunk set. Also carries the user-facing document operations (manual
entry, file import, edit, delete, listing).
"""

import asyncio
import os
from datetime import datetime, timezone

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.exceptions import DocumentImportError, DocumentNotFoundError, EmbeddingError
from shared.helper.HelperChunking import chunk_text
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import RAGSettings
from shared.models.knowledge import KnowledgeChunk, KnowledgeDocument, SourceType, hash_content


class DocumentService:
    """Ingest pipeline and CRUD operations for knowledge documents."""

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

    ##########################################
    ############# INGEST PIPELINE ############
    ##########################################

    async def _embed_or_none(self, text: str, document_id: str, chunk_index: int) -> list[float] | None:
        try:
            return await self._embed_client.generate_embedding(text)
        except EmbeddingError as exc:
            self.logging.warning(
                "Embedding failed for chunk %d of document '%s', storing it without embedding: %s",
                chunk_index, document_id, exc,
            )
            return None

    async def do_build_chunks(self, document_id: str, content: str) -> list[KnowledgeChunk]:
        """Split content into chunks and embed each of them.

        A chunk whose embedding fails is kept with embedding=None; it stays
        visible in the document but never matches a query.

        Args:
            document_id (str): Id of the document the chunks belong to.
            content (str): The document text.

        Returns:
            list[KnowledgeChunk]: Chunks in text order, chunk_index starting at 0.
        """
        texts = chunk_text(content, self._settings.chunk_delimiter, self._settings.chunk_size)
        sem = asyncio.Semaphore(self._embed_client.embed_concurrency)

        async def _embed(index: int, text: str) -> list[float] | None:
            async with sem:
                return await self._embed_or_none(text, document_id, index)

        # gather keeps input order
        embeddings = await asyncio.gather(*[_embed(index, text) for index, text in enumerate(texts)])
        return [
            KnowledgeChunk(document_id=document_id, chunk_index=index, content=text, embedding=embedding)
            for index, (text, embedding) in enumerate(zip(texts, embeddings))
        ]

    async def do_ingest(self, document: KnowledgeDocument) -> KnowledgeDocument:
        """Chunk, embed and save a document, replacing any previous chunk set.

        The store is only written once every chunk exists, so a cancelled
        ingest leaves no half-chunked document behind.

        Args:
            document (KnowledgeDocument): The document to ingest.

        Returns:
            KnowledgeDocument: The stored document.

        Raises:
            StorageError: If the document cannot be saved.
        """
        chunks = await self.do_build_chunks(document.id, document.content)
        prepared = document.model_copy(update={"chunks": chunks, "content_hash": hash_content(document.content)})
        stored = await self._store_client.save_document(prepared)
        embedded = sum(1 for chunk in chunks if chunk.embedding is not None)
        self.logging.info(
            "Ingested document '%s' ('%s'): %d chunks, %d embedded.",
            stored.id, stored.title, len(chunks), embedded,
        )
        return stored

    ##########################################
    ############### DOCUMENTS ################
    ##########################################

    async def do_add_document(self, title: str, content: str) -> KnowledgeDocument:
        """Add a manually entered document.

        Raises:
            ValueError: If title or content is blank.
            StorageError: If the document cannot be saved.
        """
        if not title or not title.strip():
            raise ValueError("Document title must not be empty.")
        if not content or not content.strip():
            raise ValueError("Document content must not be empty.")

        document = KnowledgeDocument(title=title.strip(), content=content, source_type=SourceType.MANUAL)
        return await self.do_ingest(document)

    async def do_import_file(self, path: str, title: str | None = None) -> KnowledgeDocument:
        """Import a UTF-8 text file as a document.

        Args:
            path (str): Path of the file to import.
            title (str | None): Document title, defaults to the file name.

        Raises:
            DocumentImportError: If the file cannot be read, is not UTF-8 or is empty.
            StorageError: If the document cannot be saved.
        """
        try:
            content = await asyncio.to_thread(self._read_text_file, path)
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentImportError(f"Could not import file '{path}': {exc}") from exc
        if not content.strip():
            raise DocumentImportError(f"File '{path}' is empty.")

        document = KnowledgeDocument(
            title=(title or "").strip() or os.path.basename(path),
            content=content,
            source_type=SourceType.FILE,
            source_path=path,
        )
        return await self.do_ingest(document)

    @staticmethod
    def _read_text_file(path: str) -> str:
        with open(path, "r", encoding="utf-8") as handle:
            return handle.read()

    async def do_update_document(
        self,
        document_id: str,
        title: str | None = None,
        content: str | None = None,
    ) -> KnowledgeDocument:
        """Change title and/or content of a document and rebuild its chunks.

        Raises:
            DocumentNotFoundError: If no document has the given id.
            ValueError: If a given title or content is blank.
            StorageError: If the document cannot be read or saved.
        """
        existing = await self._store_client.fetch_document(document_id)
        if existing is None:
            raise DocumentNotFoundError(document_id)
        if title is not None and not title.strip():
            raise ValueError("Document title must not be empty.")
        if content is not None and not content.strip():
            raise ValueError("Document content must not be empty.")

        updated = existing.model_copy(update={
            "title": title.strip() if title is not None else existing.title,
            "content": content if content is not None else existing.content,
            "updated_at": datetime.now(timezone.utc),
        })
        return await self.do_ingest(updated)

    async def do_delete_document(self, document_id: str) -> None:
        """Delete a document and its chunks.

        Raises:
            DocumentNotFoundError: If no document has the given id.
            StorageError: If the delete fails.
        """
        existing = await self._store_client.fetch_document(document_id)
        if existing is None:
            raise DocumentNotFoundError(document_id)
        await self._store_client.delete_document(existing)
        self.logging.info("Deleted document '%s' ('%s').", existing.id, existing.title)

    async def do_get_document(self, document_id: str) -> KnowledgeDocument:
        """
        Raises:
            DocumentNotFoundError: If no document has the given id.
        """
        document = await self._store_client.fetch_document(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    async def do_list_documents(self) -> list[KnowledgeDocument]:
        """All documents, most recently updated first."""
        return await self._store_client.fetch_all_documents()

    async def do_list_chunks(self, document_id: str | None = None) -> list[KnowledgeChunk]:
        """Chunks of one document, or of all documents when no id is given.

        Raises:
            DocumentNotFoundError: If a document id is given but unknown.
        """
        if document_id is None:
            return await self._store_client.fetch_all_chunks()
        document = await self.do_get_document(document_id)
        return sorted(document.chunks, key=lambda chunk: chunk.chunk_index)
