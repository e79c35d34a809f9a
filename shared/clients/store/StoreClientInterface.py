import asyncio
from abc import abstractmethod
from datetime import datetime, timezone

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.knowledge import KnowledgeChunk, KnowledgeDocument


class StoreClientInterface(ClientInterface):
    """Persistent home of knowledge documents and their chunks.

    Documents own their chunks: saving a document replaces its whole chunk set
    and deleting it removes the chunks as well. All writes go through one lock
    per store, so concurrent saves of the same document never interleave and a
    reader never sees a mix of old and new chunks.

    Every backend failure surfaces as StorageError.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._write_lock = asyncio.Lock()

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "store"
        """
        return "store"

    ##########################################
    ################ ENGINE ##################
    ##########################################

    @abstractmethod
    async def _read_all_documents(self) -> list[KnowledgeDocument]:
        """Every document with its chunks, in any order."""
        pass

    @abstractmethod
    async def _read_document(self, document_id: str) -> KnowledgeDocument | None:
        pass

    @abstractmethod
    async def _read_all_chunks(self) -> list[KnowledgeChunk]:
        """Every chunk of every document, in any order."""
        pass

    @abstractmethod
    async def _write_document(self, document: KnowledgeDocument) -> None:
        """Insert or replace the document row and its full chunk set in one step."""
        pass

    @abstractmethod
    async def _remove_document(self, document_id: str) -> None:
        """Remove the document and all of its chunks in one step. Unknown ids are ignored."""
        pass

    @abstractmethod
    async def _write_chunk(self, chunk: KnowledgeChunk) -> None:
        """Overwrite content and embedding of an existing chunk. Unknown ids are ignored."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def fetch_all_documents(self) -> list[KnowledgeDocument]:
        """
        Fetches every document, most recently updated first.

        Returns:
            list[KnowledgeDocument]: All documents with their chunks.

        Raises:
            StorageError: If the backend cannot be read.
        """
        documents = await self._read_all_documents()
        return sorted(documents, key=lambda doc: doc.updated_at, reverse=True)

    async def fetch_document(self, document_id: str) -> KnowledgeDocument | None:
        """
        Fetches a single document by id.

        Returns:
            KnowledgeDocument | None: The document with its chunks, or None if unknown.

        Raises:
            StorageError: If the backend cannot be read.
        """
        return await self._read_document(document_id)

    async def fetch_all_chunks(self) -> list[KnowledgeChunk]:
        """
        Fetches every chunk of every document, ordered by (document_id, chunk_index).

        Raises:
            StorageError: If the backend cannot be read.
        """
        chunks = await self._read_all_chunks()
        return sorted(chunks, key=lambda chunk: (chunk.document_id, chunk.chunk_index))

    async def fetch_chunks(self, document_id: str) -> list[KnowledgeChunk]:
        """
        Fetches the chunks of one document, ordered by chunk_index.

        Returns:
            list[KnowledgeChunk]: The chunks, empty if the document is unknown.

        Raises:
            StorageError: If the backend cannot be read.
        """
        document = await self._read_document(document_id)
        if document is None:
            return []
        return sorted(document.chunks, key=lambda chunk: chunk.chunk_index)

    async def save_document(self, document: KnowledgeDocument) -> KnowledgeDocument:
        """
        Inserts a new document or replaces an existing one including its whole chunk set.

        On insert the caller's timestamps are kept. On update created_at of the
        stored document is kept and updated_at is set to now.

        Args:
            document (KnowledgeDocument): The document to store, with its chunks attached.

        Returns:
            KnowledgeDocument: The document as it was stored.

        Raises:
            StorageError: If the write fails. The previous state is left untouched.
        """
        async with self._write_lock:
            existing = await self._read_document(document.id)
            chunks = [chunk.model_copy(update={"document_id": document.id}) for chunk in document.chunks]
            update: dict = {"chunks": chunks}
            if existing is not None:
                update["created_at"] = existing.created_at
                update["updated_at"] = datetime.now(timezone.utc)
            stored = document.model_copy(update=update)
            await self._write_document(stored)
            self.logging.debug("Saved document '%s' with %d chunks to %s store.", stored.id, len(chunks), self.get_engine_name())
            return stored

    async def delete_document(self, document: KnowledgeDocument) -> None:
        """
        Deletes a document together with all of its chunks.

        Raises:
            StorageError: If the delete fails.
        """
        async with self._write_lock:
            await self._remove_document(document.id)
            self.logging.debug("Deleted document '%s' from %s store.", document.id, self.get_engine_name())

    async def update_chunk(self, chunk: KnowledgeChunk) -> None:
        """
        Updates content and embedding of a stored chunk in place. Unknown chunks are ignored.

        Raises:
            StorageError: If the write fails.
        """
        async with self._write_lock:
            await self._write_chunk(chunk)
