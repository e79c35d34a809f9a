from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.knowledge import KnowledgeChunk, KnowledgeDocument


class StoreClientMemory(StoreClientInterface):
    """Process-local store. Contents are lost on exit.

    Documents are kept as deep copies in and out, so callers can never mutate
    stored state behind the store's back.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._documents: dict[str, KnowledgeDocument] = {}

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Memory"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return []

    ##########################################
    ################ ENGINE ##################
    ##########################################

    async def _read_all_documents(self) -> list[KnowledgeDocument]:
        return [doc.model_copy(deep=True) for doc in self._documents.values()]

    async def _read_document(self, document_id: str) -> KnowledgeDocument | None:
        document = self._documents.get(document_id)
        return document.model_copy(deep=True) if document else None

    async def _read_all_chunks(self) -> list[KnowledgeChunk]:
        return [chunk.model_copy(deep=True) for doc in self._documents.values() for chunk in doc.chunks]

    async def _write_document(self, document: KnowledgeDocument) -> None:
        # single assignment swaps document and chunk set together
        self._documents[document.id] = document.model_copy(deep=True)

    async def _remove_document(self, document_id: str) -> None:
        self._documents.pop(document_id, None)

    async def _write_chunk(self, chunk: KnowledgeChunk) -> None:
        document = self._documents.get(chunk.document_id)
        if document is None:
            return
        embedding = list(chunk.embedding) if chunk.embedding is not None else None
        chunks = [
            stored.model_copy(update={"content": chunk.content, "embedding": embedding}) if stored.id == chunk.id else stored
            for stored in document.chunks
        ]
        self._documents[document.id] = document.model_copy(update={"chunks": chunks})

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> bool:
        return True
