"""Tests for the per-document ingest pipeline and the document operations."""

import asyncio

import pytest

from shared.exceptions import DocumentImportError, DocumentNotFoundError, StorageError
from shared.models.config import RAGSettings
from shared.models.knowledge import KnowledgeDocument, SourceType, hash_content
from services.knowledge_base.DocumentService import DocumentService

from conftest import FakeEmbedClient


def test_build_chunks_embeds_every_chunk(document_service):
    chunks = asyncio.run(document_service.do_build_chunks("doc-1", "apple pie with cream\nbanana bread loaf\ncherry tart"))

    assert [c.chunk_index for c in chunks] == [0, 1]
    assert chunks[0].content == "[Chunk 1] apple pie with cream\nbanana bread loaf"
    assert chunks[1].content == "[Chunk 2] cherry tart"
    assert all(c.document_id == "doc-1" for c in chunks)
    assert all(c.embedding is not None for c in chunks)


def test_failed_chunk_is_stored_without_embedding(config, store_client):
    embed_client = FakeEmbedClient(helper_config=config, fail_words={"river"})
    settings = RAGSettings(chunk_delimiter="\n", chunk_size=15)
    service = DocumentService(helper_config=config, settings=settings, store_client=store_client, embed_client=embed_client)

    stored = asyncio.run(service.do_add_document("Trip", "apple orchard\nriver walk\nsunset sky"))

    assert [c.embedding is None for c in stored.chunks] == [False, True, False]
    assert len(asyncio.run(store_client.fetch_chunks(stored.id))) == 3


def test_chunk_without_known_words_is_stored_without_embedding(document_service):
    chunks = asyncio.run(document_service.do_build_chunks("doc-1", "nothing known here"))

    assert len(chunks) == 1
    assert chunks[0].embedding is None


def test_add_document_is_manual_and_hashed(document_service, store_client):
    stored = asyncio.run(document_service.do_add_document("  Fruit  ", "apple"))

    fetched = asyncio.run(store_client.fetch_document(stored.id))
    assert fetched.title == "Fruit"
    assert fetched.source_type == SourceType.MANUAL
    assert fetched.is_default is False
    assert fetched.content_hash == hash_content("apple")


@pytest.mark.parametrize("title,content", [("", "apple"), ("  ", "apple"), ("Fruit", ""), ("Fruit", " \n ")])
def test_add_document_rejects_blank_input(document_service, title, content):
    with pytest.raises(ValueError):
        asyncio.run(document_service.do_add_document(title, content))


def test_import_file(document_service, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("camera settings\nsunset river", encoding="utf-8")

    stored = asyncio.run(document_service.do_import_file(str(path)))

    assert stored.title == "notes.txt"
    assert stored.source_type == SourceType.FILE
    assert stored.source_path == str(path)
    assert len(stored.chunks) == 1


def test_import_file_with_title(document_service, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("apple", encoding="utf-8")

    assert asyncio.run(document_service.do_import_file(str(path), title="My notes")).title == "My notes"


def test_import_missing_file_raises(document_service, tmp_path):
    with pytest.raises(DocumentImportError):
        asyncio.run(document_service.do_import_file(str(tmp_path / "missing.txt")))


def test_import_non_utf8_file_raises(document_service, tmp_path):
    path = tmp_path / "binary.txt"
    path.write_bytes(b"\xff\xfe\x00\x81")

    with pytest.raises(DocumentImportError):
        asyncio.run(document_service.do_import_file(str(path)))


def test_update_document_rebuilds_chunks(document_service, store_client):
    async def run():
        stored = await document_service.do_add_document("Fruit", "apple\nbanana\ncherry\napple banana cherry mountain river")
        await document_service.do_update_document(stored.id, content="sky")
        return stored.id

    document_id = asyncio.run(run())
    fetched = asyncio.run(store_client.fetch_document(document_id))

    assert fetched.title == "Fruit"
    assert fetched.content == "sky"
    assert fetched.content_hash == hash_content("sky")
    assert [c.content for c in fetched.chunks] == ["[Chunk 1] sky"]


def test_update_unknown_document_raises(document_service):
    with pytest.raises(DocumentNotFoundError):
        asyncio.run(document_service.do_update_document("missing", title="x"))


def test_delete_document(document_service, store_client):
    async def run():
        stored = await document_service.do_add_document("Fruit", "apple")
        await document_service.do_delete_document(stored.id)

    asyncio.run(run())

    assert asyncio.run(store_client.fetch_all_documents()) == []
    assert asyncio.run(store_client.fetch_all_chunks()) == []


def test_delete_unknown_document_raises(document_service):
    with pytest.raises(DocumentNotFoundError) as exc_info:
        asyncio.run(document_service.do_delete_document("missing"))
    assert exc_info.value.document_id == "missing"


def test_list_chunks_of_one_and_all_documents(document_service):
    async def run():
        first = await document_service.do_add_document("A", "apple")
        await document_service.do_add_document("B", "banana bread loaf is tasty\ncherry tart is sweet too")
        return first.id, await document_service.do_list_chunks(first.id), await document_service.do_list_chunks()

    first_id, own, everything = asyncio.run(run())

    assert [c.document_id for c in own] == [first_id]
    assert len(everything) == 3


def test_ingest_propagates_storage_errors(config, settings, embed_client):
    class BrokenStore:
        async def save_document(self, document):
            raise StorageError("disk full")

    service = DocumentService(helper_config=config, settings=settings, store_client=BrokenStore(), embed_client=embed_client)

    with pytest.raises(StorageError):
        asyncio.run(service.do_ingest(KnowledgeDocument(title="t", content="apple")))
