"""End-to-end tests of the HTTP API against the in-memory store and a tiny word-vector model."""

import logging

import pytest
from fastapi.testclient import TestClient

from shared.helper.HelperConfig import HelperConfig
from server.api_server import create_app

API_KEY = "secret-key"
HEADERS = {"X-Api-Key": API_KEY}

WORD_VECTORS = """4 3
apple 1 0 0
banana 0.9 0.1 0
mountain 0 1 0
camera 0 0 1
"""


def make_env(tmp_path) -> dict:
    model_path = tmp_path / "vectors.txt"
    model_path.write_text(WORD_VECTORS, encoding="utf-8")
    return {
        "API_SERVER_API_KEY": API_KEY,
        "STORE_ENGINE": "memory",
        "EMBED_ENGINE": "wordvec",
        "EMBED_WORDVEC_MODEL_PATH": str(model_path),
        # nothing listens here, the feed healthcheck only warns
        "FEED_DREAMZERO_BASE_URL": "http://127.0.0.1:9",
        "FEED_DREAMZERO_PHOTO_USER_ID": "1",
        "FEED_TIMEOUT": "1",
        "SYNC_ON_STARTUP": "false",
        "RAG_CHUNK_SIZE": "60",
    }


def make_app(env: dict):
    return create_app(HelperConfig(logger=logging.getLogger("blog_knowledge_test"), env=env))


@pytest.fixture
def client(tmp_path):
    with TestClient(make_app(make_env(tmp_path))) as test_client:
        yield test_client


def add_document(client: TestClient, title: str, content: str) -> dict:
    response = client.post("/documents", json={"title": title, "content": content}, headers=HEADERS)
    assert response.status_code == 201
    return response.json()


##########################################
################# AUTH ###################
##########################################

@pytest.mark.parametrize("method,path", [("get", "/documents"), ("post", "/query"), ("post", "/sync")])
def test_requests_without_key_are_rejected(client, method, path):
    response = client.request(method, path, json={"query": "apple"})

    assert response.status_code == 401


def test_requests_with_wrong_key_are_rejected(client):
    assert client.get("/documents", headers={"X-Api-Key": "wrong"}).status_code == 401


def test_startup_fails_without_api_key(tmp_path):
    env = make_env(tmp_path)
    del env["API_SERVER_API_KEY"]

    with pytest.raises(ValueError, match="API_SERVER_API_KEY"):
        with TestClient(make_app(env)):
            pass


##########################################
############## DOCUMENTS #################
##########################################

def test_add_and_get_document(client):
    created = add_document(client, "Fruit", "apple banana")

    fetched = client.get(f"/documents/{created['id']}", headers=HEADERS).json()
    assert fetched["title"] == "Fruit"
    assert fetched["content"] == "apple banana"
    assert fetched["source_type"] == "manual"
    assert fetched["chunk_count"] == 1


def test_list_documents_and_chunks(client):
    created = add_document(client, "Fruit", "apple\nbanana")

    listing = client.get("/documents", headers=HEADERS).json()
    chunks = client.get(f"/documents/{created['id']}/chunks", headers=HEADERS).json()

    assert listing["total"] == 1
    assert chunks["chunks"][0]["content"] == "[Chunk 1] apple\nbanana"
    assert chunks["chunks"][0]["has_embedding"] is True


def test_blank_document_is_rejected(client):
    response = client.post("/documents", json={"title": "Empty", "content": "  "}, headers=HEADERS)

    assert response.status_code == 400


def test_unknown_document_is_404(client):
    assert client.get("/documents/missing", headers=HEADERS).status_code == 404
    assert client.delete("/documents/missing", headers=HEADERS).status_code == 404
    assert client.put("/documents/missing", json={"title": "x"}, headers=HEADERS).status_code == 404


def test_update_and_delete_document(client):
    created = add_document(client, "Fruit", "apple")

    updated = client.put(f"/documents/{created['id']}", json={"content": "mountain"}, headers=HEADERS)
    deleted = client.delete(f"/documents/{created['id']}", headers=HEADERS)

    assert updated.status_code == 200
    assert updated.json()["content"] == "mountain"
    assert updated.json()["created_at"] == created["created_at"]
    assert deleted.status_code == 204
    assert client.get("/documents", headers=HEADERS).json()["total"] == 0


def test_import_document(client, tmp_path):
    path = tmp_path / "gear.txt"
    path.write_text("camera", encoding="utf-8")

    response = client.post("/documents/import", json={"path": str(path)}, headers=HEADERS)

    assert response.status_code == 201
    assert response.json()["title"] == "gear.txt"
    assert response.json()["source_type"] == "file"


def test_import_missing_file_is_400(client, tmp_path):
    response = client.post("/documents/import", json={"path": str(tmp_path / "nope.txt")}, headers=HEADERS)

    assert response.status_code == 400


##########################################
################ QUERY ###################
##########################################

def test_query_sees_new_documents_immediately(client):
    add_document(client, "Fruit", "apple banana")
    add_document(client, "Hills", "mountain")

    body = client.post("/query", json={"query": "apple"}, headers=HEADERS).json()

    assert body["results"][0]["document_title"] == "Fruit"
    assert all(r["document_title"] != "Hills" for r in body["results"])


def test_query_without_match_is_empty(client):
    add_document(client, "Fruit", "apple")

    body = client.post("/query", json={"query": "unknown words only"}, headers=HEADERS).json()

    assert body == {"query": "unknown words only", "results": [], "total": 0}


def test_prompt_is_augmented_with_sources(client):
    add_document(client, "Fruit", "apple banana")

    body = client.post("/query/prompt", json={"query": "apple"}, headers=HEADERS).json()

    assert body["augmented"] is True
    assert "[Source 1] Fruit (similarity: " in body["prompt"]


def test_prompt_without_results_is_the_plain_query(client):
    body = client.post("/query/prompt", json={"query": "camera"}, headers=HEADERS).json()

    assert body == {"query": "camera", "prompt": "camera", "augmented": False}


##########################################
################# SYNC ###################
##########################################

def test_sync_with_unreachable_feed_is_502(client):
    add_document(client, "Fruit", "apple")

    response = client.post("/sync", headers=HEADERS)

    assert response.status_code == 502
    assert client.get("/documents", headers=HEADERS).json()["total"] == 1
