"""Tests for the embedding providers: word-vector engine, Ollama engine and batch ordering."""

import asyncio
import json

import httpx
import pytest

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.clients.embed.wordvec.EmbedClientWordvec import EmbedClientWordvec, tokenize
from shared.exceptions import EmptyTextError, ModelUnavailableError, NoTokensError
from services.retrieval.RetrievalService import RetrievalService

from conftest import FakeEmbedClient

VECTORS = """4 3
apple 1.0 0.0 0.0
banana 0.0 1.0 0.0
cherry 0.0 0.0 1.0
山 0.5 0.5 0.0
"""


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "vectors.txt"
    path.write_text(VECTORS, encoding="utf-8")
    return path


@pytest.fixture
def wordvec(make_config, model_file):
    return EmbedClientWordvec(helper_config=make_config({"EMBED_WORDVEC_MODEL_PATH": str(model_file)}))


##########################################
################ WORDVEC #################
##########################################

def test_tokenize_lowercases_and_splits_cjk():
    assert tokenize("Apple, BANANA!") == ["apple", "banana"]
    assert tokenize("富士山 view") == ["富", "士", "山", "view"]


def test_wordvec_mean_pools_known_words(wordvec):
    vector = asyncio.run(wordvec.generate_embedding("Apple and banana"))
    assert vector == pytest.approx([0.5, 0.5, 0.0])
    assert wordvec.dimension == 3


def test_wordvec_resolves_cjk_characters(wordvec):
    assert asyncio.run(wordvec.generate_embedding("富士山")) == pytest.approx([0.5, 0.5, 0.0])


def test_wordvec_without_known_words_raises(wordvec):
    with pytest.raises(NoTokensError):
        asyncio.run(wordvec.generate_embedding("zebra quokka"))


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_text_raises_empty_text(wordvec, text):
    with pytest.raises(EmptyTextError):
        asyncio.run(wordvec.generate_embedding(text))


def test_wordvec_missing_model_file(make_config, tmp_path):
    client = EmbedClientWordvec(helper_config=make_config({"EMBED_WORDVEC_MODEL_PATH": str(tmp_path / "nope.txt")}))

    with pytest.raises(ModelUnavailableError):
        asyncio.run(client.generate_embedding("apple"))
    assert asyncio.run(client.do_healthcheck()) is False


def test_wordvec_loads_model_once(wordvec, model_file):
    async def run():
        first = await wordvec.generate_embedding("apple")
        # the file is not read again after the first load
        model_file.unlink()
        second = await wordvec.generate_embedding("cherry")
        return first, second

    first, second = asyncio.run(run())
    assert first == [1.0, 0.0, 0.0]
    assert second == [0.0, 0.0, 1.0]


def test_wordvec_file_without_header(make_config, tmp_path):
    path = tmp_path / "glove.txt"
    path.write_text("sky 0.1 0.2\nriver 0.3 0.4\n", encoding="utf-8")
    client = EmbedClientWordvec(helper_config=make_config({"EMBED_WORDVEC_MODEL_PATH": str(path)}))

    assert asyncio.run(client.generate_embedding("Sky")) == pytest.approx([0.1, 0.2])


def test_batch_embedding_keeps_input_order(wordvec):
    texts = ["cherry", "apple", "banana", "apple cherry"]

    vectors = asyncio.run(wordvec.generate_embeddings(texts))

    assert vectors == [
        pytest.approx([0.0, 0.0, 1.0]),
        pytest.approx([1.0, 0.0, 0.0]),
        pytest.approx([0.0, 1.0, 0.0]),
        pytest.approx([0.5, 0.0, 0.5]),
    ]


def test_batch_embedding_order_independent_of_completion_order(make_config):
    class SlowFirstEmbedClient(FakeEmbedClient):
        async def _compute_embeddings(self, texts):
            # earlier inputs finish later
            await asyncio.sleep(0.01 * len(texts[0]))
            return await super()._compute_embeddings(texts)

    client = SlowFirstEmbedClient(helper_config=make_config({"EMBED_CONCURRENCY": "4"}))
    texts = ["apple apple apple apple", "banana banana", "sky"]

    vectors = asyncio.run(client.generate_embeddings(texts))

    assert [v.index(max(v)) for v in vectors] == [0, 1, 5]


def test_batch_embedding_fails_with_first_error(make_config):
    client = FakeEmbedClient(helper_config=make_config({}), fail_words={"river"})

    with pytest.raises(ModelUnavailableError):
        asyncio.run(client.generate_embeddings(["apple", "river"]))


##########################################
################ OLLAMA ##################
##########################################

def make_ollama(make_config, handler) -> EmbedClientOllama:
    client = EmbedClientOllama(helper_config=make_config({
        "EMBED_OLLAMA_BASE_URL": "http://ollama.test",
        "EMBED_MODEL": "nomic-embed-text",
    }))
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


def test_ollama_batch_request(make_config):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embeddings": [[0.1, 0.2], [0.3, 0.4]]})

    client = make_ollama(make_config, handler)
    vectors = asyncio.run(client.generate_embeddings(["first", "second"]))

    assert vectors == [[0.1, 0.2], [0.3, 0.4]]
    assert seen["url"] == "http://ollama.test/api/embed"
    assert seen["body"] == {"model": "nomic-embed-text", "input": ["first", "second"]}


def test_ollama_http_error_maps_to_model_unavailable(make_config):
    client = make_ollama(make_config, lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(ModelUnavailableError):
        asyncio.run(client.generate_embedding("hello"))


def test_ollama_connection_error_maps_to_model_unavailable(make_config):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = make_ollama(make_config, handler)

    with pytest.raises(ModelUnavailableError):
        asyncio.run(client.generate_embedding("hello"))


def test_ollama_empty_vector_maps_to_no_tokens(make_config):
    client = make_ollama(make_config, lambda request: httpx.Response(200, json={"embeddings": [[]]}))

    with pytest.raises(NoTokensError):
        asyncio.run(client.generate_embedding("hello"))


def test_ollama_non_json_body_maps_to_model_unavailable(make_config):
    client = make_ollama(make_config, lambda request: httpx.Response(200, text="<html>proxy</html>"))

    with pytest.raises(ModelUnavailableError):
        asyncio.run(client.generate_embedding("hello"))


@pytest.mark.parametrize("payload", [[0.1, 0.2], {"embeddings": [["a", "b"]]}, {"embeddings": [[None]]}])
def test_ollama_malformed_payload_maps_to_model_unavailable(make_config, payload):
    client = make_ollama(make_config, lambda request: httpx.Response(200, json=payload))

    with pytest.raises(ModelUnavailableError):
        asyncio.run(client.generate_embedding("hello"))


def test_query_degrades_to_no_results_on_non_json_body(make_config, store_client, settings):
    client = make_ollama(make_config, lambda request: httpx.Response(200, text="<html>proxy</html>"))
    retrieval = RetrievalService(
        helper_config=make_config({}), settings=settings, store_client=store_client, embed_client=client
    )

    assert asyncio.run(retrieval.search("apple")) == []


def test_ollama_not_booted_maps_to_model_unavailable(make_config):
    client = EmbedClientOllama(helper_config=make_config({
        "EMBED_OLLAMA_BASE_URL": "http://ollama.test",
        "EMBED_MODEL": "nomic-embed-text",
    }))

    with pytest.raises(ModelUnavailableError):
        asyncio.run(client.generate_embedding("hello"))


def test_ollama_requires_model(make_config):
    with pytest.raises(ValueError):
        EmbedClientOllama(helper_config=make_config({"EMBED_OLLAMA_BASE_URL": "http://ollama.test"}))


##########################################
################ MANAGER #################
##########################################

def test_manager_instantiates_configured_engine(make_config, model_file):
    client = EmbedClientManager(helper_config=make_config({
        "EMBED_ENGINE": "WordVec",
        "EMBED_WORDVEC_MODEL_PATH": str(model_file),
    })).get_client()

    assert isinstance(client, EmbedClientWordvec)
    assert client.get_engine_name() == "wordvec"


def test_manager_requires_engine(make_config):
    with pytest.raises(ValueError):
        EmbedClientManager(helper_config=make_config({}))
