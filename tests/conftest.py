"""Pytest configuration and fakes for the knowledge engine tests."""

import logging
import os

# keep test runs from writing logs/app.log into the working directory
os.environ.setdefault("LOG_TO_FILE", "false")

import pytest

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.feed.FeedClientInterface import FeedClientInterface
from shared.clients.feed.models.Article import Article, ArticlesListResponse
from shared.clients.feed.models.Photo import Photo, PhotosListResponse
from shared.clients.store.memory.StoreClientMemory import StoreClientMemory
from shared.exceptions import FeedFetchError, ModelUnavailableError, NoTokensError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig, RAGSettings
from services.knowledge_base.DocumentService import DocumentService

# each known word is one dimension of the fake embedding space
VOCABULARY = ["apple", "banana", "cherry", "mountain", "camera", "sky", "sunset", "river"]


class FakeEmbedClient(EmbedClientInterface):
    """Bag-of-words embedder over VOCABULARY.

    Texts containing any word of fail_words raise ModelUnavailableError, texts
    without a known word raise NoTokensError.
    """

    def __init__(self, helper_config: HelperConfig, fail_words: set[str] | None = None):
        super().__init__(helper_config=helper_config)
        self.fail_words = fail_words or set()
        self.calls: list[str] = []

    def _get_engine_name(self) -> str:
        return "Fake"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    async def do_healthcheck(self) -> bool:
        return True

    async def _compute_embeddings(self, texts: list[str]) -> list[list[float]]:
        vectors = []
        for text in texts:
            self.calls.append(text)
            words = text.lower().replace(",", " ").replace(".", " ").split()
            if self.fail_words & set(words):
                raise ModelUnavailableError("fake backend down")
            vector = [float(words.count(term)) for term in VOCABULARY]
            if not any(vector):
                raise NoTokensError(f"no known words in '{text}'")
            vectors.append(vector)
        return vectors


class FakeFeedClient(FeedClientInterface):
    """Feed serving in-memory articles and photos; set fail_articles/fail_photos to simulate outages."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.articles: list[Article] = []
        self.photos: list[Photo] = []
        self.fail_articles = False
        self.fail_photos = False
        self.requested_pages: list[tuple[int, int]] = []

    def _get_engine_name(self) -> str:
        return "Fake"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    def _get_auth_header(self) -> dict:
        return {}

    def _get_base_url(self) -> str:
        return "http://feed.invalid"

    def _get_endpoint_healthcheck(self) -> str:
        return ""

    def _get_endpoint_articles(self, page: int = 1, page_size: int = 100) -> str:
        return f"/articles?page={page}&page_size={page_size}"

    def _get_endpoint_photos(self) -> str:
        return "/photos"

    def _parse_endpoint_articles(self, response: dict, page: int, requested_page_size: int) -> ArticlesListResponse:
        raise NotImplementedError

    def _parse_endpoint_photos(self, response: dict) -> PhotosListResponse:
        raise NotImplementedError

    async def do_fetch_article_page(self, page: int = 1, page_size: int = 100) -> ArticlesListResponse:
        self.requested_pages.append((page, page_size))
        if self.fail_articles:
            raise FeedFetchError("articles unavailable")
        start = (page - 1) * page_size
        return ArticlesListResponse(
            engine="Fake",
            articles=self.articles[start:start + page_size],
            total=len(self.articles),
            page=page,
            page_size=page_size,
        )

    async def do_fetch_photos(self) -> list[Photo]:
        if self.fail_photos:
            raise FeedFetchError("photos unavailable")
        return list(self.photos)


@pytest.fixture
def logger():
    return logging.getLogger("blog_knowledge_test")


@pytest.fixture
def make_config(logger):
    """Factory building a HelperConfig from an explicit env mapping.

    Example:
        >>> def test_x(make_config):
        ...     config = make_config({"RAG_TOP_K": "5"})
    """
    def _factory(env: dict | None = None) -> HelperConfig:
        return HelperConfig(logger=logger, env=env or {})
    return _factory


@pytest.fixture
def config(make_config):
    return make_config({})


@pytest.fixture
def settings():
    return RAGSettings(chunk_delimiter="\n", chunk_size=40, top_k=3)


@pytest.fixture
def embed_client(config):
    return FakeEmbedClient(helper_config=config)


@pytest.fixture
def store_client(config):
    return StoreClientMemory(helper_config=config)


@pytest.fixture
def feed_client(config):
    return FakeFeedClient(helper_config=config)


@pytest.fixture
def document_service(config, settings, store_client, embed_client):
    return DocumentService(
        helper_config=config,
        settings=settings,
        store_client=store_client,
        embed_client=embed_client,
    )
