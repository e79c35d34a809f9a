from abc import abstractmethod

import httpx
from pydantic import ValidationError

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.clients.feed.models.Article import Article, ArticlesListResponse
from shared.clients.feed.models.Photo import Photo, PhotosListResponse
from shared.exceptions import FeedFetchError
from shared.helper.HelperConfig import HelperConfig


class FeedClientInterface(HttpClientInterface):
    """Read-only client for a remote content feed publishing articles and photos."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "feed"
        """
        return "feed"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_articles(self, page: int = 1, page_size: int = 100) -> str:
        """
        Returns the endpoint path for paginated article listing requests.

        Args:
            page (int): The 1-based page number.
            page_size (int): The number of articles per page.

        Returns:
            str: The endpoint path (e.g. "/api/v1/articles?page=1&page_size=100")
        """
        pass

    @abstractmethod
    def _get_endpoint_photos(self) -> str:
        """
        Returns the endpoint path for the photo listing request.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def _do_fetch_json(self, endpoint: str) -> dict:
        """
        GET an endpoint and return its decoded JSON body.

        Raises:
            FeedFetchError: On transport failures, non-2xx statuses or a non-JSON body.
        """
        try:
            response = await self.do_request(method="GET", endpoint=endpoint, raise_on_error=True)
            body = response.json()
        except (httpx.HTTPError, RuntimeError, ValueError) as exc:
            raise FeedFetchError(f"Request to feed '{self.get_engine_name()}' endpoint '{endpoint}' failed: {exc}") from exc
        if not isinstance(body, dict):
            raise FeedFetchError(f"Feed '{self.get_engine_name()}' returned an unexpected payload for '{endpoint}'.")
        return body

    async def do_fetch_article_page(self, page: int = 1, page_size: int = 100) -> ArticlesListResponse:
        """
        Fetches a single page of articles.

        Raises:
            FeedFetchError: If the request fails or the payload cannot be parsed.
        """
        body = await self._do_fetch_json(self._get_endpoint_articles(page=page, page_size=page_size))
        try:
            return self._parse_endpoint_articles(body, page=page, requested_page_size=page_size)
        except (KeyError, TypeError, ValidationError) as exc:
            raise FeedFetchError(f"Malformed article page {page} from feed '{self.get_engine_name()}': {exc}") from exc

    async def do_fetch_articles(self, page_size: int = 100) -> list[Article]:
        """
        Fetches all articles, page by page, until a page comes back shorter than page_size.

        Args:
            page_size (int): The number of articles requested per page.

        Returns:
            list[Article]: Every article of the feed, in feed order.

        Raises:
            FeedFetchError: If any page fails. Pages fetched before the failure are discarded.
        """
        page_size = max(page_size, 1)
        articles: list[Article] = []
        page = 1
        while True:
            page_response = await self.do_fetch_article_page(page=page, page_size=page_size)
            articles.extend(page_response.articles)
            self.logging.info("Fetched articles page %d from %s, total articles so far: %d of %d", page, self._get_engine_name(), len(articles), page_response.total)
            if len(page_response.articles) < page_size:
                break
            page += 1
        return articles

    async def do_fetch_photos(self) -> list[Photo]:
        """
        Fetches all photos of the configured user in one request.

        Raises:
            FeedFetchError: If the request fails or the payload cannot be parsed.
        """
        body = await self._do_fetch_json(self._get_endpoint_photos())
        try:
            photos_response = self._parse_endpoint_photos(body)
        except (KeyError, TypeError, ValidationError) as exc:
            raise FeedFetchError(f"Malformed photo list from feed '{self.get_engine_name()}': {exc}") from exc
        self.logging.info("Fetched %d photos from %s", len(photos_response.photos), self._get_engine_name())
        return photos_response.photos

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    @abstractmethod
    def _parse_endpoint_articles(self, response: dict, page: int, requested_page_size: int) -> ArticlesListResponse:
        """
        Parses the response of the article listing endpoint.

        Args:
            response (dict): The raw JSON body.
            page (int): The page that was requested.
            requested_page_size (int): The page size that was requested.

        Returns:
            ArticlesListResponse: The parsed page.
        """
        pass

    @abstractmethod
    def _parse_endpoint_photos(self, response: dict) -> PhotosListResponse:
        """
        Parses the response of the photo listing endpoint.

        Args:
            response (dict): The raw JSON body.

        Returns:
            PhotosListResponse: The parsed photo list.
        """
        pass
