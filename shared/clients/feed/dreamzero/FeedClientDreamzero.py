from shared.clients.feed.FeedClientInterface import FeedClientInterface
from shared.clients.feed.models.Article import Article, ArticlesListResponse
from shared.clients.feed.models.Photo import Photo, PhotosListResponse
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class FeedClientDreamzero(FeedClientInterface):
    """Feed client for the Dreamzero blog API.

    Every response is wrapped in an envelope {"code": int, "msg": str, "data": {...}}.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._photo_user_id = self.get_config_val("PHOTO_USER_ID", default=None, val_type="string")

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Dreamzero"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="PHOTO_USER_ID", val_type="string", default=None),
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"Authorization": f"Bearer {self._api_key}"}
        return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return self._get_endpoint_articles(page=1, page_size=1)

    def _get_endpoint_articles(self, page: int = 1, page_size: int = 100) -> str:
        return f"/api/v1/articles?page={page}&page_size={page_size}"

    def _get_endpoint_photos(self) -> str:
        return f"/api/v1/daily_photograph/user/{self._photo_user_id}"

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _parse_envelope(self, response: dict) -> dict:
        data = response["data"]
        if not isinstance(data, dict):
            raise TypeError(f"'data' is not an object (msg: {response.get('msg')})")
        return data

    def _parse_article(self, item: dict) -> Article:
        return Article(
            id=str(item["id"]),
            title=item.get("title") or "",
            summary=item.get("summary") or "",
            tags=[str(tag) for tag in item.get("tags") or []],
            content=item.get("content") or "",
            status=item.get("status") or "published",
            created_at=item.get("created_at"),
            updated_at=item.get("updated_at"),
        )

    def _parse_photo(self, item: dict) -> Photo:
        return Photo(
            id=str(item["id"]),
            title=item.get("title") or "",
            description=item.get("description") or "",
            tags=item.get("tags") or "",
            location=item.get("location") or "",
            camera=item.get("camera") or "",
            lens=item.get("lens") or "",
            iso=item.get("iso") or 0,
            aperture=item.get("aperture") or 0,
            shutter_speed=item.get("shutter_speed") or 0,
            focal_length=item.get("focal_length") or 0,
            image_url=item.get("image_url"),
            taken_at=item.get("taken_at"),
        )

    def _parse_endpoint_articles(self, response: dict, page: int, requested_page_size: int) -> ArticlesListResponse:
        data = self._parse_envelope(response)
        articles = [self._parse_article(item) for item in data.get("articles") or []]
        return ArticlesListResponse(
            engine=self._get_engine_name(),
            articles=articles,
            total=data.get("total") or len(articles),
            page=data.get("page") or page,
            page_size=data.get("page_size") or requested_page_size,
        )

    def _parse_endpoint_photos(self, response: dict) -> PhotosListResponse:
        data = self._parse_envelope(response)
        photos = [self._parse_photo(item) for item in data.get("photos") or []]
        return PhotosListResponse(
            engine=self._get_engine_name(),
            photos=photos,
            total=data.get("total") or len(photos),
        )
