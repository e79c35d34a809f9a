"""Generic feed article model, backend-independent."""

from pydantic import BaseModel


class Article(BaseModel):
    """
    Represents a single blog article as returned by a feed client.
    """
    id: str
    title: str
    summary: str = ""
    tags: list[str] = []
    content: str = ""
    status: str = "published"
    created_at: str | None = None
    updated_at: str | None = None


class ArticlesListResponse(BaseModel):
    """
    Represents one page of articles fetched from a feed.
    """
    engine: str
    articles: list[Article] = []
    total: int = 0
    page: int
    page_size: int
