"""Generic feed photo model, backend-independent."""

from pydantic import BaseModel


class Photo(BaseModel):
    """
    Represents a single photograph with its shooting parameters, as returned by a feed client.

    Numeric parameters are 0 when unknown.
    """
    id: str
    title: str
    description: str = ""
    tags: str = ""
    location: str = ""
    camera: str = ""
    lens: str = ""
    iso: float = 0
    aperture: float = 0
    shutter_speed: float = 0
    focal_length: int = 0
    image_url: str | None = None
    taken_at: str | None = None


class PhotosListResponse(BaseModel):
    """
    Represents the full photo list fetched from a feed.
    """
    engine: str
    photos: list[Photo] = []
    total: int = 0
