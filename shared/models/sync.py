"""Result models of a feed synchronisation run."""

from pydantic import BaseModel, Field


class SyncCounts(BaseModel):
    """
    Outcome of one sync run for one kind of feed item.
    """
    added: int = 0
    updated: int = 0
    deleted: int = 0
    failed: int = 0


class SyncReport(BaseModel):
    """
    Outcome of one sync run across all feed kinds.
    """
    articles: SyncCounts = Field(default_factory=SyncCounts)
    photos: SyncCounts = Field(default_factory=SyncCounts)

    @property
    def has_changes(self) -> bool:
        return any(
            counts.added or counts.updated or counts.deleted
            for counts in (self.articles, self.photos)
        )
