"""Pydantic models for the knowledge base.

Hierarchy:
  KnowledgeDocument  a titled text owned by the knowledge base; owns its chunks.
  KnowledgeChunk     a bounded slice of a document's text plus its embedding.
  SearchResult       a chunk ranked against a query, with its document title.
"""

import hashlib
import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator

ARTICLE_ID_PREFIX = "article-"
PHOTO_ID_PREFIX = "photo-"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _as_utc(value: datetime) -> datetime:
    # naive timestamps are taken as UTC so stored documents stay comparable
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def hash_content(content: str) -> str:
    """SHA-256 hex digest of a document's content, used for change detection."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class SourceType(str, Enum):
    """Provenance of user-authored documents. Synced documents are flagged by is_default."""

    FILE = "file"
    MANUAL = "manual"


class KnowledgeChunk(BaseModel):
    """A chunk of a document.

    Attributes:
        id:           Unique chunk id.
        document_id:  Id of the owning document (lookup key, not ownership).
        chunk_index:  Zero-based position within the document.
        content:      Chunk text, including its "[Chunk N] " marker.
        embedding:    Vector of the chunk, None when embedding failed.
        created_at:   Creation timestamp.
    """

    id: str = Field(default_factory=_new_id)
    document_id: str
    chunk_index: int
    content: str
    embedding: list[float] | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("created_at")
    @classmethod
    def _normalize_timestamps(cls, value: datetime) -> datetime:
        return _as_utc(value)


class KnowledgeDocument(BaseModel):
    """A document in the knowledge base.

    Attributes:
        id:            Unique id; "article-<id>" / "photo-<id>" for synced content.
        title:         Human-readable title.
        content:       Full text before chunking.
        source_type:   file or manual.
        source_path:   Originating file path for imported documents.
        is_default:    True for documents produced by the feed sync.
        created_at:    Creation timestamp.
        updated_at:    Last modification timestamp.
        chunks:        Ordered chunk list, owned by the document.
        content_hash:  SHA-256 of content, filled in automatically when missing.
    """

    id: str = Field(default_factory=_new_id)
    title: str
    content: str
    source_type: SourceType = SourceType.MANUAL
    source_path: str | None = None
    is_default: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    chunks: list[KnowledgeChunk] = []
    content_hash: str | None = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def _normalize_timestamps(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @model_validator(mode="after")
    def _fill_content_hash(self) -> "KnowledgeDocument":
        if self.content_hash is None:
            self.content_hash = hash_content(self.content)
        return self

    def source_id(self) -> str | None:
        """Returns the feed id of a synced document, e.g. "42" for "article-42"."""
        if self.id.startswith(ARTICLE_ID_PREFIX):
            return self.id[len(ARTICLE_ID_PREFIX):]
        if self.id.startswith(PHOTO_ID_PREFIX):
            return self.id[len(PHOTO_ID_PREFIX):]
        return None


class SearchResult(BaseModel):
    """A chunk matched against a query.

    Attributes:
        id:              Unique per result instance, not persisted.
        chunk:           The matched chunk.
        document_title:  Title of the owning document, blank if unresolved.
        similarity:      Cosine similarity to the query, in [-1, 1].
    """

    id: str = Field(default_factory=_new_id)
    chunk: KnowledgeChunk
    document_title: str = ""
    similarity: float
