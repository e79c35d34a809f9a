from datetime import datetime

from pydantic import BaseModel

from shared.models.knowledge import KnowledgeChunk, KnowledgeDocument, SearchResult


class SearchResultItem(BaseModel):
    document_id: str
    document_title: str
    chunk_index: int
    content: str
    similarity: float

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResultItem":
        return cls(
            document_id=result.chunk.document_id,
            document_title=result.document_title,
            chunk_index=result.chunk.chunk_index,
            content=result.chunk.content,
            similarity=result.similarity,
        )


class SearchResponse(BaseModel):
    query: str
    results: list[SearchResultItem]
    total: int


class PromptResponse(BaseModel):
    query: str
    prompt: str
    augmented: bool


class DocumentItem(BaseModel):
    id: str
    title: str
    source_type: str
    source_path: str | None
    is_default: bool
    created_at: datetime
    updated_at: datetime
    chunk_count: int

    @classmethod
    def from_document(cls, document: KnowledgeDocument) -> "DocumentItem":
        return cls(
            id=document.id,
            title=document.title,
            source_type=document.source_type.value,
            source_path=document.source_path,
            is_default=document.is_default,
            created_at=document.created_at,
            updated_at=document.updated_at,
            chunk_count=len(document.chunks),
        )


class DocumentDetailResponse(DocumentItem):
    content: str

    @classmethod
    def from_document(cls, document: KnowledgeDocument) -> "DocumentDetailResponse":
        item = DocumentItem.from_document(document)
        return cls(**item.model_dump(), content=document.content)


class DocumentsListResponse(BaseModel):
    documents: list[DocumentItem]
    total: int


class ChunkItem(BaseModel):
    id: str
    chunk_index: int
    content: str
    has_embedding: bool

    @classmethod
    def from_chunk(cls, chunk: KnowledgeChunk) -> "ChunkItem":
        return cls(
            id=chunk.id,
            chunk_index=chunk.chunk_index,
            content=chunk.content,
            has_embedding=chunk.embedding is not None,
        )


class ChunksListResponse(BaseModel):
    document_id: str
    chunks: list[ChunkItem]
    total: int
