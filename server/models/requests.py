from pydantic import BaseModel


class QueryRequest(BaseModel):
    query: str


class AddDocumentRequest(BaseModel):
    title: str
    content: str


class ImportDocumentRequest(BaseModel):
    path: str
    title: str | None = None


class UpdateDocumentRequest(BaseModel):
    title: str | None = None
    content: str | None = None
