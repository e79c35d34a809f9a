from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import AddDocumentRequest, ImportDocumentRequest, UpdateDocumentRequest
from server.models.responses import (
    ChunkItem,
    ChunksListResponse,
    DocumentDetailResponse,
    DocumentItem,
    DocumentsListResponse,
)

router = APIRouter(prefix="/documents", tags=["documents"], dependencies=[Depends(verify_api_key)])


@router.get("")
async def list_documents(request: Request) -> DocumentsListResponse:
    """List all documents, most recently updated first."""
    documents = await request.app.state.document_service.do_list_documents()
    items = [DocumentItem.from_document(doc) for doc in documents]
    return DocumentsListResponse(documents=items, total=len(items))


@router.get("/{document_id}")
async def get_document(request: Request, document_id: str) -> DocumentDetailResponse:
    document = await request.app.state.document_service.do_get_document(document_id)
    return DocumentDetailResponse.from_document(document)


@router.get("/{document_id}/chunks")
async def list_chunks(request: Request, document_id: str) -> ChunksListResponse:
    chunks = await request.app.state.document_service.do_list_chunks(document_id)
    items = [ChunkItem.from_chunk(chunk) for chunk in chunks]
    return ChunksListResponse(document_id=document_id, chunks=items, total=len(items))


@router.post("", status_code=201)
async def add_document(request: Request, body: AddDocumentRequest) -> DocumentDetailResponse:
    """Add a manually written document and index it."""
    document = await request.app.state.document_service.do_add_document(title=body.title, content=body.content)
    request.app.state.retrieval_service.invalidate()
    return DocumentDetailResponse.from_document(document)


@router.post("/import", status_code=201)
async def import_document(request: Request, body: ImportDocumentRequest) -> DocumentDetailResponse:
    """Import a UTF-8 text file from the server's file system and index it."""
    document = await request.app.state.document_service.do_import_file(path=body.path, title=body.title)
    request.app.state.retrieval_service.invalidate()
    return DocumentDetailResponse.from_document(document)


@router.put("/{document_id}")
async def update_document(request: Request, document_id: str, body: UpdateDocumentRequest) -> DocumentDetailResponse:
    """Change title and/or content of a document; its chunks are rebuilt."""
    document = await request.app.state.document_service.do_update_document(
        document_id, title=body.title, content=body.content
    )
    request.app.state.retrieval_service.invalidate()
    return DocumentDetailResponse.from_document(document)


@router.delete("/{document_id}", status_code=204)
async def delete_document(request: Request, document_id: str) -> None:
    await request.app.state.document_service.do_delete_document(document_id)
    request.app.state.retrieval_service.invalidate()
