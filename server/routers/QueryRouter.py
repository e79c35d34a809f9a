from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import QueryRequest
from server.models.responses import PromptResponse, SearchResponse, SearchResultItem

router = APIRouter(prefix="/query", tags=["query"])


@router.post("")
async def query_knowledge(
    request: Request,
    body: QueryRequest,
    _: None = Depends(verify_api_key),
) -> SearchResponse:
    """Rank the stored chunks against a query.

    Args:
        request (Request): FastAPI request (provides app.state.retrieval_service).
        body (QueryRequest): JSON body with the query string.
        _ (None): Auth dependency result (unused).

    Returns:
        SearchResponse: The best matching chunks, best first. Empty when retrieval is disabled.
    """
    retrieval_service = request.app.state.retrieval_service
    results = await retrieval_service.search(body.query)
    items = [SearchResultItem.from_result(result) for result in results]
    return SearchResponse(query=body.query, results=items, total=len(items))


@router.post("/prompt")
async def build_prompt(
    request: Request,
    body: QueryRequest,
    _: None = Depends(verify_api_key),
) -> PromptResponse:
    """Build the knowledge-augmented prompt for a query.

    Returns:
        PromptResponse: The prompt, or the plain query if nothing relevant was found.
    """
    retrieval_service = request.app.state.retrieval_service
    results = await retrieval_service.search(body.query)
    if not results:
        return PromptResponse(query=body.query, prompt=body.query, augmented=False)
    return PromptResponse(query=body.query, prompt=retrieval_service.build_prompt(body.query, results), augmented=True)
