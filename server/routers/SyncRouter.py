from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from shared.models.sync import SyncReport

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("")
async def sync_default_knowledge(
    request: Request,
    _: None = Depends(verify_api_key),
) -> SyncReport:
    """Reconcile the default documents with the blog feed.

    Args:
        request (Request): FastAPI request (provides app.state.sync_service).
        _ (None): Auth dependency result (unused).

    Returns:
        SyncReport: Added, updated, deleted and failed counts per feed kind.
    """
    try:
        return await request.app.state.sync_service.do_sync_default_knowledge()
    finally:
        # partial syncs change the store too
        request.app.state.retrieval_service.invalidate()
