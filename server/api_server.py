"""FastAPI application entry point for the blog knowledge engine."""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import RAGSettings
from shared.exceptions import DocumentImportError, DocumentNotFoundError, FeedFetchError, KnowledgeError, StorageError
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.feed.FeedClientInterface import FeedClientInterface
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.feed.FeedClientManager import FeedClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from services.knowledge_base.DocumentService import DocumentService
from services.knowledge_sync.SyncService import SyncService
from services.retrieval.RetrievalService import RetrievalService
from server.routers.QueryRouter import router as query_router
from server.routers.DocumentRouter import router as document_router
from server.routers.SyncRouter import router as sync_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    helper_config: HelperConfig = app.state.helper_config
    # required, checked once at startup
    app.state.api_key = helper_config.get_string_val("API_SERVER_API_KEY")
    settings = RAGSettings.from_helper_config(helper_config)

    embed_client = EmbedClientManager(helper_config=helper_config).get_client()
    feed_client = FeedClientManager(helper_config=helper_config).get_client()
    store_client = StoreClientManager(helper_config=helper_config).get_client()
    clients = [embed_client, feed_client, store_client]

    app.state.logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    app.state.logging.info("All clients booted successfully.")

    app.state.document_service = DocumentService(
        helper_config=helper_config,
        settings=settings,
        store_client=store_client,
        embed_client=embed_client,
    )
    app.state.retrieval_service = RetrievalService(
        helper_config=helper_config,
        settings=settings,
        store_client=store_client,
        embed_client=embed_client,
    )
    app.state.sync_service = SyncService(
        helper_config=helper_config,
        feed_client=feed_client,
        store_client=store_client,
        document_service=app.state.document_service,
    )

    await check_connections(app, embed_client, feed_client, store_client)

    app.state.startup_sync = None
    if helper_config.get_bool_val("SYNC_ON_STARTUP", default=True) and app.state.sync_service.needs_sync:
        app.state.startup_sync = asyncio.create_task(run_startup_sync(app))

    # while the app is running...
    yield

    # when the app shuts down, stop the sync and close all client connections
    if app.state.startup_sync and not app.state.startup_sync.done():
        app.state.startup_sync.cancel()
        try:
            await app.state.startup_sync
        except asyncio.CancelledError:
            pass
    app.state.logging.info("Shutting down, closing all clients...")
    for client in clients:
        await client.close()
    app.state.logging.info("All clients closed.")


async def run_startup_sync(app: FastAPI) -> None:
    """Sync the default knowledge in the background. Failures are logged, the server stays up."""
    try:
        await app.state.sync_service.do_sync_default_knowledge()
    except KnowledgeError as e:
        app.state.logging.error("Startup sync of default knowledge failed: %s", e)
    finally:
        app.state.retrieval_service.invalidate()


async def check_connections(
    app: FastAPI,
    embed_client: EmbedClientInterface,
    feed_client: FeedClientInterface,
    store_client: StoreClientInterface,
) -> None:
    """Check the configured backends on startup.

    Embed and feed failures are non-fatal: retrieval degrades to no results and
    syncs fail until the backend is back. A store failure is fatal, nothing can
    be served without it.

    Raises:
        Exception: If the store is not usable.
    """
    if not await embed_client.do_healthcheck():
        app.state.logging.warning(
            "Embed client '%s' is not usable. Ingest stores chunks without embeddings and queries return no knowledge.",
            embed_client.get_engine_name(),
        )
    if not await feed_client.do_healthcheck():
        app.state.logging.warning(
            "Feed client '%s' is not reachable. Default knowledge sync may fail.",
            feed_client.get_engine_name(),
        )
    if not await store_client.do_healthcheck():
        raise Exception(f"Store client '{store_client.get_engine_name()}' is not usable. Cannot serve documents.")


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors to HTTP status codes."""

    def _handler(status_code: int):
        async def _handle(request: Request, exc: Exception) -> JSONResponse:
            if status_code >= 500:
                app.state.logging.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
            return JSONResponse(status_code=status_code, content={"detail": str(exc)})
        return _handle

    app.add_exception_handler(DocumentNotFoundError, _handler(404))
    app.add_exception_handler(DocumentImportError, _handler(400))
    app.add_exception_handler(ValueError, _handler(400))
    app.add_exception_handler(StorageError, _handler(503))
    app.add_exception_handler(FeedFetchError, _handler(502))


def create_app(helper_config: HelperConfig | None = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        helper_config (HelperConfig | None): Configuration to use; defaults to the process environment.
    """
    app = FastAPI(
        title="blog_knowledge",
        description=(
            "Local knowledge base for the Dreamzero blog: documents are chunked, embedded and "
            "ranked by cosine similarity against queries. Blog articles and photos are mirrored "
            "as default documents via POST /sync."
        ),
        version=app_version,
        lifespan=lifespan,
    )
    app.state.helper_config = helper_config or HelperConfig(logger=logging)
    app.state.logging = app.state.helper_config.get_logger()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(query_router)
    app.include_router(document_router)
    app.include_router(sync_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting blog_knowledge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
