"""Sync runner entry point.

Mirrors the blog's articles and photos into the knowledge base as default
documents. Run directly for a one-shot sync; the API server runs the same
sync on startup and via POST /sync.

Usage:
    python -m services.knowledge_sync.knowledge_sync
"""

import asyncio

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.feed.FeedClientManager import FeedClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from shared.exceptions import KnowledgeError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.config import RAGSettings
from services.knowledge_base.DocumentService import DocumentService
from services.knowledge_sync.SyncService import SyncService


async def main() -> None:
    """Run one default knowledge sync."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    settings = RAGSettings.from_helper_config(config)

    embed_client = EmbedClientManager(helper_config=config).get_client()
    feed_client = FeedClientManager(helper_config=config).get_client()
    store_client = StoreClientManager(helper_config=config).get_client()

    try:
        # embed client is required, syncing without embeddings is pointless
        await embed_client.boot()
        if not await embed_client.do_healthcheck():
            logger.error("Embed client '%s' is not usable. Aborting.", embed_client.get_engine_name())
            return

        await store_client.boot()
        if not await store_client.do_healthcheck():
            logger.error("Store client '%s' is not usable. Aborting.", store_client.get_engine_name())
            return

        await feed_client.boot()

        document_service = DocumentService(
            helper_config=config,
            settings=settings,
            store_client=store_client,
            embed_client=embed_client,
        )
        sync_service = SyncService(
            helper_config=config,
            feed_client=feed_client,
            store_client=store_client,
            document_service=document_service,
        )
        if not sync_service.needs_sync:
            logger.info("Default knowledge is up to date, nothing to do.")
            return
        try:
            await sync_service.do_sync_default_knowledge()
        except KnowledgeError as e:
            logger.error("Default knowledge sync failed: %s", e)
    finally:
        await embed_client.close()
        await feed_client.close()
        await store_client.close()


if __name__ == "__main__":
    asyncio.run(main())
