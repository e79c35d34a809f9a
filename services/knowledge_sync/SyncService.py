"""Synchronisation service.

Mirrors the blog's articles and photos into the knowledge base as default
documents. Each feed item becomes one document with a synthetic markdown-like
body, id "article-<id>" or "photo-<id>". New items are ingested, changed items
re-ingested, and default documents whose item disappeared from the feed are
deleted. User-authored documents are never touched.
"""

import asyncio

from shared.clients.feed.FeedClientInterface import FeedClientInterface
from shared.clients.feed.models.Article import Article
from shared.clients.feed.models.Photo import Photo
from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.knowledge import (
    ARTICLE_ID_PREFIX,
    PHOTO_ID_PREFIX,
    KnowledgeDocument,
    SourceType,
    hash_content,
)
from shared.models.sync import SyncCounts, SyncReport
from services.knowledge_base.DocumentService import DocumentService

ADDED = "added"
UPDATED = "updated"
UNCHANGED = "unchanged"


def _format_number(value: float) -> str:
    # 100.0 -> "100", 2.8 -> "2.8"
    return f"{value:g}"


def build_article_content(article: Article) -> str:
    """Render an article as a document body: title, summary, tags, content blocks."""
    parts = [f"# {article.title}"]
    if article.summary:
        parts.append(f"## Summary\n{article.summary}")
    if article.tags:
        parts.append(f"## Tags\n{', '.join(article.tags)}")
    parts.append(f"## Content\n{article.content}")
    return "\n\n".join(parts)


def build_photo_content(photo: Photo) -> str:
    """Render a photo as a document body: title, description, tags and shooting parameters.

    Text parameters appear only when non-empty, numeric ones only when greater
    than zero. The parameter block is left out entirely when nothing is known.
    """
    parts = [f"# {photo.title}"]
    if photo.description:
        parts.append(f"## Description\n{photo.description}")
    if photo.tags:
        parts.append(f"## Tags\n{photo.tags}")

    params: list[str] = []
    if photo.location:
        params.append(f"Location: {photo.location}")
    if photo.camera:
        params.append(f"Camera: {photo.camera}")
    if photo.lens:
        params.append(f"Lens: {photo.lens}")
    if photo.iso > 0:
        params.append(f"ISO: {_format_number(photo.iso)}")
    if photo.aperture > 0:
        params.append(f"Aperture: f/{_format_number(photo.aperture)}")
    if photo.shutter_speed > 0:
        params.append(f"Shutter: {_format_number(photo.shutter_speed)}s")
    if photo.focal_length > 0:
        params.append(f"Focal Length: {photo.focal_length}mm")
    if params:
        parts.append(f"## Shooting Parameters\n{' | '.join(params)}")

    return "\n\n".join(parts)


class SyncService:
    """Reconciles the default documents of the knowledge base with the blog feed."""

    def __init__(
        self,
        helper_config: HelperConfig,
        feed_client: FeedClientInterface,
        store_client: StoreClientInterface,
        document_service: DocumentService,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._feed_client = feed_client
        self._store_client = store_client
        self._document_service = document_service

        self._article_page_size = max(int(helper_config.get_number_val("SYNC_ARTICLE_PAGE_SIZE", default=100)), 1)
        self._doc_concurrency = max(int(helper_config.get_number_val("SYNC_DOC_CONCURRENCY", default=1)), 1)
        self._detect_updates = helper_config.get_bool_val("SYNC_DETECT_UPDATES", default=True)

        # one run at a time, e.g. startup sync vs. POST /sync
        self._sync_lock = asyncio.Lock()

    @property
    def needs_sync(self) -> bool:
        """Whether a sync should run; the feed is checked on every start."""
        return True

    ##########################################
    ############### CORE SYNC ################
    ##########################################

    async def do_sync_default_knowledge(self) -> SyncReport:
        """Run one full reconciliation: articles, then photos, then deletions.

        Returns:
            SyncReport: Added, updated, deleted and failed counts per kind.

        Raises:
            FeedFetchError: If a feed cannot be fetched. Nothing is deleted in that case.
            StorageError: If the existing documents cannot be listed.
        """
        async with self._sync_lock:
            return await self._do_sync()

    async def _do_sync(self) -> SyncReport:
        self.logging.info("Starting default knowledge sync...")
        report = SyncReport()

        # existing default documents, keyed by feed id per kind
        existing_docs = await self._store_client.fetch_all_documents()
        existing_articles: dict[str, KnowledgeDocument] = {}
        existing_photos: dict[str, KnowledgeDocument] = {}
        for doc in existing_docs:
            if not doc.is_default:
                continue
            if doc.id.startswith(ARTICLE_ID_PREFIX):
                existing_articles[doc.id[len(ARTICLE_ID_PREFIX):]] = doc
            elif doc.id.startswith(PHOTO_ID_PREFIX):
                existing_photos[doc.id[len(PHOTO_ID_PREFIX):]] = doc

        articles = await self._feed_client.do_fetch_articles(page_size=self._article_page_size)
        self.logging.info("Fetched %d articles from feed '%s'.", len(articles), self._feed_client.get_engine_name())
        current_article_ids = await self._sync_items(
            items=[(article.id, article.title, build_article_content(article)) for article in articles],
            prefix=ARTICLE_ID_PREFIX,
            existing=existing_articles,
            counts=report.articles,
        )

        photos = await self._feed_client.do_fetch_photos()
        self.logging.info("Fetched %d photos from feed '%s'.", len(photos), self._feed_client.get_engine_name())
        current_photo_ids = await self._sync_items(
            items=[(photo.id, photo.title, build_photo_content(photo)) for photo in photos],
            prefix=PHOTO_ID_PREFIX,
            existing=existing_photos,
            counts=report.photos,
        )

        await self._cleanup_deleted(
            stale_ids=[ARTICLE_ID_PREFIX + item_id for item_id in set(existing_articles) - current_article_ids],
            counts=report.articles,
        )
        await self._cleanup_deleted(
            stale_ids=[PHOTO_ID_PREFIX + item_id for item_id in set(existing_photos) - current_photo_ids],
            counts=report.photos,
        )

        self.logging.info(
            "Default knowledge sync complete: articles %d added, %d updated, %d deleted, %d failed; "
            "photos %d added, %d updated, %d deleted, %d failed.",
            report.articles.added, report.articles.updated, report.articles.deleted, report.articles.failed,
            report.photos.added, report.photos.updated, report.photos.deleted, report.photos.failed,
        )
        return report

    async def _sync_items(
        self,
        items: list[tuple[str, str, str]],
        prefix: str,
        existing: dict[str, KnowledgeDocument],
        counts: SyncCounts,
    ) -> set[str]:
        """Ingest new and changed feed items of one kind.

        Args:
            items (list[tuple[str, str, str]]): (feed id, title, synthetic content) per item.
            prefix (str): Document id prefix of the kind.
            existing (dict[str, KnowledgeDocument]): Existing default documents by feed id.
            counts (SyncCounts): Counters to update.

        Returns:
            set[str]: The feed ids currently published.
        """
        sem = asyncio.Semaphore(self._doc_concurrency)
        results = await asyncio.gather(
            *[
                self._sync_document(prefix + item_id, title, content, existing.get(item_id), sem)
                for item_id, title, content in items
            ],
            return_exceptions=True,
        )

        counts.added += sum(1 for r in results if r == ADDED)
        counts.updated += sum(1 for r in results if r == UPDATED)
        counts.failed += sum(1 for r in results if isinstance(r, Exception))
        return {item_id for item_id, _, _ in items}

    ##########################################
    ############ DOCUMENT SYNC ###############
    ##########################################

    async def _sync_document(
        self,
        document_id: str,
        title: str,
        content: str,
        existing: KnowledgeDocument | None,
        sem: asyncio.Semaphore,
    ) -> str:
        """Ingest a single feed item if it is new or its content changed.

        Returns:
            str: ADDED, UPDATED or UNCHANGED.

        Raises:
            Exception: Propagated to gather() if the ingest fails.
        """
        async with sem:
            if existing is not None:
                if not self._detect_updates or existing.content_hash == hash_content(content):
                    return UNCHANGED

            document = KnowledgeDocument(
                id=document_id,
                title=title,
                content=content,
                source_type=SourceType.MANUAL,
                is_default=True,
            )
            try:
                await self._document_service.do_ingest(document)
            except Exception as exc:
                self.logging.error("Ingest failed for default document '%s' ('%s'): %s", document_id, title, exc)
                raise

            if existing is None:
                return ADDED
            self.logging.info("Default document '%s' changed in the feed and was re-ingested.", document_id)
            return UPDATED

    ##########################################
    ############ DELETED CLEANUP #############
    ##########################################

    async def _cleanup_deleted(self, stale_ids: list[str], counts: SyncCounts) -> None:
        """Delete default documents whose feed item no longer exists.

        The store is re-read once before deleting, so documents removed in the
        meantime are skipped. Deletes then run one at a time.
        """
        if not stale_ids:
            return

        try:
            current_docs = {doc.id: doc for doc in await self._store_client.fetch_all_documents()}
        except Exception as exc:
            counts.failed += len(stale_ids)
            self.logging.error("Failed to re-read the store before deleting %d default document(s): %s", len(stale_ids), exc)
            return

        for document_id in stale_ids:
            document = current_docs.get(document_id)
            if document is None:
                continue
            try:
                await self._store_client.delete_document(document)
                counts.deleted += 1
                self.logging.info("Deleted default document '%s': no longer in the feed.", document_id)
            except Exception as exc:
                counts.failed += 1
                self.logging.error("Failed to delete default document '%s': %s", document_id, exc)
