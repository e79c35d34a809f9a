import asyncio
import json
import os
import sqlite3
from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from pydantic import ValidationError

from shared.clients.store.StoreClientInterface import StoreClientInterface
from shared.exceptions import StorageError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig
from shared.models.knowledge import KnowledgeChunk, KnowledgeDocument

T = TypeVar("T")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kb_documents (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    source_type TEXT NOT NULL,
    source_path TEXT,
    is_default INTEGER DEFAULT 0 NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    content_hash TEXT
);
CREATE TABLE IF NOT EXISTS kb_chunks (
    id TEXT PRIMARY KEY,
    document_id TEXT NOT NULL REFERENCES kb_documents(id) ON DELETE CASCADE,
    chunk_index INTEGER NOT NULL,
    content TEXT NOT NULL,
    embedding TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_kb_chunks_document_id ON kb_chunks(document_id);
"""


class StoreClientSqlite(StoreClientInterface):
    """SQLite-backed store in a single file (STORE_SQLITE_PATH).

    Embeddings are stored as JSON arrays. Each write runs as one transaction on
    a worker thread with its own connection.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.db_path = self.get_config_val("PATH", default=None, val_type="string")
        self._schema_ready = False

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Sqlite"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="PATH", val_type="string", default=None),
        ]

    ##########################################
    ############### DATABASE #################
    ##########################################

    @contextmanager
    def _get_conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.db_path))
        os.makedirs(directory, exist_ok=True)
        with self._get_conn() as conn:
            conn.executescript(_SCHEMA)
            conn.commit()

    async def _run(self, fn: Callable[[], T]) -> T:
        """Run a blocking database call on a worker thread, wrapping failures in StorageError."""
        try:
            if not self._schema_ready:
                await asyncio.to_thread(self._init_schema)
                self._schema_ready = True
            return await asyncio.to_thread(fn)
        except (sqlite3.Error, OSError, ValueError, ValidationError) as exc:
            raise StorageError(f"SQLite store '{self.db_path}' failed: {exc}") from exc

    ##########################################
    ############### MAPPING ##################
    ##########################################

    def _row_to_chunk(self, row: sqlite3.Row) -> KnowledgeChunk:
        return KnowledgeChunk(
            id=row["id"],
            document_id=row["document_id"],
            chunk_index=row["chunk_index"],
            content=row["content"],
            embedding=json.loads(row["embedding"]) if row["embedding"] is not None else None,
            created_at=row["created_at"],
        )

    def _row_to_document(self, row: sqlite3.Row, chunks: list[KnowledgeChunk]) -> KnowledgeDocument:
        return KnowledgeDocument(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            source_type=row["source_type"],
            source_path=row["source_path"],
            is_default=bool(row["is_default"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            content_hash=row["content_hash"],
            chunks=chunks,
        )

    ##########################################
    ################ ENGINE ##################
    ##########################################

    async def _read_all_documents(self) -> list[KnowledgeDocument]:
        def _query() -> list[KnowledgeDocument]:
            with self._get_conn() as conn:
                # one read transaction, documents and chunks come from the same snapshot
                conn.execute("BEGIN")
                chunk_rows = conn.execute("SELECT * FROM kb_chunks ORDER BY document_id, chunk_index").fetchall()
                doc_rows = conn.execute("SELECT * FROM kb_documents").fetchall()
                conn.commit()
            chunks_by_doc: dict[str, list[KnowledgeChunk]] = {}
            for row in chunk_rows:
                chunks_by_doc.setdefault(row["document_id"], []).append(self._row_to_chunk(row))
            return [self._row_to_document(row, chunks_by_doc.get(row["id"], [])) for row in doc_rows]

        return await self._run(_query)

    async def _read_document(self, document_id: str) -> KnowledgeDocument | None:
        def _query() -> KnowledgeDocument | None:
            with self._get_conn() as conn:
                conn.execute("BEGIN")
                doc_row = conn.execute("SELECT * FROM kb_documents WHERE id = ?", (document_id,)).fetchone()
                chunk_rows = conn.execute(
                    "SELECT * FROM kb_chunks WHERE document_id = ? ORDER BY chunk_index", (document_id,)
                ).fetchall()
                conn.commit()
            if doc_row is None:
                return None
            return self._row_to_document(doc_row, [self._row_to_chunk(row) for row in chunk_rows])

        return await self._run(_query)

    async def _read_all_chunks(self) -> list[KnowledgeChunk]:
        def _query() -> list[KnowledgeChunk]:
            with self._get_conn() as conn:
                rows = conn.execute("SELECT * FROM kb_chunks ORDER BY document_id, chunk_index").fetchall()
            return [self._row_to_chunk(row) for row in rows]

        return await self._run(_query)

    async def _write_document(self, document: KnowledgeDocument) -> None:
        def _write() -> None:
            with self._get_conn() as conn:
                # the connection context commits on success and rolls back on error
                with conn:
                    conn.execute("DELETE FROM kb_chunks WHERE document_id = ?", (document.id,))
                    conn.execute(
                        """
                        INSERT INTO kb_documents (id, title, content, source_type, source_path, is_default, created_at, updated_at, content_hash)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT(id) DO UPDATE SET
                            title = excluded.title,
                            content = excluded.content,
                            source_type = excluded.source_type,
                            source_path = excluded.source_path,
                            is_default = excluded.is_default,
                            created_at = excluded.created_at,
                            updated_at = excluded.updated_at,
                            content_hash = excluded.content_hash;
                        """,
                        (
                            document.id,
                            document.title,
                            document.content,
                            document.source_type.value,
                            document.source_path,
                            int(document.is_default),
                            document.created_at.isoformat(),
                            document.updated_at.isoformat(),
                            document.content_hash,
                        ),
                    )
                    conn.executemany(
                        "INSERT INTO kb_chunks (id, document_id, chunk_index, content, embedding, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                        [
                            (
                                chunk.id,
                                document.id,
                                chunk.chunk_index,
                                chunk.content,
                                json.dumps(chunk.embedding) if chunk.embedding is not None else None,
                                chunk.created_at.isoformat(),
                            )
                            for chunk in document.chunks
                        ],
                    )

        await self._run(_write)

    async def _remove_document(self, document_id: str) -> None:
        def _delete() -> None:
            with self._get_conn() as conn:
                with conn:
                    conn.execute("DELETE FROM kb_chunks WHERE document_id = ?", (document_id,))
                    conn.execute("DELETE FROM kb_documents WHERE id = ?", (document_id,))

        await self._run(_delete)

    async def _write_chunk(self, chunk: KnowledgeChunk) -> None:
        def _update() -> None:
            with self._get_conn() as conn:
                with conn:
                    conn.execute(
                        "UPDATE kb_chunks SET content = ?, embedding = ? WHERE id = ?",
                        (
                            chunk.content,
                            json.dumps(chunk.embedding) if chunk.embedding is not None else None,
                            chunk.id,
                        ),
                    )

        await self._run(_update)

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Create the database file and schema if missing."""
        await self._run(lambda: None)

    async def do_healthcheck(self) -> bool:
        try:
            await self._run(self._ping)
        except StorageError as exc:
            self.logging.warning("SQLite store is not usable: %s", exc)
            return False
        return True

    def _ping(self) -> None:
        with self._get_conn() as conn:
            conn.execute("SELECT 1").fetchone()
