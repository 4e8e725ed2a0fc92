"""Document store: SQL access for documents, chunks and embeddings."""

from __future__ import annotations

import sqlite3
import time
import uuid
from typing import Iterator, Sequence

import orjson

from pricing_docs.db.sqlite import SQLiteDatabase, iter_rows
from pricing_docs.ingest.types import ChunkPayload
from pricing_docs.models.entities import Chunk, Document, DocumentSummary, Embedding, ms_to_datetime

_DOCUMENT_COLUMNS = "id, owner_id, filename, original_name, file_type, storage_path, size_bytes, created_at"
_CHUNK_COLUMNS = "chunks.id, chunks.document_id, chunks.chunk_index, chunks.content, chunks.token_count, chunks.meta_json, chunks.created_at"


class DocumentStore:
    """Repository over the documents/chunks/embeddings schema.

    Every write commits before returning, and every delete or insert is scoped
    to a single document id, so concurrent indexing of different documents does
    not interfere.
    """

    def __init__(self, db: SQLiteDatabase) -> None:
        self.db = db

    # Documents --------------------------------------------------------

    def create_document(
        self,
        owner_id: int,
        filename: str,
        original_name: str,
        file_type: str,
        storage_path: str,
        size_bytes: int,
    ) -> Document:
        document_id = _new_id("doc")
        now = _now_ms()
        with self.db.transaction() as cursor:
            cursor.execute(
                f"INSERT INTO documents ({_DOCUMENT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [document_id, owner_id, filename, original_name, file_type, storage_path, size_bytes, now],
            )
        return Document(
            id=document_id,
            owner_id=owner_id,
            filename=filename,
            original_name=original_name,
            file_type=file_type,
            storage_path=storage_path,
            size_bytes=size_bytes,
            created_at=ms_to_datetime(now),
        )

    def get_document(self, document_id: str, owner_id: int | None = None) -> Document | None:
        sql = f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?"
        params: list[object] = [document_id]
        if owner_id is not None:
            sql += " AND owner_id = ?"
            params.append(owner_id)
        row = self.db.execute(sql, params).fetchone()
        return Document.from_row(row) if row else None

    def list_documents(self, owner_id: int) -> list[DocumentSummary]:
        rows = self.db.query(
            """
            SELECT
              documents.*,
              COUNT(chunks.id) AS chunk_count,
              COUNT(embeddings.chunk_id) AS embedded_count
            FROM documents
            LEFT JOIN chunks ON chunks.document_id = documents.id
            LEFT JOIN embeddings ON embeddings.chunk_id = chunks.id
            WHERE documents.owner_id = ?
            GROUP BY documents.id
            ORDER BY documents.created_at DESC, documents.id
            """,
            [owner_id],
        )
        return [
            DocumentSummary(
                document=Document.from_row(row),
                chunk_count=row["chunk_count"],
                embedded_count=row["embedded_count"],
            )
            for row in rows
        ]

    def count_documents_with_path(self, storage_path: str) -> int:
        return self.db.scalar("SELECT COUNT(*) FROM documents WHERE storage_path = ?", [storage_path])

    def delete_document(self, document_id: str) -> bool:
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM documents WHERE id = ?", [document_id])
            return cursor.rowcount > 0

    # Chunks -----------------------------------------------------------

    def insert_chunks(self, document_id: str, payloads: Sequence[ChunkPayload]) -> list[str]:
        """Insert every chunk row of a document at once and return their ids."""
        now = _now_ms()
        chunk_ids = [_new_id("chk") for _ in payloads]
        with self.db.transaction() as cursor:
            cursor.executemany(
                """
                INSERT INTO chunks (id, document_id, chunk_index, content, token_count, meta_json, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        chunk_id,
                        document_id,
                        payload.index,
                        payload.text,
                        payload.token_count,
                        orjson.dumps(payload.metadata).decode("utf-8"),
                        now,
                    )
                    for chunk_id, payload in zip(chunk_ids, payloads)
                ],
            )
        return chunk_ids

    def delete_chunks(self, document_id: str) -> int:
        with self.db.transaction() as cursor:
            cursor.execute("DELETE FROM chunks WHERE document_id = ?", [document_id])
            return cursor.rowcount

    def get_chunk(self, chunk_id: str, owner_id: int | None = None) -> Chunk | None:
        sql = f"SELECT {_CHUNK_COLUMNS} FROM chunks JOIN documents ON documents.id = chunks.document_id WHERE chunks.id = ?"
        params: list[object] = [chunk_id]
        if owner_id is not None:
            sql += " AND documents.owner_id = ?"
            params.append(owner_id)
        row = self.db.execute(sql, params).fetchone()
        return Chunk.from_row(row) if row else None

    def list_chunks(self, document_id: str, owner_id: int | None = None) -> list[Chunk]:
        sql = f"SELECT {_CHUNK_COLUMNS} FROM chunks JOIN documents ON documents.id = chunks.document_id WHERE chunks.document_id = ?"
        params: list[object] = [document_id]
        if owner_id is not None:
            sql += " AND documents.owner_id = ?"
            params.append(owner_id)
        sql += " ORDER BY chunks.chunk_index ASC"
        return [Chunk.from_row(row) for row in self.db.query(sql, params)]

    def count_chunks(self) -> int:
        return self.db.scalar("SELECT COUNT(*) FROM chunks")

    # Embeddings -------------------------------------------------------

    def insert_embedding(self, chunk_id: str, model: str, dim: int, vector: bytes) -> None:
        with self.db.transaction() as cursor:
            cursor.execute(
                "INSERT INTO embeddings (chunk_id, model, dim, vector, created_at) VALUES (?, ?, ?, ?, ?)",
                [chunk_id, model, dim, vector, _now_ms()],
            )

    def get_embedding(self, chunk_id: str) -> Embedding | None:
        row = self.db.execute(
            "SELECT chunk_id, model, dim, vector, created_at FROM embeddings WHERE chunk_id = ?",
            [chunk_id],
        ).fetchone()
        if row is None:
            return None
        return Embedding(
            chunk_id=row["chunk_id"],
            model=row["model"],
            dim=row["dim"],
            vector=row["vector"],
            created_at=ms_to_datetime(row["created_at"]),
        )

    def iter_embedded_chunks(self, model: str, owner_id: int | None = None) -> Iterator[sqlite3.Row]:
        """Stream every chunk that has an embedding for ``model``."""
        sql = """
            SELECT
              chunks.id AS chunk_id,
              chunks.document_id,
              chunks.chunk_index,
              chunks.content,
              chunks.meta_json,
              documents.original_name,
              documents.filename,
              embeddings.dim,
              embeddings.vector
            FROM embeddings
            JOIN chunks ON chunks.id = embeddings.chunk_id
            JOIN documents ON documents.id = chunks.document_id
            WHERE embeddings.model = ?
        """
        params: list[object] = [model]
        if owner_id is not None:
            sql += " AND documents.owner_id = ?"
            params.append(owner_id)
        sql += " ORDER BY documents.created_at DESC, chunks.document_id, chunks.chunk_index"
        return iter_rows(self.db.execute(sql, params))


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex}"


def _now_ms() -> int:
    return int(time.time() * 1000)


__all__ = ["DocumentStore"]
