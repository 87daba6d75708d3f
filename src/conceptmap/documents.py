"""Uploaded document records and their processing status.

Nodes and edges carry no reference back to the document they came from, so
deleting a record here leaves the graph untouched.
"""

from __future__ import annotations

import json
import sqlite3
import time
from dataclasses import dataclass
from typing import Any


STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_DONE = "done"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class Document:
    doc_id: int
    user_id: str
    file_name: str
    file_type: str
    path: str
    status: str
    error: str | None
    stats: dict[str, Any]
    created_at: int
    updated_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "doc_id": self.doc_id,
            "user_id": self.user_id,
            "file_name": self.file_name,
            "file_type": self.file_type,
            "status": self.status,
            "error": self.error,
            "stats": self.stats,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


def init_documents(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS documents (
          doc_id INTEGER PRIMARY KEY,
          user_id TEXT NOT NULL,
          file_name TEXT NOT NULL,
          file_type TEXT NOT NULL,
          path TEXT NOT NULL,
          status TEXT NOT NULL,
          error TEXT,
          stats_json TEXT NOT NULL,
          created_at INTEGER NOT NULL,
          updated_at INTEGER NOT NULL
        );
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_documents_user ON documents(user_id);")
    conn.commit()


def create_document(
    conn: sqlite3.Connection,
    *,
    user_id: str,
    file_name: str,
    file_type: str,
    path: str,
) -> Document:
    now = int(time.time())
    cur = conn.execute(
        """
        INSERT INTO documents(user_id, file_name, file_type, path, status, error, stats_json, created_at, updated_at)
        VALUES(?, ?, ?, ?, ?, NULL, '{}', ?, ?)
        """,
        (str(user_id), file_name, file_type, path, STATUS_PENDING, now, now),
    )
    conn.commit()
    return Document(
        doc_id=int(cur.lastrowid),
        user_id=str(user_id),
        file_name=file_name,
        file_type=file_type,
        path=path,
        status=STATUS_PENDING,
        error=None,
        stats={},
        created_at=now,
        updated_at=now,
    )


def set_status(
    conn: sqlite3.Connection,
    doc_id: int,
    status: str,
    *,
    error: str | None = None,
    stats: dict[str, Any] | None = None,
) -> None:
    """Update a record's status. Missing records are ignored (deleted mid-batch)."""
    conn.execute(
        """
        UPDATE documents
        SET status = ?, error = ?, stats_json = ?, updated_at = ?
        WHERE doc_id = ?
        """,
        (status, error, json.dumps(stats or {}, ensure_ascii=True), int(time.time()), int(doc_id)),
    )
    conn.commit()


def get_document(conn: sqlite3.Connection, doc_id: int) -> Document | None:
    row = conn.execute("SELECT * FROM documents WHERE doc_id = ?", (int(doc_id),)).fetchone()
    return _row_to_document(row) if row is not None else None


def list_documents(conn: sqlite3.Connection, user_id: str) -> list[Document]:
    cur = conn.execute(
        "SELECT * FROM documents WHERE user_id = ? ORDER BY doc_id",
        (str(user_id),),
    )
    return [_row_to_document(r) for r in cur]


def delete_document(conn: sqlite3.Connection, doc_id: int) -> bool:
    cur = conn.execute("DELETE FROM documents WHERE doc_id = ?", (int(doc_id),))
    conn.commit()
    return cur.rowcount > 0


def _row_to_document(row: sqlite3.Row) -> Document:
    return Document(
        doc_id=int(row["doc_id"]),
        user_id=str(row["user_id"]),
        file_name=str(row["file_name"]),
        file_type=str(row["file_type"]),
        path=str(row["path"]),
        status=str(row["status"]),
        error=(str(row["error"]) if row["error"] is not None else None),
        stats=json.loads(row["stats_json"] or "{}"),
        created_at=int(row["created_at"]),
        updated_at=int(row["updated_at"]),
    )
