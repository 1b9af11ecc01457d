from __future__ import annotations

import os
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from ..errors import (
    RegistrationFailure,
    ResolutionAmbiguous,
    ResolutionNotFound,
    StorageFailure,
)
from ..graph import sqlite_graph


SCHEMA_VERSION = 1


@dataclass(frozen=True)
class StoredDocument:
    doc_id: int
    path: str
    fingerprint: str
    indexed_at: int


def connect(db_path: str | os.PathLike[str]) -> sqlite3.Connection:
    if str(db_path) != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS meta (
          key TEXT PRIMARY KEY,
          value TEXT NOT NULL
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS documents (
          doc_id INTEGER PRIMARY KEY,
          path TEXT NOT NULL UNIQUE,
          fingerprint TEXT NOT NULL,
          indexed_at INTEGER NOT NULL
        );
        """
    )
    conn.execute(
        "INSERT OR REPLACE INTO meta(key, value) VALUES(?, ?)",
        ("schema_version", str(SCHEMA_VERSION)),
    )
    conn.commit()


def clear_documents(conn: sqlite3.Connection) -> None:
    # No commit: the caller owns the transaction.
    conn.execute("DELETE FROM documents;")


def insert_document(conn: sqlite3.Connection, *, path: str, fingerprint: str) -> int:
    cur = conn.execute(
        "INSERT INTO documents(path, fingerprint, indexed_at) VALUES(?, ?, ?)",
        (path, fingerprint, int(time.time())),
    )
    return int(cur.lastrowid)


def find_document_ids(conn: sqlite3.Connection, target: str) -> list[sqlite3.Row]:
    """Documents whose path is ``target`` or ends with ``/target``.

    Matching stops at path separators, so ``b.md`` does not match ``ab.md``.
    """
    suffix = "/" + target
    return conn.execute(
        """
        SELECT doc_id, path
        FROM documents
        WHERE path = ? OR substr(path, -?) = ?
        ORDER BY doc_id
        """,
        (target, len(suffix), suffix),
    ).fetchall()


def resolve_document_id(conn: sqlite3.Connection, target: str, *, name: str | None = None) -> int:
    """Resolve a ``<name><ext>`` suffix to exactly one document id."""
    with _storage_errors("lookup"):
        rows = find_document_ids(conn, target)
    label = name if name is not None else target
    if not rows:
        raise ResolutionNotFound(label)
    if len(rows) > 1:
        raise ResolutionAmbiguous(label, [str(r["path"]) for r in rows])
    return int(rows[0]["doc_id"])


def get_document(conn: sqlite3.Connection, doc_id: int) -> StoredDocument | None:
    row = conn.execute(
        "SELECT doc_id, path, fingerprint, indexed_at FROM documents WHERE doc_id = ?",
        (int(doc_id),),
    ).fetchone()
    return _row_to_document(row) if row is not None else None


def get_document_by_path(conn: sqlite3.Connection, path: str) -> StoredDocument | None:
    row = conn.execute(
        "SELECT doc_id, path, fingerprint, indexed_at FROM documents WHERE path = ?",
        (str(path),),
    ).fetchone()
    return _row_to_document(row) if row is not None else None


def iter_documents(conn: sqlite3.Connection) -> Iterable[StoredDocument]:
    cur = conn.execute("SELECT doc_id, path, fingerprint, indexed_at FROM documents ORDER BY path")
    for row in cur:
        yield _row_to_document(row)


def count_documents(conn: sqlite3.Connection) -> int:
    return int(conn.execute("SELECT COUNT(*) AS n FROM documents").fetchone()["n"])


def set_meta(conn: sqlite3.Connection, values: dict[str, str]) -> None:
    conn.executemany(
        "INSERT OR REPLACE INTO meta(key, value) VALUES(?, ?)",
        [(str(k), str(v)) for k, v in values.items()],
    )


def get_meta(conn: sqlite3.Connection) -> dict[str, str]:
    return {str(r["key"]): str(r["value"]) for r in conn.execute("SELECT key, value FROM meta")}


def _row_to_document(row: sqlite3.Row) -> StoredDocument:
    return StoredDocument(
        doc_id=int(row["doc_id"]),
        path=str(row["path"]),
        fingerprint=str(row["fingerprint"]),
        indexed_at=int(row["indexed_at"]),
    )


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as e:
        raise StorageFailure(f"{action} failed: {e}") from e


class SqliteStorage:
    """Storage collaborator used by the rebuild: documents + links in one SQLite DB.

    Nothing is committed until ``commit()``; a failed rebuild calls
    ``rollback()`` and the previous index survives untouched.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        with _storage_errors("schema setup"):
            init_db(conn)
            sqlite_graph.init_graph(conn)

    def wipe_all(self) -> None:
        with _storage_errors("wipe"):
            sqlite_graph.clear_graph(self.conn)
            clear_documents(self.conn)

    def insert_document(self, path: str, fingerprint: str) -> int:
        try:
            return insert_document(self.conn, path=path, fingerprint=fingerprint)
        except sqlite3.IntegrityError as e:
            raise RegistrationFailure(f"cannot register {path}: {e}") from e
        except sqlite3.Error as e:
            raise StorageFailure(f"insert of {path} failed: {e}") from e

    def find_document_id(self, target: str, *, name: str | None = None) -> int:
        return resolve_document_id(self.conn, target, name=name)

    def insert_edge(self, source_id: int, target_id: int, reference: str | None = None) -> None:
        with _storage_errors("link insert"):
            sqlite_graph.insert_link(self.conn, src_id=source_id, dst_id=target_id, reference=reference)

    def commit(self) -> None:
        with _storage_errors("commit"):
            self.conn.commit()

    def rollback(self) -> None:
        with _storage_errors("rollback"):
            self.conn.rollback()
