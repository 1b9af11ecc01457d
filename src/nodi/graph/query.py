from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..errors import ResolutionNotFound
from ..index import sqlite_store
from ..ingest.runner import DEFAULT_EXTENSION, iter_documents, normalize_extension, relpath
from ..ingest.scanner import DEFAULT_CHUNK_SIZE, DEFAULT_HASH, fingerprint_file
from .sqlite_graph import get_incoming, get_outgoing


def find_document(
    conn: sqlite3.Connection,
    name: str,
    *,
    extension: str | None = None,
) -> sqlite_store.StoredDocument:
    """Look a document up by stored path, or by reference name as ``[[name]]`` would.

    The extension defaults to the one recorded by the last rebuild.
    """
    doc = sqlite_store.get_document_by_path(conn, name)
    if doc is not None:
        return doc

    if extension is None:
        extension = sqlite_store.get_meta(conn).get("extension", DEFAULT_EXTENSION)
    doc_id = sqlite_store.resolve_document_id(conn, name + normalize_extension(extension), name=name)
    doc = sqlite_store.get_document(conn, doc_id)
    if doc is None:
        raise ResolutionNotFound(name)
    return doc


def links_from(conn: sqlite3.Connection, name: str, *, extension: str | None = None) -> dict[str, Any]:
    doc = find_document(conn, name, extension=extension)
    rows = get_outgoing(conn, doc.doc_id)
    return {
        "document": doc,
        "links": [{"path": str(r["path"]), "reference": r["reference"]} for r in rows],
    }


def links_to(conn: sqlite3.Connection, name: str, *, extension: str | None = None) -> dict[str, Any]:
    doc = find_document(conn, name, extension=extension)
    rows = get_incoming(conn, doc.doc_id)
    return {
        "document": doc,
        "links": [{"path": str(r["path"]), "reference": r["reference"]} for r in rows],
    }


@dataclass
class IndexStatus:
    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not (self.added or self.modified or self.deleted)


def document_status(
    conn: sqlite3.Connection,
    root: str | os.PathLike[str],
    *,
    extension: str | None = None,
    hash_name: str | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> IndexStatus:
    """Compare stored fingerprints with the documents currently on disk.

    Extension and hash algorithm default to the ones recorded by the last
    rebuild so digests are comparable.
    """
    meta = sqlite_store.get_meta(conn)
    ext = normalize_extension(extension or meta.get("extension", DEFAULT_EXTENSION))
    algo = hash_name or meta.get("hash_name", DEFAULT_HASH)
    base = Path(root)

    stored = {d.path: d.fingerprint for d in sqlite_store.iter_documents(conn)}
    status = IndexStatus()

    for path in iter_documents(base, ext):
        rel = relpath(path, base)
        digest = fingerprint_file(path, chunk_size=chunk_size, hash_name=algo)
        prev = stored.pop(rel, None)
        if prev is None:
            status.added.append(rel)
        elif prev != digest:
            status.modified.append(rel)
        else:
            status.unchanged.append(rel)

    status.deleted.extend(sorted(stored))
    return status
