"""Full index rebuild: wipe, scan + register every document, then resolve links.

Links are resolved only after every document has an id, so a document may
reference one that is scanned later.
"""

from __future__ import annotations

import logging
import os
import sqlite3
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable

from ..errors import StorageFailure
from ..index import sqlite_store
from ..ingest.runner import DEFAULT_EXTENSION, iter_documents, normalize_extension, relpath
from ..ingest.scanner import DEFAULT_CHUNK_SIZE, DEFAULT_HASH, scan_file
from .registry import DocumentRegistry, Storage
from .resolver import resolve_edges


logger = logging.getLogger(__name__)


class RebuildState(str, Enum):
    IDLE = "idle"
    WIPING = "wiping"
    SCANNING = "scanning"
    RESOLVING = "resolving"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class RebuildResult:
    documents_indexed: int
    documents_with_references: int
    references_found: int
    discarded_references: int
    edges_written: int
    elapsed_s: float


class IndexRebuilder:
    def __init__(
        self,
        storage: Storage,
        *,
        extension: str = DEFAULT_EXTENSION,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        hash_name: str = DEFAULT_HASH,
        encoding: str = "utf-8",
        strict_references: bool = False,
    ):
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self.storage = storage
        self.extension = normalize_extension(extension)
        self.chunk_size = int(chunk_size)
        self.hash_name = hash_name
        self.encoding = encoding
        self.strict_references = bool(strict_references)
        self.state = RebuildState.IDLE

    def _enter(self, state: RebuildState) -> None:
        logger.debug("Rebuild state %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self, paths: Iterable[str | os.PathLike[str]], *, root: str | os.PathLike[str] | None = None) -> RebuildResult:
        """Rebuild the whole index from ``paths``.

        With ``root`` set, documents are stored under their path relative to it.
        Any error moves the rebuilder to FAILED, rolls the storage back and is
        re-raised unchanged.
        """
        if self.state in (RebuildState.WIPING, RebuildState.SCANNING, RebuildState.RESOLVING):
            raise RuntimeError(f"rebuild already in progress ({self.state.value})")

        started = time.perf_counter()
        base = Path(root) if root is not None else None

        try:
            self._enter(RebuildState.WIPING)
            self.storage.wipe_all()

            self._enter(RebuildState.SCANNING)
            registry = DocumentRegistry(self.storage, extension=self.extension)
            pending: dict[int, list[str]] = {}
            references_found = 0
            discarded = 0

            for path in paths:
                p = Path(path)
                res = scan_file(
                    p,
                    chunk_size=self.chunk_size,
                    hash_name=self.hash_name,
                    encoding=self.encoding,
                    strict=self.strict_references,
                )
                stored = relpath(p, base) if base is not None else p.as_posix()
                doc_id = registry.register(stored, res.fingerprint)
                references_found += len(res.references)
                discarded += res.discarded
                if res.references:
                    pending[doc_id] = res.references
                logger.debug("Scanned %s: %s, %d reference(s)", stored, res.fingerprint, len(res.references))

            registry.freeze()
            logger.info("Scanned %d document(s), %d reference(s)", len(registry), references_found)

            self._enter(RebuildState.RESOLVING)
            edges = 0
            for edge in resolve_edges(pending, registry):
                self.storage.insert_edge(edge.source_id, edge.target_id, edge.reference)
                edges += 1

            self.storage.commit()
            self._enter(RebuildState.DONE)
        except Exception:
            self._enter(RebuildState.FAILED)
            try:
                self.storage.rollback()
            except StorageFailure:
                logger.exception("Rollback after failed rebuild also failed")
            raise

        elapsed = time.perf_counter() - started
        logger.info("Wrote %d link(s) in %.2fs", edges, elapsed)
        return RebuildResult(
            documents_indexed=len(registry),
            documents_with_references=len(pending),
            references_found=references_found,
            discarded_references=discarded,
            edges_written=edges,
            elapsed_s=elapsed,
        )


def build_index(
    *,
    conn: sqlite3.Connection,
    root: str | os.PathLike[str],
    extension: str = DEFAULT_EXTENSION,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    hash_name: str = DEFAULT_HASH,
    encoding: str = "utf-8",
    strict_references: bool = False,
) -> RebuildResult:
    """Rebuild the link index for every document under ``root``."""
    base = Path(root)
    storage = sqlite_store.SqliteStorage(conn)
    rebuilder = IndexRebuilder(
        storage,
        extension=extension,
        chunk_size=chunk_size,
        hash_name=hash_name,
        encoding=encoding,
        strict_references=strict_references,
    )
    result = rebuilder.run(iter_documents(base, rebuilder.extension), root=base)

    sqlite_store.set_meta(
        conn,
        {
            "root": str(base.resolve()),
            "extension": rebuilder.extension,
            "hash_name": hash_name,
            "encoding": encoding,
            "completed_at": str(int(time.time())),
        },
    )
    conn.commit()
    return result
