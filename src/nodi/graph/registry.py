from __future__ import annotations

import logging
from typing import Protocol

from ..errors import RegistrationFailure
from ..ingest.runner import DEFAULT_EXTENSION, normalize_extension


logger = logging.getLogger(__name__)


class Storage(Protocol):
    def wipe_all(self) -> None: ...

    def insert_document(self, path: str, fingerprint: str) -> int: ...

    def find_document_id(self, target: str, *, name: str | None = None) -> int: ...

    def insert_edge(self, source_id: int, target_id: int, reference: str | None = None) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


class DocumentRegistry:
    """Assigns ids to scanned documents and maps reference names back to ids.

    Registration is only allowed until ``freeze()``; after that the registry
    is read-only and name lookups are cached.
    """

    def __init__(self, storage: Storage, *, extension: str = DEFAULT_EXTENSION):
        self.storage = storage
        self.extension = normalize_extension(extension)
        self._paths: dict[int, str] = {}
        self._frozen = False
        self._name_cache: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._paths)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, path: str, fingerprint: str) -> int:
        if self._frozen:
            raise RegistrationFailure(f"registry is closed; cannot register {path}")
        doc_id = self.storage.insert_document(path, fingerprint)
        if doc_id in self._paths:
            raise RegistrationFailure(f"storage returned duplicate id {doc_id} for {path}")
        self._paths[doc_id] = path
        logger.debug("Registered %s as %d", path, doc_id)
        return doc_id

    def freeze(self) -> None:
        self._frozen = True

    def path_of(self, doc_id: int) -> str:
        return self._paths[doc_id]

    def resolve_name(self, name: str) -> int:
        """Return the id of the single document whose path ends in ``name + ext``."""
        cached = self._name_cache.get(name)
        if cached is not None:
            return cached

        doc_id = self.storage.find_document_id(name + self.extension, name=name)
        if self._frozen:
            self._name_cache[name] = doc_id
        return doc_id
