from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Mapping, Sequence

from ..errors import ResolutionAmbiguous, ResolutionNotFound
from .registry import DocumentRegistry


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Edge:
    source_id: int
    target_id: int
    reference: str


def resolve_edges(
    pending: Mapping[int, Sequence[str]],
    registry: DocumentRegistry,
) -> Iterator[Edge]:
    """Yield one edge per (document, reference) pair, in first-seen order.

    Repeated references produce repeated edges. The first reference that does
    not resolve to exactly one document raises and stops the iteration.
    """
    for source_id, references in pending.items():
        if not references:
            continue
        source = registry.path_of(source_id)
        for reference in references:
            try:
                target_id = registry.resolve_name(reference)
            except ResolutionNotFound as e:
                raise ResolutionNotFound(e.name, source=source) from e
            except ResolutionAmbiguous as e:
                raise ResolutionAmbiguous(e.name, e.candidates, source=source) from e
            logger.debug("Link %s -> [[%s]] (%d -> %d)", source, reference, source_id, target_id)
            yield Edge(source_id=source_id, target_id=target_id, reference=reference)
