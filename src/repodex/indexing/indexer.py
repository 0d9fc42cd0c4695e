"""Add and delete artifact documents in an index context."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Union

from repodex.artifacts.models import ArtifactDescriptor, ArtifactPattern
from repodex.indexing.context import IndexContext
from repodex.search.base_backend import BaseIndexBackend

logger = logging.getLogger(__name__)

DeleteTarget = Union[ArtifactDescriptor, ArtifactPattern]


class Indexer:
    """Writes to one context at a time, holding the context's write lock.

    Backend failures surface as `repodex.exceptions.IndexWriteError` and leave
    the index as it was before the call.
    """

    def __init__(self, backend: BaseIndexBackend) -> None:
        self.backend = backend

    def add(self, descriptors: Iterable[ArtifactDescriptor], context: IndexContext) -> None:
        """Insert or replace the documents of ``descriptors``."""
        batch = list(descriptors)
        if not batch:
            return
        with context.write_lock:
            context.require_open()
            for descriptor in batch:
                logger.info(
                    "adding artifact: %s; ctx id: %s; idx dir: %s", descriptor, context.id, context.index_dir
                )
            self.backend.add_documents(batch, context)

    def delete(self, targets: Iterable[DeleteTarget], context: IndexContext) -> None:
        """Remove every document matching any of ``targets``.

        A descriptor removes exactly its own coordinates; a pattern removes
        everything matching the coordinates it sets.
        """
        batch = list(targets)
        if not batch:
            return
        queries: List[Any] = []
        for target in batch:
            logger.info("deleting artifact: %s; ctx id: %s", target, context.id)
            queries.append(self._match(target, context))
        with context.write_lock:
            context.require_open()
            self.backend.delete_documents(queries, context)

    def _match(self, target: DeleteTarget, context: IndexContext) -> Any:
        fields = context.fields
        if isinstance(target, ArtifactDescriptor):
            return self.backend.exact(fields.uid, target.uid)
        if isinstance(target, ArtifactPattern):
            return self.backend.conjunction(
                [self.backend.exact(fields.keyword[name], value) for name, value in target.criteria().items()]
            )
        raise TypeError(f"cannot delete by {type(target).__name__}")
