"""Structured and free-text artifact queries.

Both query modes run against the same document schema: structured queries
match the untokenized keyword fields exactly, free-text queries match tokens
in the analyzed text fields.
"""

from __future__ import annotations

import logging
from typing import Optional, Set

from repodex.artifacts.models import ArtifactDescriptor
from repodex.indexing.context import IndexContext
from repodex.search.base_backend import BaseIndexBackend

logger = logging.getLogger(__name__)

RELEASE_PACKAGING = "jar"


class QueryEngine:
    """Builds queries through the backend and collapses hits into descriptor sets.

    Field names come from the queried context, so one engine serves contexts
    with different field layouts.
    """

    def __init__(self, backend: BaseIndexBackend) -> None:
        self.backend = backend

    def search_coordinates(
        self,
        context: IndexContext,
        group_id: str,
        artifact_id: str,
        version: Optional[str] = None,
    ) -> Set[ArtifactDescriptor]:
        """Find unclassified jar artifacts with the given coordinates.

        Classified variants (sources, javadoc, ...) are always excluded; when
        ``version`` is None every version matches.
        """
        key = context.fields.keyword
        required = [
            self.backend.exact(key["group_id"], group_id),
            self.backend.exact(key["artifact_id"], artifact_id),
            self.backend.exact(key["packaging"], RELEASE_PACKAGING),
        ]
        if version is not None:
            required.append(self.backend.exact(key["version"], version))
        query = self.backend.conjunction(required, excluded=[self.backend.present(key["classifier"])])
        return self._run(query, context)

    def search_text(self, context: IndexContext, query_text: str) -> Set[ArtifactDescriptor]:
        """Match ``query_text`` tokens against any of the coordinate text fields."""
        query = self.backend.parse_text(query_text, context.fields.searchable, context)
        return self._run(query, context)

    def _run(self, query: object, context: IndexContext) -> Set[ArtifactDescriptor]:
        logger.info(
            "running search query: %s; ctx id: %s; idx dir: %s", query, context.id, context.index_dir
        )
        response = self.backend.execute_query(query, context)
        logger.info("hit count: %d", response.total_hits)
        return set(response.results)
