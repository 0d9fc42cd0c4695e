"""Registry of repository indexers sharing one backend."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Set

from repodex.artifacts.models import ArtifactDescriptor
from repodex.config import Settings
from repodex.indexing.repository_indexer import RepositoryIndexer
from repodex.search.base_backend import BaseIndexBackend
from repodex.search.whoosh_backend import WhooshBackend

logger = logging.getLogger(__name__)


class RepositoryIndexManager:
    """Owns the indexers of all configured repositories.

    Federated free-text search covers the repositories whose context was
    opened as searchable.
    """

    def __init__(self, backend: Optional[BaseIndexBackend] = None) -> None:
        self.backend = backend or WhooshBackend()
        self._indexers: Dict[str, RepositoryIndexer] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, backend: Optional[BaseIndexBackend] = None) -> RepositoryIndexManager:
        manager = cls(backend)
        for repo in settings.repositories:
            manager.add_repository(
                repo.id,
                repo.base_dir,
                settings.index_dir_for(repo),
                trust_existing_index=settings.index.trust_existing_index,
                searchable=repo.searchable,
            )
        return manager

    def add_repository(
        self,
        repository_id: str,
        repository_base_dir: Path,
        index_dir: Path,
        *,
        trust_existing_index: bool = True,
        searchable: bool = True,
    ) -> RepositoryIndexer:
        with self._lock:
            if repository_id in self._indexers:
                raise ValueError(f"repository {repository_id!r} is already registered")
            indexer = RepositoryIndexer(
                repository_id,
                repository_base_dir,
                index_dir,
                backend=self.backend,
                trust_existing_index=trust_existing_index,
                searchable=searchable,
            )
            self._indexers[repository_id] = indexer
        return indexer

    def get(self, repository_id: str) -> RepositoryIndexer:
        try:
            return self._indexers[repository_id]
        except KeyError:
            raise KeyError(f"unknown repository {repository_id!r}") from None

    def repository_ids(self) -> List[str]:
        return sorted(self._indexers)

    def remove(self, repository_id: str, *, delete_files: bool = False) -> None:
        with self._lock:
            indexer = self._indexers.pop(repository_id, None)
        if indexer is None:
            raise KeyError(f"unknown repository {repository_id!r}")
        indexer.close(delete_files=delete_files)

    def search_text_all(self, query_text: str) -> Set[ArtifactDescriptor]:
        """Free-text search across every searchable repository."""
        results: Set[ArtifactDescriptor] = set()
        for repository_id in self.repository_ids():
            indexer = self._indexers[repository_id]
            if indexer.context.searchable:
                results |= indexer.search_text(query_text)
        return results

    def close_all(self, *, delete_files: bool = False) -> None:
        with self._lock:
            indexers = list(self._indexers.values())
            self._indexers.clear()
        for indexer in indexers:
            indexer.close(delete_files=delete_files)
        logger.info("closed %d repository indexes", len(indexers))
