"""Caller-facing index of a single repository.

Wires the backend, scanner, indexer and query engine to one index context.
All collaborators can be injected; defaults use the Whoosh backend and the
Maven layout extractor.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import TracebackType
from typing import Iterable, Optional, Set, Type

from repodex.artifacts.maven_extractor import MavenLayoutExtractor
from repodex.artifacts.models import ArtifactDescriptor
from repodex.indexing.context import IndexContext
from repodex.indexing.indexer import DeleteTarget, Indexer
from repodex.indexing.reindex import ReindexListener
from repodex.scanner.scanner import Scanner, ScanResult
from repodex.search.base_backend import BaseIndexBackend
from repodex.search.query import QueryEngine
from repodex.search.schema import DEFAULT_FIELDS, IndexFields
from repodex.search.whoosh_backend import WhooshBackend

logger = logging.getLogger(__name__)


class RepositoryIndexer:
    """Index, search and prune the artifacts of one repository."""

    def __init__(
        self,
        repository_id: str,
        repository_base_dir: Path,
        index_dir: Path,
        *,
        backend: Optional[BaseIndexBackend] = None,
        scanner: Optional[Scanner] = None,
        fields: IndexFields = DEFAULT_FIELDS,
        trust_existing_index: bool = True,
        searchable: bool = True,
    ) -> None:
        self.repository_id = repository_id
        self.backend = backend or WhooshBackend()
        self.scanner = scanner or Scanner(MavenLayoutExtractor(repository_id=repository_id))
        self.indexer = Indexer(self.backend)
        self.query_engine = QueryEngine(self.backend)
        self.context: IndexContext = self.backend.open_context(
            f"{repository_id}/ctx",
            Path(repository_base_dir),
            Path(index_dir),
            searchable=searchable,
            trust_existing_index=trust_existing_index,
            fields=fields,
        )
        logger.info("repository indexer created; id: %s; dir: %s", repository_id, index_dir)

    def close(self, delete_files: bool = False) -> None:
        self.backend.close_context(self.context, delete_files=delete_files)

    def __enter__(self) -> RepositoryIndexer:
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    # ----- Writes -----

    def index(self, starting_path: Optional[Path] = None) -> int:
        """Scan and index; return the number of artifacts indexed successfully."""
        return self.scan(starting_path).total_files

    def scan(self, starting_path: Optional[Path] = None) -> ScanResult:
        """Scan and index, returning the full result including extraction errors."""
        return self.scanner.scan(self.context, ReindexListener(self.indexer), starting_path)

    def add(self, descriptors: Iterable[ArtifactDescriptor]) -> None:
        self.indexer.add(descriptors, self.context)

    def delete(self, targets: Iterable[DeleteTarget]) -> None:
        self.indexer.delete(targets, self.context)

    # ----- Reads -----

    def search(
        self, group_id: str, artifact_id: str, version: Optional[str] = None
    ) -> Set[ArtifactDescriptor]:
        return self.query_engine.search_coordinates(self.context, group_id, artifact_id, version)

    def search_text(self, query_text: str) -> Set[ArtifactDescriptor]:
        return self.query_engine.search_text(self.context, query_text)

    def count(self) -> int:
        return self.backend.document_count(self.context)
