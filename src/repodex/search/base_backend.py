"""Abstract index backend interface.

Defines the minimal surface the indexer and query engine need from a search
engine (e.g., Whoosh): context lifecycle, document writes, query construction
and execution.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Sequence

from repodex.artifacts.models import ArtifactDescriptor
from repodex.indexing.context import IndexContext
from repodex.search.schema import DEFAULT_FIELDS, IndexFields


@dataclass(slots=True)
class SearchResponse:
    """Results of one query execution."""

    results: List[ArtifactDescriptor] = field(default_factory=list)
    total_hits: int = 0


class BaseIndexBackend(ABC):
    """Abstract interface for index backend implementations."""

    @abstractmethod
    def open_context(
        self,
        context_id: str,
        repository_base_dir: Path,
        index_dir: Path,
        *,
        trust_existing_index: bool,
        searchable: bool,
        fields: IndexFields = DEFAULT_FIELDS,
    ) -> IndexContext:
        """Open (or create) the index stored in ``index_dir``."""

    @abstractmethod
    def close_context(self, context: IndexContext, *, delete_files: bool = False) -> None:
        """Release the context, optionally deleting its stored index."""

    @abstractmethod
    def add_documents(self, descriptors: Sequence[ArtifactDescriptor], context: IndexContext) -> None:
        """Insert or replace one document per descriptor, atomically."""

    @abstractmethod
    def delete_documents(self, queries: Sequence[Any], context: IndexContext) -> None:
        """Delete every document matching any of ``queries``, atomically."""

    @abstractmethod
    def execute_query(self, query: Any, context: IndexContext) -> SearchResponse:
        """Run a query built by this backend and return all hits."""

    @abstractmethod
    def document_count(self, context: IndexContext) -> int:
        """Number of documents currently in the index."""

    # ----- Query construction -----

    @abstractmethod
    def exact(self, field_name: str, value: str) -> Any:
        """Query matching documents whose ``field_name`` equals ``value``."""

    @abstractmethod
    def present(self, field_name: str) -> Any:
        """Query matching documents that have any value in ``field_name``."""

    @abstractmethod
    def conjunction(self, required: Iterable[Any], excluded: Iterable[Any] = ()) -> Any:
        """All ``required`` queries must match and none of ``excluded``."""

    @abstractmethod
    def parse_text(self, query_text: str, field_names: Sequence[str], context: IndexContext) -> Any:
        """Parse free text into a query over ``field_names``.

        Implementations should raise `repodex.exceptions.QueryParseError` on
        malformed text.
        """
        raise NotImplementedError
