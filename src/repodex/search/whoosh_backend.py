"""Persistent Whoosh index backend.

One Whoosh index per context, stored on disk in the context's index directory.
Every write runs in a single writer transaction that is committed as a whole
or cancelled, and every query opens a fresh searcher so it sees all committed
writes.
"""

from __future__ import annotations

import logging
import shutil
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Sequence

from whoosh import index
from whoosh.fields import Schema
from whoosh.index import Index, LockError
from whoosh.qparser import MultifieldParser, OrGroup
from whoosh.query import And, AndNot, Every, NullQuery, Or, Query, Term

from repodex.artifacts.models import ArtifactDescriptor
from repodex.exceptions import (
    ContextStateError,
    IndexWriteError,
    QueryParseError,
    StorageError,
)
from repodex.indexing.context import IndexContext
from repodex.search.base_backend import BaseIndexBackend, SearchResponse
from repodex.search.schema import DEFAULT_FIELDS, IndexFields

logger = logging.getLogger(__name__)

INDEX_NAME = "artifacts"


def _query_errors(query: Query) -> Iterator[str]:
    # The parser marks unparseable syntax with an ``error`` attribute instead of raising
    error = getattr(query, "error", None)
    if error:
        yield str(error)
    for child in query.children():
        yield from _query_errors(child)


def _check_balanced(query_text: str) -> None:
    depth = 0
    in_quotes = False
    for char in query_text:
        if char == '"':
            in_quotes = not in_quotes
        elif in_quotes:
            continue
        elif char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise QueryParseError(query_text, "unmatched ')'")
    if in_quotes:
        raise QueryParseError(query_text, "unterminated quoted phrase")
    if depth:
        raise QueryParseError(query_text, "unmatched '('")


class WhooshBackend(BaseIndexBackend):
    """Index backend storing one Whoosh index per context directory."""

    def __init__(self) -> None:
        self._contexts: Dict[str, IndexContext] = {}
        self._lock = threading.Lock()

    # ----- Context lifecycle -----

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
        with self._lock:
            if context_id in self._contexts:
                raise ContextStateError(f"index context {context_id!r} is already open")
            try:
                index_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StorageError(f"cannot create index directory {index_dir}: {exc}") from exc

            schema = fields.make_schema()
            if trust_existing_index:
                ix = self._open_trusted(index_dir, schema)
            else:
                ix = self._open_validated(index_dir, schema)

            context = IndexContext(
                id=context_id,
                repository_base_dir=Path(repository_base_dir),
                index_dir=Path(index_dir),
                searchable=searchable,
                fields=fields,
                handle=ix,
            )
            self._contexts[context_id] = context
        logger.info(
            "index context opened; id: %s; repository: %s; idx dir: %s; documents: %d",
            context_id,
            repository_base_dir,
            index_dir,
            ix.doc_count(),
        )
        return context

    def _open_trusted(self, index_dir: Path, schema: Schema) -> Index:
        try:
            if index.exists_in(str(index_dir), indexname=INDEX_NAME):
                return index.open_dir(str(index_dir), indexname=INDEX_NAME)
            return index.create_in(str(index_dir), schema, indexname=INDEX_NAME)
        except (index.IndexError, OSError) as exc:
            raise StorageError(f"cannot open index in {index_dir}: {exc}") from exc

    def _open_validated(self, index_dir: Path, schema: Schema) -> Index:
        try:
            if index.exists_in(str(index_dir), indexname=INDEX_NAME):
                ix = index.open_dir(str(index_dir), indexname=INDEX_NAME)
                reader = ix.reader()
                try:
                    reader.doc_count()
                finally:
                    reader.close()
                if set(ix.schema.names()) != set(schema.names()):
                    raise StorageError(f"schema fields {sorted(ix.schema.names())} are not the expected ones")
                return ix
        except Exception as exc:  # corrupt stores fail in many different ways
            logger.warning("index in %s failed validation, rebuilding: %s", index_dir, exc)
        try:
            return index.create_in(str(index_dir), schema, indexname=INDEX_NAME)
        except (index.IndexError, OSError) as exc:
            raise StorageError(f"cannot create index in {index_dir}: {exc}") from exc

    def close_context(self, context: IndexContext, *, delete_files: bool = False) -> None:
        with self._lock:
            if context.closed:
                return
            with context.write_lock:
                try:
                    context.handle.close()
                finally:
                    context.closed = True
                    context.handle = None
                    if self._contexts.get(context.id) is context:
                        del self._contexts[context.id]
        logger.info("index context closed; id: %s; delete files: %s", context.id, delete_files)
        if delete_files:
            try:
                shutil.rmtree(context.index_dir)
            except FileNotFoundError:
                pass
            except OSError as exc:
                raise StorageError(f"cannot delete index directory {context.index_dir}: {exc}") from exc

    def get_context(self, context_id: str) -> IndexContext:
        try:
            return self._contexts[context_id]
        except KeyError:
            raise ContextStateError(f"index context {context_id!r} is not open") from None

    # ----- Writes -----

    def add_documents(self, descriptors: Sequence[ArtifactDescriptor], context: IndexContext) -> None:
        context.require_open()
        fields = context.fields

        def apply(writer: Any) -> None:
            for descriptor in descriptors:
                writer.update_document(**fields.to_document(descriptor))

        self._write(context, apply)

    def delete_documents(self, queries: Sequence[Any], context: IndexContext) -> None:
        context.require_open()

        def apply(writer: Any) -> None:
            for query in queries:
                writer.delete_by_query(query)

        self._write(context, apply)

    def _write(self, context: IndexContext, apply: Callable[[Any], None]) -> None:
        try:
            writer = context.handle.writer()
        except (LockError, OSError) as exc:
            raise IndexWriteError(f"cannot open writer on {context.index_dir}: {exc}") from exc
        try:
            apply(writer)
            writer.commit()
        except Exception as exc:
            try:
                writer.cancel()
            except Exception:  # the writer may already be closed by a failed commit
                logger.debug("writer cancel failed after write error", exc_info=True)
            raise IndexWriteError(f"index write failed on {context.index_dir}: {exc}") from exc

    # ----- Reads -----

    def execute_query(self, query: Any, context: IndexContext) -> SearchResponse:
        context.require_open()
        fields = context.fields
        try:
            with context.handle.searcher() as searcher:
                hits = searcher.search(query, limit=None)
                results: List[ArtifactDescriptor] = [fields.from_stored(hit.fields()) for hit in hits]
                return SearchResponse(results=results, total_hits=len(hits))
        except (index.IndexError, OSError) as exc:
            raise StorageError(f"cannot search index in {context.index_dir}: {exc}") from exc

    def document_count(self, context: IndexContext) -> int:
        context.require_open()
        return context.handle.doc_count()

    # ----- Query construction -----

    def exact(self, field_name: str, value: str) -> Query:
        return Term(field_name, value)

    def present(self, field_name: str) -> Query:
        return Every(field_name)

    def conjunction(self, required: Iterable[Any], excluded: Iterable[Any] = ()) -> Query:
        positive: Query = And(list(required))
        negative = list(excluded)
        if negative:
            return AndNot(positive, Or(negative))
        return positive

    def parse_text(self, query_text: str, field_names: Sequence[str], context: IndexContext) -> Query:
        context.require_open()
        if not query_text or not query_text.strip():
            raise QueryParseError(query_text or "", "empty query")
        _check_balanced(query_text)

        parser = MultifieldParser(list(field_names), schema=context.handle.schema, group=OrGroup)
        try:
            query = parser.parse(query_text)
        except Exception as exc:
            raise QueryParseError(query_text, str(exc)) from exc
        errors = list(_query_errors(query))
        if errors:
            raise QueryParseError(query_text, "; ".join(errors))
        query = query.normalize()
        if query is NullQuery:
            raise QueryParseError(query_text, "no searchable terms")
        return query
