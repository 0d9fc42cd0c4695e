"""Custom exception hierarchy for Repodex.

These exceptions allow callers to discriminate error categories
and handle them appropriately while preserving the original context.
"""

from __future__ import annotations

from pathlib import Path


class RepodexError(Exception):
    """Base class for all Repodex exceptions."""


class ConfigError(RepodexError):
    """Raised when configuration loading or validation fails."""


class NotAnArtifactError(RepodexError):
    """Raised when a scanned file is not an artifact at all (checksums, metadata, ...)."""


class ExtractionError(RepodexError):
    """Raised when a file looks like an artifact but its coordinates cannot be derived."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = Path(path)
        self.reason = reason


class StorageError(RepodexError):
    """Raised when the index storage layer encounters an error."""


class IndexWriteError(StorageError):
    """Raised when the backend rejects an add or delete."""


class SearchError(RepodexError):
    """Raised for search query issues."""


class QueryParseError(SearchError):
    """Raised when free-text query text cannot be parsed."""

    def __init__(self, query_text: str, reason: str) -> None:
        super().__init__(f"cannot parse query {query_text!r}: {reason}")
        self.query_text = query_text
        self.reason = reason


class ContextStateError(RepodexError):
    """Raised when an operation targets a closed, unknown or duplicate index context."""
