"""Abstract base class for coordinate extractors.

Extractors are responsible for turning a file discovered in a repository into
an `ArtifactDescriptor`.

Concrete implementations should subclass `BaseExtractor` and implement
`can_extract()` and `extract()`.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from repodex.artifacts.models import ArtifactDescriptor


class BaseExtractor(ABC):
    """Abstract extractor interface."""

    @abstractmethod
    def can_extract(self, path: Path) -> bool:
        """Return False for files that can never be artifacts (judged by name only)."""

    @abstractmethod
    def extract(self, path: Path, base_dir: Path) -> ArtifactDescriptor:
        """Derive the artifact descriptor of ``path`` inside repository ``base_dir``.

        Implementations should raise `repodex.exceptions.NotAnArtifactError` for
        files that turn out not to be artifacts, and
        `repodex.exceptions.ExtractionError` for malformed artifacts.
        """
        raise NotImplementedError
