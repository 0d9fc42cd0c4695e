"""Deterministic repository traversal reporting artifact discoveries.

The scanner knows nothing about indexing: it hands every extracted descriptor
to a listener and records extraction failures, so the same traversal serves
reindexing and dry-run reports alike.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Protocol

from repodex.artifacts.base_extractor import BaseExtractor
from repodex.artifacts.models import ArtifactDescriptor
from repodex.exceptions import ExtractionError, NotAnArtifactError
from repodex.indexing.context import IndexContext

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ScanError:
    """A candidate file that could not be turned into an artifact."""

    path: Path
    cause: Exception


@dataclass(slots=True)
class ScanResult:
    """Outcome of one scan pass.

    ``total_files`` starts as the number of discovered artifacts; listeners
    may replace it in ``scanning_finished`` (the reindex listener reports the
    number actually indexed).
    """

    total_files: int = 0
    skipped: int = 0
    errors: List[ScanError] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class ScanListener(Protocol):
    """Callbacks invoked by `Scanner.scan`, in order: started, per-file, finished."""

    def scanning_started(self, context: IndexContext) -> None: ...

    def artifact_discovered(self, context: IndexContext, descriptor: ArtifactDescriptor) -> None: ...

    def artifact_error(self, context: IndexContext, path: Path, error: Exception) -> None: ...

    def scanning_finished(self, context: IndexContext, result: ScanResult) -> None: ...


class CollectingListener:
    """Listener that only records what a scan finds (dry runs, reports)."""

    def __init__(self) -> None:
        self.artifacts: List[ArtifactDescriptor] = []
        self.errors: List[ScanError] = []
        self.result: Optional[ScanResult] = None

    def scanning_started(self, context: IndexContext) -> None:
        self.artifacts.clear()
        self.errors.clear()

    def artifact_discovered(self, context: IndexContext, descriptor: ArtifactDescriptor) -> None:
        self.artifacts.append(descriptor)

    def artifact_error(self, context: IndexContext, path: Path, error: Exception) -> None:
        self.errors.append(ScanError(path=path, cause=error))

    def scanning_finished(self, context: IndexContext, result: ScanResult) -> None:
        self.result = result


class Scanner:
    """Walks a repository tree and extracts one descriptor per artifact file."""

    def __init__(self, extractor: BaseExtractor) -> None:
        self.extractor = extractor

    def scan(
        self,
        context: IndexContext,
        listener: ScanListener,
        starting_path: Optional[Path] = None,
    ) -> ScanResult:
        """Scan ``starting_path`` (default: the repository base dir).

        A relative ``starting_path`` is resolved against the repository base
        directory. Every candidate file triggers at most one of
        ``artifact_discovered`` / ``artifact_error``; non-artifacts trigger
        neither.
        """
        context.require_open()
        base_dir = context.repository_base_dir
        root = base_dir if starting_path is None else Path(starting_path)
        if not root.is_absolute():
            root = base_dir / root
        if not root.exists():
            raise FileNotFoundError(f"scan start {root} does not exist")

        result = ScanResult()
        listener.scanning_started(context)
        logger.info("scanning started; ctx id: %s; path: %s", context.id, root)
        for path in self._walk(root, exclude=context.index_dir):
            if not self.extractor.can_extract(path):
                result.skipped += 1
                continue
            try:
                descriptor = self.extractor.extract(path, base_dir)
            except NotAnArtifactError:
                result.skipped += 1
                continue
            except ExtractionError as exc:
                result.errors.append(ScanError(path=path, cause=exc))
                listener.artifact_error(context, path, exc)
                continue
            result.total_files += 1
            listener.artifact_discovered(context, descriptor)

        listener.scanning_finished(context, result)
        logger.info(
            "scanning finished; ctx id: %s; total files: %d; skipped: %d; errors: %d",
            context.id,
            result.total_files,
            result.skipped,
            len(result.errors),
        )
        return result

    @staticmethod
    def _walk(root: Path, *, exclude: Path) -> Iterator[Path]:
        """Yield regular files under ``root`` in sorted order, depth first."""
        if root.is_file():
            yield root
            return
        excluded = exclude.resolve()
        for dirpath, dirnames, filenames in os.walk(root, onerror=_log_walk_error):
            current = Path(dirpath)
            dirnames[:] = sorted(
                d for d in dirnames
                if not d.startswith(".") and (current / d).resolve() != excluded
            )
            for name in sorted(filenames):
                path = current / name
                if path.is_file():
                    yield path


def _log_walk_error(error: OSError) -> None:
    logger.warning("cannot read directory during scan: %s", error)
