"""Scan listener that indexes artifacts as they are discovered."""

from __future__ import annotations

import logging
from pathlib import Path

from repodex.artifacts.models import ArtifactDescriptor
from repodex.exceptions import IndexWriteError
from repodex.indexing.context import IndexContext
from repodex.indexing.indexer import Indexer
from repodex.scanner.scanner import ScanResult

logger = logging.getLogger(__name__)


class ReindexListener:
    """Adds each discovered artifact on its own and counts the successful adds.

    Index failures are logged and leave the artifact uncounted; the scan
    carries on with the next file.
    """

    def __init__(self, indexer: Indexer) -> None:
        self.indexer = indexer
        self.total_files = 0

    def scanning_started(self, context: IndexContext) -> None:
        self.total_files = 0

    def artifact_discovered(self, context: IndexContext, descriptor: ArtifactDescriptor) -> None:
        try:
            self.indexer.add([descriptor], context)
        except IndexWriteError:
            logger.exception("artifact index error: %s", descriptor)
            return
        self.total_files += 1

    def artifact_error(self, context: IndexContext, path: Path, error: Exception) -> None:
        logger.error("artifact error: %s", path, exc_info=error)

    def scanning_finished(self, context: IndexContext, result: ScanResult) -> None:
        result.total_files = self.total_files
        logger.debug(
            "Scanning finished; total files: %d; has exception: %s", result.total_files, result.has_errors
        )
