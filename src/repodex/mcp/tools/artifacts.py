"""Artifact index tools for FastMCP.

These tools expose indexing, search and deletion of the repositories managed
by the server's `RepositoryIndexManager`.
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP

from repodex.artifacts.models import ArtifactDescriptor, ArtifactPattern
from repodex.indexing.manager import RepositoryIndexManager


def _serialize_descriptor(descriptor: ArtifactDescriptor) -> Dict[str, Any]:
    return descriptor.to_dict()


def _serialize_results(results: set[ArtifactDescriptor]) -> List[Dict[str, Any]]:
    ordered = sorted(results, key=lambda d: (d.group_id, d.artifact_id, d.version, d.classifier or "", d.packaging))
    return [_serialize_descriptor(d) for d in ordered]


def register_artifact_tools(mcp: FastMCP, get_state: Callable[[], Any]) -> None:
    """Register artifact index tools on the given FastMCP instance.

    The `get_state` callable should return an object with attribute `manager`
    holding a `RepositoryIndexManager`.
    """

    def _manager() -> RepositoryIndexManager:
        state = get_state()
        manager = getattr(state, "manager", None)
        if manager is None:
            raise RuntimeError("No repositories are configured. Set REPODEX_REPOSITORIES in config/.env.")
        return manager

    @mcp.tool
    def list_repositories() -> List[Dict[str, Any]]:
        """List indexed repositories with their directories and document counts."""
        manager = _manager()
        out: List[Dict[str, Any]] = []
        for repository_id in manager.repository_ids():
            indexer = manager.get(repository_id)
            out.append(
                {
                    "repository_id": repository_id,
                    "base_dir": str(indexer.context.repository_base_dir),
                    "index_dir": str(indexer.context.index_dir),
                    "searchable": indexer.context.searchable,
                    "documents": indexer.count(),
                }
            )
        return out

    @mcp.tool
    async def index_repository(repository_id: str, starting_path: Optional[str] = None) -> Dict[str, Any]:
        """Scan a repository (or a sub-path of it) and index every artifact found.

        Parameters
        ----------
        repository_id: str
            Configured repository id.
        starting_path: str | None
            Directory to scan, relative to the repository base directory.
        """
        indexer = _manager().get(repository_id)
        start = Path(starting_path) if starting_path else None
        result = await asyncio.to_thread(indexer.scan, start)
        return {
            "repository_id": repository_id,
            "total_files": result.total_files,
            "skipped": result.skipped,
            "errors": [{"path": str(e.path), "error": str(e.cause)} for e in result.errors],
        }

    @mcp.tool
    def search_artifacts(
        repository_id: str,
        group_id: str,
        artifact_id: str,
        version: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Find unclassified jar artifacts by exact coordinates.

        Omit ``version`` to list every version.
        """
        indexer = _manager().get(repository_id)
        return _serialize_results(indexer.search(group_id, artifact_id, version))

    @mcp.tool
    def search_text(query: str, repository_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Free-text search over group, artifact, version, packaging and classifier.

        Searches every searchable repository unless ``repository_id`` is given.
        """
        manager = _manager()
        if repository_id:
            return _serialize_results(manager.get(repository_id).search_text(query))
        return _serialize_results(manager.search_text_all(query))

    @mcp.tool
    def delete_artifacts(repository_id: str, artifacts: List[Dict[str, Optional[str]]]) -> Dict[str, Any]:
        """Remove artifacts from a repository index.

        Each item gives any of group_id, artifact_id, version, packaging and
        classifier; omitted coordinates match anything.
        """
        indexer = _manager().get(repository_id)
        keys = ("group_id", "artifact_id", "version", "packaging", "classifier")
        patterns = [ArtifactPattern(**{k: item.get(k) for k in keys}) for item in artifacts]
        indexer.delete(patterns)
        return {"repository_id": repository_id, "deleted_patterns": [str(p) for p in patterns]}
