"""Repodex MCP server entrypoint using FastMCP.

Exposes the artifact index of the configured repositories as tools.
Run with:
  - poetry run repodex-mcp
  - or: python -m repodex.mcp.server (ensure PYTHONPATH includes ./src)
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, Optional

from fastmcp import FastMCP

from repodex.config import Settings, load_settings
from repodex.indexing.manager import RepositoryIndexManager
from repodex.log import configure_logging
from repodex.mcp.tools import register_artifact_tools
from repodex.scheduling.scheduler import ReindexScheduler

logger = logging.getLogger(__name__)


class AppState:
    """Application state shared by MCP tools."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.manager: Optional[RepositoryIndexManager] = None
        self.scheduler: Optional[ReindexScheduler] = None

    def init_repositories(self) -> None:
        """Open an index context for every configured repository."""
        if self.settings.repositories:
            self.manager = RepositoryIndexManager.from_settings(self.settings)
        else:
            logger.warning("no repositories configured; artifact tools will be unavailable")
            self.manager = None

    def init_scheduler(self) -> None:
        """Register periodic reindex jobs; they start with the server's event loop."""
        cfg = self.settings.scheduler
        if not cfg.enabled or self.manager is None:
            return
        self.scheduler = ReindexScheduler()
        for repository_id in self.manager.repository_ids():
            self.scheduler.schedule_reindex(
                self.manager.get(repository_id), interval=timedelta(minutes=cfg.interval_minutes)
            )

    def shutdown(self) -> None:
        if self.scheduler is not None:
            self.scheduler.shutdown(wait=False)
        if self.manager is not None:
            self.manager.close_all(delete_files=self.settings.index.delete_on_close)


# Global state and server instance
_state: Optional[AppState] = None


@asynccontextmanager
async def _lifespan(server: FastMCP) -> AsyncIterator[None]:
    # AsyncIOScheduler must start on the running event loop
    scheduler = _state.scheduler if _state is not None else None
    if scheduler is not None:
        scheduler.start()
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)


mcp = FastMCP("Repodex MCP Server", lifespan=_lifespan)


# ----- Tools -----

@mcp.tool
def health() -> str:
    """Simple health check tool."""
    return "ok"


# ----- Entrypoint -----

def main() -> None:
    """Initialize state and run the MCP server."""
    global _state
    settings = load_settings()
    configure_logging(settings.app.log_level, log_file=settings.app.log_file)
    _state = AppState(settings)
    _state.init_repositories()
    _state.init_scheduler()
    # Register tools
    register_artifact_tools(mcp, get_state=lambda: _state)

    # Choose transport based on configuration: stdio (default), http, or sse
    transport = settings.app.transport
    try:
        if transport in ("http", "sse"):
            mcp.run(transport=transport, host=settings.app.host, port=settings.app.port)
        else:
            mcp.run()
    finally:
        _state.shutdown()


if __name__ == "__main__":  # pragma: no cover
    main()
