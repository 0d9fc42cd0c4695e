"""Tool registration modules for the Repodex MCP server."""

from .artifacts import register_artifact_tools

__all__ = [
    "register_artifact_tools",
]
