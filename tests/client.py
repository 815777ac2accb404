"""
Synchronous in-process MCP client for testing the todo-tracker MCP server.

Connects a fastmcp ``Client`` straight to a ``FastMCP`` app instance, so the
tools are exercised through the real MCP protocol layer without a subprocess.
"""

import asyncio
import json
from typing import Any, Dict, List

from fastmcp import Client, FastMCP


class SyncMCPClient:
    """Synchronous wrapper around the async fastmcp client."""

    def __init__(self, app: FastMCP):
        self.app = app
        self._loop = None
        self._client = None

    def __enter__(self):
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._client = Client(self.app)
        self._loop.run_until_complete(self._client.__aenter__())
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._client:
            self._loop.run_until_complete(
                self._client.__aexit__(exc_type, exc_val, exc_tb)
            )
        if self._loop:
            self._loop.close()

    def call_tool(self, tool_name: str, arguments: Dict[str, Any] | None = None) -> Any:
        """Call an MCP tool synchronously and return its structured result."""
        if not self._loop or not self._client:
            raise RuntimeError("Client not connected")
        result = self._loop.run_until_complete(
            self._client.call_tool(tool_name, arguments or {})
        )
        return unwrap(result)

    def list_tools(self) -> List[str]:
        """List tool names synchronously."""
        if not self._loop or not self._client:
            raise RuntimeError("Client not connected")
        tools = self._loop.run_until_complete(self._client.list_tools())
        return [tool.name for tool in tools]


def unwrap(result):
    structured = getattr(result, "structured_content", None) or getattr(
        result, "structuredContent", None
    )
    if structured is not None:
        return structured
    # Fallback: try to parse text content
    for item in getattr(result, "content", []) or []:
        text = getattr(item, "text", None)
        if text:
            try:
                return json.loads(text)
            except json.JSONDecodeError:
                return text
    return result
