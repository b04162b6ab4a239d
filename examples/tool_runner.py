"""
Shared helper for running chuk-mcp-ocean MCP tools directly from Python.

Provides a ToolRunner class that registers all MCP tools, loads samples
and sets up an in-memory artifact store, without requiring a full MCP
transport layer. Demo scripts use this to call tools as plain async functions.

Usage:
    from tool_runner import ToolRunner

    async def main():
        runner = ToolRunner(rows=my_rows)
        await runner.warm()
        result = await runner.run("ocean_contours", year=2021, horizon="surface",
                                  parameter="temp_c")
        print(result)
"""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Mapping
from typing import Any

from chuk_mcp_ocean.core.ocean_manager import OceanManager
from chuk_mcp_ocean.tools.contours import register_contour_tools
from chuk_mcp_ocean.tools.discovery import register_discovery_tools
from chuk_mcp_ocean.tools.fields import register_field_tools


class _MiniMCP:
    """Minimal MCP server that captures tools registered via @mcp.tool."""

    def __init__(self) -> None:
        self._tools: dict[str, Any] = {}

    def tool(self) -> Any:
        """Decorator factory matching @mcp.tool() usage."""

        def decorator(fn: Any) -> Any:
            self._tools[fn.__name__] = fn
            return fn

        return decorator

    def get_tool(self, name: str) -> Any:
        return self._tools[name]


def _init_artifact_store() -> None:
    """Initialize an in-memory artifact store for demo use."""
    os.environ.setdefault("CHUK_ARTIFACTS_PROVIDER", "memory")
    try:
        from chuk_artifacts import ArtifactStore
        from chuk_mcp_server import set_global_artifact_store

        store = ArtifactStore(storage_provider="memory", session_provider="memory")
        set_global_artifact_store(store)
    except ImportError as e:
        print(f"Warning: could not init artifact store: {e}")
        print("  Exports will fail. Install chuk-artifacts and chuk-mcp-server.")


class ToolRunner:
    """
    Run chuk-mcp-ocean MCP tools directly from Python.

    Samples come from a CSV path or from in-memory rows. Call warm() to fill
    the contour cache before looking up contours.
    """

    def __init__(
        self,
        data_path: str | None = None,
        rows: Iterable[Mapping[str, object]] | None = None,
        coastline_path: str | None = None,
        **manager_kwargs: Any,
    ) -> None:
        _init_artifact_store()
        self._mcp = _MiniMCP()
        self.manager = OceanManager(**manager_kwargs)
        if data_path is not None:
            self.manager.startup(data_path, coastline_path)
        elif rows is not None:
            self.manager.load_rows(rows)
            self.manager.prepare_region()
        register_discovery_tools(self._mcp, self.manager)
        register_contour_tools(self._mcp, self.manager)
        register_field_tools(self._mcp, self.manager)

    @property
    def tool_names(self) -> list[str]:
        return list(self._mcp._tools.keys())

    async def warm(self) -> int:
        """Fill the contour cache in the foreground."""
        return await self.manager.warm()

    async def run(self, tool_name: str, **kwargs: Any) -> dict[str, Any]:
        """Call a tool by name and return parsed JSON."""
        fn = self._mcp.get_tool(tool_name)
        raw = await fn(**kwargs)
        return json.loads(raw)

    async def run_text(self, tool_name: str, **kwargs: Any) -> str:
        """Call a tool by name with output_mode='text' and return plaintext."""
        fn = self._mcp.get_tool(tool_name)
        return await fn(output_mode="text", **kwargs)
