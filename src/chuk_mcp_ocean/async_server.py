#!/usr/bin/env python3
"""
Async Ocean MCP Server using chuk-mcp-server

Reconstructs continuous ocean fields from station samples and serves
contour lines for every (year, depth horizon, parameter) combination.
Contours are precomputed in the background; exports go to chuk-artifacts.

Storage is managed through chuk-mcp-server's built-in artifact store context.
"""

import logging
import os
import sys
from collections.abc import Callable

from chuk_mcp_server import ChukMCPServer

from .constants import (
    DEFAULT_BREAK_COUNT,
    DEFAULT_CELL_SIZE_DEG,
    DEFAULT_DATA_PATH,
    DEFAULT_DISTANCE_UNITS,
    DEFAULT_IDW_POWER,
    DEFAULT_REGION_MARGIN_KM,
    DEFAULT_WARM_CONCURRENCY,
    EnvVar,
    ServerConfig,
)
from .core.ocean_manager import OceanManager
from .tools.contours import register_contour_tools
from .tools.discovery import register_discovery_tools
from .tools.fields import register_field_tools

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _env_number(name: str, default: float, cast: Callable[[str], float] = float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default


def create_manager() -> OceanManager:
    """Build the ocean manager from OCEAN_* environment variables.

    Settings the manager rejects are fatal: the error is logged and the
    process exits with status 1.
    """
    try:
        return OceanManager(
            cell_size_deg=_env_number(EnvVar.CELL_SIZE_DEG, DEFAULT_CELL_SIZE_DEG),
            power=_env_number(EnvVar.IDW_POWER, DEFAULT_IDW_POWER),
            units=os.environ.get(EnvVar.DISTANCE_UNITS, DEFAULT_DISTANCE_UNITS),
            margin_km=_env_number(EnvVar.REGION_MARGIN_KM, DEFAULT_REGION_MARGIN_KM),
            break_count=_env_number(EnvVar.BREAK_COUNT, DEFAULT_BREAK_COUNT, int),
            warm_concurrency=_env_number(EnvVar.WARM_CONCURRENCY, DEFAULT_WARM_CONCURRENCY, int),
        )
    except ValueError as e:
        logger.error(f"Invalid ocean settings in environment: {e}")
        sys.exit(1)


# Create the MCP server instance
mcp = ChukMCPServer(ServerConfig.NAME)

# Create ocean manager instance
manager = create_manager()

# Register all tool modules
register_discovery_tools(mcp, manager)
register_contour_tools(mcp, manager)
register_field_tools(mcp, manager)

# Run the server
if __name__ == "__main__":
    logger.info("Starting Ocean MCP Server...")
    logger.info("Storage: Using chuk-mcp-server artifact store context")
    manager.startup(
        os.environ.get(EnvVar.DATA_PATH, DEFAULT_DATA_PATH),
        os.environ.get(EnvVar.COASTLINE_PATH),
    )
    manager.start_background_warming()
    mcp.run(stdio=True)
