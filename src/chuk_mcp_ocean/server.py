#!/usr/bin/env python3
"""
Ocean MCP Server - Entry Point

This module provides the async MCP server for ocean field reconstruction
and contour lookups.
Supports both stdio (for Claude Desktop) and HTTP (for API access) transports.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .constants import DEFAULT_DATA_PATH, EnvVar, SessionProvider, StorageProvider

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

logger = logging.getLogger(__name__)


def _init_artifact_store() -> bool:
    """
    Initialize the artifact store from environment variables.

    Returns:
        True if artifact store was initialized, False otherwise
    """
    provider = os.environ.get(EnvVar.ARTIFACTS_PROVIDER, StorageProvider.MEMORY)
    bucket = os.environ.get(EnvVar.BUCKET_NAME)
    redis_url = os.environ.get(EnvVar.REDIS_URL)
    artifacts_path = os.environ.get(EnvVar.ARTIFACTS_PATH)

    if provider == StorageProvider.S3:
        aws_key = os.environ.get(EnvVar.AWS_ACCESS_KEY_ID)
        aws_secret = os.environ.get(EnvVar.AWS_SECRET_ACCESS_KEY)

        if not all([bucket, aws_key, aws_secret]):
            logger.warning(
                "S3 provider configured but missing credentials. "
                f"Set {EnvVar.AWS_ACCESS_KEY_ID}, {EnvVar.AWS_SECRET_ACCESS_KEY}, "
                f"and {EnvVar.BUCKET_NAME}."
            )
            return False

        logger.info(f"Initializing artifact store with S3 provider (bucket: {bucket})")

    elif provider == StorageProvider.FILESYSTEM:
        if artifacts_path:
            Path(artifacts_path).mkdir(parents=True, exist_ok=True)
            logger.info(
                f"Initializing artifact store with filesystem provider (path: {artifacts_path})"
            )
        else:
            logger.warning(
                f"Filesystem provider configured but {EnvVar.ARTIFACTS_PATH} not set. "
                "Defaulting to memory provider."
            )
            provider = StorageProvider.MEMORY

    try:
        from chuk_artifacts import ArtifactStore
        from chuk_mcp_server import set_global_artifact_store

        store_kwargs: dict[str, Any] = {
            "storage_provider": provider,
            "session_provider": SessionProvider.REDIS if redis_url else SessionProvider.MEMORY,
        }

        if provider == StorageProvider.S3 and bucket:
            store_kwargs["bucket"] = bucket
        elif provider == StorageProvider.FILESYSTEM and artifacts_path:
            store_kwargs["bucket"] = artifacts_path

        store = ArtifactStore(**store_kwargs)
        set_global_artifact_store(store)

        logger.info(f"Artifact store initialized successfully (provider: {provider})")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize artifact store: {e}")
        return False


# Import mcp instance, manager and all registered tools from async server
from .async_server import manager, mcp  # noqa: F401, E402


def _start_pipeline(data_path: str, coastline_path: str | None) -> None:
    """Load samples and build the region, then start background warming.

    An unreadable sample source is fatal: the process exits with status 1.
    """
    try:
        manager.startup(data_path, coastline_path)
    except Exception as e:
        logger.error(f"Failed to load ocean samples from {data_path}: {e}")
        sys.exit(1)

    logger.info(f"Loaded {len(manager.samples)} samples from {data_path}")
    manager.start_background_warming()


def main() -> None:
    """Main entry point for the MCP server."""
    import argparse

    # Initialize artifact store at startup, not at import time
    _init_artifact_store()

    parser = argparse.ArgumentParser(description="Ocean MCP Server")
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["stdio", "http"],
        default=None,
        help="Transport mode (stdio for Claude Desktop, http for API)",
    )
    parser.add_argument(
        "--host", default="localhost", help="Host for HTTP mode (default: localhost)"
    )
    parser.add_argument("--port", type=int, default=8004, help="Port for HTTP mode (default: 8004)")
    parser.add_argument(
        "--data",
        default=os.environ.get(EnvVar.DATA_PATH, DEFAULT_DATA_PATH),
        help=f"Sample CSV path (default: ${EnvVar.DATA_PATH} or {DEFAULT_DATA_PATH})",
    )
    parser.add_argument(
        "--coastline",
        default=os.environ.get(EnvVar.COASTLINE_PATH),
        help=f"Land polygon GeoJSON path (default: ${EnvVar.COASTLINE_PATH})",
    )

    args = parser.parse_args()

    _start_pipeline(args.data, args.coastline)

    if args.mode == "stdio":
        print("Ocean MCP Server starting in STDIO mode", file=sys.stderr)
        mcp.run(stdio=True)
    elif args.mode == "http":
        print(
            f"Ocean MCP Server starting in HTTP mode on {args.host}:{args.port}",
            file=sys.stderr,
        )
        mcp.run(host=args.host, port=args.port, stdio=False)
    else:
        if os.environ.get(EnvVar.MCP_STDIO) or (not sys.stdin.isatty()):
            print("Ocean MCP Server starting in STDIO mode (auto-detected)", file=sys.stderr)
            mcp.run(stdio=True)
        else:
            print(
                f"Ocean MCP Server starting in HTTP mode on {args.host}:{args.port}",
                file=sys.stderr,
            )
            mcp.run(host=args.host, port=args.port, stdio=False)


if __name__ == "__main__":
    main()
