"""
Discovery tools — parameters, observed combinations, status, capabilities.

These tools never compute anything; they report what the loaded data
supports and how far the background warm pass has progressed.
"""

import logging
import os

from ...constants import (
    ALL_HORIZONS,
    DISTANCE_UNITS,
    EnvVar,
    ServerConfig,
    StorageProvider,
    SuccessMessages,
)
from ...models.responses import (
    CapabilitiesResponse,
    CombinationInfo,
    CombinationsResponse,
    ErrorResponse,
    ParameterInfo,
    ParametersResponse,
    StatusResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def register_discovery_tools(mcp, manager):
    """Register discovery tools with the MCP server."""

    @mcp.tool()
    async def ocean_list_parameters(output_mode: str = "json") -> str:
        """List the ocean parameters that can be interpolated and contoured.

        Use this to find valid parameter ids before requesting contours or fields.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Supported parameters with units, plus the supported depth horizons
        """
        try:
            parameters = [ParameterInfo(**p) for p in manager.list_parameters()]
            response = ParametersResponse(
                parameters=parameters,
                horizons=ALL_HORIZONS,
                message=SuccessMessages.PARAMETERS_LIST.format(len(parameters)),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"ocean_list_parameters failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def ocean_list_combinations(output_mode: str = "json") -> str:
        """List every (year, horizon) pair present in the loaded samples.

        Each pair carries the number of usable points per parameter; keys with
        fewer than 3 points produce empty contour sets.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Observed combinations with per-parameter point counts
        """
        try:
            combinations = [CombinationInfo(**c) for c in manager.list_combinations()]
            response = CombinationsResponse(
                combinations=combinations,
                message=SuccessMessages.COMBINATIONS_LIST.format(len(combinations)),
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"ocean_list_combinations failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def ocean_status(output_mode: str = "json") -> str:
        """Get server readiness, cache progress, and storage configuration.

        The state moves through uninitialized, loading, region_ready, warming
        and ready. Contour lookups answer not_ready until their key is cached.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Server status information
        """
        try:
            provider = os.environ.get(EnvVar.ARTIFACTS_PROVIDER, StorageProvider.MEMORY)

            store_available = False
            try:
                manager._get_store()
                store_available = True
            except Exception:
                pass

            status = manager.status()
            response = StatusResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                state=status["state"],
                samples_loaded=status["samples_loaded"],
                rows_dropped=status["rows_dropped"],
                combinations=status["combinations"],
                planned_entries=status["planned_entries"],
                cache_entries=status["cache_entries"],
                failed_combinations=status["failed_combinations"],
                clip_fallbacks=status["clip_fallbacks"],
                coastline_mode=status["coastline_mode"],
                region_bbox=status["region_bbox"],
                storage_provider=provider,
                artifact_store_available=store_available,
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"ocean_status failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def ocean_capabilities(output_mode: str = "json") -> str:
        """Get full server capabilities including parameters, horizons,
        interpolation settings, and guidance on which tool to use.

        Args:
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Complete server capabilities
        """
        try:
            parameters = [ParameterInfo(**p) for p in manager.list_parameters()]
            status = manager.status()

            response = CapabilitiesResponse(
                server=ServerConfig.NAME,
                version=ServerConfig.VERSION,
                parameters=parameters,
                horizons=ALL_HORIZONS,
                distance_units=DISTANCE_UNITS,
                cell_size_deg=status["cell_size_deg"],
                idw_power=status["idw_power"],
                break_count=status["break_count"],
                tool_count=9,
                llm_guidance=(
                    "Use ocean_list_combinations to see which years and horizons have data. "
                    "Use ocean_contours for precomputed contour lines as GeoJSON; "
                    "a not_ready status means retry after ocean_status reports ready. "
                    "Use ocean_contours_custom for your own break values. "
                    "Use ocean_field to export the interpolated grid as GeoTIFF, "
                    "and ocean_point_value for a single location."
                ),
                message=f"{ServerConfig.NAME} v{ServerConfig.VERSION} capabilities",
            )
            return format_response(response, output_mode)

        except Exception as e:
            logger.error(f"ocean_capabilities failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
