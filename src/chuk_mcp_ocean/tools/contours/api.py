"""
Contour tools: cached lookups, custom breaks, and GeoJSON export.
"""

import logging

from ...constants import PARAMETERS, ErrorType, LookupStatus, SuccessMessages
from ...core.ocean_manager import CLIENT_ERRORS, KeyNotFoundError, format_key
from ...core.result_cache import CacheEntry
from ...models.responses import (
    ContourExportResponse,
    ContourFeature,
    ContoursResponse,
    ErrorResponse,
    LookupStatusResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def _contours_response(entry: CacheEntry, message: str) -> ContoursResponse:
    year, horizon, parameter = entry.key
    features = [
        ContourFeature(
            geometry={"coordinates": [list(c) for c in line.coordinates]},
            properties={"threshold": line.threshold, "parameter": parameter},
        )
        for line in entry.lines
    ]
    return ContoursResponse(
        status=LookupStatus.READY,
        year=year,
        horizon=horizon,
        parameter=parameter,
        unit=PARAMETERS[parameter]["unit"],
        breaks=list(entry.breaks),
        point_count=entry.point_count,
        value_range=list(entry.value_range) if entry.value_range else None,
        feature_count=len(features),
        clip_fallbacks=entry.clip_fallbacks,
        features=features,
        error=entry.error,
        message=message,
    )


def register_contour_tools(mcp, manager):
    """Register contour tools with the MCP server."""

    @mcp.tool()
    async def ocean_contours(
        year: int,
        horizon: str,
        parameter: str,
        output_mode: str = "json",
    ) -> str:
        """Get precomputed contour lines for one year, depth horizon, and parameter.

        Lines are GeoJSON LineString features in lon/lat, each tagged with the
        threshold it traces, with land portions removed. Break values split the
        observed value range into equal intervals.

        Args:
            year: Sampling year (e.g., 2021)
            horizon: Depth horizon (surface or bottom)
            parameter: Parameter id (temp_c, salinity_psu, oxygen_mgl, ph)
            output_mode: "json" for a GeoJSON FeatureCollection, "text" for a summary

        Returns:
            status "ready" with features (possibly none), "not_ready" while the
            server is still computing, or "not_found" for combinations with no data
        """
        try:
            result = manager.lookup(year, horizon, parameter)
            label = format_key(result.key)

            if result.entry is None:
                template = (
                    SuccessMessages.CONTOURS_NOT_READY
                    if result.status == LookupStatus.NOT_READY
                    else SuccessMessages.CONTOURS_NOT_FOUND
                )
                y, h, p = result.key
                response = LookupStatusResponse(
                    status=result.status,
                    year=y,
                    horizon=h,
                    parameter=p,
                    state=manager.state,
                    message=template.format(label),
                )
                return format_response(response, output_mode)

            entry = result.entry
            if entry.is_empty:
                message = SuccessMessages.CONTOURS_EMPTY.format(label, entry.point_count)
            else:
                message = SuccessMessages.CONTOURS_READY.format(
                    len(entry.lines), len(entry.breaks), label
                )
            return format_response(_contours_response(entry, message), output_mode)

        except CLIENT_ERRORS as e:
            logger.warning(f"ocean_contours rejected request: {e}")
            return format_response(
                ErrorResponse(error=str(e), error_type=ErrorType.VALIDATION), output_mode
            )
        except Exception as e:
            logger.error(f"ocean_contours failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def ocean_contours_custom(
        year: int,
        horizon: str,
        parameter: str,
        breaks: list[float],
        output_mode: str = "json",
    ) -> str:
        """Compute contour lines at explicit break values.

        Computed on demand and not cached; breaks outside the observed value
        range are skipped.

        Args:
            year: Sampling year
            horizon: Depth horizon (surface or bottom)
            parameter: Parameter id (temp_c, salinity_psu, oxygen_mgl, ph)
            breaks: Strictly increasing threshold values
            output_mode: "json" for a GeoJSON FeatureCollection, "text" for a summary

        Returns:
            Contour lines at the requested breaks, or status "not_found" for a
            year and horizon with no samples
        """
        try:
            entry = await manager.compute_custom(year, horizon, parameter, breaks)
            message = SuccessMessages.CUSTOM_CONTOURS.format(
                len(entry.lines), len(entry.breaks), format_key(entry.key)
            )
            return format_response(_contours_response(entry, message), output_mode)

        except KeyNotFoundError:
            key = manager.normalize_key(year, horizon, parameter)
            response = LookupStatusResponse(
                status=LookupStatus.NOT_FOUND,
                year=key[0],
                horizon=key[1],
                parameter=key[2],
                state=manager.state,
                message=SuccessMessages.CONTOURS_NOT_FOUND.format(format_key(key)),
            )
            return format_response(response, output_mode)
        except CLIENT_ERRORS as e:
            logger.warning(f"ocean_contours_custom rejected request: {e}")
            return format_response(
                ErrorResponse(error=str(e), error_type=ErrorType.VALIDATION), output_mode
            )
        except Exception as e:
            logger.error(f"ocean_contours_custom failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def ocean_export_contours(
        year: int,
        horizon: str,
        parameter: str,
        output_mode: str = "json",
    ) -> str:
        """Store a cached contour set as a GeoJSON artifact.

        Args:
            year: Sampling year
            horizon: Depth horizon (surface or bottom)
            parameter: Parameter id (temp_c, salinity_psu, oxygen_mgl, ph)
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Artifact reference for the GeoJSON FeatureCollection
        """
        try:
            result = await manager.export_contours(year, horizon, parameter)
            y, h, p = result.key
            response = ContourExportResponse(
                year=y,
                horizon=h,
                parameter=p,
                artifact_ref=result.artifact_ref,
                feature_count=result.feature_count,
                message=SuccessMessages.EXPORT_COMPLETE.format(
                    result.feature_count, format_key(result.key)
                ),
            )
            return format_response(response, output_mode)

        except CLIENT_ERRORS as e:
            logger.warning(f"ocean_export_contours rejected request: {e}")
            return format_response(
                ErrorResponse(error=str(e), error_type=ErrorType.VALIDATION), output_mode
            )
        except Exception as e:
            logger.error(f"ocean_export_contours failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
