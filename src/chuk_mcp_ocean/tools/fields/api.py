"""
Field tools: interpolated grid export and single-point estimates.
"""

import logging
import math

from ...constants import PARAMETERS, ErrorType, SuccessMessages
from ...core.ocean_manager import CLIENT_ERRORS
from ...models.responses import (
    ErrorResponse,
    FieldResponse,
    PointValueResponse,
    format_response,
)

logger = logging.getLogger(__name__)


def register_field_tools(mcp, manager):
    """Register field tools with the MCP server."""

    @mcp.tool()
    async def ocean_field(
        year: int,
        horizon: str,
        parameter: str,
        output_mode: str = "json",
    ) -> str:
        """Interpolate a parameter over the region and store it as a GeoTIFF.

        Uses inverse distance weighting on the server's grid (EPSG:4326,
        row 0 at the north edge). Cells that cannot be estimated are nodata.

        Args:
            year: Sampling year
            horizon: Depth horizon (surface or bottom)
            parameter: Parameter id (temp_c, salinity_psu, oxygen_mgl, ph)
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            GeoTIFF artifact reference with grid shape and value range
        """
        try:
            result = await manager.export_field(year, horizon, parameter)
            y, h, p = result.key
            response = FieldResponse(
                year=y,
                horizon=h,
                parameter=p,
                unit=PARAMETERS[p]["unit"],
                artifact_ref=result.artifact_ref,
                bbox=result.bbox,
                shape=result.shape,
                cell_size_deg=result.cell_size_deg,
                point_count=result.point_count,
                value_range=result.value_range,
                idw_power=result.power,
                distance_units=result.units,
                message=SuccessMessages.FIELD_COMPLETE.format(
                    f"{result.shape[0]}x{result.shape[1]}",
                    result.point_count,
                    result.value_range[0],
                    result.value_range[1],
                ),
            )
            return format_response(response, output_mode)

        except CLIENT_ERRORS as e:
            logger.warning(f"ocean_field rejected request: {e}")
            return format_response(
                ErrorResponse(error=str(e), error_type=ErrorType.VALIDATION), output_mode
            )
        except Exception as e:
            logger.error(f"ocean_field failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)

    @mcp.tool()
    async def ocean_point_value(
        year: int,
        horizon: str,
        parameter: str,
        lon: float,
        lat: float,
        output_mode: str = "json",
    ) -> str:
        """Estimate a parameter at one location by inverse distance weighting.

        Args:
            year: Sampling year
            horizon: Depth horizon (surface or bottom)
            parameter: Parameter id (temp_c, salinity_psu, oxygen_mgl, ph)
            lon: Longitude in degrees
            lat: Latitude in degrees
            output_mode: "json" for structured data, "text" for human-readable summary

        Returns:
            Interpolated value (equal to the sample value at a sample location)
        """
        try:
            result = await manager.point_value(year, horizon, parameter, lon, lat)
            y, h, p = result.key
            unit = PARAMETERS[p]["unit"]
            value = result.value if math.isfinite(result.value) else None
            response = PointValueResponse(
                year=y,
                horizon=h,
                parameter=p,
                unit=unit,
                lon=lon,
                lat=lat,
                value=value,
                point_count=result.point_count,
                message=SuccessMessages.POINT_VALUE.format(
                    PARAMETERS[p]["name"], lon, lat, result.value, unit
                ),
            )
            return format_response(response, output_mode)

        except CLIENT_ERRORS as e:
            logger.warning(f"ocean_point_value rejected request: {e}")
            return format_response(
                ErrorResponse(error=str(e), error_type=ErrorType.VALIDATION), output_mode
            )
        except Exception as e:
            logger.error(f"ocean_point_value failed: {e}")
            return format_response(ErrorResponse(error=str(e)), output_mode)
