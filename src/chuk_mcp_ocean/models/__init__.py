"""Response models for chuk-mcp-ocean."""

from .responses import (
    CapabilitiesResponse,
    CombinationInfo,
    CombinationsResponse,
    ContourExportResponse,
    ContourFeature,
    ContoursResponse,
    ErrorResponse,
    FieldResponse,
    LookupStatusResponse,
    ParameterInfo,
    ParametersResponse,
    PointValueResponse,
    StatusResponse,
    format_response,
)

__all__ = [
    "ErrorResponse",
    "ParameterInfo",
    "ParametersResponse",
    "CombinationInfo",
    "CombinationsResponse",
    "StatusResponse",
    "CapabilitiesResponse",
    "ContourFeature",
    "ContoursResponse",
    "LookupStatusResponse",
    "ContourExportResponse",
    "FieldResponse",
    "PointValueResponse",
    "format_response",
]
