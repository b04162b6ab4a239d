"""
Constants for chuk-mcp-ocean server.

All magic strings, parameter metadata, and configuration values live here.
"""


class ServerConfig:
    NAME = "chuk-mcp-ocean"
    VERSION = "0.1.0"
    DESCRIPTION = "Oceanographic Field Reconstruction & Contour MCP Server"


class StorageProvider:
    MEMORY = "memory"
    S3 = "s3"
    FILESYSTEM = "filesystem"


class SessionProvider:
    MEMORY = "memory"
    REDIS = "redis"


class EnvVar:
    ARTIFACTS_PROVIDER = "CHUK_ARTIFACTS_PROVIDER"
    BUCKET_NAME = "BUCKET_NAME"
    REDIS_URL = "REDIS_URL"
    ARTIFACTS_PATH = "CHUK_ARTIFACTS_PATH"
    AWS_ACCESS_KEY_ID = "AWS_ACCESS_KEY_ID"
    AWS_SECRET_ACCESS_KEY = "AWS_SECRET_ACCESS_KEY"
    MCP_STDIO = "MCP_STDIO"
    DATA_PATH = "OCEAN_DATA_PATH"
    COASTLINE_PATH = "OCEAN_COASTLINE_PATH"
    CELL_SIZE_DEG = "OCEAN_CELL_SIZE_DEG"
    IDW_POWER = "OCEAN_IDW_POWER"
    DISTANCE_UNITS = "OCEAN_DISTANCE_UNITS"
    REGION_MARGIN_KM = "OCEAN_REGION_MARGIN_KM"
    BREAK_COUNT = "OCEAN_BREAK_COUNT"
    WARM_CONCURRENCY = "OCEAN_WARM_CONCURRENCY"


class Parameter:
    TEMP_C = "temp_c"
    SALINITY_PSU = "salinity_psu"
    OXYGEN_MGL = "oxygen_mgl"
    PH = "ph"


class Horizon:
    SURFACE = "surface"
    BOTTOM = "bottom"


ALL_HORIZONS = [Horizon.SURFACE, Horizon.BOTTOM]

# Full parameter metadata
PARAMETERS: dict[str, dict] = {
    Parameter.TEMP_C: {
        "id": Parameter.TEMP_C,
        "name": "Water temperature",
        "unit": "°C",
        "column": "temp_c",
        "llm_guidance": (
            "Sea water temperature. Surface fields follow seasonal heating; "
            "bottom fields show cold intrusions and upwelling fronts."
        ),
    },
    Parameter.SALINITY_PSU: {
        "id": Parameter.SALINITY_PSU,
        "name": "Salinity",
        "unit": "PSU",
        "column": "salinity_psu",
        "llm_guidance": (
            "Practical salinity. Low-salinity tongues near the coast mark river "
            "outflow; contours at 0.5 PSU spacing usually resolve the plume edge."
        ),
    },
    Parameter.OXYGEN_MGL: {
        "id": Parameter.OXYGEN_MGL,
        "name": "Dissolved oxygen",
        "unit": "mg/L",
        "column": "oxygen_mgl",
        "llm_guidance": (
            "Dissolved oxygen concentration. Bottom values below 2 mg/L indicate "
            "hypoxia; request custom breaks at 2 and 4 mg/L to outline it."
        ),
    },
    Parameter.PH: {
        "id": Parameter.PH,
        "name": "pH",
        "unit": "pH units",
        "column": "ph",
        "llm_guidance": (
            "Acidity on the total scale. Ranges are narrow (7.8-8.3 typically), "
            "so derived breaks are closely spaced."
        ),
    },
}

ALL_PARAMETERS = list(PARAMETERS.keys())

# Required sample columns
COLUMN_LONGITUDE = "longitude"
COLUMN_LATITUDE = "latitude"
COLUMN_YEAR = "year"
COLUMN_HORIZON = "horizon"
COLUMN_DEPTH = "depth_m"
COLUMN_STATION = "station"

# Data sources
DEFAULT_DATA_PATH = "data.csv"

# Region
DEFAULT_REGION_MARGIN_KM = 15.0
KM_PER_DEGREE_LAT = 111.32
EARTH_RADIUS_KM = 6371.0088

# Interpolation
DISTANCE_UNITS = ["kilometers", "degrees"]
DEFAULT_DISTANCE_UNITS = "kilometers"
DEFAULT_CELL_SIZE_DEG = 0.05
DEFAULT_IDW_POWER = 2.0
MIN_CELL_SIZE_DEG = 0.001
MAX_GRID_CELLS = 1_000_000
MIN_INTERPOLATION_POINTS = 3
COINCIDENT_EPSILON = 1e-9
WEIGHT_SUM_EPSILON = 1e-300
IDW_CHUNK_CELLS = 4096

# Contours
DEFAULT_BREAK_COUNT = 10
MAX_BREAK_COUNT = 100
STITCH_TOLERANCE_DEG = 1e-9

# Warming
DEFAULT_WARM_CONCURRENCY = 4

# Retry
RETRY_ATTEMPTS = 3
RETRY_WAIT_MIN = 1
RETRY_WAIT_MAX = 10

# Output
THRESHOLD_PROPERTY = "threshold"


class ReadinessState:
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    REGION_READY = "region_ready"
    WARMING = "warming"
    READY = "ready"


class LookupStatus:
    READY = "ready"
    NOT_READY = "not_ready"
    NOT_FOUND = "not_found"


class CoastlineMode:
    CLIPPED = "clipped"
    GLOBAL = "global"
    NONE = "none"


class ErrorType:
    VALIDATION = "validation"
    INTERNAL = "internal"


class ErrorMessages:
    UNKNOWN_PARAMETER = "Unknown parameter '{}'. Available: {}"
    UNKNOWN_HORIZON = "Unknown horizon '{}'. Available: {}"
    INVALID_YEAR = "Invalid year '{}': must be an integer"
    MISSING_FIELD = "Missing required field '{}'"
    UNPARSABLE_FIELD = "Field '{}' could not be parsed: {!r}"
    NO_FINITE_COORDINATES = "No sample has finite coordinates"
    INSUFFICIENT_POINTS = "Need at least {} usable points, got {}"
    INVALID_CELL_SIZE = "cell_size must be >= {} degrees, got {}"
    GRID_TOO_LARGE = "Grid of {}x{} cells exceeds limit of {} cells. Increase cell_size"
    INVALID_POWER = "power must be > 0, got {}"
    INVALID_UNITS = "Invalid distance units '{}'. Available: {}"
    INVALID_MARGIN = "margin_km must be >= 0, got {}"
    INVALID_BREAK_COUNT = "break_count must be between 2 and {}, got {}"
    BREAKS_NOT_INCREASING = "Break values must be strictly increasing, got {}"
    BREAKS_NOT_FINITE = "Break values must be finite, got {}"
    NO_SAMPLES_LOADED = "No samples loaded. Start the server with a data source"
    INVALID_COASTLINE = "Coastline source '{}' contains no polygon geometry"
    NO_ARTIFACT_STORE = (
        "No artifact store available. Configure CHUK_ARTIFACTS_PROVIDER "
        "environment variable (memory, filesystem, or s3)."
    )
    ENTRY_NOT_READY = "Contours for {} are not computed yet"
    ENTRY_NOT_FOUND = "No contours for {}"


class SuccessMessages:
    PARAMETERS_LIST = "{} parameters available"
    COMBINATIONS_LIST = "{} (year, horizon) combinations observed"
    CONTOURS_READY = "{} contour lines at {} break values for {}"
    CONTOURS_EMPTY = "No contour lines for {} ({} usable points)"
    CONTOURS_NOT_READY = "Contours for {} are still being computed"
    CONTOURS_NOT_FOUND = "No data for {}"
    CUSTOM_CONTOURS = "{} contour lines at {} custom break values for {}"
    EXPORT_COMPLETE = "Exported {} contour lines for {}"
    FIELD_COMPLETE = "Field interpolated ({} shape, {} points, range {:.3f} to {:.3f})"
    POINT_VALUE = "{} at ({:.4f}, {:.4f}): {:.3f} {}"
