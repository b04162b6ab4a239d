"""Shared test fixtures for chuk-mcp-ocean."""

import pytest
from unittest.mock import AsyncMock, MagicMock


def _row(lon, lat, year, horizon, temp="", sal="", oxy="", ph="", depth="", station=""):
    return {
        "longitude": str(lon),
        "latitude": str(lat),
        "year": str(year),
        "horizon": horizon,
        "temp_c": str(temp),
        "salinity_psu": str(sal),
        "oxygen_mgl": str(oxy),
        "ph": str(ph),
        "depth_m": str(depth),
        "station": station,
    }


@pytest.fixture
def sample_rows():
    """Raw CSV-style rows: three combinations plus one unparsable row."""
    return [
        # 2021 surface: 5 stations with a south-west to north-east gradient
        _row(10.0, 54.0, 2021, "surface", 10.0, 30.0, 8.0, 8.00, 1.0, "S1"),
        _row(10.4, 54.0, 2021, "surface", 12.0, 31.0, 7.0, 8.10, 1.0, "S2"),
        _row(10.0, 54.4, 2021, "surface", 14.0, 32.0, 6.0, 8.20, 1.0, "S3"),
        _row(10.4, 54.4, 2021, "surface", 16.0, 33.0, 5.0, 8.30, 1.0, "S4"),
        _row(10.2, 54.2, 2021, "surface", 13.0, 31.5, 6.5, 8.15, 1.0, "S5"),
        # 2021 bottom: only 2 stations
        _row(10.0, 54.0, 2021, "bottom", 6.0, 33.0, 3.0, 7.90, 18.0, "S1"),
        _row(10.4, 54.4, 2021, "bottom", 7.0, 34.0, 2.0, 7.95, 22.0, "S4"),
        # 2022 surface: oxygen missing at one station
        _row(10.0, 54.0, 2022, "surface", 11.0, 30.5, 7.5, 8.05, 1.0, "S1"),
        _row(10.4, 54.0, 2022, "surface", 12.5, 31.0, "", 8.10, 1.0, "S2"),
        _row(10.2, 54.4, 2022, "surface", 15.0, 32.5, 5.5, 8.25, 1.0, "S3"),
        # unparsable latitude
        _row(10.1, "abc", 2021, "surface", 11.0, 30.0, 7.0, 8.0),
    ]


@pytest.fixture
def sample_set(sample_rows):
    from chuk_mcp_ocean.core.samples import load

    return load(sample_rows)


@pytest.fixture
def sample_csv(tmp_path, sample_rows):
    """The sample rows written to a CSV file."""
    path = tmp_path / "data.csv"
    header = list(sample_rows[0].keys())
    lines = [",".join(header)]
    for row in sample_rows:
        lines.append(",".join(row[h] for h in header))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def mock_artifact_store():
    """Mock artifact store."""
    store = AsyncMock()
    store.store = AsyncMock(return_value=None)
    store.retrieve = AsyncMock(return_value=b"fake-bytes")
    return store


@pytest.fixture
def loaded_manager(sample_rows, mock_artifact_store):
    """OceanManager with samples loaded and region built (not warmed)."""
    from chuk_mcp_ocean.core.ocean_manager import OceanManager

    manager = OceanManager(cell_size_deg=0.05, margin_km=0.0, warm_concurrency=2)
    manager.load_rows(sample_rows)
    manager.prepare_region()
    manager._get_store = MagicMock(return_value=mock_artifact_store)
    return manager


@pytest.fixture
def mock_manager(loaded_manager):
    """OceanManager warmed to ready, with mocked store."""
    loaded_manager.start_background_warming().join(timeout=60)
    return loaded_manager


@pytest.fixture
def mock_mcp():
    """Mock ChukMCPServer."""
    mcp = MagicMock()
    mcp.tool = MagicMock(return_value=lambda fn: fn)
    return mcp


@pytest.fixture
def capture_tools():
    """Return a helper that registers tools and returns name -> coroutine function."""

    def _capture(register, manager):
        tools = {}
        mcp = MagicMock()

        def capture_tool(**kwargs):
            def decorator(fn):
                tools[fn.__name__] = fn
                return fn

            return decorator

        mcp.tool = capture_tool
        register(mcp, manager)
        return tools

    return _capture
