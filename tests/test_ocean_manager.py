"""Tests for chuk_mcp_ocean.core.ocean_manager: startup, warming, lookups, export."""

import asyncio
import json
import math
import threading
from unittest.mock import MagicMock

import pytest
from shapely.geometry import box

from chuk_mcp_ocean.constants import CoastlineMode, LookupStatus, ReadinessState
from chuk_mcp_ocean.core.contours import InvalidBreaksError
from chuk_mcp_ocean.core.ocean_manager import (
    InvalidKeyError,
    KeyNotFoundError,
    OceanManager,
    format_key,
    to_feature_collection,
)

KEY = (2021, "surface", "temp_c")


# ===================================================================
# Construction and startup
# ===================================================================


class TestInit:
    def test_defaults(self):
        manager = OceanManager()
        assert manager.state == ReadinessState.UNINITIALIZED
        assert manager.coastline.mode == CoastlineMode.NONE
        assert len(manager.cache) == 0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"cell_size_deg": 0.0},
            {"power": -1.0},
            {"units": "miles"},
            {"margin_km": -5.0},
            {"break_count": 1},
        ],
    )
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            OceanManager(**kwargs)


class TestStartup:
    def test_from_csv(self, sample_csv):
        manager = OceanManager(margin_km=0.0)
        manager.startup(sample_csv)
        assert manager.state == ReadinessState.REGION_READY
        assert len(manager.samples) == 10
        assert manager.region.bbox == pytest.approx([10.0, 54.0, 10.4, 54.4])

    def test_missing_source_is_fatal(self, tmp_path):
        manager = OceanManager()
        with pytest.raises(FileNotFoundError):
            manager.startup(tmp_path / "missing.csv")

    def test_unreadable_coastline_disables_clipping(self, sample_csv, tmp_path, caplog):
        manager = OceanManager()
        with caplog.at_level("WARNING"):
            manager.startup(sample_csv, tmp_path / "missing.geojson")
        assert manager.state == ReadinessState.REGION_READY
        assert manager.coastline.mode == CoastlineMode.NONE
        assert "clipping disabled" in caplog.text

    def test_coastline_clipped_to_region(self, sample_csv, tmp_path):
        land_path = tmp_path / "land.geojson"
        land_path.write_text(json.dumps(box(10.3, 50.0, 12.0, 60.0).__geo_interface__))
        manager = OceanManager(margin_km=0.0)
        manager.startup(sample_csv, land_path)
        assert manager.coastline.mode == CoastlineMode.CLIPPED
        assert manager.coastline.geometry.bounds == pytest.approx((10.3, 54.0, 10.4, 54.4))

    def test_prepare_region_requires_samples(self):
        with pytest.raises(RuntimeError):
            OceanManager().prepare_region()

    def test_all_coordinates_invalid_gives_no_region(self):
        manager = OceanManager()
        manager.load_rows(
            [{"longitude": "nan", "latitude": "1", "year": "2021", "horizon": "surface"}]
        )
        manager.prepare_region()
        assert manager.region is None
        assert manager.state == ReadinessState.REGION_READY


# ===================================================================
# Keys
# ===================================================================


class TestNormalizeKey:
    @pytest.mark.parametrize(
        "year,horizon,parameter",
        [
            (2021, "surface", "temp_c"),
            ("2021", "Surface", "TEMP_C"),
            (2021.0, " surface ", " temp_c"),
        ],
    )
    def test_equivalent_forms(self, loaded_manager, year, horizon, parameter):
        assert loaded_manager.normalize_key(year, horizon, parameter) == KEY

    def test_unknown_parameter(self, loaded_manager):
        with pytest.raises(InvalidKeyError, match="Unknown parameter 'density'"):
            loaded_manager.normalize_key(2021, "surface", "density")

    def test_unknown_horizon(self, loaded_manager):
        with pytest.raises(InvalidKeyError, match="Unknown horizon"):
            loaded_manager.normalize_key(2021, "midwater", "ph")

    def test_bad_year(self, loaded_manager):
        with pytest.raises(InvalidKeyError):
            loaded_manager.normalize_key("soon", "surface", "ph")

    def test_missing_field(self, loaded_manager):
        with pytest.raises(InvalidKeyError, match="Missing required field 'year'"):
            loaded_manager.normalize_key(None, "surface", "ph")

    def test_planned_keys(self, loaded_manager):
        keys = loaded_manager.planned_keys()
        assert len(keys) == 12
        assert KEY in keys

    def test_format_key(self):
        assert format_key(KEY) == "2021/surface/temp_c"


# ===================================================================
# Computation
# ===================================================================


class TestComputeEntry:
    def test_lines_tagged_with_breaks(self, loaded_manager):
        entry = loaded_manager.compute_entry(KEY)
        assert entry.point_count == 5
        assert entry.value_range == (10.0, 16.0)
        assert len(entry.breaks) == 9
        assert not entry.is_empty
        assert {line.threshold for line in entry.lines} <= set(entry.breaks)

    def test_lines_inside_region(self, loaded_manager):
        entry = loaded_manager.compute_entry(KEY)
        region = loaded_manager.region
        for line in entry.lines:
            for lon, lat in line.coordinates:
                assert region.contains(lon, lat)

    def test_two_points_give_empty_entry(self, loaded_manager, caplog):
        with caplog.at_level("INFO"):
            entry = loaded_manager.compute_entry((2021, "bottom", "temp_c"))
        assert entry.is_empty
        assert entry.point_count == 2
        assert entry.error is None
        assert "2021/bottom/temp_c: 2 usable points" in caplog.text

    def test_missing_values_reduce_point_count(self, loaded_manager):
        entry = loaded_manager.compute_entry((2022, "surface", "oxygen_mgl"))
        assert entry.is_empty
        assert entry.point_count == 2

    def test_explicit_breaks_outside_range(self, loaded_manager):
        entry = loaded_manager.compute_entry(KEY, breaks=[0.0, 100.0])
        assert entry.breaks == ()
        assert entry.is_empty

    def test_explicit_breaks_invalid(self, loaded_manager):
        with pytest.raises(ValueError, match="strictly increasing"):
            loaded_manager.compute_entry(KEY, breaks=[14.0, 12.0])

    def test_land_portions_removed(self, sample_rows):
        manager = OceanManager(cell_size_deg=0.05, margin_km=0.0)
        manager.load_rows(sample_rows)
        manager.prepare_region(global_land=box(10.2, 50.0, 12.0, 60.0))
        assert manager.coastline.mode == CoastlineMode.CLIPPED

        entry = manager.compute_entry(KEY)
        assert not entry.is_empty
        for line in entry.lines:
            for lon, _ in line.coordinates:
                assert lon <= 10.2 + 1e-9

    def test_failure_logged_with_stage(self, loaded_manager, caplog, monkeypatch):
        from chuk_mcp_ocean.core import ocean_manager as module

        def broken(*args, **kwargs):
            raise RuntimeError("grid exploded")

        monkeypatch.setattr(module, "extract", broken)
        with caplog.at_level("ERROR"):
            with pytest.raises(RuntimeError):
                loaded_manager.compute_entry(KEY)
        assert "2021/surface/temp_c failed during extract (5 points)" in caplog.text


# ===================================================================
# Warming and lookups
# ===================================================================


class TestWarm:
    @pytest.mark.asyncio
    async def test_fills_every_planned_key(self, loaded_manager):
        count = await loaded_manager.warm()
        assert count == 12
        assert loaded_manager.state == ReadinessState.READY
        assert loaded_manager.cache.keys() == sorted(loaded_manager.planned_keys())

    @pytest.mark.asyncio
    async def test_failed_key_cached_with_error(self, loaded_manager):
        original = loaded_manager.compute_entry

        def flaky(key, breaks=None):
            if key == KEY:
                raise RuntimeError("boom")
            return original(key, breaks)

        loaded_manager.compute_entry = flaky
        await loaded_manager.warm()

        result = loaded_manager.lookup(*KEY)
        assert result.status == LookupStatus.READY
        assert result.entry.is_empty
        assert result.entry.error == "boom"
        assert loaded_manager.status()["failed_combinations"] == 1
        assert len(loaded_manager.cache) == 12

    @pytest.mark.asyncio
    async def test_requires_samples(self):
        with pytest.raises(RuntimeError):
            await OceanManager().warm()

    def test_background_thread(self, loaded_manager):
        thread = loaded_manager.start_background_warming()
        thread.join(timeout=30)
        assert not thread.is_alive()
        assert loaded_manager.state == ReadinessState.READY
        assert thread.name == "ocean-warm"


class TestLookup:
    def test_ready_entry(self, mock_manager):
        result = mock_manager.lookup(2021, "surface", "temp_c")
        assert result.status == LookupStatus.READY
        assert not result.entry.is_empty

    def test_coerced_key_hits(self, mock_manager):
        result = mock_manager.lookup("2021.0", "SURFACE", "Temp_C")
        assert result.status == LookupStatus.READY
        assert result.key == KEY

    def test_too_few_points_is_empty_not_error(self, mock_manager):
        result = mock_manager.lookup(2021, "bottom", "salinity_psu")
        assert result.status == LookupStatus.READY
        assert result.entry is not None
        assert result.entry.is_empty
        assert result.entry.error is None

    def test_unsupported_parameter_rejected_before_cache(self, mock_manager):
        mock_manager.cache.get = MagicMock()
        with pytest.raises(InvalidKeyError):
            mock_manager.lookup(2021, "surface", "density")
        mock_manager.cache.get.assert_not_called()

    def test_unobserved_combination_not_found(self, mock_manager):
        result = mock_manager.lookup(1999, "surface", "temp_c")
        assert result.status == LookupStatus.NOT_FOUND
        assert result.entry is None

    def test_before_warming(self, loaded_manager):
        assert loaded_manager.lookup(*KEY).status == LookupStatus.NOT_READY
        assert loaded_manager.lookup(1999, "surface", "ph").status == LookupStatus.NOT_FOUND

    def test_during_warming(self, loaded_manager):
        loaded_manager._planned = frozenset([KEY])
        loaded_manager.state = ReadinessState.WARMING
        assert loaded_manager.lookup(*KEY).status == LookupStatus.NOT_READY
        assert loaded_manager.lookup(2022, "surface", "ph").status == LookupStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_not_ready_then_computed_entry(self, loaded_manager):
        started = threading.Event()
        release = threading.Event()
        original = loaded_manager.compute_entry

        def gated(key, breaks=None):
            if key == KEY:
                started.set()
                release.wait(timeout=10)
            return original(key, breaks)

        loaded_manager.compute_entry = gated
        task = asyncio.create_task(loaded_manager.warm())
        assert await asyncio.to_thread(started.wait, 10)

        first = loaded_manager.lookup(*KEY)
        release.set()
        await task
        second = loaded_manager.lookup(*KEY)

        assert first.status == LookupStatus.NOT_READY
        assert first.entry is None
        assert second.status == LookupStatus.READY
        assert second.entry is loaded_manager.cache.get(KEY)
        assert second.entry.point_count == 5


# ===================================================================
# On-demand operations
# ===================================================================


class TestComputeCustom:
    @pytest.mark.asyncio
    async def test_custom_breaks_not_cached(self, mock_manager):
        cached = len(mock_manager.cache)
        entry = await mock_manager.compute_custom(2021, "surface", "temp_c", [12.0, 14.0])
        assert entry.breaks == (12.0, 14.0)
        assert {line.threshold for line in entry.lines} <= {12.0, 14.0}
        assert len(mock_manager.cache) == cached
        assert mock_manager.cache.get(KEY).breaks != entry.breaks

    @pytest.mark.asyncio
    async def test_invalid_key(self, mock_manager):
        with pytest.raises(InvalidKeyError):
            await mock_manager.compute_custom(2021, "surface", "density", [1.0])

    @pytest.mark.asyncio
    async def test_unobserved_combination_not_found(self, mock_manager):
        with pytest.raises(KeyNotFoundError, match="1999/surface/temp_c"):
            await mock_manager.compute_custom(1999, "surface", "temp_c", [15.0])

    @pytest.mark.asyncio
    async def test_invalid_breaks(self, mock_manager):
        with pytest.raises(InvalidBreaksError):
            await mock_manager.compute_custom(2021, "surface", "temp_c", [14.0, 12.0])

    @pytest.mark.asyncio
    async def test_three_stations_one_line_at_break(self):
        rows = [
            {"longitude": lon, "latitude": lat, "year": "2020", "horizon": "surface", "temp_c": t}
            for lon, lat, t in [("0", "0", "10"), ("1", "0", "20"), ("0", "1", "30")]
        ]
        manager = OceanManager(cell_size_deg=0.05, units="degrees", margin_km=0.0)
        manager.load_rows(rows)
        manager.prepare_region()

        entry = await manager.compute_custom("2020", "surface", "temp_c", [15.0])

        assert entry.key == (2020, "surface", "temp_c")
        assert entry.breaks == (15.0,)
        assert len(entry.lines) == 1
        line = entry.lines[0]
        assert not line.is_closed
        for lon, lat in line.coordinates:
            d0 = math.hypot(lon, lat)
            assert d0 < math.hypot(lon - 1.0, lat)
            assert d0 < math.hypot(lon, lat - 1.0)


class TestPointValue:
    @pytest.mark.asyncio
    async def test_exact_at_station(self, loaded_manager):
        result = await loaded_manager.point_value(2021, "surface", "temp_c", 10.0, 54.0)
        assert result.value == 10.0
        assert result.point_count == 5

    @pytest.mark.asyncio
    async def test_interior_bounded(self, loaded_manager):
        result = await loaded_manager.point_value(2021, "surface", "ph", 10.1, 54.3)
        assert 8.0 <= result.value <= 8.3

    @pytest.mark.asyncio
    async def test_too_few_points(self, loaded_manager):
        with pytest.raises(ValueError, match="at least 3"):
            await loaded_manager.point_value(2021, "bottom", "ph", 10.0, 54.0)


# ===================================================================
# Export
# ===================================================================


class TestExportContours:
    @pytest.mark.asyncio
    async def test_stores_geojson(self, mock_manager, mock_artifact_store):
        result = await mock_manager.export_contours(2021, "surface", "temp_c")

        assert result.artifact_ref.startswith("ocean/")
        assert result.artifact_ref.endswith(".geojson")
        mock_artifact_store.store.assert_awaited_once()

        args, kwargs = mock_artifact_store.store.call_args
        assert kwargs["mime_type"] == "application/geo+json"
        payload = json.loads(args[1])
        assert payload["type"] == "FeatureCollection"
        assert len(payload["features"]) == result.feature_count
        assert all("threshold" in f["properties"] for f in payload["features"])
        assert kwargs["metadata"]["parameter"] == "temp_c"

    @pytest.mark.asyncio
    async def test_not_ready(self, loaded_manager):
        with pytest.raises(ValueError, match="not computed yet"):
            await loaded_manager.export_contours(*KEY)

    @pytest.mark.asyncio
    async def test_not_found(self, mock_manager):
        with pytest.raises(ValueError, match="No contours"):
            await mock_manager.export_contours(1999, "surface", "ph")

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, mock_manager, mock_artifact_store):
        mock_artifact_store.store.side_effect = RuntimeError("disk full")
        with pytest.raises(RuntimeError, match="disk full"):
            await mock_manager.export_contours(*KEY)


class TestExportField:
    @pytest.mark.asyncio
    async def test_stores_geotiff(self, loaded_manager, mock_artifact_store):
        result = await loaded_manager.export_field(2021, "surface", "temp_c")

        assert result.artifact_ref.endswith(".tif")
        assert result.shape == [8, 8]
        assert result.point_count == 5
        assert 10.0 <= result.value_range[0] <= result.value_range[1] <= 16.0
        _, kwargs = mock_artifact_store.store.call_args
        assert kwargs["mime_type"] == "image/tiff"
        assert kwargs["metadata"]["crs"] == "EPSG:4326"

    @pytest.mark.asyncio
    async def test_too_few_points(self, loaded_manager):
        with pytest.raises(ValueError, match="at least 3"):
            await loaded_manager.export_field(2021, "bottom", "temp_c")


# ===================================================================
# Discovery
# ===================================================================


class TestDiscovery:
    def test_list_parameters(self, loaded_manager):
        ids = [p["id"] for p in loaded_manager.list_parameters()]
        assert ids == ["temp_c", "salinity_psu", "oxygen_mgl", "ph"]

    def test_list_combinations(self, loaded_manager):
        combos = loaded_manager.list_combinations()
        assert [(c["year"], c["horizon"]) for c in combos] == [
            (2021, "bottom"),
            (2021, "surface"),
            (2022, "surface"),
        ]
        assert combos[2]["point_counts"]["oxygen_mgl"] == 2

    def test_status_before_warming(self, loaded_manager):
        status = loaded_manager.status()
        assert status["state"] == ReadinessState.REGION_READY
        assert status["samples_loaded"] == 10
        assert status["rows_dropped"] == 1
        assert status["planned_entries"] == 12
        assert status["cache_entries"] == 0

    def test_status_after_warming(self, mock_manager):
        status = mock_manager.status()
        assert status["state"] == ReadinessState.READY
        assert status["cache_entries"] == 12
        assert status["failed_combinations"] == 0

    def test_to_feature_collection(self, mock_manager):
        entry = mock_manager.cache.get(KEY)
        collection = to_feature_collection(entry)
        assert len(collection["features"]) == len(entry.lines)
        props = collection["features"][0]["properties"]
        assert props["year"] == 2021
        assert props["horizon"] == "surface"
        assert props["threshold"] in entry.breaks
