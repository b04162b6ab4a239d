"""Tests for chuk_mcp_ocean.core.contours: breaks, marching squares, stitching."""

import math

import numpy as np
import pytest

from chuk_mcp_ocean.core.contours import (
    ContourLine,
    derive_breaks,
    extract,
    normalize_breaks,
    stitch,
    trace_segments,
)
from chuk_mcp_ocean.core.interpolation import Grid, empty_grid, interpolate
from chuk_mcp_ocean.core.region import Region


def make_grid(values) -> Grid:
    """Grid with node (i, j) at lon=j, lat=-i."""
    arr = np.asarray(values, dtype=np.float64)
    rows, cols = arr.shape
    return Grid(
        values=arr,
        valid=np.isfinite(arr),
        lons=np.arange(cols, dtype=np.float64),
        lats=-np.arange(rows, dtype=np.float64),
        cell_size=1.0,
        transform=None,
        point_count=rows * cols,
    )


def bullseye(n: int = 7) -> Grid:
    c = (n - 1) / 2.0
    i, j = np.mgrid[0:n, 0:n]
    return make_grid(10.0 - np.hypot(i - c, j - c))


# ===================================================================
# Break values
# ===================================================================


class TestDeriveBreaks:
    def test_equal_intervals(self):
        assert derive_breaks(0.0, 10.0, 10) == pytest.approx([1, 2, 3, 4, 5, 6, 7, 8, 9])

    def test_excludes_extremes(self):
        breaks = derive_breaks(2.0, 4.0, 4)
        assert all(2.0 < b < 4.0 for b in breaks)
        assert len(breaks) == 3

    def test_degenerate_range(self):
        assert derive_breaks(5.0, 5.0) == []

    def test_non_finite_range(self):
        assert derive_breaks(math.nan, 1.0) == []

    @pytest.mark.parametrize("count", [0, 1, 101])
    def test_invalid_count(self, count):
        with pytest.raises(ValueError, match="break_count"):
            derive_breaks(0.0, 1.0, count)


class TestNormalizeBreaks:
    def test_keeps_interior(self):
        assert normalize_breaks([1.0, 5.0, 9.0], 0.0, 10.0) == [1.0, 5.0, 9.0]

    def test_drops_extremes_and_outside(self):
        assert normalize_breaks([-1.0, 0.0, 5.0, 10.0, 12.0], 0.0, 10.0) == [5.0]

    def test_not_increasing(self):
        with pytest.raises(ValueError, match="strictly increasing"):
            normalize_breaks([5.0, 5.0], 0.0, 10.0)

    def test_not_finite(self):
        with pytest.raises(ValueError, match="finite"):
            normalize_breaks([1.0, math.nan], 0.0, 10.0)


# ===================================================================
# Marching squares
# ===================================================================


class TestTraceSegments:
    def test_uniform_grid_has_no_segments(self):
        assert trace_segments(make_grid(np.full((3, 3), 5.0)), 5.0) == []

    def test_single_corner(self):
        segments = trace_segments(make_grid([[1.0, 0.0], [0.0, 0.0]]), 0.5)
        assert len(segments) == 1
        a, b = segments[0]
        assert {a, b} == {(0.5, 0.0), (0.0, -0.5)}

    def test_shared_edge_point_identical(self):
        grid = make_grid([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]])
        segments = trace_segments(grid, 0.5)
        assert len(segments) == 2
        ends = [p for seg in segments for p in seg]
        assert (1.0, -0.5) in ends
        assert ends.count((1.0, -0.5)) == 2

    def test_sign_change_on_every_crossed_edge(self):
        rng = np.random.default_rng(3)
        grid = make_grid(rng.uniform(0.0, 1.0, (12, 15)))
        threshold = 0.5
        v = grid.values

        for seg in trace_segments(grid, threshold):
            for x, y in seg:
                if float(x).is_integer():
                    j, i = int(x), int(math.floor(-y))
                    a, b = v[i, j], v[i + 1, j]
                else:
                    i, j = int(-y), int(math.floor(x))
                    a, b = v[i, j], v[i, j + 1]
                assert (a >= threshold) != (b >= threshold)

    def test_saddle_case_10_centre_above_joins_above_corners(self):
        # tl and br above; mean 0.5 >= 0.4 cuts off the below corners tr and bl
        segments = trace_segments(make_grid([[1.0, 0.0], [0.0, 1.0]]), 0.4)
        assert len(segments) == 2
        near_tr = [s for s in segments if all(x > 0.5 and y > -0.5 for x, y in s)]
        near_bl = [s for s in segments if all(x < 0.5 and y < -0.5 for x, y in s)]
        assert len(near_tr) == 1
        assert len(near_bl) == 1

    def test_saddle_case_10_centre_below_cuts_above_corners(self):
        segments = trace_segments(make_grid([[1.0, 0.0], [0.0, 1.0]]), 0.6)
        near_tl = [s for s in segments if all(x < 0.5 and y > -0.5 for x, y in s)]
        near_br = [s for s in segments if all(x > 0.5 and y < -0.5 for x, y in s)]
        assert len(near_tl) == 1
        assert len(near_br) == 1

    def test_saddle_case_5_centre_above(self):
        # tr and bl above; below corners tl and br are cut off
        segments = trace_segments(make_grid([[0.0, 1.0], [1.0, 0.0]]), 0.4)
        near_tl = [s for s in segments if all(x < 0.5 and y > -0.5 for x, y in s)]
        near_br = [s for s in segments if all(x > 0.5 and y < -0.5 for x, y in s)]
        assert len(near_tl) == 1
        assert len(near_br) == 1

    def test_invalid_cells_skipped(self):
        grid = make_grid([[1.0, math.nan], [0.0, 0.0]])
        assert trace_segments(grid, 0.5) == []

    def test_empty_grid(self):
        assert trace_segments(empty_grid(0.1), 0.5) == []


class TestStitch:
    def test_chain(self):
        lines = stitch([((1, 0), (2, 0)), ((0, 0), (1, 0)), ((2, 0), (3, 0))])
        assert len(lines) == 1
        assert lines[0] in ([(0, 0), (1, 0), (2, 0), (3, 0)], [(3, 0), (2, 0), (1, 0), (0, 0)])

    def test_reversed_segment_orientation(self):
        lines = stitch([((0, 0), (1, 0)), ((2, 0), (1, 0))])
        assert len(lines) == 1
        assert len(lines[0]) == 3

    def test_ring_closes(self):
        square = [((0, 0), (1, 0)), ((1, 0), (1, 1)), ((1, 1), (0, 1)), ((0, 1), (0, 0))]
        lines = stitch(square)
        assert len(lines) == 1
        assert lines[0][0] == lines[0][-1]
        assert len(lines[0]) == 5

    def test_disjoint_pieces(self):
        assert len(stitch([((0, 0), (1, 0)), ((5, 5), (6, 5))])) == 2

    def test_zero_length_dropped(self):
        assert stitch([((1, 1), (1, 1))]) == []


# ===================================================================
# Extraction
# ===================================================================


class TestExtract:
    def test_closed_ring_around_peak(self):
        result = extract(bullseye(), [8.5])
        assert len(result[8.5]) == 1
        line = result[8.5][0]
        assert line.is_closed
        assert line.threshold == 8.5

    def test_nested_rings(self):
        result = extract(bullseye(9), [7.5, 9.5])
        assert len(result[7.5]) == 1
        assert len(result[9.5]) == 1
        assert result[7.5][0].length > result[9.5][0].length

    @pytest.mark.parametrize("threshold", [-5.0, 10.0, 50.0])
    def test_threshold_outside_range_is_empty(self, threshold):
        grid = bullseye()
        vmin, vmax = grid.value_range
        assert not vmin < threshold < vmax
        assert extract(grid, [threshold])[threshold] == []

    def test_threshold_at_grid_minimum_is_empty(self):
        grid = bullseye()
        vmin, _ = grid.value_range
        assert extract(grid, [vmin])[vmin] == []

    def test_empty_grid(self):
        assert extract(empty_grid(0.1), [1.0]) == {1.0: []}

    def test_three_points_single_open_line(self):
        points = [(0.0, 0.0, 10.0), (1.0, 0.0, 20.0), (0.0, 1.0, 30.0)]
        grid = interpolate(points, Region(0.0, 0.0, 1.0, 1.0, 0.0), 0.05, 2.0, "degrees")

        lines = extract(grid, [15.0])[15.0]

        assert len(lines) == 1
        assert not lines[0].is_closed
        # (0,0) lies on the low side, the other two samples on the high side
        assert grid.values[-1, 0] < 15.0
        assert grid.values[-1, -1] > 15.0
        assert grid.values[0, 0] > 15.0
        for lon, lat in lines[0].coordinates:
            d0 = math.hypot(lon, lat)
            assert d0 < math.hypot(lon - 1.0, lat)
            assert d0 < math.hypot(lon, lat - 1.0)


class TestContourLine:
    def test_length(self):
        line = ContourLine(threshold=1.0, coordinates=((0.0, 0.0), (3.0, 4.0)))
        assert line.length == pytest.approx(5.0)
        assert not line.is_closed
