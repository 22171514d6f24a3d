import numpy as np
import pytest
import matplotlib.pyplot as pl
from shapely.geometry import Point, Polygon, MultiPolygon, LineString, box
from shapely.geometry.polygon import orient

from censuscartogram.tools import (
    polygon_patch,
    polygon_parts,
    pair_iterate,
    match_vertex_count,
    interpolate_geometry,
    fix_invalid_geometry,
    drop_small_parts,
    coarse_grain_geometry,
    savefig_marginless,
)


class TestPolygonHelpers:

    def test_patch_contains_holes(self):
        poly = Polygon(box(0, 0, 10, 10).exterior.coords, [box(2, 2, 4, 4).exterior.coords])
        patch = polygon_patch(poly, facecolor='r')
        assert len(patch.get_path().vertices) == 10

    def test_patch_of_multipolygon(self):
        multi = MultiPolygon([box(0, 0, 1, 1), box(2, 2, 3, 3)])
        patch = polygon_patch(multi)
        assert len(patch.get_path().vertices) == 10

    def test_parts(self):
        multi = MultiPolygon([box(0, 0, 1, 1), box(2, 2, 3, 3)])
        assert len(polygon_parts(multi)) == 2
        assert polygon_parts(box(0, 0, 1, 1))[0].equals(box(0, 0, 1, 1))

    def test_parts_rejects_lines(self):
        with pytest.raises(TypeError):
            polygon_parts(LineString([(0, 0), (1, 1)]))

    def test_pair_iterate(self):
        assert list(pair_iterate([1, 2, 3])) == [(1, 2), (2, 3)]
        assert list(pair_iterate([1])) == []


class TestVertexMatching:

    def test_counts_are_matched(self):
        square = box(0, 0, 2, 2)
        dense = Polygon([(2, 0), (2, 1), (2, 2), (1, 2), (0, 2), (0, 1), (0, 0), (1, 0), (2, 0)])
        new_square, new_dense = match_vertex_count(square, dense)
        assert len(new_square.exterior.coords) == len(dense.exterior.coords)
        assert new_dense is dense
        assert new_square.area == pytest.approx(square.area)

    def test_equal_counts_unchanged(self):
        a, b = box(0, 0, 1, 1), box(0, 0, 2, 2)
        assert match_vertex_count(a, b) == (a, b)


class TestInterpolation:

    def test_same_structure_blends_vertices(self):
        small, large = box(0, 0, 1, 1), box(0, 0, 2, 2)
        half = interpolate_geometry(small, large, 0.5)
        assert half.area == pytest.approx(1.5**2)

    def test_endpoints(self):
        small, large = box(0, 0, 1, 1), box(0, 0, 2, 2)
        assert interpolate_geometry(small, large, 0) is small
        assert interpolate_geometry(small, large, 1) is large

    def test_out_of_range(self):
        with pytest.raises(ValueError):
            interpolate_geometry(box(0, 0, 1, 1), box(0, 0, 2, 2), 1.5)

    def test_different_vertex_counts(self):
        square = orient(box(0, 0, 1, 1))
        circle = orient(Point(0.5, 0.5).buffer(0.5))
        mid = interpolate_geometry(square, circle, 0.5)
        assert mid.is_valid
        assert len(mid.exterior.coords) == len(circle.exterior.coords)

    def test_different_part_counts_switch_halfway(self):
        single = box(0, 0, 1, 1)
        double = MultiPolygon([box(0, 0, 1, 1), box(2, 2, 3, 3)])
        assert interpolate_geometry(single, double, 0.4) is single
        assert interpolate_geometry(single, double, 0.6) is double


class TestRepairAndSimplify:

    def test_bowtie_is_repaired(self):
        bowtie = Polygon([(0, 0), (1, 1), (1, 0), (0, 1)])
        assert not bowtie.is_valid
        fixed = fix_invalid_geometry(bowtie)
        assert fixed.is_valid
        assert fixed.geom_type in ("Polygon", "MultiPolygon")
        assert fixed.area == pytest.approx(0.5)

    def test_valid_geometry_untouched(self):
        square = box(0, 0, 1, 1)
        assert fix_invalid_geometry(square) is square

    def test_drop_small_parts(self):
        multi = MultiPolygon([box(0, 0, 10, 10), box(20, 20, 21, 21)])
        kept = drop_small_parts(multi, 5)
        assert kept.geom_type == "Polygon"
        assert kept.area == pytest.approx(100)

    def test_largest_part_always_kept(self):
        multi = MultiPolygon([box(0, 0, 10, 10), box(20, 20, 21, 21)])
        assert drop_small_parts(multi, 1000).area == pytest.approx(100)

    def test_coarse_grain_reduces_vertices(self):
        circle = Point(0, 0).buffer(100, quad_segs=32)
        coarse = coarse_grain_geometry(circle, 20)
        assert len(coarse.exterior.coords) < len(circle.exterior.coords)
        assert coarse.is_valid
        assert coarse.area == pytest.approx(circle.area, rel=0.05)

    def test_collapsing_ring_is_kept(self):
        square = box(0, 0, 1, 1)
        coarse = coarse_grain_geometry(square, 1e6)
        assert coarse.area == pytest.approx(1)


def test_savefig_marginless(tmp_path):
    fig, ax = pl.subplots()
    ax.add_patch(polygon_patch(box(0, 0, 1, 1)))
    path = tmp_path / "map.png"
    savefig_marginless(path, fig, ax, dpi=20)
    pl.close(fig)
    assert path.exists()
