import numpy as np
import pytest

from src.aggregate import FixationGroup, FixationRecord, PixelFixation, aggregate_all_participants
from src.registry import ImageGeometry, build_registry
from src.report import UNREGISTERED_STIMULUS, warnings_of_kind
from src.spatial_map import (
    build_spatial_map,
    build_spatial_maps,
    dilate,
    disk_structure,
    raster_indices,
    rasterize,
)


def _group(sid, xy):
    return FixationGroup(sid, sid, tuple(PixelFixation(x, y, 'P01', sid) for x, y in xy))


def test_disk_structure_boundary():
    assert disk_structure(0).tolist() == [[True]]
    assert disk_structure(1).astype(int).tolist() == [[0, 1, 0], [1, 1, 1], [0, 1, 0]]
    d2 = disk_structure(2)
    assert d2.shape == (5, 5)
    assert d2[0, 2] and d2[1, 1] and not d2[0, 1]  # (2,0) in; (1,1) in; (2,1) out
    with pytest.raises(ValueError):
        disk_structure(-1)


def test_swap_scenario_end_to_end():
    reg = build_registry([('002', 600, 800)], swap_set={'002'})
    geom = reg['002']
    assert (geom.display_width, geom.display_height) == (800, 600)

    groups = aggregate_all_participants([FixationRecord('P01', '002.jpg', 0.5, 0.5)], reg)
    group = groups['002']

    m0 = build_spatial_map(group, geom, dilation_radius=0)
    assert m0.shape == (600, 800)
    assert m0.sum() == 1
    assert m0[299, 399] == 1  # 1-based (300, 400)

    m1 = build_spatial_map(group, geom, dilation_radius=1)
    expected = {(299, 399), (298, 399), (300, 399), (299, 398), (299, 400)}
    assert set(zip(*np.nonzero(m1))) == expected


@pytest.mark.parametrize('v', [-1e9, -3.2, 0, 0.4, 1, 50, 99.6, 1e12, np.nan, np.inf, -np.inf])
def test_raster_indices_clamped(v):
    geom = ImageGeometry('s', 100, 40)
    rows, cols = raster_indices([v], [v], geom)
    assert 1 <= rows[0] <= 40
    assert 1 <= cols[0] <= 100


def test_raster_indices_rounding():
    geom = ImageGeometry('s', 100, 100)
    rows, cols = raster_indices([0.4, 1.5, 2.49, 99.5], [0.6, 2.5, 3.5, 100.2], geom)
    assert cols.tolist() == [1, 2, 2, 100]
    assert rows.tolist() == [1, 3, 4, 100]


def test_rasterize_collisions_stay_binary():
    geom = ImageGeometry('s', 10, 10)
    grid = rasterize(_group('s', [(5, 5), (5.2, 4.9), (5, 5)]), geom)
    assert grid.dtype == np.uint8
    assert grid.sum() == 1
    assert grid[4, 4] == 1


def test_empty_group_gives_zero_map():
    geom = ImageGeometry('s', 7, 3)
    m = build_spatial_map(_group('s', []), geom, dilation_radius=15)
    assert m.shape == (3, 7)
    assert not m.any()


def test_dilation_radius_zero_is_identity():
    rng = np.random.default_rng(0)
    seed = (rng.random((30, 40)) > 0.97).astype(np.uint8)
    assert np.array_equal(dilate(seed, 0), seed)


def test_dilation_monotonic_in_radius():
    rng = np.random.default_rng(1)
    seed = (rng.random((50, 60)) > 0.99).astype(np.uint8)
    prev = dilate(seed, 0)
    for r in range(1, 8):
        cur = dilate(seed, r)
        assert np.all(cur >= prev)
        assert set(np.unique(cur)) <= {0, 1}
        prev = cur


def test_dilation_clipped_at_edges():
    seed = np.zeros((5, 5), dtype=np.uint8)
    seed[0, 0] = 1
    out = dilate(seed, 2)
    expected = np.zeros((5, 5), dtype=np.uint8)
    for r in range(5):
        for c in range(5):
            if r * r + c * c <= 4:
                expected[r, c] = 1
    assert np.array_equal(out, expected)


def test_dilation_matches_disk_definition():
    seed = np.zeros((41, 41), dtype=np.uint8)
    seed[20, 20] = 1
    out = dilate(seed, 15)
    rr, cc = np.mgrid[-20:21, -20:21]
    assert np.array_equal(out.astype(bool), rr ** 2 + cc ** 2 <= 225)


def test_build_spatial_map_rejects_mismatched_geometry():
    with pytest.raises(ValueError):
        build_spatial_map(_group('a', [(1, 1)]), ImageGeometry('b', 5, 5))


def test_build_spatial_maps_skips_empty_and_unregistered():
    reg = build_registry([('a', 10, 10), ('b', 10, 10)])
    groups = {
        'a': _group('a', [(3, 3)]),
        'b': _group('b', []),
        'c': _group('c', [(1, 1)]),
    }
    warnings = []
    maps = build_spatial_maps(groups, reg, dilation_radius=1, warnings=warnings)
    assert list(maps) == ['a']
    assert maps['a'].sum() == 5
    assert [w.stimulus_id for w in warnings_of_kind(warnings, UNREGISTERED_STIMULUS)] == ['c']


def test_build_spatial_maps_negative_radius():
    with pytest.raises(ValueError):
        build_spatial_maps({}, {}, dilation_radius=-1)
