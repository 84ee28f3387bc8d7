"""Binary fixation maps with disk dilation.

A map is a {0,1} grid of shape (display_height, display_width). Every fixation
marks one cell; the marked set is then grown by a disk of the given radius.
The result stays binary (occupancy, not counts).
"""

from typing import Dict, Hashable, List, Optional, Tuple

import numpy as np
from scipy.ndimage import binary_dilation

from .aggregate import FixationGroup
from .registry import ImageGeometry
from .report import UNREGISTERED_STIMULUS, RunWarning, add_warning


DEFAULT_DILATION_RADIUS = 15


def disk_structure(radius: int) -> np.ndarray:
    """Boolean (2r+1, 2r+1) disk: offset (dr, dc) is inside iff dr^2 + dc^2 <= r^2."""
    r = int(radius)
    if r < 0:
        raise ValueError(f"dilation radius must be >= 0, got {radius}")
    d = np.arange(-r, r + 1)
    dr, dc = np.meshgrid(d, d, indexing='ij')
    return (dr ** 2 + dc ** 2) <= r ** 2


def _round_half_up(v: np.ndarray) -> np.ndarray:
    return np.floor(v + 0.5)


def raster_indices(xs, ys, geometry: ImageGeometry) -> Tuple[np.ndarray, np.ndarray]:
    """1-based (rows, cols) for pixel coordinates, clamped to [1, H] / [1, W].

    Non-finite coordinates clamp like huge values (nan -> 1).
    """
    h, w = geometry.shape
    x = np.nan_to_num(np.asarray(xs, dtype=float), nan=1.0, posinf=w, neginf=1.0)
    y = np.nan_to_num(np.asarray(ys, dtype=float), nan=1.0, posinf=h, neginf=1.0)
    rows = np.clip(_round_half_up(y), 1, h).astype(np.int64)
    cols = np.clip(_round_half_up(x), 1, w).astype(np.int64)
    return rows, cols


def rasterize(group: FixationGroup, geometry: ImageGeometry) -> np.ndarray:
    grid = np.zeros(geometry.shape, dtype=np.uint8)
    if group.is_empty:
        return grid
    xy = group.xy()
    rows, cols = raster_indices(xy[:, 0], xy[:, 1], geometry)
    grid[rows - 1, cols - 1] = 1
    return grid


def dilate(grid: np.ndarray, radius: int) -> np.ndarray:
    """Binary dilation by a disk. Cells past the grid edge are clipped (zero border)."""
    structure = disk_structure(radius)
    seed = np.asarray(grid) != 0
    if radius == 0 or not seed.any():
        return seed.astype(np.uint8)
    out = binary_dilation(seed, structure=structure, border_value=0)
    return out.astype(np.uint8)


def build_spatial_map(
    group: FixationGroup,
    geometry: ImageGeometry,
    dilation_radius: int = DEFAULT_DILATION_RADIUS,
) -> np.ndarray:
    """Rasterize `group` on `geometry` and dilate. An empty group gives an all-zero map."""
    if group.stimulus_id != geometry.stimulus_id:
        raise ValueError(f"group stimulus {group.stimulus_id!r} does not match geometry {geometry.stimulus_id!r}")
    return dilate(rasterize(group, geometry), dilation_radius)


def build_spatial_maps(
    groups: Dict[Hashable, FixationGroup],
    registry: Dict[str, ImageGeometry],
    dilation_radius: int = DEFAULT_DILATION_RADIUS,
    warnings: Optional[List[RunWarning]] = None,
) -> Dict[Hashable, np.ndarray]:
    """One map per non-empty group. Groups without registry geometry are dropped and reported."""
    # fail before building anything
    disk_structure(dilation_radius)

    maps: Dict[Hashable, np.ndarray] = {}
    reported = set()
    for key, group in groups.items():
        geom = registry.get(group.stimulus_id)
        if geom is None:
            if group.stimulus_id not in reported:
                reported.add(group.stimulus_id)
                add_warning(warnings, UNREGISTERED_STIMULUS, group.stimulus_id,
                            f"stimulus {group.stimulus_id!r} is not in the resolution registry; no map built")
            continue
        if group.is_empty:
            continue
        maps[key] = build_spatial_map(group, geom, dilation_radius)
    return maps
