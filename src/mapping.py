from typing import Tuple

import numpy as np

from .registry import ImageGeometry


def to_pixel(norm_x: float, norm_y: float, geometry: ImageGeometry) -> Tuple[float, float]:
    """Scale normalized (x, y) to pixel units of the displayed image.

    normalized = actual / axis size, so actual = normalized * axis size.
    Values outside [0, 1] are passed through unchanged (no clamping here;
    rasterization clamps to grid indices on its own).
    """
    return float(norm_x) * geometry.display_width, float(norm_y) * geometry.display_height


def to_pixel_arrays(norm_x, norm_y, geometry: ImageGeometry) -> Tuple[np.ndarray, np.ndarray]:
    x = np.asarray(norm_x, dtype=float) * geometry.display_width
    y = np.asarray(norm_y, dtype=float) * geometry.display_height
    return x, y


def to_normalized(pixel_x: float, pixel_y: float, geometry: ImageGeometry) -> Tuple[float, float]:
    return float(pixel_x) / geometry.display_width, float(pixel_y) / geometry.display_height
