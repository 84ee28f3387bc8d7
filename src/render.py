"""Figure helpers for fixation overlays and spatial maps.

Kept thin on purpose: all geometry is decided upstream, these only draw.
"""

from pathlib import Path
from typing import Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from PIL import Image, ImageOps

from .aggregate import FixationGroup
from .registry import ImageGeometry


def load_stimulus_image(image_path: str) -> np.ndarray:
    """Decode the stimulus with its EXIF orientation applied, matching the registry sizes."""
    with Image.open(image_path) as im:
        return np.asarray(ImageOps.exif_transpose(im).convert("RGB"))


def plot_fixation_overlay(
    group: FixationGroup,
    geometry: ImageGeometry,
    out_png: str,
    image_path: Optional[str] = None,
    title: Optional[str] = None,
    dpi: int = 200,
) -> str:
    """Scatter the group's pixel fixations over the stimulus (or a blank canvas).

    Points are drawn unclamped; pooled groups are colored by participant.
    """
    pts = pd.DataFrame(
        [(p.x, p.y, p.participant_id) for p in group.points],
        columns=["x", "y", "participant"],
    )
    w, h = geometry.display_width, geometry.display_height

    fig = plt.figure(figsize=(8, 8 * h / max(w, 1)))
    ax = fig.add_subplot(1, 1, 1)
    if image_path:
        bg = load_stimulus_image(image_path)
        ax.imshow(bg, extent=[0, w, h, 0], aspect="auto")
    if len(pts):
        pooled = pts["participant"].nunique() > 1
        sns.scatterplot(
            data=pts, x="x", y="y",
            hue="participant" if pooled else None,
            s=18, alpha=0.7, edgecolor="none", ax=ax, legend=False,
            color=None if pooled else "#FF4D4D",
        )
    ax.set_xlim(0, w)
    ax.set_ylim(h, 0)
    ax.set_title(title or str(group.key))
    ax.axis("off")
    fig.tight_layout()

    Path(out_png).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_png, dpi=dpi, bbox_inches="tight", pad_inches=0)
    plt.close(fig)
    return out_png


def save_spatial_map_png(spatial_map: np.ndarray, out_png: str, title: Optional[str] = None, dpi: int = 200) -> str:
    fig = plt.figure(figsize=(8, 8 * spatial_map.shape[0] / max(spatial_map.shape[1], 1)))
    ax = fig.add_subplot(1, 1, 1)
    ax.imshow(spatial_map, cmap="gray", vmin=0, vmax=1, interpolation="nearest")
    if title:
        ax.set_title(title)
    ax.axis("off")
    fig.tight_layout()

    Path(out_png).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_png, dpi=dpi, bbox_inches="tight", pad_inches=0)
    plt.close(fig)
    return out_png
