"""Stimulus image resolution registry.

Maps each stimulus id (image file stem) to the geometry it is displayed with.
Some stimuli are stored in one orientation and shown rotated by 90 degrees; they
are listed explicitly in a swap set and get their width/height transposed.
"""

import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from .report import (
    DECODE_FAILURE,
    DUPLICATE_STIMULUS,
    UNUSED_SWAP_ENTRY,
    RunWarning,
    add_warning,
)


RASTER_EXTS = ('.jpg', '.jpeg', '.png', '.bmp', '.tif', '.tiff', '.webp', '.gif')


class ConfigurationError(ValueError):
    """Fatal problem with stimulus geometry or configuration; the run cannot proceed."""


@dataclass(frozen=True)
class ImageGeometry:
    stimulus_id: str
    raw_width: int
    raw_height: int
    is_swapped: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'raw_width', _as_dimension(self.raw_width, self.stimulus_id, 'width'))
        object.__setattr__(self, 'raw_height', _as_dimension(self.raw_height, self.stimulus_id, 'height'))

    @property
    def display_width(self) -> int:
        return swap_dimensions(self.raw_width, self.raw_height, self.is_swapped)[0]

    @property
    def display_height(self) -> int:
        return swap_dimensions(self.raw_width, self.raw_height, self.is_swapped)[1]

    @property
    def shape(self) -> Tuple[int, int]:
        """(rows, cols) of a grid covering the displayed image."""
        return self.display_height, self.display_width


def swap_dimensions(width: int, height: int, swapped: bool) -> Tuple[int, int]:
    if swapped:
        return height, width
    return width, height


def _as_dimension(value, stimulus_id: str, name: str) -> int:
    if value is None or isinstance(value, bool):
        raise ConfigurationError(f"Missing {name} for stimulus {stimulus_id!r}")
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid {name} for stimulus {stimulus_id!r}: {value!r}")
    if not math.isfinite(v) or v != int(v):
        raise ConfigurationError(f"Invalid {name} for stimulus {stimulus_id!r}: {value!r}")
    if v <= 0:
        raise ConfigurationError(f"Non-positive {name} for stimulus {stimulus_id!r}: {value!r}")
    return int(v)


def validate_swap_set(swap_set: Iterable[str]) -> frozenset:
    """Check swap-set entries are bare stimulus ids (no paths, no extensions)."""
    if isinstance(swap_set, str):
        raise ConfigurationError('swap set must be a collection of stimulus ids, not a single string')
    out = set()
    for entry in swap_set:
        if not isinstance(entry, str):
            raise ConfigurationError(f"Malformed swap-set entry (not a string): {entry!r}")
        s = entry.strip()
        if not s or s != entry:
            raise ConfigurationError(f"Malformed swap-set entry: {entry!r}")
        if '/' in s or '\\' in s:
            raise ConfigurationError(f"Swap-set entry looks like a path, expected a stimulus id: {entry!r}")
        if os.path.splitext(s)[1].lower() in RASTER_EXTS:
            raise ConfigurationError(f"Swap-set entry carries a file extension, expected a stimulus id: {entry!r}")
        out.add(s)
    return frozenset(out)


def build_registry(
    images: Iterable[Tuple[str, int, int]],
    swap_set: Iterable[str] = (),
    warnings: Optional[List[RunWarning]] = None,
) -> Dict[str, ImageGeometry]:
    """Build stimulus_id -> ImageGeometry.

    images: (stimulus_id, raw_width, raw_height) as measured from the decoded raster.
    Duplicate ids overwrite earlier entries (last one wins) and are reported.
    Raises ConfigurationError on missing/non-positive dimensions or a malformed swap set.
    """
    swaps = validate_swap_set(swap_set)

    reg: Dict[str, ImageGeometry] = {}
    for item in images:
        stimulus_id, raw_w, raw_h = item
        stimulus_id = str(stimulus_id)
        if not stimulus_id:
            raise ConfigurationError('Empty stimulus id in image list')
        w = _as_dimension(raw_w, stimulus_id, 'width')
        h = _as_dimension(raw_h, stimulus_id, 'height')
        if stimulus_id in reg:
            prev = reg[stimulus_id]
            add_warning(
                warnings, DUPLICATE_STIMULUS, stimulus_id,
                f"stimulus {stimulus_id!r} registered twice; "
                f"({prev.raw_width}x{prev.raw_height}) replaced by ({w}x{h})",
            )
        reg[stimulus_id] = ImageGeometry(stimulus_id, w, h, stimulus_id in swaps)

    for sid in sorted(swaps - set(reg)):
        add_warning(warnings, UNUSED_SWAP_ENTRY, sid, f"swap-set entry {sid!r} matches no registered image")

    return {k: reg[k] for k in sorted(reg)}


def read_image_sizes(
    image_dir: str,
    extension: str = '.jpg',
    warnings: Optional[List[RunWarning]] = None,
) -> List[Tuple[str, int, int]]:
    """Read (stimulus_id, width, height) for every image in `image_dir` with `extension`.

    Sizes are taken after applying the EXIF orientation tag, i.e. as the image
    is shown by orientation-aware viewers. Files that cannot be decoded are
    reported as DecodeFailure and skipped.
    """
    root = Path(image_dir)
    if not root.is_dir():
        raise ConfigurationError(f"image_dir not found or not a dir: {image_dir}")

    ext = extension.lower()
    out = []
    for p in sorted(root.iterdir()):
        if not p.is_file() or p.suffix.lower() != ext:
            continue
        try:
            with Image.open(p) as im:
                im = ImageOps.exif_transpose(im)
                w, h = im.size
        except (OSError, UnidentifiedImageError, ValueError) as e:
            add_warning(warnings, DECODE_FAILURE, p.stem, f"could not decode {p.name}: {e}")
            continue
        out.append((p.stem, int(w), int(h)))
    return out
