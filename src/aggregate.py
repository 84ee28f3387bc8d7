"""Group fixation records per (participant, stimulus) or per stimulus and map them to pixels.

Grouping happens on the extension-stripped stimulus id, so `image1.jpg` and
`image1.png` land in the same bucket; only records whose media name carries the
accepted extension survive into the group's points. This keeps a known stimulus
with no usable fixations ("empty group") distinguishable from a stimulus that
has no geometry at all (dropped, reported as MissingResolution).
"""

import os
from dataclasses import dataclass
from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .columns import MEDIA_COL, NORM_X_COL, NORM_Y_COL, PARTICIPANT_COL
from .mapping import to_pixel
from .registry import ImageGeometry
from .report import MISSING_RESOLUTION, NO_FIXATIONS, RunWarning, add_warning


DEFAULT_ACCEPTED_EXTENSION = '.jpg'
DEFAULT_EXCLUDED_EXTENSIONS = ('.png',)


def split_stimulus_name(name: str) -> Tuple[str, str]:
    """'image1.jpg' -> ('image1', '.jpg'). The extension keeps its case."""
    return os.path.splitext(str(name).strip())


@dataclass(frozen=True)
class FixationRecord:
    participant_id: str
    stimulus_name: str
    norm_x: float
    norm_y: float

    @property
    def stimulus_id(self) -> str:
        return split_stimulus_name(self.stimulus_name)[0]

    @property
    def extension(self) -> str:
        return split_stimulus_name(self.stimulus_name)[1]


@dataclass(frozen=True)
class PixelFixation:
    x: float
    y: float
    participant_id: str
    stimulus_id: str


@dataclass(frozen=True)
class FixationGroup:
    key: Hashable
    stimulus_id: str
    points: Tuple[PixelFixation, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0

    def xy(self) -> np.ndarray:
        """(n, 2) array of pixel x/y in point order."""
        if not self.points:
            return np.zeros((0, 2), dtype=float)
        return np.array([(p.x, p.y) for p in self.points], dtype=float)


def is_accepted_stimulus(
    name: str,
    accepted_extension: str = DEFAULT_ACCEPTED_EXTENSION,
    excluded_extensions: Sequence[str] = DEFAULT_EXCLUDED_EXTENSIONS,
) -> bool:
    ext = split_stimulus_name(name)[1].lower()
    if ext in {e.lower() for e in excluded_extensions}:
        return False
    return ext == accepted_extension.lower()


def records_from_frame(df: pd.DataFrame) -> List[FixationRecord]:
    """Build records from a cleaned frame with standardized column names (row order kept)."""
    cols = [PARTICIPANT_COL, MEDIA_COL, NORM_X_COL, NORM_Y_COL]
    for c in cols:
        if c not in df.columns:
            raise ValueError(f"Missing required column: {c}")
    return [
        FixationRecord(str(pid), str(media), float(x), float(y))
        for pid, media, x, y in df[cols].itertuples(index=False, name=None)
    ]


def _aggregate(
    records: Iterable[FixationRecord],
    registry: Dict[str, ImageGeometry],
    key_of: Callable[[FixationRecord], Hashable],
    accepted_extension: str,
    excluded_extensions: Sequence[str],
    warnings: Optional[List[RunWarning]],
) -> Dict[Hashable, FixationGroup]:
    def accepted(r: FixationRecord) -> bool:
        return is_accepted_stimulus(r.stimulus_name, accepted_extension, excluded_extensions)

    buckets: Dict[Hashable, List[FixationRecord]] = {}
    for r in records:
        buckets.setdefault(key_of(r), []).append(r)

    # stimulus ids that have at least one accepted record; ids seen only in
    # excluded formats were never candidates and are filtered without a warning
    candidates = {r.stimulus_id for recs in buckets.values() for r in recs if accepted(r)}

    reported_missing = set()
    groups: Dict[Hashable, FixationGroup] = {}
    for key in sorted(buckets):
        recs = buckets[key]
        sid = recs[0].stimulus_id
        geom = registry.get(sid)
        if geom is None:
            if sid in candidates and sid not in reported_missing:
                reported_missing.add(sid)
                add_warning(warnings, MISSING_RESOLUTION, sid, f"no resolution registered for stimulus {sid!r}; its fixations are dropped")
            continue

        points = []
        for r in recs:
            if not accepted(r):
                continue
            x, y = to_pixel(r.norm_x, r.norm_y, geom)
            points.append(PixelFixation(x, y, r.participant_id, sid))

        if not points:
            add_warning(warnings, NO_FIXATIONS, sid, f"group {key!r} has no fixations on an accepted {accepted_extension} stimulus")
        groups[key] = FixationGroup(key, sid, tuple(points))
    return groups


def aggregate_by_participant(
    records: Iterable[FixationRecord],
    registry: Dict[str, ImageGeometry],
    accepted_extension: str = DEFAULT_ACCEPTED_EXTENSION,
    excluded_extensions: Sequence[str] = DEFAULT_EXCLUDED_EXTENSIONS,
    warnings: Optional[List[RunWarning]] = None,
) -> Dict[Tuple[str, str], FixationGroup]:
    """(participant_id, stimulus_id) -> FixationGroup, ordered by key."""
    return _aggregate(
        records, registry, lambda r: (r.participant_id, r.stimulus_id),
        accepted_extension, excluded_extensions, warnings,
    )


def aggregate_all_participants(
    records: Iterable[FixationRecord],
    registry: Dict[str, ImageGeometry],
    accepted_extension: str = DEFAULT_ACCEPTED_EXTENSION,
    excluded_extensions: Sequence[str] = DEFAULT_EXCLUDED_EXTENSIONS,
    warnings: Optional[List[RunWarning]] = None,
) -> Dict[str, FixationGroup]:
    """stimulus_id -> FixationGroup pooled over all participants, ordered by key."""
    return _aggregate(
        records, registry, lambda r: r.stimulus_id,
        accepted_extension, excluded_extensions, warnings,
    )


def get_group(groups: Dict[Hashable, FixationGroup], key: Hashable) -> Optional[FixationGroup]:
    """Lookup a single group; None means the key is unknown (check the run warnings)."""
    return groups.get(key)


def participants(groups: Dict[Hashable, FixationGroup]) -> List[str]:
    return sorted({k[0] for k in groups if isinstance(k, tuple)})


def stimuli(groups: Dict[Hashable, FixationGroup]) -> List[str]:
    return sorted({g.stimulus_id for g in groups.values()})


def fixations_frame(groups: Dict[Hashable, FixationGroup]) -> pd.DataFrame:
    rows = []
    for g in groups.values():
        for p in g.points:
            rows.append({
                'participant_id': p.participant_id,
                'stimulus_id': p.stimulus_id,
                'x_px': p.x,
                'y_px': p.y,
            })
    return pd.DataFrame(rows, columns=['participant_id', 'stimulus_id', 'x_px', 'y_px'])
