from dataclasses import dataclass, field
from typing import Dict, Hashable, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from .aggregate import (
    FixationGroup,
    aggregate_all_participants,
    aggregate_by_participant,
    records_from_frame,
)
from .columns import (
    MEDIA_COL,
    NORM_X_COL,
    NORM_Y_COL,
    PARTICIPANT_COL,
    REQUIRED_COLUMNS,
    load_columns_map,
    missing_required,
    resolve_columns,
    rename_df_columns_inplace,
)
from .config import StimulusConfig
from .filters import compute_valid_mask, out_of_unit_range_mask
from .registry import ImageGeometry, build_registry
from .report import RunWarning
from .spatial_map import build_spatial_maps


@dataclass
class FixationMapResult:
    registry: Dict[str, ImageGeometry]
    groups: Dict[Hashable, FixationGroup]
    maps: Dict[Hashable, np.ndarray]
    warnings: List[RunWarning] = field(default_factory=list)


def _is_text(s: pd.Series) -> bool:
    return pd.api.types.is_object_dtype(s) or pd.api.types.is_string_dtype(s)


def load_gaze_csv(csv_path: str, columns_map_path: str = None):
    """Load a gaze export CSV and perform a minimal clean.

    - Renames common alternative column names to the internal standard names.
    - Drops rows with a missing participant/media name or non-finite coordinates.

    Returns (df, clean).
    """
    cmap = load_columns_map(columns_map_path)

    # ids are read as text so numeric participant ids are not turned into floats ("1" -> "1.0")
    header = pd.read_csv(csv_path, encoding="utf-8-sig", nrows=0).columns
    resolved = resolve_columns(header, cmap)
    id_dtypes = {resolved[c]: str for c in (PARTICIPANT_COL, MEDIA_COL) if c in resolved}
    df = pd.read_csv(csv_path, encoding="utf-8-sig", dtype=id_dtypes)

    # Trim strings
    for c in df.columns:
        if _is_text(df[c]):
            df[c] = df[c].astype(str).str.strip()

    rename_df_columns_inplace(df, cmap)

    miss = missing_required(df.columns, REQUIRED_COLUMNS)
    if miss:
        raise ValueError(f"Missing required gaze columns: {miss}. You can adjust configs/columns_default.json or pass columns_map_path.")

    for c in (NORM_X_COL, NORM_Y_COL):
        # some exporters write decimal commas
        if _is_text(df[c]):
            df[c] = df[c].str.replace(",", ".", regex=False)
        df[c] = pd.to_numeric(df[c], errors="coerce")

    df[PARTICIPANT_COL] = df[PARTICIPANT_COL].astype(str)
    df[MEDIA_COL] = df[MEDIA_COL].astype(str)

    clean = df[compute_valid_mask(df)].copy()
    return df, clean


def quality_report(df: pd.DataFrame, clean: pd.DataFrame):
    return {
        "total_rows": len(df),
        "valid_rows_after_clean": len(clean),
        "valid_ratio_after_clean(%)": round(len(clean) / max(len(df), 1) * 100, 2),
        "out_of_unit_range_rows": int(out_of_unit_range_mask(clean).sum()) if len(clean) else 0,
        "participants": int(clean[PARTICIPANT_COL].nunique()) if len(clean) else 0,
        "media": int(clean[MEDIA_COL].nunique()) if len(clean) else 0,
    }


def run_fixation_maps(
    clean: pd.DataFrame,
    image_sizes: Iterable[Tuple[str, int, int]],
    config: StimulusConfig,
    pooled: bool = False,
    warnings: Optional[List[RunWarning]] = None,
) -> FixationMapResult:
    """Registry -> per-group pixel fixations -> dilated binary maps.

    Registry problems raise ConfigurationError; per-group gaps end up in `warnings`.
    """
    if warnings is None:
        warnings = []

    registry = build_registry(image_sizes, config.swap_set, warnings=warnings)
    records = records_from_frame(clean)

    aggregate = aggregate_all_participants if pooled else aggregate_by_participant
    groups = aggregate(
        records,
        registry,
        accepted_extension=config.accepted_extension,
        excluded_extensions=config.excluded_extensions,
        warnings=warnings,
    )
    maps = build_spatial_maps(groups, registry, config.dilation_radius, warnings=warnings)
    return FixationMapResult(registry, groups, maps, warnings)
