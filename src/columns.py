import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional


# Internal standard column names used after renaming
PARTICIPANT_COL = 'participant_id'
MEDIA_COL = 'media_name'
NORM_X_COL = 'norm_x'
NORM_Y_COL = 'norm_y'

REQUIRED_COLUMNS = [PARTICIPANT_COL, MEDIA_COL, NORM_X_COL, NORM_Y_COL]


def load_columns_map(path: Optional[str] = None) -> Dict[str, List[str]]:
    """Load required->candidates JSON. If path is None, uses configs/columns_default.json."""
    if path is None:
        path = str(Path(__file__).resolve().parents[1] / 'configs' / 'columns_default.json')
    with open(path, 'r', encoding='utf-8') as f:
        d = json.load(f)
    out: Dict[str, List[str]] = {}
    for k, v in d.items():
        if isinstance(v, list):
            out[k] = [str(x) for x in v]
        else:
            out[k] = [str(v)]
    return out


def resolve_columns(df_columns: Iterable[str], required_to_candidates: Dict[str, List[str]]) -> Dict[str, str]:
    """Resolve required column names to actual columns present in the dataframe.

    Candidates are matched exactly first, then case-insensitively (exporters
    differ in capitalization, e.g. 'Participant Name' vs 'Participant name').
    Returns dict: required_name -> actual_name
    """
    df_cols = list(df_columns)
    df_set = set(df_cols)
    lowered = {}
    for c in df_cols:
        lowered.setdefault(str(c).strip().lower(), c)

    resolved: Dict[str, str] = {}
    for req, candidates in required_to_candidates.items():
        if req in df_set:
            resolved[req] = req
            continue
        hit = next((c for c in candidates if c in df_set), None)
        if hit is None:
            hit = next((lowered[c.strip().lower()] for c in candidates if c.strip().lower() in lowered), None)
        if hit is not None:
            resolved[req] = hit
    return resolved


def rename_df_columns_inplace(df, required_to_candidates: Dict[str, List[str]]) -> Dict[str, str]:
    """Rename df columns so that required names exist when possible.

    Returns the resolved mapping required->actual(before rename).
    """
    resolved = resolve_columns(df.columns, required_to_candidates)
    actual_to_required = {actual: req for req, actual in resolved.items() if actual != req}
    if actual_to_required:
        df.rename(columns=actual_to_required, inplace=True)
    return resolved


def missing_required(df_columns: Iterable[str], required: List[str] = REQUIRED_COLUMNS) -> List[str]:
    cols = set(df_columns)
    return [c for c in required if c not in cols]
