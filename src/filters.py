import pandas as pd

from .columns import MEDIA_COL, NORM_X_COL, NORM_Y_COL, PARTICIPANT_COL


def _blank(s: pd.Series) -> pd.Series:
    return s.isna() | s.astype(str).str.strip().isin(['', 'nan', 'None'])


def compute_valid_mask(
    df: pd.DataFrame,
    x_col: str = NORM_X_COL,
    y_col: str = NORM_Y_COL,
) -> pd.Series:
    """Compute a boolean mask of 'valid' rows.

    Valid rows are defined as:
    - participant and media name present (non-blank)
    - AND finite normalized x/y

    Coordinates outside [0, 1] are NOT invalid: gaze noise near stimulus edges
    is expected and passed through to the pixel mapping unchanged.
    """
    if len(df) == 0:
        return pd.Series([], dtype=bool)

    mask = pd.Series(True, index=df.index)
    for c in (PARTICIPANT_COL, MEDIA_COL):
        if c in df.columns:
            mask &= ~_blank(df[c])

    for c in (x_col, y_col):
        if c in df.columns:
            v = pd.to_numeric(df[c], errors='coerce')
            mask &= v.notna() & v.abs().ne(float('inf'))

    return mask


def out_of_unit_range_mask(
    df: pd.DataFrame,
    x_col: str = NORM_X_COL,
    y_col: str = NORM_Y_COL,
) -> pd.Series:
    """Rows whose normalized x or y lies outside [0, 1] (reported, never filtered)."""
    if len(df) == 0:
        return pd.Series([], dtype=bool)
    x = pd.to_numeric(df[x_col], errors='coerce')
    y = pd.to_numeric(df[y_col], errors='coerce')
    return ~(x.between(0, 1) & y.between(0, 1)) & x.notna() & y.notna()


def filter_valid_rows(
    df: pd.DataFrame,
    x_col: str = NORM_X_COL,
    y_col: str = NORM_Y_COL,
) -> pd.DataFrame:
    """Filter rows by `compute_valid_mask()`."""
    mask = compute_valid_mask(df, x_col=x_col, y_col=y_col)
    return df[mask].copy()
