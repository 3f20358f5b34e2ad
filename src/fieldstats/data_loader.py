"""
Data loading and preprocessing utilities.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from .constants import (
    COL_REPLACE_MAP,
    DEFAULT_KEY_COLUMNS,
    DEFAULT_MIN_NUMERIC_RATIO,
    SUPPORTED_EXCEL_SUFFIXES,
)

logger = logging.getLogger(__name__)


def _sanitize_name(name) -> str:
    out = str(name).strip()
    for old, new in COL_REPLACE_MAP.items():
        out = out.replace(old, new)
    return out


def sanitize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    Standardize column names for formula processing.

    Replaces spaces, hyphens, and special characters with underscores
    so that column names can be used directly in model formulas.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame with potentially problematic column names.

    Returns
    -------
    pd.DataFrame
        DataFrame with sanitized column names.
    """
    return df.rename(columns={col: _sanitize_name(col) for col in df.columns})


def require_columns(df: pd.DataFrame, columns: Iterable[str]) -> None:
    """Raise ValueError listing every column of `columns` absent from `df`."""
    missing = [c for c in columns if c is not None and c not in df.columns]
    if missing:
        raise ValueError(
            f"Missing required column(s): {', '.join(map(str, missing))}. "
            f"Available: {list(df.columns)[:10]}"
        )


def load_data_from_path(
    path: str | Path,
    sheet_name: Optional[str] = None
) -> pd.DataFrame:
    """
    Load data from a CSV or Excel file path.

    Parameters
    ----------
    path : str | Path
        File path to CSV or Excel file.
    sheet_name : Optional[str]
        Sheet name for Excel files. If None, uses first sheet.

    Returns
    -------
    pd.DataFrame
        Loaded and sanitized DataFrame.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If file format is not CSV or XLSX.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File does not exist: {p}")

    suffix = p.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(p)
    elif suffix in SUPPORTED_EXCEL_SUFFIXES:
        df = pd.read_excel(p, sheet_name=sheet_name or 0)
    else:
        raise ValueError(f"Unsupported file format: {p.suffix}")

    logger.debug("Loaded %s: %d rows x %d columns", p.name, len(df), len(df.columns))
    return sanitize_columns(df)


def load_ecological_data(
    path: str | Path,
    clean: bool = True,
    key_columns: Iterable[str] = DEFAULT_KEY_COLUMNS,
) -> pd.DataFrame:
    """
    Load an ecological field dataset and optionally drop incomplete rows.

    Only the key columns present in the file are considered when
    cleaning; absent ones are ignored.
    """
    df = load_data_from_path(path)
    if not clean:
        return df

    present = [c for c in key_columns if c in df.columns]
    if not present:
        return df

    before = len(df)
    df = df.dropna(subset=present).reset_index(drop=True)
    dropped = before - len(df)
    if dropped:
        logger.info("Dropped %d row(s) with missing values in %s", dropped, present)
    return df


def split_columns(df: pd.DataFrame) -> tuple[list[str], list[str]]:
    """
    Split DataFrame columns into numeric and categorical columns.

    Returns
    -------
    tuple[list[str], list[str]]
        (numeric_columns, categorical_columns)
    """
    numeric_cols = df.select_dtypes(include=[np.number]).columns.tolist()
    categorical_cols = [c for c in df.columns if c not in numeric_cols]
    return numeric_cols, categorical_cols


def select_parameter_columns(
    df: pd.DataFrame,
    start_col: Optional[str] = None,
    manual_cols: Optional[list[str]] = None,
    exclude_cols: Optional[list[str]] = None,
    min_numeric_ratio: float = DEFAULT_MIN_NUMERIC_RATIO,
) -> list[str]:
    """
    Select measured-variable columns from a field dataset.

    Manual selection wins over auto-selection. Auto-selection scans from
    `start_col` (or the first column) and keeps columns whose share of
    numeric-coercible values reaches `min_numeric_ratio`.

    Parameters
    ----------
    df : pd.DataFrame
        Input DataFrame.
    start_col : Optional[str]
        Column to start auto-selection from.
    manual_cols : Optional[list[str]]
        Explicitly selected columns.
    exclude_cols : Optional[list[str]]
        Columns never selected.
    min_numeric_ratio : float, default=0.6
        Minimum ratio of non-null numeric values required for a column.

    Returns
    -------
    list[str]
        Selected column names.
    """
    excluded = set(exclude_cols or [])

    if manual_cols:
        return [c for c in manual_cols if c not in excluded]

    cols = list(df.columns)
    start_idx = cols.index(start_col) if start_col in cols else 0
    candidates = [c for c in cols[start_idx:] if c not in excluded]

    return [
        col for col in candidates
        if pd.to_numeric(df[col], errors="coerce").notna().mean() >= min_numeric_ratio
    ]


def coerce_numeric_columns(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    """Return a copy with `columns` coerced to numeric (NaN where not convertible)."""
    out = df.copy()
    for col in columns:
        out[col] = pd.to_numeric(out[col], errors="coerce")
    return out


def numeric_series(df: pd.DataFrame, column: str) -> pd.Series:
    """Numeric view of a column with NaNs dropped."""
    return pd.to_numeric(df[column], errors="coerce").dropna()


def sorted_levels(values: Iterable) -> list:
    """
    Distinct non-missing levels in natural order.

    Numbers sort numerically and strings alphabetically; levels of mixed,
    mutually incomparable types fall back to their string form.
    """
    levels = list(pd.unique(pd.Series(list(values)).dropna()))
    try:
        return sorted(levels, key=lambda v: (isinstance(v, str), v))
    except TypeError:
        return sorted(levels, key=str)
