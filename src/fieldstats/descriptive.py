"""
Descriptive statistics and exploratory data analysis.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd

from .constants import OUTLIER_IQR_FACTOR
from .data_loader import require_columns, split_columns

logger = logging.getLogger(__name__)


def _summarize(values: pd.Series) -> dict:
    raw = pd.to_numeric(values, errors="coerce")
    vals = raw.dropna()
    n = len(vals)
    mean = vals.mean() if n else np.nan
    sd = vals.std(ddof=1) if n > 1 else np.nan
    q1 = vals.quantile(0.25) if n else np.nan
    q3 = vals.quantile(0.75) if n else np.nan
    return {
        "n": n,
        "n_missing": int(raw.isna().sum()),
        "mean": mean,
        "sd": sd,
        "se": sd / np.sqrt(n) if n > 1 else np.nan,
        "median": vals.median() if n else np.nan,
        "q1": q1,
        "q3": q3,
        "iqr": q3 - q1,
        "min": vals.min() if n else np.nan,
        "max": vals.max() if n else np.nan,
        "cv_pct": sd / mean * 100 if n > 1 and mean != 0 else np.nan,
    }


def describe(
    df: pd.DataFrame,
    columns: Optional[list[str]] = None,
    group: Optional[str] = None,
) -> pd.DataFrame:
    """
    Summary statistics per variable, optionally split by a grouping column.

    Parameters
    ----------
    df : pd.DataFrame
        Input data.
    columns : Optional[list[str]]
        Variables to summarize. Defaults to all numeric columns
        (excluding `group`).
    group : Optional[str]
        Grouping column.

    Returns
    -------
    pd.DataFrame
        One row per variable (and group) with n, n_missing, mean, sd, se,
        median, q1, q3, iqr, min, max, cv_pct.
    """
    if columns is None:
        columns = [c for c in split_columns(df)[0] if c != group]
    require_columns(df, list(columns) + ([group] if group else []))

    rows = []
    for col in columns:
        if group is None:
            rows.append({"variable": col, **_summarize(df[col])})
            continue
        for g, sub in df.groupby(group, observed=False):
            rows.append({"variable": col, group: g, **_summarize(sub[col])})
    return pd.DataFrame(rows)


def data_overview(df: pd.DataFrame) -> pd.DataFrame:
    """Glimpse-style overview: one row per column."""
    rows = []
    for col in df.columns:
        ser = df[col]
        non_null = ser.dropna()
        rows.append({
            "column": col,
            "dtype": str(ser.dtype),
            "non_null": int(ser.notna().sum()),
            "missing": int(ser.isna().sum()),
            "missing_pct": float(ser.isna().mean() * 100) if len(ser) else 0.0,
            "n_unique": int(ser.nunique(dropna=True)),
            "example": non_null.iloc[0] if len(non_null) else None,
        })
    return pd.DataFrame(rows)


def missing_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Missing count and percentage per column, most incomplete first."""
    counts = df.isna().sum()
    out = pd.DataFrame({
        "column": counts.index,
        "missing": counts.values.astype(int),
        "missing_pct": (counts.values / max(len(df), 1)) * 100,
    })
    return out.sort_values(["missing", "column"], ascending=[False, True]).reset_index(drop=True)


def detect_outliers(
    df: pd.DataFrame,
    column: str,
    group: Optional[str] = None,
    k: float = OUTLIER_IQR_FACTOR,
) -> pd.DataFrame:
    """
    Flag observations outside Tukey's fences (Q1 - k*IQR, Q3 + k*IQR).

    Fences are computed within each group when `group` is given.
    """
    require_columns(df, [column] + ([group] if group else []))
    out = df.copy()
    values = pd.to_numeric(out[column], errors="coerce")

    if group is None:
        q1, q3 = values.quantile(0.25), values.quantile(0.75)
        out["lower_fence"] = q1 - k * (q3 - q1)
        out["upper_fence"] = q3 + k * (q3 - q1)
    else:
        grouped = values.groupby(out[group], observed=False)
        q1 = grouped.transform(lambda s: s.quantile(0.25))
        q3 = grouped.transform(lambda s: s.quantile(0.75))
        out["lower_fence"] = q1 - k * (q3 - q1)
        out["upper_fence"] = q3 + k * (q3 - q1)

    out["is_outlier"] = (values < out["lower_fence"]) | (values > out["upper_fence"])
    n_out = int(out["is_outlier"].sum())
    if n_out:
        logger.debug("%d outlier(s) flagged in %s", n_out, column)
    return out


def frequency_table(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Counts and percentages of each level of `column`, missing values included."""
    require_columns(df, [column])
    counts = df[column].value_counts(dropna=False)
    return pd.DataFrame({
        column: counts.index,
        "count": counts.values.astype(int),
        "percent": counts.values / counts.values.sum() * 100,
    })
