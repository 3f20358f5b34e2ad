"""
Monotonic trend tests and rolling summaries for time series.
"""

from __future__ import annotations

import logging

import pandas as pd
from scipy import stats

from .constants import DEFAULT_ALPHA, DEFAULT_CONF_LEVEL
from .data_loader import require_columns

logger = logging.getLogger(__name__)


def _ordered_series(df: pd.DataFrame, time: str, value: str) -> pd.DataFrame:
    require_columns(df, [time, value])
    data = df[[time, value]].copy()
    data[value] = pd.to_numeric(data[value], errors="coerce")
    return data.dropna().sort_values(time).reset_index(drop=True)


def time_as_number(t: pd.Series) -> pd.Series:
    """Numeric time axis: datetimes become days since the earliest one."""
    if pd.api.types.is_datetime64_any_dtype(t):
        return (t - t.min()).dt.total_seconds() / 86400.0
    return pd.to_numeric(t, errors="coerce")


def mann_kendall(
    df: pd.DataFrame,
    time: str,
    value: str,
    alpha: float = DEFAULT_ALPHA,
    conf_level: float = DEFAULT_CONF_LEVEL,
) -> pd.DataFrame:
    """
    Mann-Kendall trend test with Sen's slope.

    Kendall's tau is computed between the value and its time index; the
    Theil-Sen slope and its interval describe the trend magnitude.

    Returns
    -------
    pd.DataFrame
        One row: n, tau, p_value, sen_slope, sen_intercept, slope_low, slope_high, trend
    """
    data = _ordered_series(df, time, value)
    if len(data) < 3:
        raise ValueError(f"Trend test needs at least 3 observations, got {len(data)}")

    t = time_as_number(data[time])
    tau, p = stats.kendalltau(t, data[value])
    slope, intercept, low, high = stats.theilslopes(data[value], t, alpha=conf_level)

    if p < alpha:
        trend = "increasing" if tau > 0 else "decreasing"
    else:
        trend = "no trend"
    return pd.DataFrame([{
        "n": len(data),
        "tau": tau,
        "p_value": p,
        "sen_slope": slope,
        "sen_intercept": intercept,
        "slope_low": low,
        "slope_high": high,
        "trend": trend,
    }])


def rolling_summary(df: pd.DataFrame, time: str, value: str, window: int = 5) -> pd.DataFrame:
    """Time-ordered rolling mean and sd (centered window)."""
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")
    data = _ordered_series(df, time, value)
    rolling = data[value].rolling(window=window, center=True, min_periods=1)
    data["rolling_mean"] = rolling.mean()
    data["rolling_sd"] = rolling.std()
    return data
