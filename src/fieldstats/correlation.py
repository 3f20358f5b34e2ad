"""
Correlation tests, matrices and formatted correlation tables.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd
from scipy import stats

from .constants import (
    ALTERNATIVES,
    CORRELATION_METHODS,
    DEFAULT_CONF_LEVEL,
    MIN_PAIRS_FOR_CORRELATION,
)
from .data_loader import require_columns
from .reporting import FormattedTable, format_table

logger = logging.getLogger(__name__)


def _check_method(method: str) -> str:
    method = method.lower()
    if method not in CORRELATION_METHODS:
        raise ValueError(f"Unknown correlation method '{method}'. Use one of {CORRELATION_METHODS}")
    return method


def _check_alternative(alternative: str) -> str:
    if alternative not in ALTERNATIVES:
        raise ValueError(f"Unknown alternative '{alternative}'. Use one of {ALTERNATIVES}")
    return alternative


def _fisher_ci(r: float, n: int, conf_level: float, alternative: str) -> tuple[float, float]:
    """Fisher z confidence interval for Pearson's r."""
    if n <= 3 or np.isnan(r):
        return np.nan, np.nan
    with np.errstate(divide="ignore"):
        z = np.arctanh(r)
    se = 1.0 / np.sqrt(n - 3)
    if alternative == "two-sided":
        crit = stats.norm.ppf(1 - (1 - conf_level) / 2)
        return float(np.tanh(z - crit * se)), float(np.tanh(z + crit * se))
    crit = stats.norm.ppf(conf_level)
    if alternative == "less":
        return -1.0, float(np.tanh(z + crit * se))
    return float(np.tanh(z - crit * se)), 1.0


def correlation_test(
    df: pd.DataFrame,
    var1: str,
    var2: str,
    method: str = "pearson",
    conf_level: float = DEFAULT_CONF_LEVEL,
    alternative: str = "two-sided",
) -> pd.DataFrame:
    """
    Correlation test between two variables on pairwise-complete rows.

    Parameters
    ----------
    df : pd.DataFrame
        Input data.
    var1, var2 : str
        Numeric column names.
    method : str, default="pearson"
        "pearson", "spearman" or "kendall".
    conf_level : float, default=0.95
        Confidence level for the Pearson interval.
    alternative : str, default="two-sided"
        "two-sided", "less" or "greater".

    Returns
    -------
    pd.DataFrame
        One row with columns: var1, var2, cor, statistic, p, conf_low,
        conf_high, method, alternative, n.

    Raises
    ------
    ValueError
        On unknown method/alternative, missing columns or fewer than
        three complete pairs.
    """
    method = _check_method(method)
    alternative = _check_alternative(alternative)
    require_columns(df, [var1, var2])

    pair = df[[var1, var2]].apply(pd.to_numeric, errors="coerce").dropna()
    n = len(pair)
    if n < MIN_PAIRS_FOR_CORRELATION:
        raise ValueError(
            f"Correlation needs at least {MIN_PAIRS_FOR_CORRELATION} complete pairs, got {n}"
        )
    x = pair[var1].to_numpy(dtype=float)
    y = pair[var2].to_numpy(dtype=float)

    conf_low = conf_high = np.nan
    if method == "pearson":
        r, p = stats.pearsonr(x, y, alternative=alternative)
        with np.errstate(divide="ignore", invalid="ignore"):
            statistic = r * np.sqrt((n - 2) / (1 - r ** 2)) if abs(r) < 1 else np.sign(r) * np.inf
        conf_low, conf_high = _fisher_ci(r, n, conf_level, alternative)
    elif method == "spearman":
        r, p = stats.spearmanr(x, y, alternative=alternative)
        # Hotelling-Pabst S statistic
        statistic = (n ** 3 - n) * (1 - r) / 6
    else:
        r, p = stats.kendalltau(x, y, alternative=alternative)
        statistic = 3 * r * np.sqrt(n * (n - 1)) / np.sqrt(2 * (2 * n + 5))

    logger.debug("%s correlation %s~%s: r=%.3f p=%.4g (n=%d)", method, var1, var2, r, p, n)
    return pd.DataFrame([{
        "var1": var1,
        "var2": var2,
        "cor": float(r),
        "statistic": float(statistic),
        "p": float(p),
        "conf_low": conf_low,
        "conf_high": conf_high,
        "method": method,
        "alternative": alternative,
        "n": n,
    }])


def correlation_table(
    df: pd.DataFrame,
    var1: str,
    var2: str,
    method: str = "pearson",
    digits: int = 3,
) -> FormattedTable:
    """Correlation test formatted as a captioned report table."""
    result = correlation_test(df, var1, var2, method=method)
    result = result[["var1", "var2", "cor", "statistic", "p", "method", "alternative"]]
    return format_table(
        result,
        caption=f"Correlation between {var1} and {var2}",
        digits=digits,
        col_names=[
            "Variable 1", "Variable 2", "Correlation", "Statistic",
            "p-value", "Method", "Alternative",
        ],
    )


def _numeric_frame(df: pd.DataFrame, columns: Optional[list[str]]) -> pd.DataFrame:
    if columns:
        require_columns(df, columns)
        return df[columns].apply(pd.to_numeric, errors="coerce")
    return df.select_dtypes(include=[np.number])


def correlation_matrix(
    df: pd.DataFrame,
    method: str = "pearson",
    columns: Optional[list[str]] = None
) -> pd.DataFrame:
    """
    Compute correlation matrix for numeric columns.

    Parameters
    ----------
    df : pd.DataFrame
        Input data.
    method : str, default="pearson"
        Correlation method ("pearson", "spearman" or "kendall").
    columns : Optional[list[str]]
        Specific columns to use. If None, uses all numeric columns.

    Returns
    -------
    pd.DataFrame
        Correlation matrix.
    """
    return _numeric_frame(df, columns).corr(method=_check_method(method))


def correlation_pvalues(
    df: pd.DataFrame,
    columns: Optional[list[str]] = None,
    method: str = "pearson",
) -> pd.DataFrame:
    """Matrix of pairwise correlation p-values matching `correlation_matrix`."""
    method = _check_method(method)
    num = _numeric_frame(df, columns)
    cols = list(num.columns)
    test = {"pearson": stats.pearsonr, "spearman": stats.spearmanr, "kendall": stats.kendalltau}[method]

    pmat = pd.DataFrame(np.nan, index=cols, columns=cols, dtype=float)
    for i, c1 in enumerate(cols):
        pmat.loc[c1, c1] = 0.0
        for c2 in cols[i + 1:]:
            pair = num[[c1, c2]].dropna()
            if len(pair) < MIN_PAIRS_FOR_CORRELATION:
                continue
            if pair[c1].nunique() < 2 or pair[c2].nunique() < 2:
                logger.warning("Constant column in pair %s/%s; p-value left empty", c1, c2)
                continue
            _, p = test(pair[c1], pair[c2])
            pmat.loc[c1, c2] = pmat.loc[c2, c1] = p
    return pmat
