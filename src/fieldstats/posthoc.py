"""
Post-hoc pairwise comparisons and compact letter display.
"""

from __future__ import annotations

import logging
from itertools import combinations
from typing import Optional

import numpy as np
import pandas as pd
import scikit_posthocs as sp
from scipy import stats
from statsmodels.stats.multicomp import pairwise_tukeyhsd
from statsmodels.stats.multitest import multipletests

from .constants import DEFAULT_ALPHA, DEFAULT_DUNN_ADJUST, DUNN_ADJUST_METHODS
from .data_loader import require_columns

logger = logging.getLogger(__name__)

PAIRWISE_COLUMNS = [
    "group_a", "group_b", "n_a", "n_b", "mean_a", "mean_b", "t_stat", "p_value",
]


def _response_by_group(df: pd.DataFrame, response: str, group: str) -> pd.DataFrame:
    require_columns(df, [response, group])
    data = df[[response, group]].copy()
    data[response] = pd.to_numeric(data[response], errors="coerce")
    data = data.dropna()
    data[group] = data[group].astype(str)
    return data


def _pairwise_t(df: pd.DataFrame, response: str, group: str) -> pd.DataFrame:
    """Student t-test for every pair of group levels, sorted by level name."""
    data = _response_by_group(df, response, group)
    samples = {level: sub[response] for level, sub in data.groupby(group)}

    rows = []
    for a, b in combinations(sorted(samples), 2):
        xa, xb = samples[a], samples[b]
        if len(xa) < 2 or len(xb) < 2:
            logger.warning("Pair %s/%s has fewer than two observations per group", a, b)
            stat, p = np.nan, np.nan
        else:
            stat, p = stats.ttest_ind(xa, xb, equal_var=True)
        rows.append([a, b, len(xa), len(xb), xa.mean(), xb.mean(), stat, p])
    return pd.DataFrame(rows, columns=PAIRWISE_COLUMNS)


def lsd_posthoc(
    df: pd.DataFrame,
    response: str,
    group: str,
    alpha: float = DEFAULT_ALPHA,
) -> pd.DataFrame:
    """
    Fisher's LSD: pairwise t-tests without multiplicity correction.

    Returns
    -------
    pd.DataFrame
        group_a, group_b, n_a, n_b, mean_a, mean_b, t_stat, p_value, significant
    """
    out = _pairwise_t(df, response, group)
    out["significant"] = out["p_value"] < alpha
    return out


def bonferroni_posthoc(
    df: pd.DataFrame,
    response: str,
    group: str,
    alpha: float = DEFAULT_ALPHA,
) -> pd.DataFrame:
    """
    Bonferroni-corrected pairwise t-tests.

    Returns
    -------
    pd.DataFrame
        The LSD columns with p_value renamed p_value_raw, plus
        p_value_bonferroni and significant.
    """
    out = _pairwise_t(df, response, group).rename(columns={"p_value": "p_value_raw"})
    if out.empty:
        out["p_value_bonferroni"] = pd.Series(dtype=float)
        out["significant"] = pd.Series(dtype=bool)
        return out

    raw = out["p_value_raw"].to_numpy(dtype=float)
    adjusted = np.full_like(raw, np.nan)
    ok = ~np.isnan(raw)
    if ok.any():
        adjusted[ok] = multipletests(raw[ok], alpha=alpha, method="bonferroni")[1]
    out["p_value_bonferroni"] = adjusted
    out["significant"] = out["p_value_bonferroni"] < alpha
    return out


def tukey_posthoc(
    df: pd.DataFrame,
    response: str,
    group: str,
    alpha: float = DEFAULT_ALPHA,
) -> pd.DataFrame:
    """
    Tukey HSD (Honest Significant Difference) post-hoc test.

    Returns
    -------
    pd.DataFrame
        group_a, group_b, mean_diff, p_adj, ci_low, ci_high, significant
    """
    columns = ["group_a", "group_b", "mean_diff", "p_adj", "ci_low", "ci_high", "significant"]
    data = _response_by_group(df, response, group)
    if data[group].nunique() < 2:
        return pd.DataFrame(columns=columns)

    result = pairwise_tukeyhsd(endog=data[response], groups=data[group], alpha=alpha)
    header, *body = result._results_table.data
    table = pd.DataFrame(body, columns=header).rename(columns={
        "group1": "group_a",
        "group2": "group_b",
        "meandiff": "mean_diff",
        "p-adj": "p_adj",
        "lower": "ci_low",
        "upper": "ci_high",
        "reject": "significant",
    })
    table["significant"] = table["significant"].astype(bool)
    return table[columns]


def dunn_posthoc(
    df: pd.DataFrame,
    response: str,
    group: str,
    p_adjust: str = DEFAULT_DUNN_ADJUST,
    alpha: float = DEFAULT_ALPHA,
) -> pd.DataFrame:
    """
    Dunn's test (non-parametric follow-up to Kruskal-Wallis).

    Returns
    -------
    pd.DataFrame
        Long format: group_a, group_b, p_adj, significant
    """
    if p_adjust not in DUNN_ADJUST_METHODS:
        raise ValueError(f"Unknown p_adjust '{p_adjust}'. Use one of {DUNN_ADJUST_METHODS}")
    data = _response_by_group(df, response, group)
    if data[group].nunique() < 2:
        return pd.DataFrame(columns=["group_a", "group_b", "p_adj", "significant"])

    matrix = sp.posthoc_dunn(data, val_col=response, group_col=group, p_adjust=p_adjust)
    levels = sorted(str(c) for c in matrix.columns)
    matrix.index = matrix.index.astype(str)
    matrix.columns = matrix.columns.astype(str)

    rows = [
        {"group_a": a, "group_b": b, "p_adj": float(matrix.loc[a, b])}
        for a, b in combinations(levels, 2)
    ]
    out = pd.DataFrame(rows)
    out["significant"] = out["p_adj"] < alpha
    return out


def significance_map(posthoc: pd.DataFrame) -> dict[tuple[str, str], bool]:
    """Symmetric {(a, b): significant} lookup from any post-hoc table above."""
    sig: dict[tuple[str, str], bool] = {}
    for a, b, s in posthoc[["group_a", "group_b", "significant"]].itertuples(index=False):
        flag = bool(s) if not pd.isna(s) else False
        sig[(str(a), str(b))] = flag
        sig[(str(b), str(a))] = flag
    return sig


def compact_letters(
    significance: dict[tuple[str, str], bool],
    group_order: list[str],
) -> dict[str, str]:
    """
    Compact letter display via insert-and-absorb.

    Groups sharing a letter are not significantly different; groups that
    differ share no letter. Letters are handed out following
    `group_order` (typically groups sorted by descending mean), so the
    first group always carries "a".

    Parameters
    ----------
    significance : dict[tuple[str, str], bool]
        Output of :func:`significance_map`.
    group_order : list[str]
        Groups in display priority.

    Returns
    -------
    dict[str, str]
        group -> letters, e.g. {"A": "a", "B": "ab", "C": "b"}
    """
    levels = [str(g) for g in group_order]
    if not levels:
        return {}

    def differ(a: str, b: str) -> bool:
        return significance.get((a, b), False)

    # Each column is a set of groups sharing one letter.
    columns: list[set[str]] = [set(levels)]
    for i, a in enumerate(levels):
        for b in levels[i + 1:]:
            if not differ(a, b):
                continue
            split: list[set[str]] = []
            for col in columns:
                if a in col and b in col:
                    split.append(col - {b})
                    split.append(col - {a})
                else:
                    split.append(col)
            # Absorb: drop empty, duplicate and subset columns
            unique = []
            for col in split:
                if col and col not in unique:
                    unique.append(col)
            columns = [c for c in unique if not any(c < other for other in unique)]

    # Sweep columns whose every pairing is already covered elsewhere
    for col in list(columns):
        others = [c for c in columns if c is not col]
        needed = any(
            not any(a in o and b in o for o in others)
            for a in col for b in col if a <= b
        )
        if not needed and all(any(g in o for o in others) for g in col):
            columns = others

    rank = {g: i for i, g in enumerate(levels)}
    columns.sort(key=lambda c: (min(rank[g] for g in c), -len(c)))

    letters = {g: "" for g in levels}
    for idx, col in enumerate(columns):
        symbol = chr(ord("a") + idx) if idx < 26 else f"a{idx - 25}"
        for g in sorted(col, key=rank.get):
            letters[g] += symbol
    return letters
