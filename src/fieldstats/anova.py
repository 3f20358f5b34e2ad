"""
Factorial and nested ANOVA.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd
from statsmodels.formula.api import ols
from statsmodels.stats.anova import anova_lm

from .constants import DEFAULT_ANOVA_TYPE
from .data_loader import require_columns

logger = logging.getLogger(__name__)


def _maps_onto(a: pd.Series, b: pd.Series) -> bool:
    """True when every level of `a` corresponds to a single level of `b`."""
    pairs = pd.DataFrame({"a": a, "b": b}).dropna().astype(str)
    if pairs.empty:
        return False
    return bool((pairs.groupby("a")["b"].nunique() <= 1).all())


def usable_factors(df: pd.DataFrame, factors: list[str]) -> list[str]:
    """
    Drop factors that cannot be estimated.

    A factor is dropped when it is absent, has a single level, or is
    confounded with (maps one-to-one onto) an already kept factor.
    """
    kept: list[str] = []
    for f in factors:
        if f not in df.columns:
            logger.warning("Factor '%s' not in data; skipped", f)
            continue
        if df[f].dropna().nunique() <= 1:
            logger.warning("Factor '%s' has a single level; skipped", f)
            continue
        clash = next(
            (k for k in kept if _maps_onto(df[f], df[k]) or _maps_onto(df[k], df[f])),
            None,
        )
        if clash is not None:
            logger.warning("Factor '%s' is confounded with '%s'; skipped", f, clash)
            continue
        kept.append(f)
    return kept


def _model_data(df: pd.DataFrame, response: str, factors: list[str]) -> pd.DataFrame:
    data = df[[response] + factors].copy()
    data[response] = pd.to_numeric(data[response], errors="coerce")
    data = data.dropna()
    for col in factors:
        data[col] = data[col].astype("category")
    return data


def _anova_table(model, typ: int) -> pd.DataFrame:
    """
    ANOVA table for `model`, degrading to Type I and then to an HC3
    robust Type II table when the requested type is not estimable.
    """
    try:
        return anova_lm(model, typ=typ)
    except Exception as exc:
        logger.warning("Type %s ANOVA failed (%s); retrying with Type I", typ, exc)
    try:
        return anova_lm(model, typ=1)
    except Exception as exc:
        logger.warning("Type I ANOVA failed (%s); using HC3 robust Type II", exc)
    return anova_lm(model, typ=2, robust="hc3")


def _tidy_anova(table: pd.DataFrame) -> pd.DataFrame:
    return table.reset_index().rename(columns={"index": "term"})


def anova_analysis(
    df: pd.DataFrame,
    response: str,
    factors: list[str],
    typ: int = DEFAULT_ANOVA_TYPE,
    block_factor: Optional[str] = None,
) -> pd.DataFrame:
    """
    Perform factorial ANOVA with optional blocking factor.

    Parameters
    ----------
    df : pd.DataFrame
        Input data.
    response : str
        Numeric response column name.
    factors : list[str]
        Factor column names (fully crossed).
    typ : int, default=2
        Type of sum of squares (1, 2, or 3).
    block_factor : Optional[str]
        Blocking/replication factor (added as a main effect).

    Returns
    -------
    pd.DataFrame
        ANOVA table with columns: term, sum_sq, df, F, PR(>F).

    Raises
    ------
    ValueError
        If no usable factor or block factor remains.
    """
    require_columns(df, [response] + ([block_factor] if block_factor else []))
    factors = usable_factors(df, factors)
    if not factors and not block_factor:
        raise ValueError("At least one valid factor (or block factor) is required for ANOVA")

    terms = [f"C({f})" for f in factors]
    block_terms = [f"C({block_factor})"] if block_factor else []
    all_factors = ([block_factor] if block_factor else []) + factors
    data = _model_data(df, response, all_factors)

    rhs = " + ".join(block_terms + [" * ".join(terms)] if terms else block_terms)
    model = ols(f"{response} ~ {rhs}", data=data).fit()
    table = _anova_table(model, typ=typ)

    if table.empty and terms:
        additive = " + ".join(block_terms + terms)
        logger.warning("Interaction model gave an empty table; refitting additive %s", additive)
        table = _anova_table(ols(f"{response} ~ {additive}", data=data).fit(), typ=1)

    return _tidy_anova(table)


def nested_anova(
    df: pd.DataFrame,
    response: str,
    parent_factor: str,
    nested_factor: str,
    typ: int = DEFAULT_ANOVA_TYPE,
    block_factor: Optional[str] = None,
) -> pd.DataFrame:
    """
    Perform nested ANOVA (nested_factor within parent_factor).

    Raises
    ------
    ValueError
        If parent and nested factors are the same, missing, or have
        fewer than two levels.
    """
    if parent_factor == nested_factor:
        raise ValueError("parent_factor and nested_factor must be different")
    blocks = [block_factor] if block_factor else []
    require_columns(df, [response, parent_factor, nested_factor] + blocks)
    single = [f for f in (parent_factor, nested_factor) if df[f].dropna().nunique() < 2]
    if single:
        raise ValueError(f"Nested ANOVA factors must have at least two levels: {single}")

    # parent + parent:child, i.e. child levels are only compared within a parent
    terms = [f"C({b})" for b in blocks] + [f"C({parent_factor})/C({nested_factor})"]
    data = _model_data(df, response, blocks + [parent_factor, nested_factor])
    model = ols(f"{response} ~ {' + '.join(terms)}", data=data).fit()
    logger.debug("Nested ANOVA %s within %s (n=%d)", nested_factor, parent_factor, len(data))
    return _tidy_anova(_anova_table(model, typ=typ))


def eta_squared(table: pd.DataFrame) -> pd.DataFrame:
    """Add eta-squared and partial eta-squared columns to an ANOVA table."""
    out = table.copy()
    is_resid = out["term"].astype(str).str.lower() == "residual"
    ss_resid = out.loc[is_resid, "sum_sq"].sum()
    ss_total = out["sum_sq"].sum()
    out["eta_sq"] = np.where(is_resid, np.nan, out["sum_sq"] / ss_total)
    out["partial_eta_sq"] = np.where(is_resid, np.nan, out["sum_sq"] / (out["sum_sq"] + ss_resid))
    return out
