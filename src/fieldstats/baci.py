"""
Before-After-Control-Impact (BACI) analysis.

The BACI contrast is the interaction of period and treatment:

    (impact_after - impact_before) - (control_after - control_before)

A non-zero contrast means the impact sites changed differently from the
control sites across the intervention.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import pandas as pd
from statsmodels.formula.api import ols

from .constants import DEFAULT_CONF_LEVEL
from .data_loader import require_columns

logger = logging.getLogger(__name__)


@dataclass
class BaciResult:
    cell_means: pd.DataFrame
    contrast: pd.DataFrame
    model: object


def baci_analysis(
    df: pd.DataFrame,
    response: str,
    period: str,
    treatment: str,
    before="Before",
    after="After",
    control="Control",
    impact="Impact",
    block: Optional[str] = None,
    conf_level: float = DEFAULT_CONF_LEVEL,
) -> BaciResult:
    """
    Fit response ~ period * treatment (+ block) and report the BACI contrast.

    Parameters
    ----------
    df : pd.DataFrame
        Input data.
    response : str
        Numeric response column.
    period, treatment : str
        Columns holding the before/after and control/impact labels.
    before, after, control, impact
        Level labels within those columns.
    block : Optional[str]
        Optional site or block column added as a main effect.

    Returns
    -------
    BaciResult
        `cell_means` (period x treatment mean, sd, n), `contrast` (one row:
        estimate, std_error, statistic, p_value, conf_low, conf_high) and
        the fitted OLS model.

    Raises
    ------
    ValueError
        If any of the four period/treatment cells is empty.
    """
    require_columns(df, [response, period, treatment] + ([block] if block else []))
    data = df[[response, period, treatment] + ([block] if block else [])].copy()
    data[response] = pd.to_numeric(data[response], errors="coerce")
    data = data[data[period].isin([before, after]) & data[treatment].isin([control, impact])].dropna()

    cells = data.groupby([period, treatment])[response].agg(["mean", "std", "count"])
    for p in (before, after):
        for t in (control, impact):
            if (p, t) not in cells.index:
                raise ValueError(f"BACI cell ({p}, {t}) has no observations")

    # 0/1 indicators make the interaction coefficient the BACI contrast
    data["_after"] = (data[period] == after).astype(int)
    data["_impact"] = (data[treatment] == impact).astype(int)
    rhs = "_after * _impact"
    if block:
        rhs += f" + C({block})"
    fit = ols(f"{response} ~ {rhs}", data=data).fit()

    term = "_after:_impact"
    ci = fit.conf_int(alpha=1 - conf_level).loc[term]
    contrast = pd.DataFrame([{
        "term": "BACI (period x treatment)",
        "estimate": fit.params[term],
        "std_error": fit.bse[term],
        "statistic": fit.tvalues[term],
        "p_value": fit.pvalues[term],
        "conf_low": ci.iloc[0],
        "conf_high": ci.iloc[1],
    }])
    logger.debug("BACI contrast %.3f (p=%.4g)", fit.params[term], fit.pvalues[term])

    cell_means = cells.rename(columns={"std": "sd", "count": "n"}).reset_index()
    return BaciResult(cell_means=cell_means, contrast=contrast, model=fit)
