"""
Regression models with tidy coefficient and fit-summary tables.

Every fitting function returns a :class:`RegressionResult` holding the
fitted statsmodels results object, a tidy coefficient table (one row per
term) and a one-row model summary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm
import statsmodels.formula.api as smf
from statsmodels.stats.anova import anova_lm

from .constants import DEFAULT_CONF_LEVEL
from .data_loader import require_columns, sorted_levels

logger = logging.getLogger(__name__)


@dataclass
class RegressionResult:
    """Fitted model plus tidy outputs."""

    model: object
    coefficients: pd.DataFrame
    summary: pd.DataFrame
    formula: str
    kind: str
    data: pd.DataFrame = field(repr=False, default=None)


def _as_list(predictors) -> list[str]:
    if isinstance(predictors, str):
        return [predictors]
    return list(predictors)


def _model_frame(df: pd.DataFrame, columns: list[str], numeric: list[str]) -> pd.DataFrame:
    require_columns(df, columns)
    frame = df[columns].copy()
    for col in numeric:
        frame[col] = pd.to_numeric(frame[col], errors="coerce")
    frame = frame.dropna()
    if frame.empty:
        raise ValueError("No complete observations left after dropping missing values")
    return frame


def _rhs(predictors: list[str], df: pd.DataFrame) -> str:
    terms = []
    for p in predictors:
        if pd.api.types.is_numeric_dtype(df[p]):
            terms.append(p)
        else:
            terms.append(f"C({p})")
    return " + ".join(terms) if terms else "1"


def _tidy(fit, conf_level: float) -> pd.DataFrame:
    ci = fit.conf_int(alpha=1 - conf_level)
    return pd.DataFrame({
        "term": fit.params.index,
        "estimate": fit.params.values,
        "std_error": fit.bse.values,
        "statistic": fit.tvalues.values,
        "p_value": fit.pvalues.values,
        "conf_low": ci.iloc[:, 0].values,
        "conf_high": ci.iloc[:, 1].values,
    })


def _ols_summary(fit) -> pd.DataFrame:
    return pd.DataFrame([{
        "n": int(fit.nobs),
        "r_squared": fit.rsquared,
        "adj_r_squared": fit.rsquared_adj,
        "f_statistic": fit.fvalue,
        "f_p_value": fit.f_pvalue,
        "aic": fit.aic,
        "bic": fit.bic,
        "sigma": np.sqrt(fit.scale),
    }])


def linear_regression(
    df: pd.DataFrame,
    response: str,
    predictors,
    conf_level: float = DEFAULT_CONF_LEVEL,
) -> RegressionResult:
    """
    Fit a simple or multiple linear regression by OLS.

    Non-numeric predictors enter the model as categorical terms.

    Parameters
    ----------
    df : pd.DataFrame
        Input data.
    response : str
        Numeric response column.
    predictors : str | list[str]
        Predictor column(s).
    conf_level : float, default=0.95
        Confidence level for coefficient intervals.

    Returns
    -------
    RegressionResult
    """
    predictors = _as_list(predictors)
    if not predictors:
        raise ValueError("At least one predictor is required")
    frame = _model_frame(df, [response] + predictors, [response])
    formula = f"{response} ~ {_rhs(predictors, frame)}"
    fit = smf.ols(formula, data=frame).fit()
    logger.debug("Fitted %s (n=%d, R2=%.3f)", formula, int(fit.nobs), fit.rsquared)
    return RegressionResult(fit, _tidy(fit, conf_level), _ols_summary(fit), formula, "ols", frame)


def _poly_formula(response: str, predictor: str, degree: int) -> str:
    terms = [predictor] + [f"I({predictor} ** {k})" for k in range(2, degree + 1)]
    return f"{response} ~ " + " + ".join(terms)


def polynomial_regression(
    df: pd.DataFrame,
    response: str,
    predictor: str,
    degree: int = 2,
    conf_level: float = DEFAULT_CONF_LEVEL,
) -> RegressionResult:
    """Fit response ~ x + x^2 + ... + x^degree by OLS."""
    if degree < 1:
        raise ValueError(f"degree must be >= 1, got {degree}")
    frame = _model_frame(df, [response, predictor], [response, predictor])
    formula = _poly_formula(response, predictor, degree)
    fit = smf.ols(formula, data=frame).fit()
    return RegressionResult(fit, _tidy(fit, conf_level), _ols_summary(fit), formula, "ols", frame)


def compare_polynomial_degrees(
    df: pd.DataFrame,
    response: str,
    predictor: str,
    max_degree: int = 3,
) -> pd.DataFrame:
    """
    Compare polynomial fits of increasing degree.

    Each row carries AIC, BIC, adjusted R-squared and the nested-model
    F-test of that degree against the previous one.
    """
    if max_degree < 1:
        raise ValueError(f"max_degree must be >= 1, got {max_degree}")
    frame = _model_frame(df, [response, predictor], [response, predictor])

    rows = []
    previous = None
    for degree in range(1, max_degree + 1):
        fit = smf.ols(_poly_formula(response, predictor, degree), data=frame).fit()
        f_stat = p_val = np.nan
        if previous is not None:
            table = anova_lm(previous, fit)
            f_stat = table["F"].iloc[1]
            p_val = table["Pr(>F)"].iloc[1]
        rows.append({
            "degree": degree,
            "aic": fit.aic,
            "bic": fit.bic,
            "adj_r_squared": fit.rsquared_adj,
            "f_vs_previous": f_stat,
            "p_vs_previous": p_val,
        })
        previous = fit
    return pd.DataFrame(rows)


def _binary_response(series: pd.Series, response: str) -> pd.Series:
    levels = sorted_levels(series)
    if len(levels) != 2:
        raise ValueError(
            f"Logistic regression needs a binary response; '{response}' has {len(levels)} level(s)"
        )
    if set(levels) <= {0, 1}:
        return series.astype(float)
    logger.info("Coding %s: %r -> 0, %r -> 1", response, levels[0], levels[1])
    return (series == levels[1]).astype(float)


def logistic_regression(
    df: pd.DataFrame,
    response: str,
    predictors,
    conf_level: float = DEFAULT_CONF_LEVEL,
) -> RegressionResult:
    """
    Binomial GLM with logit link.

    A two-level non-numeric response is coded 0/1 in sorted level order.
    The coefficient table adds odds ratios with their intervals.
    """
    predictors = _as_list(predictors)
    if not predictors:
        raise ValueError("At least one predictor is required")
    require_columns(df, [response] + predictors)
    frame = df[[response] + predictors].dropna().copy()
    frame[response] = _binary_response(frame[response], response)

    formula = f"{response} ~ {_rhs(predictors, frame)}"
    fit = smf.glm(formula, data=frame, family=sm.families.Binomial()).fit()

    coefs = _tidy(fit, conf_level)
    coefs["odds_ratio"] = np.exp(coefs["estimate"])
    coefs["or_conf_low"] = np.exp(coefs["conf_low"])
    coefs["or_conf_high"] = np.exp(coefs["conf_high"])

    summary = pd.DataFrame([{
        "n": int(fit.nobs),
        "null_deviance": fit.null_deviance,
        "residual_deviance": fit.deviance,
        "df_residual": fit.df_resid,
        "aic": fit.aic,
        "pseudo_r_squared": 1 - fit.llf / fit.llnull,
    }])
    return RegressionResult(fit, coefs, summary, formula, "logit", frame)


def mixed_effects_model(
    df: pd.DataFrame,
    response: str,
    fixed,
    group: str,
    random_slope: Optional[str] = None,
    conf_level: float = DEFAULT_CONF_LEVEL,
) -> RegressionResult:
    """
    Linear mixed-effects model with a random intercept per `group`.

    Parameters
    ----------
    df : pd.DataFrame
        Input data.
    response : str
        Numeric response column.
    fixed : str | list[str]
        Fixed-effect predictors.
    group : str
        Column defining the random-effect grouping (e.g. site or plant).
    random_slope : Optional[str]
        Predictor that also gets a random slope per group.

    Returns
    -------
    RegressionResult
        Fixed effects in `coefficients`; variance components and
        log-likelihood in `summary`.
    """
    fixed = _as_list(fixed)
    columns = [response] + fixed + [group]
    if random_slope and random_slope not in columns:
        columns.append(random_slope)
    frame = _model_frame(df, columns, [response])
    if frame[group].nunique() < 2:
        raise ValueError(f"Mixed model needs at least two levels in '{group}'")

    formula = f"{response} ~ {_rhs(fixed, frame)}"
    re_formula = f"~{random_slope}" if random_slope else None
    model = smf.mixedlm(formula, data=frame, groups=frame[group], re_formula=re_formula)
    fit = model.fit(reml=True)

    fe_names = list(fit.fe_params.index)
    ci = fit.conf_int(alpha=1 - conf_level).loc[fe_names]
    coefs = pd.DataFrame({
        "term": fe_names,
        "estimate": fit.fe_params.values,
        "std_error": fit.bse_fe.values,
        "statistic": fit.tvalues.loc[fe_names].values,
        "p_value": fit.pvalues.loc[fe_names].values,
        "conf_low": ci.iloc[:, 0].values,
        "conf_high": ci.iloc[:, 1].values,
    })
    summary = pd.DataFrame([{
        "n": int(fit.nobs),
        "n_groups": int(frame[group].nunique()),
        "group_variance": float(fit.cov_re.iloc[0, 0]),
        "residual_variance": float(fit.scale),
        "log_likelihood": fit.llf,
        "converged": bool(fit.converged),
    }])
    if not fit.converged:
        logger.warning("Mixed model %s did not converge", formula)
    return RegressionResult(fit, coefs, summary, formula, "mixed", frame)


def predict(result: RegressionResult, new_data: pd.DataFrame) -> pd.Series:
    """Predictions (response scale) for new observations."""
    pred = result.model.predict(new_data)
    return pd.Series(np.asarray(pred), index=new_data.index, name="predicted")


def regression_diagnostics(result: RegressionResult) -> pd.DataFrame:
    """Fitted values, residuals, leverage and Cook's distance for an OLS fit."""
    if result.kind != "ols":
        raise ValueError("Diagnostics are only available for OLS fits")
    influence = result.model.get_influence()
    return pd.DataFrame({
        "fitted": result.model.fittedvalues,
        "residual": result.model.resid,
        "std_residual": influence.resid_studentized_internal,
        "leverage": influence.hat_matrix_diag,
        "cooks_distance": influence.cooks_distance[0],
    })
