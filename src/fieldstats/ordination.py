"""
Ordination: PCA on measured variables and PCoA on community dissimilarities.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from .constants import (
    MIN_SAMPLES_FOR_PCA,
    MIN_VARS_FOR_PCA,
    PCA_RATIO_THRESHOLD,
    PCA_SKEW_THRESHOLD,
)

logger = logging.getLogger(__name__)


@dataclass
class OrdinationResult:
    """
    Sample scores, variable loadings (PCA only) and explained variance.

    `scores` is indexed like the input rows, with columns Dim1, Dim2, ...
    `explained` has one row per axis with the variance share in percent.
    """

    scores: pd.DataFrame
    explained: pd.DataFrame
    loadings: Optional[pd.DataFrame] = None
    transforms: Optional[pd.DataFrame] = None
    method: str = "pca"


def _is_long_tailed(ser: pd.Series) -> tuple[bool, float, float]:
    q50 = float(ser.quantile(0.5))
    q95 = float(ser.quantile(0.95))
    skew = float(ser.skew())
    ratio = q95 / q50 if q50 != 0 else np.nan
    long_tail = bool(abs(skew) >= PCA_SKEW_THRESHOLD and q50 != 0 and ratio >= PCA_RATIO_THRESHOLD)
    return long_tail, skew, ratio


def _axis_names(k: int) -> list[str]:
    return [f"Dim{i + 1}" for i in range(k)]


def pca(
    df: pd.DataFrame,
    columns: list[str],
    scale: bool = True,
    log_long_tail: bool = True,
) -> OrdinationResult:
    """
    Principal component analysis via SVD.

    Long-tailed, strictly positive variables are log10-transformed first
    when `log_long_tail` is set. Constant columns are dropped.

    Parameters
    ----------
    df : pd.DataFrame
        Input data.
    columns : list[str]
        Numeric columns to ordinate.
    scale : bool, default=True
        Standardize variables (correlation PCA) rather than only centre.
    log_long_tail : bool, default=True
        Apply the automatic log10 transform.

    Returns
    -------
    OrdinationResult

    Raises
    ------
    ValueError
        With fewer than 2 usable columns or 3 complete observations.
    """
    use_cols = [c for c in columns if c in df.columns]
    if len(use_cols) < MIN_VARS_FOR_PCA:
        raise ValueError("PCA requires at least 2 numeric columns.")

    x = df[use_cols].apply(pd.to_numeric, errors="coerce").dropna()
    if len(x) < MIN_SAMPLES_FOR_PCA:
        raise ValueError("PCA requires at least 3 complete observations.")

    transform_rows = []
    for col in x.columns:
        ser = x[col].astype(float)
        long_tail, skew, ratio = _is_long_tailed(ser)
        transform, note = "none", ""
        if long_tail and log_long_tail:
            if (ser > 0).all():
                x[col] = np.log10(ser)
                transform, note = "log10", "long-tail detected"
            else:
                note = "long-tail detected but non-positive values; skip log10"
        transform_rows.append({
            "variable": col, "skewness": skew, "q95_q50": ratio,
            "transform": transform, "note": note,
        })

    centred = x - x.mean()
    if scale:
        centred = centred / x.std(ddof=0).replace(0, np.nan)
    z = centred.dropna(axis=1)
    dropped = sorted(set(x.columns) - set(z.columns))
    if dropped:
        logger.warning("Constant column(s) dropped from PCA: %s", dropped)
    if z.shape[1] < MIN_VARS_FOR_PCA:
        raise ValueError("Insufficient variables for PCA (possible constant columns).")

    m = z.to_numpy()
    u, s, vt = np.linalg.svd(m, full_matrices=False)
    eigvals = (s ** 2) / (m.shape[0] - 1)
    share = eigvals / eigvals.sum() * 100
    axes = _axis_names(len(s))

    scores = pd.DataFrame(u * s, index=z.index, columns=axes)
    loadings = pd.DataFrame(vt.T * np.sqrt(eigvals), index=z.columns, columns=axes)
    explained = pd.DataFrame({"axis": axes, "eigenvalue": eigvals, "explained_pct": share})
    return OrdinationResult(
        scores=scores,
        explained=explained,
        loadings=loadings,
        transforms=pd.DataFrame(transform_rows),
        method="pca",
    )


def bray_curtis(matrix: pd.DataFrame) -> pd.DataFrame:
    """Bray-Curtis dissimilarity between rows (samples) of an abundance table."""
    values = matrix.apply(pd.to_numeric, errors="coerce").fillna(0).to_numpy(dtype=float)
    if (values < 0).any():
        raise ValueError("Bray-Curtis requires non-negative abundances")
    if (values.sum(axis=1) == 0).any():
        raise ValueError("Bray-Curtis is undefined for empty samples (all-zero rows)")
    dist = squareform(pdist(values, metric="braycurtis"))
    return pd.DataFrame(dist, index=matrix.index, columns=matrix.index)


def pcoa(distance: pd.DataFrame, n_axes: int = 2) -> OrdinationResult:
    """
    Principal coordinates analysis (classical metric scaling).

    Negative eigenvalues from non-Euclidean distances are discarded and
    explained variance is relative to the sum of positive eigenvalues.
    """
    d = distance.to_numpy(dtype=float)
    if d.shape[0] != d.shape[1] or not np.allclose(d, d.T):
        raise ValueError("Distance matrix must be square and symmetric")
    n = d.shape[0]
    if n < MIN_SAMPLES_FOR_PCA:
        raise ValueError("PCoA requires at least 3 samples.")

    centring = np.eye(n) - np.ones((n, n)) / n
    b = -0.5 * centring @ (d ** 2) @ centring
    eigvals, eigvecs = np.linalg.eigh(b)
    order = np.argsort(eigvals)[::-1]
    eigvals, eigvecs = eigvals[order], eigvecs[:, order]

    positive = eigvals > 1e-10
    k = min(n_axes, int(positive.sum()))
    if k == 0:
        raise ValueError("Distance matrix has no positive eigenvalues")
    axes = _axis_names(k)

    coords = eigvecs[:, :k] * np.sqrt(eigvals[:k])
    share = eigvals[:k] / eigvals[positive].sum() * 100
    return OrdinationResult(
        scores=pd.DataFrame(coords, index=distance.index, columns=axes),
        explained=pd.DataFrame({"axis": axes, "eigenvalue": eigvals[:k], "explained_pct": share}),
        method="pcoa",
    )
