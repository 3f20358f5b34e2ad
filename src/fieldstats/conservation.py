"""
Complementarity-based reserve site selection.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def simulate_species_matrix(
    n_species: int = 30,
    n_sites: int = 10,
    occupancy: float = 0.2,
    seed: Optional[int] = 42,
) -> pd.DataFrame:
    """
    Random presence/absence matrix with species as rows and sites as columns.

    Every species occurs in at least one site.
    """
    if not 0 < occupancy <= 1:
        raise ValueError(f"occupancy must be in (0, 1], got {occupancy}")
    rng = np.random.default_rng(seed)
    matrix = (rng.random((n_species, n_sites)) < occupancy).astype(int)
    absent = matrix.sum(axis=1) == 0
    matrix[absent, rng.integers(0, n_sites, size=int(absent.sum()))] = 1
    return pd.DataFrame(
        matrix,
        index=[f"sp{i + 1:02d}" for i in range(n_species)],
        columns=[f"site{j + 1:02d}" for j in range(n_sites)],
    )


def species_richness(matrix: pd.DataFrame) -> pd.Series:
    """Number of species present in each site."""
    return (matrix > 0).sum(axis=0).rename("richness")


def select_sites(
    matrix: pd.DataFrame,
    target: Optional[int] = None,
    max_sites: Optional[int] = None,
) -> pd.DataFrame:
    """
    Greedy complementarity selection of sites.

    At each step the site adding the most species not yet represented is
    chosen (ties go to the earlier column). Selection stops once every
    species occurring in the matrix is covered, `target` species are
    covered, `max_sites` sites are chosen, or no site adds anything new.

    Parameters
    ----------
    matrix : pd.DataFrame
        Species x site presence/absence (non-zero means present).
    target : Optional[int]
        Number of species to represent.
    max_sites : Optional[int]
        Maximum number of sites to select.

    Returns
    -------
    pd.DataFrame
        step, site, new_species, cumulative_species, cumulative_fraction
    """
    presence = matrix.to_numpy() > 0
    occurring = presence.any(axis=1)
    n_total = int(occurring.sum())
    goal = n_total if target is None else min(target, n_total)
    limit = presence.shape[1] if max_sites is None else max_sites

    covered = np.zeros(presence.shape[0], dtype=bool)
    available = np.ones(presence.shape[1], dtype=bool)
    rows = []
    while covered.sum() < goal and len(rows) < limit:
        gains = (presence & ~covered[:, None]).sum(axis=0)
        gains[~available] = -1
        best = int(np.argmax(gains))
        if gains[best] <= 0:
            break
        covered |= presence[:, best]
        available[best] = False
        rows.append({
            "step": len(rows) + 1,
            "site": matrix.columns[best],
            "new_species": int(gains[best]),
            "cumulative_species": int(covered.sum()),
            "cumulative_fraction": covered.sum() / n_total,
        })

    logger.debug("Selected %d site(s) covering %d/%d species", len(rows), int(covered.sum()), n_total)
    return pd.DataFrame(
        rows,
        columns=["step", "site", "new_species", "cumulative_species", "cumulative_fraction"],
    )
