"""
Simulated teaching datasets.

These mirror the shape and column names of the field datasets used in the
workshop chapters, so every example can run without external files.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd

MANAGEMENT_REGIMES = ("Natural", "Plantation", "Selective_logging")


def simulate_forest_data(n: int = 90, seed: Optional[int] = 1) -> pd.DataFrame:
    """Forest plots with tree density and aboveground carbon by management regime."""
    rng = np.random.default_rng(seed)
    regime = rng.choice(MANAGEMENT_REGIMES, size=n)
    density = rng.normal(650, 180, size=n).clip(80, None)
    offset = pd.Series(regime).map({"Natural": 40.0, "Plantation": 10.0, "Selective_logging": 25.0})
    carbon = 0.12 * density + offset.to_numpy() + rng.normal(0, 12, size=n)
    age = rng.integers(10, 120, size=n)
    return pd.DataFrame({
        "Plot_ID": [f"P{i + 1:03d}" for i in range(n)],
        "Management_regime": regime,
        "Stand_age_years": age,
        "Tree_Density_per_ha": density.round(1),
        "Aboveground_Tree_Carbon_ton_per_ha": carbon.round(2),
        "Aboveground_Tree_Carbon_ton_per_ha_per_year": (carbon / age).round(3),
        "Latitude": rng.uniform(-4.5, -2.5, size=n).round(4),
        "Longitude": rng.uniform(36.0, 38.0, size=n).round(4),
    })


def simulate_co2_uptake(seed: Optional[int] = 2) -> pd.DataFrame:
    """
    Grass CO2 uptake: 12 plants, two origins, two treatments, 7 concentrations.

    Uptake saturates with concentration; chilled plants and the
    Mississippi origin take up less.
    """
    rng = np.random.default_rng(seed)
    concentrations = np.array([95, 175, 250, 350, 500, 675, 1000])
    rows = []
    for origin in ("Quebec", "Mississippi"):
        for treatment in ("nonchilled", "chilled"):
            for k in range(1, 4):
                plant = f"{origin[0]}{treatment[0]}{k}"
                asymptote = 40.0
                if origin == "Mississippi":
                    asymptote -= 12
                if treatment == "chilled":
                    asymptote -= 8
                plant_effect = rng.normal(0, 2)
                for conc in concentrations:
                    uptake = (asymptote + plant_effect) * (1 - np.exp(-0.008 * (conc - 50)))
                    rows.append({
                        "Plant": plant,
                        "Type": origin,
                        "Treatment": treatment,
                        "conc": conc,
                        "uptake": round(float(uptake + rng.normal(0, 1.2)), 2),
                    })
    return pd.DataFrame(rows)


def simulate_baci(
    n_per_cell: int = 12,
    effect: float = -5.0,
    seed: Optional[int] = 3,
) -> pd.DataFrame:
    """Before/after x control/impact survey with a known interaction `effect`."""
    rng = np.random.default_rng(seed)
    rows = []
    for period in ("Before", "After"):
        for treatment in ("Control", "Impact"):
            mean = 20.0 + (2.0 if period == "After" else 0.0) + (1.0 if treatment == "Impact" else 0.0)
            if period == "After" and treatment == "Impact":
                mean += effect
            for i in range(n_per_cell):
                rows.append({
                    "Period": period,
                    "Treatment": treatment,
                    "Site": f"{treatment[0]}{i % 3 + 1}",
                    "Abundance": float(rng.normal(mean, 2.0)),
                })
    return pd.DataFrame(rows)


def simulate_time_series(
    n_years: int = 30,
    slope: float = 0.05,
    start_year: int = 1990,
    seed: Optional[int] = 4,
) -> pd.DataFrame:
    """Annual mean temperature anomaly with a linear trend plus noise."""
    rng = np.random.default_rng(seed)
    years = np.arange(start_year, start_year + n_years)
    values = slope * (years - start_year) + rng.normal(0, 0.15, size=n_years)
    return pd.DataFrame({"Year": years, "Temperature_anomaly": values.round(3)})
