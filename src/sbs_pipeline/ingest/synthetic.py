"""Synthetic raw sources for demo runs.

Produces a firm registry and monthly employment/turnover tables resembling
structural and short-term business statistics inputs, with a small share of
deliberate reporting defects (missing values, negative revenue) so the Clean
layer has something to correct. Nothing in the pipeline core depends on this
module.
"""
from __future__ import annotations

import logging

import numpy as np
import pandas as pd

log = logging.getLogger(__name__)

REGIONS = [f"R{i:02d}" for i in range(1, 11)]
SECTORS = ["G47", "C10", "C29", "H49", "I55", "I56"]
LEGAL_FORMS = ["AG", "GmbH", "KG", "OHG", "Einzelunternehmen"]


def _with_missing(values: np.ndarray, rng: np.random.Generator, share: float) -> np.ndarray:
    out = values.astype(float)
    out[rng.random(len(out)) < share] = np.nan
    return out


def generate_synthetic_sources(
    n_firms: int = 1500,
    start: str = "2023-01-01",
    n_months: int = 24,
    seed: int = 2025,
) -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    """Generate raw `(firms, employment, turnover)` tables.

    Args:
        n_firms: Number of firms in the registry.
        start: First reference month.
        n_months: Number of consecutive months per firm.
        seed: Seed for the NumPy generator.

    Returns:
        Tuple of pandas DataFrames in the raw source schema.
    """
    rng = np.random.default_rng(seed)

    firms = pd.DataFrame({
        "firm_id": [f"F{i:05d}" for i in range(1, n_firms + 1)],
        "region_code": rng.choice(REGIONS, n_firms),
        "nace_code": rng.choice(SECTORS, n_firms),
        "legal_form": rng.choice(LEGAL_FORMS, n_firms),
        "employees": rng.poisson(25, n_firms) + 1,
        "foundation_year": rng.integers(1965, 2023, n_firms),
        "revenue_last_year": np.round(rng.lognormal(12, 1, n_firms), 2),
    })

    # reporting defects
    firms["employees"] = _with_missing(firms["employees"].to_numpy(), rng, 0.02)
    flip = rng.random(n_firms) < 0.02
    firms.loc[flip, "revenue_last_year"] = -firms.loc[flip, "revenue_last_year"]

    months = pd.date_range(start, periods=n_months, freq="MS")
    grid = pd.MultiIndex.from_product(
        [firms["firm_id"], months], names=["firm_id", "month"]
    ).to_frame(index=False)
    grid = grid.merge(firms[["firm_id", "nace_code", "region_code"]], on="firm_id", how="left")

    n_rows = len(grid)
    employment = grid.assign(
        employees=_with_missing(np.maximum(1, rng.poisson(20, n_rows)), rng, 0.01)
    )
    turnover = grid.assign(
        turnover=_with_missing(np.round(rng.lognormal(10.5, 0.8, n_rows), 2), rng, 0.01)
    )

    log.info(
        "Generated %d firms x %d months (%d monthly rows)", n_firms, n_months, n_rows
    )
    return firms, employment, turnover
