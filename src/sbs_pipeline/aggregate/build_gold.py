"""Gold aggregation functions.

Functions in this module build the indicator summary tables from the
integrated panel. Each grouping level is computed independently from the
panel rows (never derived from another level) as a lazy Dask graph; the
levels are then computed together and assembled in pandas.

Expectations:
- Input: the panel with `firm_id`, `year`, `sector_code`, `region_code`,
  `turnover_monthly`, `employees_monthly`, `productivity`
- Output columns: the grouping keys followed by `n_obs`, `n_firms`,
  `total_turnover`, `avg_turnover_per_firm`, `total_employees`,
  `avg_employees_per_firm`, `mean_productivity`
"""
from __future__ import annotations

import logging
from typing import Any
from typing import cast, Any as TypingAny

import numpy as np
import pandas as pd
import dask
import dask.dataframe as dd

from sbs_pipeline.partitioning import DASK_CONFIG

log = logging.getLogger(__name__)

GOLD_LEVELS: dict[str, list[str]] = {
    "year": ["year"],
    "sector": ["year", "sector_code"],
    "region": ["year", "region_code"],
    "sector_region": ["year", "sector_code", "region_code"],
}

SUMMARY_COLUMNS = [
    "n_obs",
    "n_firms",
    "total_turnover",
    "avg_turnover_per_firm",
    "total_employees",
    "avg_employees_per_firm",
    "mean_productivity",
]

UNKNOWN = "UNKNOWN"


def _prepare(panel: pd.DataFrame, npartitions: int) -> Any:
    """Return a Dask DataFrame of the aggregation inputs.

    Missing classification codes (orphan firms) are grouped under "UNKNOWN"
    so every panel row belongs to exactly one group per level. Non-finite
    productivity is treated as missing.
    """
    cols = ["firm_id", "year", "sector_code", "region_code",
            "turnover_monthly", "employees_monthly", "productivity"]
    pdf = panel[cols].copy()
    for col in ("sector_code", "region_code"):
        pdf[col] = pdf[col].where(pdf[col].notna(), UNKNOWN).astype(str)
    for col in ("turnover_monthly", "employees_monthly", "productivity"):
        pdf[col] = pd.to_numeric(pdf[col], errors="coerce").astype(float)
    pdf["productivity"] = pdf["productivity"].replace([np.inf, -np.inf], np.nan)

    dd_mod = cast(TypingAny, dd)
    return dd_mod.from_pandas(pdf, npartitions=max(1, npartitions))


def _level_graph(ddf: Any, keys: list[str]) -> tuple[Any, ...]:
    """Lazy Dask pieces of one aggregation level."""
    grouped = ddf.groupby(keys)
    n_obs = grouped.size()
    n_firms = ddf[[*keys, "firm_id"]].drop_duplicates().groupby(keys).size()
    sums = grouped[["turnover_monthly", "employees_monthly"]].sum()
    mean_prod = grouped["productivity"].mean()
    return n_obs, n_firms, sums, mean_prod


def _assemble(
    n_obs: pd.Series,
    n_firms: pd.Series,
    sums: pd.DataFrame,
    mean_prod: pd.Series,
    keys: list[str],
) -> pd.DataFrame:
    """Join the computed pieces of one level into the summary table."""
    frame = pd.concat(
        [
            n_obs.rename("n_obs"),
            n_firms.rename("n_firms"),
            sums.rename(columns={
                "turnover_monthly": "total_turnover",
                "employees_monthly": "total_employees",
            }),
            mean_prod.rename("mean_productivity"),
        ],
        axis=1,
    )
    frame = frame.reset_index()
    frame["n_obs"] = frame["n_obs"].astype("int64")
    frame["n_firms"] = frame["n_firms"].astype("int64")
    frame["total_turnover"] = frame["total_turnover"].fillna(0.0)
    frame["total_employees"] = frame["total_employees"].fillna(0.0)
    # n_firms >= 1 for every group that exists
    frame["avg_turnover_per_firm"] = frame["total_turnover"] / frame["n_firms"]
    frame["avg_employees_per_firm"] = frame["total_employees"] / frame["n_firms"]

    return frame[[*keys, *SUMMARY_COLUMNS]].sort_values(keys).reset_index(drop=True)


def _empty_table(keys: list[str]) -> pd.DataFrame:
    return pd.DataFrame(columns=[*keys, *SUMMARY_COLUMNS])


def gold_indicators(panel: pd.DataFrame, keys: list[str], npartitions: int = 4) -> pd.DataFrame:
    """Return the indicator summary for one grouping level.

    Args:
        panel: Panel with indicator columns.
        keys: Grouping columns, e.g. ["year", "sector_code"].
        npartitions: Number of Dask partitions.

    Returns:
        pandas DataFrame with one row per group.
    """
    if panel.empty:
        return _empty_table(keys)

    with dask.config.set(DASK_CONFIG):
        ddf = _prepare(panel, npartitions)
        parts = cast(TypingAny, dask).compute(*_level_graph(ddf, keys))
    return _assemble(*parts, keys=keys)


def gold_indicators_by_year(panel: pd.DataFrame, npartitions: int = 4) -> pd.DataFrame:
    return gold_indicators(panel, GOLD_LEVELS["year"], npartitions)


def gold_indicators_by_sector(panel: pd.DataFrame, npartitions: int = 4) -> pd.DataFrame:
    return gold_indicators(panel, GOLD_LEVELS["sector"], npartitions)


def gold_indicators_by_region(panel: pd.DataFrame, npartitions: int = 4) -> pd.DataFrame:
    return gold_indicators(panel, GOLD_LEVELS["region"], npartitions)


def gold_indicators_by_sector_region(panel: pd.DataFrame, npartitions: int = 4) -> pd.DataFrame:
    return gold_indicators(panel, GOLD_LEVELS["sector_region"], npartitions)


def build_gold_tables(panel: pd.DataFrame, npartitions: int = 4) -> dict[str, pd.DataFrame]:
    """Build every Gold level in one Dask computation.

    The four levels share no intermediate results, so their graphs are
    computed together and can run in parallel.

    Args:
        panel: Panel with indicator columns.
        npartitions: Number of Dask partitions.

    Returns:
        Mapping of level name ("year", "sector", "region", "sector_region")
        to its summary table.
    """
    if panel.empty:
        log.warning("Panel is empty; Gold tables will be empty")
        return {name: _empty_table(keys) for name, keys in GOLD_LEVELS.items()}

    with dask.config.set(DASK_CONFIG):
        ddf = _prepare(panel, npartitions)
        graphs = {name: _level_graph(ddf, keys) for name, keys in GOLD_LEVELS.items()}
        computed = cast(TypingAny, dask).compute(graphs)[0]

    tables = {
        name: _assemble(*computed[name], keys=GOLD_LEVELS[name])
        for name in GOLD_LEVELS
    }
    for name, table in tables.items():
        log.info("Gold table %s: %d group(s)", name, len(table))
    return tables
