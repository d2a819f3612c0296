"""Firm-partitioned fan-out over Dask.

Per-firm transforms (interpolation, lagged indicators) only need the rows
of a single firm. `map_firms` splits a pandas frame into Dask partitions
on `firm_id` so that no firm spans two partitions, applies a pandas
function to each partition, and concatenates the results in
`(firm_id, month)` order.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, cast

import pandas as pd
import dask
import dask.dataframe as dd

log = logging.getLogger(__name__)

SERIES_KEYS = ["firm_id", "month"]

# Keep pandas dtypes for string columns instead of converting to pyarrow.
DASK_CONFIG = {"dataframe.convert-string": False}


def partition_by_firm(pdf: pd.DataFrame, npartitions: int) -> Any:
    """Return a Dask DataFrame indexed by `firm_id` with firm-aligned divisions.

    `from_pandas(..., sort=True)` places equal index values in the same
    partition, so every firm's rows end up together.

    Args:
        pdf: Pandas frame with `firm_id` and `month` columns.
        npartitions: Requested number of partitions (upper bound).
    """
    ordered = pdf.sort_values(SERIES_KEYS, kind="mergesort").set_index("firm_id")
    dd_mod = cast(Any, dd)
    return dd_mod.from_pandas(ordered, npartitions=max(1, npartitions), sort=True)


def _run_partition(
    part: pd.DataFrame,
    func: Callable[[pd.DataFrame], pd.DataFrame],
    columns: list[str],
) -> pd.DataFrame:
    """Restore `firm_id` as a column in its original position and apply `func`."""
    return func(part.reset_index()[columns])


def map_firms(
    pdf: pd.DataFrame,
    func: Callable[[pd.DataFrame], pd.DataFrame],
    npartitions: int = 4,
) -> pd.DataFrame:
    """Apply a per-firm pandas transform in parallel over firm partitions.

    Args:
        pdf: Input frame; must contain `firm_id` and `month`.
        func: Pure function of a frame holding complete firms. It must accept
            an empty frame (used to derive the Dask metadata).
        npartitions: Number of partitions to fan out over.

    Returns:
        Concatenated pandas result sorted by `(firm_id, month)` with a fresh
        RangeIndex.
    """
    columns = list(pdf.columns)
    meta = func(pdf.iloc[:0].copy())

    if pdf.empty:
        return meta.reset_index(drop=True)

    with dask.config.set(DASK_CONFIG):
        ddf = partition_by_firm(pdf, npartitions)
        log.debug("Fan-out over %d firm partitions", ddf.npartitions)
        out = ddf.map_partitions(_run_partition, func, columns, meta=meta).compute()

    return out.sort_values(SERIES_KEYS, kind="mergesort").reset_index(drop=True)
