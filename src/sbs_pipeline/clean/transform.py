"""Cleaning and correction rules for the registry and the monthly series.

Registry rules are applied on the whole table (it is small). Monthly series
are interpolated per firm; that work is fanned out over firm partitions
with Dask (`sbs_pipeline.partitioning.map_firms`).

Every rule is a correction, never a deletion: row counts are preserved.
"""
from __future__ import annotations

import logging
from datetime import date
from functools import partial

import numpy as np
import pandas as pd

from sbs_pipeline.errors import DataQualityWarning, preview, signal
from sbs_pipeline.partitioning import map_firms

log = logging.getLogger(__name__)

MEDIAN_GROUP_KEYS = ["sector_code", "region_code"]
MIN_FOUNDATION_YEAR = 1900


# -----------------------------
# Firm registry
# -----------------------------
def clean_firms(
    firms: pd.DataFrame,
    current_year: int | None = None,
    strict: bool = False,
) -> pd.DataFrame:
    """Apply the registry correction rules.

    - negative `revenue_last_year` is replaced by its absolute value
    - missing `employees` is imputed with the median of the firm's
      (sector_code, region_code) group; stays missing when the group has no
      reported value
    - `foundation_year` outside [1900, current_year] is set to missing

    Args:
        firms: Harmonized registry.
        current_year: Upper bound of the foundation-year window
            (defaults to today's year).
        strict: Raise instead of warn on data-quality findings.

    Returns:
        Corrected copy of the registry.
    """
    pdf = firms.copy()
    year_now = current_year or date.today().year

    revenue = pd.to_numeric(pdf["revenue_last_year"], errors="coerce")
    n_negative = int((revenue < 0).sum())
    pdf["revenue_last_year"] = revenue.abs()
    if n_negative:
        log.info("Corrected %d negative revenue_last_year value(s) to absolute value", n_negative)

    employees = pd.to_numeric(pdf["employees"], errors="coerce").astype(float)
    missing = employees.isna()
    if missing.any():
        # group key -> median lookup, broadcast back by key
        medians = (
            pdf.assign(employees=employees)
            .groupby(MEDIAN_GROUP_KEYS)["employees"]
            .median()
            .rename("_group_median")
        )
        lookup = pdf[MEDIAN_GROUP_KEYS].join(medians, on=MEDIAN_GROUP_KEYS)["_group_median"]
        employees = employees.fillna(lookup)

        unresolved = pdf.loc[employees.isna(), "firm_id"].astype(str).tolist()
        log.info(
            "Imputed %d missing registry employee count(s) with group medians",
            int(missing.sum()) - len(unresolved),
        )
        if unresolved:
            signal(
                f"{len(unresolved)} firm(s) without a sector/region median for employees: "
                f"{preview(unresolved)}",
                DataQualityWarning,
                strict,
            )
    pdf["employees"] = employees

    founded = pd.to_numeric(pdf["foundation_year"], errors="coerce")
    implausible = founded.notna() & ~founded.between(MIN_FOUNDATION_YEAR, year_now)
    if implausible.any():
        log.info(
            "Set %d foundation_year value(s) outside [%d, %d] to missing",
            int(implausible.sum()), MIN_FOUNDATION_YEAR, year_now,
        )
    pdf["foundation_year"] = founded.mask(implausible).round().astype("Int64")

    return pdf


# -----------------------------
# Monthly series
# -----------------------------
def month_axis(months: pd.Series) -> np.ndarray:
    """Return elapsed calendar months since year 0 for each month-start timestamp."""
    return (months.dt.year * 12 + months.dt.month - 1).to_numpy(dtype=float)


def interpolate_firm_series(
    pdf: pd.DataFrame,
    value_col: str,
    round_values: bool = False,
) -> pd.DataFrame:
    """Fill missing values of each firm's series along the time axis.

    Interior gaps are linearly interpolated against elapsed time between the
    known points; leading and trailing gaps take the nearest known value.
    A firm without any known value is returned unchanged.

    Args:
        pdf: Frame holding complete firms with `firm_id`, `month`, `value_col`.
        value_col: Column to fill.
        round_values: Round filled values (head counts) to whole numbers.

    Returns:
        Copy sorted by (firm_id, month) with `value_col` filled.
    """
    pdf = pdf.sort_values(["firm_id", "month"], kind="mergesort").reset_index(drop=True)
    values = pd.to_numeric(pdf[value_col], errors="coerce").to_numpy(dtype=float, copy=True)
    x = month_axis(pdf["month"])

    for positions in pdf.groupby("firm_id", sort=False).indices.values():
        y = values[positions]
        known = ~np.isnan(y)
        if known.all() or not known.any():
            continue
        xs = x[positions]
        # np.interp holds the boundary values flat outside the known range
        filled = np.interp(xs, xs[known], y[known])
        if round_values:
            filled = np.round(filled)
        values[positions] = np.where(known, y, filled)

    pdf[value_col] = values
    return pdf


def clean_series(
    pdf: pd.DataFrame,
    value_col: str,
    npartitions: int = 4,
    non_negative: bool = False,
    round_values: bool = False,
    strict: bool = False,
) -> pd.DataFrame:
    """Clean one monthly source: implausible-value rule, then per-firm interpolation.

    Args:
        pdf: Harmonized monthly table.
        value_col: Value column (`employees` or `turnover`).
        npartitions: Dask partitions for the per-firm fan-out.
        non_negative: Treat negative values as missing before interpolating.
        round_values: Round interpolated values to whole numbers.
        strict: Raise instead of warn on data-quality findings.

    Returns:
        Cleaned frame sorted by (firm_id, month).
    """
    pdf = pdf.copy()
    pdf[value_col] = pd.to_numeric(pdf[value_col], errors="coerce").astype(float)

    if non_negative:
        negative = pdf[value_col] < 0
        if negative.any():
            signal(
                f"{int(negative.sum())} negative {value_col} value(s) set to missing before interpolation",
                DataQualityWarning,
                strict,
            )
            pdf[value_col] = pdf[value_col].mask(negative)

    observed = pdf.groupby("firm_id")[value_col].count()
    empty_firms = sorted(observed.index[observed == 0].astype(str))
    if empty_firms:
        signal(
            f"{len(empty_firms)} firm(s) have no {value_col} observations and cannot be "
            f"interpolated: {preview(empty_firms)}",
            DataQualityWarning,
            strict,
        )

    n_missing = int(pdf[value_col].isna().sum())
    out = map_firms(
        pdf,
        partial(interpolate_firm_series, value_col=value_col, round_values=round_values),
        npartitions=npartitions,
    )
    log.info(
        "Interpolated %d missing %s value(s); %d remain missing",
        n_missing - int(out[value_col].isna().sum()),
        value_col,
        int(out[value_col].isna().sum()),
    )
    return out


def clean_employment(employment: pd.DataFrame, npartitions: int = 4, strict: bool = False) -> pd.DataFrame:
    """Employment: non-negative head counts, interpolated and rounded."""
    return clean_series(
        employment,
        "employees",
        npartitions=npartitions,
        non_negative=True,
        round_values=True,
        strict=strict,
    )


def clean_turnover(turnover: pd.DataFrame, npartitions: int = 4, strict: bool = False) -> pd.DataFrame:
    return clean_series(turnover, "turnover", npartitions=npartitions, strict=strict)
