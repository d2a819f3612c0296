"""Column-name and key harmonization for raw source tables.

Every source is normalized to the same canonical column names and key
formats before any cleaning or integration logic runs:

- column names become lower snake_case and known aliases are mapped
  (e.g. `nace_code` → `sector_code`)
- `firm_id`, `sector_code` and `region_code` are trimmed and upper-cased
- `month` is truncated to the calendar-month start
"""
from __future__ import annotations

import logging
import re

import pandas as pd

from sbs_pipeline.errors import DataQualityWarning, signal

log = logging.getLogger(__name__)

COLUMN_ALIASES = {
    "nace_code": "sector_code",
    "nace": "sector_code",
    "industry_code": "sector_code",
    "sector": "sector_code",
    "region": "region_code",
    "firm": "firm_id",
    "firmid": "firm_id",
}

CODE_COLUMNS = ("firm_id", "sector_code", "region_code")

REGISTRY_NUMERIC = ("employees", "foundation_year", "revenue_last_year")


def _snake_case(name: str) -> str:
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", str(name).strip())
    name = re.sub(r"[^0-9a-zA-Z]+", "_", name).strip("_")
    return name.lower()


def normalize_columns(pdf: pd.DataFrame) -> pd.DataFrame:
    """Return a copy with snake_case column names and canonical aliases."""
    renamed = {}
    for col in pdf.columns:
        snake = _snake_case(col)
        renamed[col] = COLUMN_ALIASES.get(snake, snake)
    return pdf.rename(columns=renamed)


def harmonize_keys(pdf: pd.DataFrame, strict: bool = False) -> pd.DataFrame:
    """Normalize code columns and truncate `month` to the month start.

    Rows without a `firm_id` and rows whose `month` cannot be parsed are
    dropped and reported as data-quality findings.

    Args:
        pdf: Frame with canonical column names.
        strict: Raise instead of warn when rows are dropped.
    """
    pdf = pdf.copy()

    for col in CODE_COLUMNS:
        if col in pdf.columns:
            codes = pdf[col].astype("string").str.strip().str.upper().replace("", pd.NA)
            pdf[col] = codes.astype(object).where(codes.notna(), None)

    if "firm_id" in pdf.columns:
        missing = pdf["firm_id"].isna()
        if missing.any():
            signal(
                f"Dropping {int(missing.sum())} row(s) with missing firm_id",
                DataQualityWarning,
                strict,
            )
            pdf = pdf.loc[~missing]

    if "month" in pdf.columns:
        months = pd.to_datetime(pdf["month"], errors="coerce")
        bad = months.isna()
        if bad.any():
            signal(
                f"Dropping {int(bad.sum())} row(s) with unparseable month",
                DataQualityWarning,
                strict,
            )
            pdf = pdf.loc[~bad]
            months = months.loc[~bad]
        pdf["month"] = months.dt.to_period("M").dt.to_timestamp()

    return pdf.reset_index(drop=True)


def harmonize_registry(pdf: pd.DataFrame, strict: bool = False) -> pd.DataFrame:
    """Harmonize the firm registry table."""
    pdf = harmonize_keys(normalize_columns(pdf), strict=strict)
    for col in REGISTRY_NUMERIC:
        if col in pdf.columns:
            pdf[col] = pd.to_numeric(pdf[col], errors="coerce")
    return pdf


def harmonize_monthly(
    pdf: pd.DataFrame,
    value_col: str,
    strict: bool = False,
) -> pd.DataFrame:
    """Harmonize a monthly source table carrying `value_col`.

    Raises:
        KeyError: if the table lacks `firm_id`, `month` or `value_col`.
    """
    pdf = normalize_columns(pdf)
    missing = [c for c in ("firm_id", "month", value_col) if c not in pdf.columns]
    if missing:
        raise KeyError(f"Monthly table is missing required column(s): {missing}")

    pdf = harmonize_keys(pdf, strict=strict)
    pdf[value_col] = pd.to_numeric(pdf[value_col], errors="coerce").astype(float)
    log.debug("Harmonized %d %s rows", len(pdf), value_col)
    return pdf
