"""Consistency checks run after cleaning, integration and aggregation.

These checks are diagnostic: findings are logged as data-quality warnings
(or raised when strict mode is requested), and informational statistics
such as the employment/turnover correlation are only reported. Each check
returns a `ConsistencyReport` so callers can inspect the numbers directly.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

import numpy as np
import pandas as pd

from sbs_pipeline.errors import DataQualityWarning, preview, signal

log = logging.getLogger(__name__)

MIN_EMPLOYEES = 1
DEFAULT_PRODUCTIVITY_MAX = 1e7


@dataclass
class ConsistencyReport:
    """Result of one checkpoint.

    Attributes:
        stage: "clean", "panel" or "gold".
        flags: Finding name -> number of offending rows.
        metrics: Informational statistics (e.g. correlation).
    """
    stage: str
    flags: dict[str, int] = field(default_factory=dict)
    metrics: dict[str, float] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not any(self.flags.values())


def _correlation(x: pd.Series, y: pd.Series) -> float:
    """Pearson correlation over pairs where both values are present."""
    paired = pd.concat([x, y], axis=1).dropna()
    if len(paired) < 2:
        return float("nan")
    return float(paired.iloc[:, 0].corr(paired.iloc[:, 1]))


def _report_correlation(report: ConsistencyReport, x: pd.Series, y: pd.Series) -> None:
    corr = _correlation(x, y)
    report.metrics["employees_turnover_corr"] = corr
    if np.isnan(corr):
        log.info("Correlation employees-turnover undefined (too few pairs or no variance)")
    else:
        log.info("Correlation employees-turnover: %.3f", corr)


def check_clean_sources(
    employment: pd.DataFrame,
    turnover: pd.DataFrame,
    strict: bool = False,
) -> ConsistencyReport:
    """Checks after cleaning: employment below one person, employment/turnover correlation."""
    report = ConsistencyReport(stage="clean")

    low = employment["employees"] < MIN_EMPLOYEES
    report.flags["employees_below_one"] = int(low.sum())
    if low.any():
        firms = sorted(employment.loc[low, "firm_id"].astype(str).unique())
        signal(
            f"Employment < {MIN_EMPLOYEES} detected after cleaning in {int(low.sum())} row(s), "
            f"firms: {preview(firms)}",
            DataQualityWarning,
            strict,
        )

    joined = employment[["firm_id", "month", "employees"]].merge(
        turnover[["firm_id", "month", "turnover"]], on=["firm_id", "month"], how="left"
    )
    _report_correlation(report, joined["employees"], joined["turnover"])
    return report


def check_panel(
    panel: pd.DataFrame,
    productivity_max: float = DEFAULT_PRODUCTIVITY_MAX,
    strict: bool = False,
) -> ConsistencyReport:
    """Checks after integration and indicator derivation.

    Flags productivity outside [0, productivity_max] and non-positive monthly
    employment; reports a summary of YoY turnover growth and the
    employment/turnover correlation.
    """
    report = ConsistencyReport(stage="panel")

    productivity = panel["productivity"]
    implausible = (productivity < 0) | (productivity > productivity_max)
    report.flags["implausible_productivity"] = int(implausible.sum())
    if implausible.any():
        signal(
            f"Implausible productivity values detected: {int(implausible.sum())} "
            f"outside [0, {productivity_max:g}]",
            DataQualityWarning,
            strict,
        )

    non_positive = panel["employees_monthly"] <= 0
    report.flags["non_positive_employees"] = int(non_positive.sum())
    if non_positive.any():
        signal(
            f"Non-positive monthly employment values detected: {int(non_positive.sum())}",
            DataQualityWarning,
            strict,
        )

    yoy = panel["turnover_yoy"]
    if yoy.notna().any():
        q = yoy.quantile([0.0, 0.25, 0.5, 0.75, 1.0])
        report.metrics.update({
            "yoy_min": float(q.iloc[0]),
            "yoy_median": float(q.iloc[2]),
            "yoy_mean": float(yoy.mean()),
            "yoy_max": float(q.iloc[4]),
        })
        log.info(
            "YoY turnover growth: min=%.3f q1=%.3f median=%.3f mean=%.3f q3=%.3f max=%.3f missing=%d",
            q.iloc[0], q.iloc[1], q.iloc[2], yoy.mean(), q.iloc[3], q.iloc[4],
            int(yoy.isna().sum()),
        )
    else:
        log.info("YoY turnover growth undefined for all %d rows", len(panel))

    _report_correlation(report, panel["employees_monthly"], panel["turnover_monthly"])
    return report


def check_gold_tables(
    tables: Mapping[str, pd.DataFrame],
    panel_rows: int,
    strict: bool = False,
) -> ConsistencyReport:
    """Checks after aggregation.

    Per table: n_firms never exceeds n_obs and totals are non-negative.
    Every level partitions the panel, so each table's n_obs sums to the
    panel row count.
    """
    report = ConsistencyReport(stage="gold")

    for name, table in tables.items():
        if table.empty:
            continue

        bad_counts = int((table["n_firms"] > table["n_obs"]).sum())
        negative = int(((table["total_turnover"] < 0) | (table["total_employees"] < 0)).sum())
        covered = int(table["n_obs"].sum())

        report.flags[f"{name}_firms_exceed_obs"] = bad_counts
        report.flags[f"{name}_negative_totals"] = negative
        report.flags[f"{name}_row_coverage_gap"] = abs(panel_rows - covered)

        if bad_counts:
            signal(f"{name}: {bad_counts} group(s) with n_firms > n_obs", DataQualityWarning, strict)
        if negative:
            signal(f"{name}: {negative} group(s) with negative totals", DataQualityWarning, strict)
        if covered != panel_rows:
            signal(
                f"{name}: groups cover {covered} rows but the panel has {panel_rows}",
                DataQualityWarning,
                strict,
            )

    if report.ok:
        log.info("Gold consistency checks passed for %d table(s)", len(tables))
    return report
