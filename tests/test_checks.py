from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from sbs_pipeline.checks import check_clean_sources, check_gold_tables, check_panel
from sbs_pipeline.errors import DataQualityWarning, PipelineError


def _monthly(values: list[float], col: str) -> pd.DataFrame:
    return pd.DataFrame({
        "firm_id": "F1",
        "month": pd.date_range("2023-01-01", periods=len(values), freq="MS"),
        col: values,
    })


def _panel(productivity: list[float], employees: list[float]) -> pd.DataFrame:
    n = len(productivity)
    return pd.DataFrame({
        "firm_id": "F1",
        "month": pd.date_range("2023-01-01", periods=n, freq="MS"),
        "employees_monthly": employees,
        "turnover_monthly": [p * e for p, e in zip(productivity, employees)],
        "productivity": productivity,
        "turnover_yoy": [np.nan] * n,
    })


def test_clean_check_reports_correlation() -> None:
    report = check_clean_sources(_monthly([1.0, 2.0, 3.0], "employees"), _monthly([10.0, 20.0, 30.0], "turnover"))
    assert report.ok
    assert report.metrics["employees_turnover_corr"] == pytest.approx(1.0)


def test_clean_check_flags_employment_below_one() -> None:
    with pytest.warns(DataQualityWarning, match="Employment < 1"):
        report = check_clean_sources(_monthly([0.0, 2.0], "employees"), _monthly([1.0, 2.0], "turnover"))
    assert report.flags["employees_below_one"] == 1


def test_panel_check_flags_implausible_productivity() -> None:
    panel = _panel([5.0, 2e7, np.nan], [1.0, 1.0, 1.0])
    with pytest.warns(DataQualityWarning, match="Implausible productivity"):
        report = check_panel(panel)
    assert report.flags["implausible_productivity"] == 1


def test_panel_check_strict_mode_raises() -> None:
    panel = _panel([5.0, 1.0], [0.0, 1.0])
    with pytest.raises(PipelineError):
        check_panel(panel, strict=True)


def test_gold_check_detects_coverage_gap() -> None:
    table = pd.DataFrame({
        "year": [2023], "n_obs": [3], "n_firms": [1],
        "total_turnover": [10.0], "total_employees": [3.0],
    })
    assert check_gold_tables({"year": table}, panel_rows=3).ok
    with pytest.warns(DataQualityWarning, match="cover 3 rows"):
        report = check_gold_tables({"year": table}, panel_rows=4)
    assert report.flags["year_row_coverage_gap"] == 1
