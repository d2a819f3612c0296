from __future__ import annotations

import numpy as np
import pandas as pd

from sbs_pipeline.integrate.panel import build_panel


def _months(n: int) -> pd.DatetimeIndex:
    return pd.date_range("2023-01-01", periods=n, freq="MS")


def _inputs() -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    employment = pd.DataFrame({
        "firm_id": ["F1"] * 3 + ["F2"] * 3,
        "month": list(_months(3)) * 2,
        "employees": [10.0, 11.0, 12.0, 5.0, 5.0, 6.0],
        "sector_code": ["XXX"] * 3 + ["H49"] * 3,
        "region_code": ["R09"] * 3 + ["R03"] * 3,
    })
    # F1 March missing; F3 only exists in turnover
    turnover = pd.DataFrame({
        "firm_id": ["F1", "F1", "F2", "F2", "F2", "F3"],
        "month": list(_months(2)) + list(_months(3)) + [_months(1)[0]],
        "turnover": [100.0, 110.0, 50.0, 55.0, 60.0, 999.0],
        "sector_code": "ZZZ",
        "region_code": "R99",
    })
    firms = pd.DataFrame([
        {"firm_id": "F1", "region_code": "R01", "sector_code": "G47", "legal_form": "AG",
         "employees": 11.0, "foundation_year": 1990, "revenue_last_year": 1000.0},
        {"firm_id": "F4", "region_code": "R02", "sector_code": "C10", "legal_form": "KG",
         "employees": 3.0, "foundation_year": 2000, "revenue_last_year": 10.0},
    ])
    return employment, turnover, firms


def test_panel_rows_match_employment_anchor() -> None:
    employment, turnover, firms = _inputs()
    panel = build_panel(employment, turnover, firms)
    assert len(panel) == len(employment)
    assert not panel.duplicated(subset=["firm_id", "month"]).any()
    assert "F3" not in set(panel["firm_id"])


def test_missing_turnover_is_left_null() -> None:
    employment, turnover, firms = _inputs()
    panel = build_panel(employment, turnover, firms)
    march = panel[(panel["firm_id"] == "F1") & (panel["month"] == pd.Timestamp("2023-03-01"))]
    assert np.isnan(march["turnover_monthly"].iloc[0])


def test_columns_are_renamed_before_merge() -> None:
    employment, turnover, firms = _inputs()
    panel = build_panel(employment, turnover, firms)
    assert {"employees_monthly", "turnover_monthly", "employees_firm"} <= set(panel.columns)
    assert not [c for c in panel.columns if c.endswith(("_x", "_y", "_source"))]
    assert "employees" not in panel.columns and "turnover" not in panel.columns


def test_registry_attributes_take_precedence() -> None:
    employment, turnover, firms = _inputs()
    panel = build_panel(employment, turnover, firms).set_index(["firm_id", "month"])
    first = pd.Timestamp("2023-01-01")
    assert panel.loc[("F1", first), "sector_code"] == "G47"
    assert panel.loc[("F1", first), "region_code"] == "R01"
    assert panel.loc[("F1", first), "employees_firm"] == 11.0
    # F2 is not in the registry: employment's classification is the fallback
    assert panel.loc[("F2", first), "sector_code"] == "H49"
    assert pd.isna(panel.loc[("F2", first), "legal_form"])


def test_panel_is_sorted_by_firm_and_month() -> None:
    employment, turnover, firms = _inputs()
    panel = build_panel(employment.iloc[::-1], turnover, firms)
    expected = panel.sort_values(["firm_id", "month"]).reset_index(drop=True)
    pd.testing.assert_frame_equal(panel, expected)
