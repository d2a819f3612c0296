from __future__ import annotations

import pandas as pd
import pytest

from sbs_pipeline.errors import DataQualityWarning, PipelineError
from sbs_pipeline.ingest.harmonize import harmonize_monthly, harmonize_registry, normalize_columns


def test_normalize_columns_maps_aliases_to_canonical_names() -> None:
    pdf = pd.DataFrame(columns=["Firm ID", "NACE_Code", "Region", "revenueLastYear"])
    out = normalize_columns(pdf)
    assert list(out.columns) == ["firm_id", "sector_code", "region_code", "revenue_last_year"]


def test_harmonize_monthly_normalizes_keys_and_truncates_month() -> None:
    pdf = pd.DataFrame([
        {"firm_id": " f00001 ", "month": "2023-03-17", "Employees": "12", "nace_code": "g47 "},
    ])
    out = harmonize_monthly(pdf, "employees")
    assert out.loc[0, "firm_id"] == "F00001"
    assert out.loc[0, "sector_code"] == "G47"
    assert out.loc[0, "month"] == pd.Timestamp("2023-03-01")
    assert out.loc[0, "employees"] == 12.0


def test_harmonize_monthly_drops_unparseable_months() -> None:
    pdf = pd.DataFrame({
        "firm_id": ["F1", "F1"],
        "month": ["2023-01-01", "not a date"],
        "turnover": [1.0, 2.0],
    })
    with pytest.warns(DataQualityWarning, match="unparseable month"):
        out = harmonize_monthly(pdf, "turnover")
    assert len(out) == 1


def test_harmonize_monthly_drops_blank_firm_ids() -> None:
    pdf = pd.DataFrame({
        "firm_id": ["F1", "  ", None],
        "month": ["2023-01-01", "2023-01-01", "2023-02-01"],
        "employees": [3.0, 4.0, 5.0],
    })
    with pytest.warns(DataQualityWarning, match="missing firm_id"):
        out = harmonize_monthly(pdf, "employees")
    assert out["firm_id"].tolist() == ["F1"]
    assert out["employees"].tolist() == [3.0]


def test_blank_firm_id_raises_in_strict_mode() -> None:
    pdf = pd.DataFrame({"firm_id": [""], "month": ["2023-01-01"], "turnover": [1.0]})
    with pytest.raises(PipelineError):
        harmonize_monthly(pdf, "turnover", strict=True)


def test_harmonize_monthly_requires_value_column() -> None:
    pdf = pd.DataFrame({"firm_id": ["F1"], "month": ["2023-01-01"]})
    with pytest.raises(KeyError):
        harmonize_monthly(pdf, "turnover")


def test_harmonize_registry_coerces_numeric_fields() -> None:
    pdf = pd.DataFrame([{
        "firm_id": "F1", "region_code": "r01", "nace_code": "C10", "legal_form": "AG",
        "employees": "n/a", "foundation_year": "1999", "revenue_last_year": "10.5",
    }])
    out = harmonize_registry(pdf)
    assert pd.isna(out.loc[0, "employees"])
    assert out.loc[0, "foundation_year"] == 1999
    assert out.loc[0, "region_code"] == "R01"
