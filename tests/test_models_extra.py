from __future__ import annotations

from datetime import datetime
import pytest
from pydantic import ValidationError
from sbs_pipeline.models import IndicatorSummary, MonthlyObservation, PanelRecord


def _summary(**overrides: object) -> dict[str, object]:
    rec: dict[str, object] = {
        "year": 2023,
        "sector_code": "G47",
        "n_obs": 12,
        "n_firms": 1,
        "total_turnover": 1200.0,
        "avg_turnover_per_firm": 1200.0,
        "total_employees": 120.0,
        "avg_employees_per_firm": 120.0,
        "mean_productivity": None,
    }
    rec.update(overrides)
    return rec


def test_indicator_summary_validates() -> None:
    IndicatorSummary.model_validate(_summary())


def test_indicator_summary_rejects_empty_group() -> None:
    with pytest.raises(ValidationError):
        IndicatorSummary.model_validate(_summary(n_firms=0))


def test_panel_record_rejects_bad_month_number() -> None:
    rec = {
        "firm_id": "F00001",
        "month": datetime(2023, 1, 1),
        "employees_monthly": 10.0,
        "turnover_monthly": 100.0,
        "month_num": 13,
        "year": 2023,
    }
    with pytest.raises(ValidationError):
        PanelRecord.model_validate(rec)
    rec["month_num"] = 1
    PanelRecord.model_validate(rec)


def test_monthly_observation_rejects_negative_employees() -> None:
    with pytest.raises(ValidationError):
        MonthlyObservation.model_validate(
            {"firm_id": "F1", "month": datetime(2023, 1, 1), "employees": -1.0}
        )
