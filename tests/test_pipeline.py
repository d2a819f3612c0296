from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd
import pytest

from sbs_pipeline.cli import main
from sbs_pipeline.clean.validate import validate_records
from sbs_pipeline.config import Settings
from sbs_pipeline.errors import DataQualityWarning, OrphanKeyWarning, PipelineError
from sbs_pipeline.ingest.synthetic import generate_synthetic_sources
from sbs_pipeline.integrate.indicators import derive_indicators
from sbs_pipeline.models import PanelRecord
from sbs_pipeline.pipeline import integrate_stage, run_pipeline

pytestmark = pytest.mark.filterwarnings("ignore::sbs_pipeline.errors.PipelineWarning")


@pytest.fixture(scope="module")
def sources() -> tuple[pd.DataFrame, pd.DataFrame, pd.DataFrame]:
    return generate_synthetic_sources(n_firms=25, n_months=14, seed=11)


def test_synthetic_sources_match_raw_schema(sources) -> None:
    firms, employment, turnover = sources
    assert list(firms.columns) == [
        "firm_id", "region_code", "nace_code", "legal_form",
        "employees", "foundation_year", "revenue_last_year",
    ]
    assert len(employment) == len(turnover) == 25 * 14
    assert firms["firm_id"].is_unique


def test_run_pipeline_end_to_end(sources) -> None:
    firms, employment, turnover = sources
    result = run_pipeline(firms, employment, turnover, Settings(npartitions=3, current_year=2025))

    panel = result.panel
    assert len(panel) == len(employment)
    assert not panel.duplicated(subset=["firm_id", "month"]).any()
    assert panel["employees_monthly"].notna().all()
    assert (result.clean.firms["revenue_last_year"] >= 0).all()

    # 14 months per firm: only the last two rows of each firm have a YoY value
    assert panel["turnover_yoy"].notna().sum() <= 2 * 25

    year = result.gold["year"]
    assert year["n_obs"].sum() == len(panel)
    assert result.gold["sector_region"]["total_turnover"].sum() == pytest.approx(
        panel["turnover_monthly"].sum()
    )
    assert [r.stage for r in result.checks] == ["clean", "panel", "gold"]
    assert result.checks[-1].ok
    assert result.structure.ok


def test_run_pipeline_reports_orphans(sources) -> None:
    firms, employment, turnover = sources
    extra = pd.DataFrame([{"firm_id": "F99999", "month": "2023-01-01", "employees": 3,
                           "nace_code": None, "region_code": None}])
    employment = pd.concat([employment, extra], ignore_index=True)

    with pytest.warns(OrphanKeyWarning, match="F99999"):
        result = run_pipeline(firms, employment, turnover, Settings(npartitions=2))
    assert result.structure.orphan_ids["employment"] == ["F99999"]
    # the orphan has no classification anywhere: it is grouped under UNKNOWN
    assert "UNKNOWN" in set(result.gold["sector"]["sector_code"])


def test_run_pipeline_drops_rows_with_blank_firm_id(sources) -> None:
    firms, employment, turnover = sources
    employment = employment.copy()
    employment.loc[0, "firm_id"] = "  "

    with pytest.warns(DataQualityWarning, match="missing firm_id"):
        result = run_pipeline(firms, employment, turnover, Settings(npartitions=2, current_year=2025))
    assert len(result.panel) == len(employment) - 1
    assert result.panel["firm_id"].notna().all()
    assert result.gold["year"]["n_obs"].sum() == len(result.panel)


def test_panel_rows_match_panel_schema(sources) -> None:
    firms, employment, turnover = sources
    result = run_pipeline(firms, employment, turnover, Settings(npartitions=2, current_year=2025))

    fields = [c for c in PanelRecord.model_fields if c in result.panel.columns]
    good, bad = validate_records(result.panel[fields], PanelRecord)
    assert bad == 0
    assert len(good) == len(result.panel)


def test_integrate_stage_flags_rows_failing_panel_schema(
    sources, monkeypatch: pytest.MonkeyPatch
) -> None:
    firms, employment, turnover = sources
    clean = run_pipeline(firms, employment, turnover, Settings(npartitions=2)).clean

    def corrupt(panel: pd.DataFrame, **kwargs: object) -> pd.DataFrame:
        out = derive_indicators(panel, **kwargs)
        out.loc[0, "month_num"] = 13
        return out

    monkeypatch.setattr("sbs_pipeline.pipeline.derive_indicators", corrupt)
    with pytest.raises(PipelineError, match="1 panel row"):
        integrate_stage(clean, Settings(npartitions=2, strict_quality=True))


def test_run_pipeline_strict_structure_aborts(sources) -> None:
    firms, employment, turnover = sources
    with pytest.raises(PipelineError):
        run_pipeline(firms.iloc[1:], employment, turnover, Settings(strict_structure=True))


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SBS_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("SBS_OUTPUT_DIR", str(tmp_path / "output"))
    monkeypatch.setenv("SBS_NPARTITIONS", "2")
    yield tmp_path
    logging.captureWarnings(False)


def test_cli_all_writes_every_layer(workdir: Path) -> None:
    main(["all", "--generate", "--n-firms", "12", "--months", "13", "--lag-mode", "calendar"])

    for rel in (
        "data/raw/firms.csv",
        "data/clean/employment_clean.csv",
        "data/processed/panel_data.csv",
        "output/tables/indicators_year.csv",
        "output/tables/indicators_sector.csv",
        "output/tables/indicators_region.csv",
        "output/tables/indicators_sector_region.csv",
    ):
        assert (workdir / rel).exists(), rel

    panel = pd.read_csv(workdir / "data/processed/panel_data.csv")
    assert len(panel) == 12 * 13


def test_cli_gold_requires_panel(workdir: Path) -> None:
    with pytest.raises(RuntimeError, match="Run integrate first"):
        main(["gold"])
