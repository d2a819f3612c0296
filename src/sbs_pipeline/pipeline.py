"""In-memory orchestration of the pipeline core.

Each stage takes and returns pandas frames; file I/O lives in the CLI and
in `sbs_pipeline.storage`. `run_pipeline` chains the stages:

    harmonize → validate structure → clean → check
              → integrate → derive indicators → check
              → aggregate → check
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pandas as pd

from sbs_pipeline.aggregate.build_gold import build_gold_tables
from sbs_pipeline.checks import (
    ConsistencyReport,
    check_clean_sources,
    check_gold_tables,
    check_panel,
)
from sbs_pipeline.clean.transform import clean_employment, clean_firms, clean_turnover
from sbs_pipeline.clean.validate import StructuralReport, validate_records, validate_structure
from sbs_pipeline.config import Settings
from sbs_pipeline.errors import DataQualityWarning, signal
from sbs_pipeline.ingest.load_raw import SourceTables, harmonize_sources
from sbs_pipeline.integrate.indicators import derive_indicators
from sbs_pipeline.integrate.panel import build_panel
from sbs_pipeline.models import Firm, IndicatorSummary, MonthlyObservation, PanelRecord

log = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything produced by one run."""
    clean: SourceTables
    panel: pd.DataFrame
    gold: dict[str, pd.DataFrame]
    structure: StructuralReport
    checks: list[ConsistencyReport] = field(default_factory=list)


def clean_stage(
    sources: SourceTables,
    settings: Settings,
) -> tuple[SourceTables, StructuralReport, ConsistencyReport]:
    """Validate structure, clean each source and run the post-cleaning checks."""
    structure = validate_structure(
        sources.firms,
        {"employment": sources.employment, "turnover": sources.turnover},
        strict=settings.strict_structure,
    )

    clean = SourceTables(
        firms=clean_firms(sources.firms, settings.current_year, strict=settings.strict_quality),
        employment=clean_employment(
            sources.employment, settings.npartitions, strict=settings.strict_quality
        ),
        turnover=clean_turnover(
            sources.turnover, settings.npartitions, strict=settings.strict_quality
        ),
    )

    firm_fields = [c for c in Firm.model_fields if c in clean.firms.columns]
    _, bad = validate_records(clean.firms[firm_fields], Firm)
    if bad:
        signal(f"{bad} cleaned registry record(s) fail schema validation", DataQualityWarning,
               settings.strict_quality)

    for name, series in (("employment", clean.employment), ("turnover", clean.turnover)):
        obs_fields = [c for c in MonthlyObservation.model_fields if c in series.columns]
        _, bad = validate_records(series[obs_fields], MonthlyObservation)
        if bad:
            signal(f"{name}: {bad} cleaned observation(s) fail schema validation",
                   DataQualityWarning, settings.strict_quality)

    report = check_clean_sources(clean.employment, clean.turnover, strict=settings.strict_quality)
    return clean, structure, report


def integrate_stage(
    clean: SourceTables,
    settings: Settings,
) -> tuple[pd.DataFrame, ConsistencyReport]:
    """Build the panel, derive indicators and run the panel checks."""
    panel = build_panel(clean.employment, clean.turnover, clean.firms)
    panel = derive_indicators(panel, lag_mode=settings.lag_mode, npartitions=settings.npartitions)

    panel_fields = [c for c in PanelRecord.model_fields if c in panel.columns]
    _, bad = validate_records(panel[panel_fields], PanelRecord)
    if bad:
        signal(f"{bad} panel row(s) fail schema validation", DataQualityWarning,
               settings.strict_quality)

    report = check_panel(panel, settings.productivity_max, strict=settings.strict_quality)
    return panel, report


def gold_stage(
    panel: pd.DataFrame,
    settings: Settings,
) -> tuple[dict[str, pd.DataFrame], ConsistencyReport]:
    """Aggregate the panel into the Gold tables and run the Gold checks."""
    tables = build_gold_tables(panel, npartitions=settings.npartitions)

    for name, table in tables.items():
        _, bad = validate_records(table, IndicatorSummary)
        if bad:
            signal(f"{name}: {bad} summary row(s) fail schema validation", DataQualityWarning,
                   settings.strict_quality)

    report = check_gold_tables(tables, len(panel), strict=settings.strict_quality)
    return tables, report


def run_pipeline(
    firms: pd.DataFrame,
    employment: pd.DataFrame,
    turnover: pd.DataFrame,
    settings: Settings | None = None,
) -> PipelineResult:
    """Run the whole core on in-memory source tables.

    Args:
        firms: Firm registry in the raw source schema.
        employment: Monthly employment in the raw source schema.
        turnover: Monthly turnover in the raw source schema.
        settings: Options; defaults to `Settings()`.

    Returns:
        PipelineResult with the clean sources, the panel, the Gold tables
        and all validation/consistency reports.
    """
    settings = settings or Settings()
    sources = harmonize_sources(firms, employment, turnover, strict=settings.strict_quality)

    clean, structure, clean_report = clean_stage(sources, settings)
    panel, panel_report = integrate_stage(clean, settings)
    gold, gold_report = gold_stage(panel, settings)

    log.info("Pipeline run complete: %d panel rows, %d Gold tables", len(panel), len(gold))
    return PipelineResult(
        clean=clean,
        panel=panel,
        gold=gold,
        structure=structure,
        checks=[clean_report, panel_report, gold_report],
    )
