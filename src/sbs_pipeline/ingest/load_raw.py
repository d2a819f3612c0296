"""Raw-layer loading utilities.

Reads the three raw source tables (firm registry, monthly employment,
monthly turnover) from a directory and harmonizes them for the Clean layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from sbs_pipeline.ingest.harmonize import harmonize_monthly, harmonize_registry
from sbs_pipeline.storage import read_table

log = logging.getLogger(__name__)

RAW_FILES = {
    "firms": "firms.csv",
    "employment": "employment.csv",
    "turnover": "turnover.csv",
}


@dataclass
class SourceTables:
    """The registry and the two monthly sources, in canonical form."""
    firms: pd.DataFrame
    employment: pd.DataFrame
    turnover: pd.DataFrame


def harmonize_sources(
    firms: pd.DataFrame,
    employment: pd.DataFrame,
    turnover: pd.DataFrame,
    strict: bool = False,
) -> SourceTables:
    """Harmonize in-memory source tables to canonical names and key formats."""
    return SourceTables(
        firms=harmonize_registry(firms, strict=strict),
        employment=harmonize_monthly(employment, "employees", strict=strict),
        turnover=harmonize_monthly(turnover, "turnover", strict=strict),
    )


def load_raw_sources(raw_dir: Path, strict: bool = False) -> SourceTables:
    """Read `firms.csv`, `employment.csv` and `turnover.csv` from `raw_dir`.

    Args:
        raw_dir: Directory holding the raw tables.
        strict: Raise instead of warn on data-quality findings during
            harmonization.

    Returns:
        Harmonized `SourceTables`.
    """
    log.info("Loading raw sources from %s", raw_dir)
    return harmonize_sources(
        read_table(raw_dir / RAW_FILES["firms"]),
        read_table(raw_dir / RAW_FILES["employment"]),
        read_table(raw_dir / RAW_FILES["turnover"]),
        strict=strict,
    )
