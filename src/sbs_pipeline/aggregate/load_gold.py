"""Utilities for publishing Gold tables.

Gold tables are small and are written whole, one CSV per aggregation level,
named `indicators_<level>.csv`.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from sbs_pipeline.storage import write_table

log = logging.getLogger(__name__)


def gold_path(tables_dir: Path, name: str) -> Path:
    return tables_dir / f"indicators_{name}.csv"


def load_gold(tables: dict[str, pd.DataFrame], tables_dir: Path) -> list[Path]:
    """Write each Gold table to `tables_dir`.

    Args:
        tables: Mapping of level name to summary table.
        tables_dir: Output directory.

    Returns:
        Paths written, in the order of `tables`.
    """
    written: list[Path] = []
    for name, pdf in tables.items():
        if pdf.empty:
            log.warning("No rows to write for %s", name)
        written.append(write_table(pdf, gold_path(tables_dir, name)))

    log.info("Gold tables written to %s: %d file(s)", tables_dir, len(written))
    return written
