"""Delimited-file helpers for the boundary I/O of every layer.

Centralizes CSV reading (string firm keys, ISO dates) and whole-table
writes that go through a temporary file and an atomic rename, so a failed
write never leaves a truncated table behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import pandas as pd

log = logging.getLogger(__name__)

DATE_COLUMNS = ("month",)


def read_table(path: Path) -> pd.DataFrame:
    """Read a comma-separated table with one header row.

    Args:
        path: CSV file path.

    Returns:
        pandas.DataFrame with `firm_id` as string and any `month` column
        parsed to timestamps.

    Raises:
        FileNotFoundError: if `path` does not exist.
    """
    if not path.exists():
        raise FileNotFoundError(f"Table not found: {path}")

    pdf = pd.read_csv(path, dtype={"firm_id": str})
    for col in DATE_COLUMNS:
        if col in pdf.columns:
            pdf[col] = pd.to_datetime(pdf[col], errors="coerce")

    log.info("Read %d rows from %s", len(pdf), path)
    return pdf


def write_table(pdf: pd.DataFrame, path: Path) -> Path:
    """Overwrite `path` with `pdf` as CSV via a temp file and `os.replace`.

    Args:
        pdf: Table to write; the index is not written.
        path: Destination CSV path. Parent directories are created.

    Returns:
        The destination path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            pdf.to_csv(fh, index=False, date_format="%Y-%m-%d")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    log.info("Wrote %d rows to %s", len(pdf), path)
    return path
