"""Validation utilities for the Clean layer.

Two kinds of validation live here:

- `validate_structure` checks key uniqueness in the firm registry and the
  monthly sources, and that every monthly `firm_id` exists in the registry.
  Findings are non-fatal warnings unless strict mode is requested.
- `validate_records` validates rows against one of the Pydantic models in
  `sbs_pipeline.models`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import pandas as pd
from pydantic import BaseModel, ValidationError

from sbs_pipeline.errors import (
    DuplicateKeyWarning,
    OrphanKeyWarning,
    preview,
    signal,
)

log = logging.getLogger(__name__)

MONTHLY_KEYS = ["firm_id", "month"]


@dataclass
class StructuralReport:
    """Outcome of `validate_structure`.

    Attributes:
        duplicate_firm_ids: Registry ids occurring more than once.
        duplicate_keys: Per monthly source, number of repeated (firm_id, month) rows.
        orphan_ids: Per monthly source, sorted ids absent from the registry.
    """
    duplicate_firm_ids: list[str] = field(default_factory=list)
    duplicate_keys: dict[str, int] = field(default_factory=dict)
    orphan_ids: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return (
            not self.duplicate_firm_ids
            and not any(self.duplicate_keys.values())
            and not any(self.orphan_ids.values())
        )


def validate_structure(
    firms: pd.DataFrame,
    sources: Mapping[str, pd.DataFrame],
    strict: bool = False,
) -> StructuralReport:
    """Check registry key uniqueness and monthly-source referential integrity.

    Args:
        firms: Harmonized firm registry.
        sources: Monthly tables by name (e.g. {"employment": ..., "turnover": ...}).
        strict: Raise `PipelineError` on the first violation instead of warning.

    Returns:
        StructuralReport listing every violation found.
    """
    report = StructuralReport()

    ids = firms["firm_id"]
    dup_mask = ids.duplicated(keep=False) & ids.notna()
    report.duplicate_firm_ids = sorted(ids[dup_mask].unique().tolist())
    if report.duplicate_firm_ids:
        signal(
            f"Duplicate firm IDs in registry: {preview(report.duplicate_firm_ids)}",
            DuplicateKeyWarning,
            strict,
        )

    known = set(ids.dropna())

    for name, pdf in sources.items():
        n_dup = int(pdf.duplicated(subset=MONTHLY_KEYS).sum())
        report.duplicate_keys[name] = n_dup
        if n_dup:
            signal(
                f"{name}: {n_dup} duplicate (firm_id, month) row(s)",
                DuplicateKeyWarning,
                strict,
            )

        orphans = sorted(set(pdf["firm_id"].dropna()) - known)
        report.orphan_ids[name] = orphans
        if orphans:
            signal(
                f"{name}: {len(orphans)} firm_id(s) not found in registry: {preview(orphans)}",
                OrphanKeyWarning,
                strict,
            )

    if report.ok:
        log.info("Structural validation passed for registry and %d source(s)", len(sources))
    return report


def _to_records(pdf: pd.DataFrame) -> list[dict[str, Any]]:
    """Convert a frame into dicts with missing values as None."""
    clean = pdf.astype(object).where(pdf.notna(), None)
    return clean.to_dict(orient="records")


def validate_records(
    pdf: pd.DataFrame,
    model: type[BaseModel],
) -> tuple[list[dict[str, Any]], int]:
    """Validate the rows of a frame using Pydantic.

    Missing values (NaN, NaT, pd.NA) are converted to None before
    `model.model_validate` is applied to each record.

    Args:
        pdf: Pandas DataFrame whose columns match `model`'s fields.
        model: Pydantic model class.

    Returns:
        A tuple of (list_of_validated_records, bad_count).
    """
    good: list[dict[str, Any]] = []
    bad = 0

    for rec in _to_records(pdf):
        try:
            m = model.model_validate(rec)
            good.append(m.model_dump(mode="python"))
        except ValidationError as exc:
            bad += 1
            log.debug("%s rejected a record: %s", model.__name__, exc)

    return good, bad
