"""Integration of the cleaned sources into a firm x month panel.

The employment series is the anchor: the panel holds exactly its
(firm_id, month) keys. Turnover is left-joined on (firm_id, month) and the
registry attributes are left-joined on firm_id and broadcast to every
month. Source value columns are renamed before merging so nothing collides:

    employment.employees -> employees_monthly
    turnover.turnover    -> turnover_monthly
    firms.employees      -> employees_firm

Precedence for the denormalized classification attributes (sector_code,
region_code): the registry value wins; the employment source's copy is only
used where the registry has none. Turnover's copies are dropped.
"""
from __future__ import annotations

import logging

import pandas as pd

log = logging.getLogger(__name__)

PANEL_KEYS = ["firm_id", "month"]
SOURCE_SUFFIX = "_source"

PANEL_COLUMNS = [
    "firm_id",
    "month",
    "employees_monthly",
    "turnover_monthly",
    "sector_code",
    "region_code",
    "legal_form",
    "employees_firm",
    "foundation_year",
    "revenue_last_year",
]


def build_panel(
    employment: pd.DataFrame,
    turnover: pd.DataFrame,
    firms: pd.DataFrame,
) -> pd.DataFrame:
    """Build the integrated panel anchored on the employment series.

    Duplicate keys in any input are a contract violation; they are reported
    by `validate_structure` and must be removed upstream.

    Args:
        employment: Cleaned employment (`firm_id`, `month`, `employees`, ...).
        turnover: Cleaned turnover (`firm_id`, `month`, `turnover`, ...).
        firms: Cleaned firm registry.

    Returns:
        Panel with one row per employment (firm_id, month), sorted by
        (firm_id, month).
    """
    emp = employment.rename(columns={"employees": "employees_monthly"})
    turn = turnover.rename(columns={"turnover": "turnover_monthly"})[
        [*PANEL_KEYS, "turnover_monthly"]
    ]
    reg = firms.rename(columns={"employees": "employees_firm"})

    panel = emp.merge(turn, on=PANEL_KEYS, how="left")

    # registry attributes take precedence over the employment source's copies
    overlap = [c for c in reg.columns if c != "firm_id" and c in panel.columns]
    panel = panel.merge(reg, on="firm_id", how="left", suffixes=(SOURCE_SUFFIX, ""))
    for col in overlap:
        fallback = panel.pop(f"{col}{SOURCE_SUFFIX}")
        panel[col] = panel[col].where(panel[col].notna(), fallback)

    panel["employees_monthly"] = pd.to_numeric(panel["employees_monthly"], errors="coerce").astype(float)
    panel["turnover_monthly"] = pd.to_numeric(panel["turnover_monthly"], errors="coerce").astype(float)

    ordered = [c for c in PANEL_COLUMNS if c in panel.columns]
    ordered += [c for c in panel.columns if c not in ordered]
    panel = panel[ordered].sort_values(PANEL_KEYS, kind="mergesort").reset_index(drop=True)

    if len(panel) != len(employment):
        log.warning(
            "Panel has %d rows but employment has %d; inputs contain duplicate keys",
            len(panel), len(employment),
        )

    log.info(
        "Integrated panel: %d rows, %d firms, %d rows without turnover",
        len(panel),
        panel["firm_id"].nunique(),
        int(panel["turnover_monthly"].isna().sum()),
    )
    return panel
