from __future__ import annotations

import pandas as pd
import streamlit as st
import altair as alt

from sbs_pipeline.config import get_settings
from sbs_pipeline.aggregate.load_gold import gold_path

# =====================================================
# Page config
# =====================================================
st.set_page_config(page_title="Structural Business Statistics", layout="wide")
st.title("📊 Structural Business Statistics Dashboard")

settings = get_settings()
PANEL_PATH = settings.processed_dir / "panel_data.csv"

# =====================================================
# Helpers
# =====================================================
@st.cache_data
def load_table(path: str) -> pd.DataFrame:
    """Load a published CSV table for display.

    Args:
        path: CSV path produced by the pipeline.

    Returns:
        pandas.DataFrame with the table rows or an empty DataFrame.
    """
    try:
        return pd.read_csv(path, dtype={"firm_id": str})
    except FileNotFoundError:
        return pd.DataFrame()


def kpi(label: str, value) -> None:
    """Display a simple KPI metric in the dashboard."""
    st.metric(label, value)

panel = load_table(str(PANEL_PATH))
by_sector = load_table(str(gold_path(settings.tables_dir, "sector")))

if panel.empty:
    st.error("Panel not available. Run `sbs-pipeline all --generate` first.")
    st.stop()

panel["month"] = pd.to_datetime(panel["month"], errors="coerce")

# =====================================================
# SECTION 0 — OVERVIEW
# =====================================================
st.header("📌 Overview")

c1, c2, c3 = st.columns(3)
with c1:
    kpi("Firms", panel["firm_id"].nunique())
with c2:
    kpi("Panel Rows (Firm × Month)", len(panel))
with c3:
    kpi("Latest Year", int(panel["month"].dt.year.max()))

st.divider()

# =====================================================
# SECTION 1 — FIRM SIZE DISTRIBUTION
# =====================================================
st.header("🏢 Firm Size Distribution")

firm_size = (
    panel.groupby("firm_id", as_index=False)["employees_monthly"]
    .mean()
    .rename(columns={"employees_monthly": "avg_employees"})
)

chart_size = (
    alt.Chart(firm_size)
    .mark_bar()
    .encode(
        x=alt.X("avg_employees:Q", bin=alt.Bin(maxbins=30), title="Average Number of Employees"),
        y=alt.Y("count():Q", title="Number of Firms"),
    )
    .properties(height=320)
)
st.altair_chart(chart_size, width="stretch")

st.divider()

# =====================================================
# SECTION 2 — TURNOVER BY SECTOR
# =====================================================
st.header("🏭 Average Turnover per Firm by Sector")

if by_sector.empty:
    st.info("Sector indicators not available. Run the gold step.")
else:
    latest_year = int(by_sector["year"].max())
    df_sector = by_sector[by_sector["year"] == latest_year]

    chart_sector = (
        alt.Chart(df_sector)
        .mark_bar()
        .encode(
            y=alt.Y("sector_code:N", sort="-x", title="NACE Code"),
            x=alt.X("avg_turnover_per_firm:Q", title="Average Turnover per Firm"),
            tooltip=["sector_code:N", "n_firms:Q", "avg_turnover_per_firm:Q", "mean_productivity:Q"],
        )
        .properties(height=320, title=f"Year {latest_year}")
    )
    st.altair_chart(chart_sector, width="stretch")
    st.dataframe(df_sector, width="stretch")

st.divider()

# =====================================================
# SECTION 3 — MONTHLY TOTAL TURNOVER
# =====================================================
st.header("📈 Monthly Total Turnover (All Firms)")

monthly = (
    panel.groupby("month", as_index=False)["turnover_monthly"]
    .sum()
    .rename(columns={"turnover_monthly": "total_turnover"})
)

chart_monthly = (
    alt.Chart(monthly)
    .mark_line()
    .encode(
        x=alt.X("month:T", title="Month"),
        y=alt.Y("total_turnover:Q", title="Total Turnover"),
        tooltip=["month:T", "total_turnover:Q"],
    )
    .properties(height=320)
)
st.altair_chart(chart_monthly, width="stretch")

# =====================================================
# Footer
# =====================================================
st.caption("Synthetic firm data • pandas • Dask • Streamlit • Gold-Layer Indicators")
