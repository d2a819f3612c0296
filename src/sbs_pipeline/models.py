"""Pydantic models used for Clean, Panel and Gold validation.

These models define the expected schema for the cleaned firm registry, the
monthly source observations, the integrated panel and the Gold indicator
summaries used by the dashboard and tests.
"""

from __future__ import annotations

from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

class Firm(BaseModel):
    """Schema for a cleaned firm registry record.

    Attributes:
        firm_id: Unique firm key.
        region_code: Region classification code.
        sector_code: Sector (NACE) classification code.
        legal_form: Legal form label.
        employees: Registered head count; may be a group median after imputation.
        foundation_year: Year of foundation inside the plausibility window.
        revenue_last_year: Non-negative revenue of the previous year.
    """
    model_config = ConfigDict(extra="forbid")
    firm_id: str = Field(..., min_length=1)
    region_code: str | None = None
    sector_code: str | None = None
    legal_form: str | None = None
    employees: float | None = Field(None, ge=0)
    foundation_year: int | None = Field(None, ge=1900)
    revenue_last_year: float | None = Field(None, ge=0)

class MonthlyObservation(BaseModel):
    """Schema for one cleaned employment or turnover observation."""
    model_config = ConfigDict(extra="forbid")
    firm_id: str = Field(..., min_length=1)
    month: datetime
    sector_code: str | None = None
    region_code: str | None = None
    employees: float | None = Field(None, ge=0)
    turnover: float | None = None

class PanelRecord(BaseModel):
    """Schema for one firm x month row of the integrated panel."""
    model_config = ConfigDict(extra="forbid")
    firm_id: str = Field(..., min_length=1)
    month: datetime
    employees_monthly: float | None = None
    turnover_monthly: float | None = None
    sector_code: str | None = None
    region_code: str | None = None
    legal_form: str | None = None
    employees_firm: float | None = None
    foundation_year: int | None = None
    revenue_last_year: float | None = None
    turnover_yoy: float | None = None
    emp_growth: float | None = None
    productivity: float | None = None
    seasonal_index: float | None = None
    month_num: int = Field(..., ge=1, le=12)
    year: int

class IndicatorSummary(BaseModel):
    """Gold model for one aggregation group (year, optionally sector/region)."""
    model_config = ConfigDict(extra="forbid")
    year: int
    sector_code: str | None = None
    region_code: str | None = None
    n_obs: int = Field(..., ge=1)
    n_firms: int = Field(..., ge=1)
    total_turnover: float
    avg_turnover_per_firm: float
    total_employees: float
    avg_employees_per_firm: float
    mean_productivity: float | None = None
