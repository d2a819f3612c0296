"""sbs_pipeline package.

Turns firm-level registry, employment and turnover records into a harmonized
firm x month panel and structural-business-statistics indicator tables.

Architecture:
- Raw → Clean → Panel → Gold layers exchanged as in-memory pandas frames
- Dask is used for firm-partitioned per-firm transforms and for the Gold
  aggregations
- Pydantic models validate the Clean registry and the Gold tables
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
