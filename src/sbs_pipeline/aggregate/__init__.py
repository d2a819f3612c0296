"""Gold-layer aggregation helpers.

This package converts the integrated panel into the indicator summary tables
(by year, year x sector, year x region, year x sector x region), which are
small enough to compute eagerly and publish as CSV.
"""
