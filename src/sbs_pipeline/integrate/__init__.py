"""Panel-layer helpers.

Joins the cleaned sources into one firm x month panel and derives the
per-firm time-series indicators on it.
"""
