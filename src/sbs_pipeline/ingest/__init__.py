"""Raw-layer helpers.

Reading the registry and monthly source tables, harmonizing their column
names, key formats and month granularity, and an optional synthetic source
for demo runs.
"""
