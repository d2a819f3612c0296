"""Clean-layer utilities for the pipeline.

Provides the structural validator (key uniqueness and referential
integrity), the rule-based cleaning engine for the registry and the monthly
series, and Pydantic record validation.
"""
