"""Warning and error taxonomy shared by every pipeline stage.

Structural violations (duplicate or orphan keys) and data-quality findings
are non-fatal by default: they are emitted as Python warnings, which
`configure_logging` routes into the operator log. Each category can be made
fatal through the strict switches in `Settings`, in which case a
`PipelineError` is raised instead.

Undefined computations (division by zero, missing lag history) are not part
of this taxonomy; they surface as missing values in the output.
"""

from __future__ import annotations

import warnings


class PipelineWarning(UserWarning):
    """Base class for non-fatal pipeline findings."""


class StructuralViolation(PipelineWarning):
    """Key-level problem between the registry and the monthly sources."""


class DuplicateKeyWarning(StructuralViolation):
    """A key that must be unique occurs more than once."""


class OrphanKeyWarning(StructuralViolation):
    """A monthly source references a firm missing from the registry."""


class DataQualityWarning(PipelineWarning):
    """Implausible, missing or out-of-range values."""


class PipelineError(RuntimeError):
    """Raised for a finding whose category is configured as strict."""

    def __init__(self, message: str, category: type[PipelineWarning]) -> None:
        super().__init__(message)
        self.category = category


def signal(
    message: str,
    category: type[PipelineWarning],
    strict: bool = False,
) -> None:
    """Emit `message` as a warning of `category`, or raise when strict.

    Args:
        message: Operator-facing description including counts/keys.
        category: Warning class of the finding.
        strict: Raise `PipelineError` instead of warning.

    Raises:
        PipelineError: when `strict` is true.
    """
    if strict:
        raise PipelineError(message, category)
    warnings.warn(message, category, stacklevel=3)


def preview(ids: list[str], limit: int = 20) -> str:
    """Render a list of keys for a log line, truncated after `limit`."""
    shown = ", ".join(ids[:limit])
    if len(ids) > limit:
        shown += f", ... (+{len(ids) - limit} more)"
    return shown
