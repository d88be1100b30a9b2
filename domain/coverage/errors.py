"""Coverage Bounded Context - Error Hierarchy.

Configuration and parameter errors are fatal to a coverage computation and
are raised before any terrain query where possible. Unavailable terrain is
a data-level condition, counted in CoverageResult, never raised.
"""

from __future__ import annotations


class CoverageError(Exception):
    """Base error for coverage operations."""


class InvalidConfigurationError(CoverageError):
    """Radiation pattern or antenna profile is malformed or incomplete."""


class InvalidParameterError(CoverageError):
    """A numeric parameter makes the link budget undefined.

    Examples: non-positive frequency or distance, a non-positive sampling
    step, or a budget whose maximum distance overflows.
    """
