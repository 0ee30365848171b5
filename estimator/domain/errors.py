"""
Domain exceptions.

The engines flag invalid input instead of raising; these errors are only
raised at explicit strict or lookup boundaries.
"""
from typing import List, Optional


class EstimatorError(Exception):
    """Base class for estimating engine errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ScoreValidationError(EstimatorError):
    """An invalid score was passed to a strict pricing entry point."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class UnknownFactorError(EstimatorError, ValueError):
    """A factor or preset name is not in the catalog."""


class RateTableError(EstimatorError):
    """A rate table file could not be read or validated."""
