from __future__ import annotations
from typing import Optional


class CausalTablesError(Exception):
    """Base class for all errors raised by causal_tables."""
    pass


class ValidationError(CausalTablesError, ValueError):
    """Raised when causal labels or a causes map are malformed."""
    pass


class GeneratorError(CausalTablesError):
    """Raised when a DGP step fails or returns a value that does not match its kind."""

    def __init__(self, step: str, message: Optional[str] = None):
        self.step = step
        if message is None:
            message = "generator failed"
        super().__init__(f"Generator failed for step `{step}`: {message}")


class UnsupportedOperationError(CausalTablesError):
    """Raised when a conditional density has no closed form."""
    pass


class ShapeError(CausalTablesError, ValueError):
    """Raised on row-count mismatches and invalid row subsets."""
    pass
