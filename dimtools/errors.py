"""
Error taxonomy shared by every dimtools component.

All errors are raised eagerly at component entry, before any numeric
work, and are never retried: the inputs are deterministic, so the caller
has to change them (choose a ridge, merge classes, lower ndim) and call
again.
"""

from typing import Any, List, Optional


class DimtoolsError(ValueError):
    """Base class for all dimtools failures."""


class InvalidInputError(DimtoolsError):
    """Raised for wrong shapes, non-numeric data, NaN/Inf or bad options."""


class InvalidDimensionError(DimtoolsError):
    """Raised when a target dimension is outside its allowed range."""

    def __init__(self, ndim: Any, upper: int, strict: bool = False):
        self.ndim = ndim
        self.upper = upper
        bracket = ")" if strict else "]"
        super().__init__(
            f"'ndim' should be an integer in [1, {upper}{bracket}, got {ndim!r}"
        )


class RankDeficientError(DimtoolsError):
    """Raised when a covariance or RHS matrix is singular and not regularized."""

    def __init__(self, rank: int, dim: int, message: Optional[str] = None):
        self.rank = rank
        self.dim = dim
        if message is None:
            message = (
                f"Matrix is rank deficient (numerical rank {rank} < {dim}). "
                f"Supply a ridge parameter or reduce the input."
            )
        super().__init__(message)


class DegenerateClassError(DimtoolsError):
    """Raised when a supervised rule meets a class with fewer than 2 members."""

    def __init__(self, classes: List[Any]):
        self.classes = list(classes)
        listed = ", ".join(repr(c) for c in self.classes)
        super().__init__(
            f"Degenerate class(es) with a single member: {listed}. "
            f"Merge or drop them before building a label-gated graph."
        )
