"""
Input Validation

Eager checks shared by the preprocessor, the eigensolver, the graph
builder and every method body. Each check either returns a clean float64
(or label) array or raises a typed error before any computation starts.

PRINCIPLE: "Check before compute, not after failure"

Usage:
    from dimtools.validation import check_matrix, check_ndim

    X = check_matrix(X)
    ndim = check_ndim(ndim, X.shape[1])
"""

import numbers
from typing import Any, List

import numpy as np

from dimtools.errors import (
    DegenerateClassError,
    InvalidDimensionError,
    InvalidInputError,
)


def check_matrix(X: Any, name: str = "X", min_rows: int = 2) -> np.ndarray:
    """
    Validate a data matrix (rows = observations).

    Args:
        X: Array-like, n x p
        name: Name used in error messages
        min_rows: Minimum number of rows required

    Returns:
        float64 copy-safe ndarray of shape (n, p)
    """
    try:
        arr = np.asarray(X, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"'{name}' should be a numeric matrix: {e}") from e

    if arr.ndim != 2:
        raise InvalidInputError(
            f"'{name}' should be a 2-D matrix, got {arr.ndim}-D input"
        )

    n, p = arr.shape
    if n < min_rows:
        raise InvalidInputError(
            f"'{name}' needs at least {min_rows} rows, got {n}"
        )
    if p < 1:
        raise InvalidInputError(f"'{name}' needs at least 1 column")

    if not np.isfinite(arr).all():
        raise InvalidInputError(f"'{name}' contains NaN or Inf entries")

    return arr


def check_ndim(ndim: Any, p: int, strict: bool = False) -> int:
    """
    Validate a target dimension.

    Args:
        ndim: Requested dimension
        p: Number of available variables
        strict: If True, ndim must be < p instead of <= p

    Returns:
        ndim as int
    """
    if isinstance(ndim, bool) or not isinstance(ndim, numbers.Real):
        raise InvalidDimensionError(ndim, p, strict)
    if not np.isfinite(ndim) or float(ndim) != int(ndim):
        raise InvalidDimensionError(ndim, p, strict)

    value = int(ndim)
    upper = p - 1 if strict else p
    if value < 1 or value > upper:
        raise InvalidDimensionError(ndim, p, strict)
    return value


def check_labels(labels: Any, n: int) -> np.ndarray:
    """
    Validate a length-n class label vector.

    Labels can be any hashable scalars (ints, strings). Missing values
    are rejected rather than treated as a class.
    """
    arr = np.asarray(labels)
    if arr.ndim != 1:
        raise InvalidInputError(f"'labels' should be a 1-D vector, got {arr.ndim}-D")
    if arr.shape[0] != n:
        raise InvalidInputError(
            f"'labels' length {arr.shape[0]} does not match {n} observations"
        )
    if arr.dtype.kind == 'f' and not np.isfinite(arr).all():
        raise InvalidInputError("'labels' contains NaN or Inf entries")
    if arr.dtype.kind == 'O' and any(v is None for v in arr):
        raise InvalidInputError("'labels' contains missing entries")
    return arr


def find_degenerate_classes(labels: np.ndarray) -> List[Any]:
    """Return classes with fewer than two members, in sorted order."""
    classes, counts = np.unique(labels, return_counts=True)
    return [c.item() if hasattr(c, 'item') else c for c in classes[counts < 2]]


def check_no_degenerate_class(labels: np.ndarray) -> None:
    """Raise DegenerateClassError if any class is a singleton."""
    degenerate = find_degenerate_classes(labels)
    if degenerate:
        raise DegenerateClassError(degenerate)


def check_square(M: Any, name: str = "matrix") -> np.ndarray:
    """Validate a finite square matrix."""
    arr = check_matrix(M, name=name, min_rows=1)
    if arr.shape[0] != arr.shape[1]:
        raise InvalidInputError(
            f"'{name}' should be square, got shape {arr.shape}"
        )
    return arr


def check_symmetric(M: np.ndarray, name: str = "matrix", atol: float = 1e-8) -> None:
    """
    Raise InvalidInputError if M is not symmetric.

    The tolerance is relative to the largest absolute entry, so the
    outcome does not change when M is rescaled.
    """
    scale = float(np.max(np.abs(M), initial=0.0))
    if np.max(np.abs(M - M.T), initial=0.0) > atol * scale:
        raise InvalidInputError(f"'{name}' should be symmetric")


def find_constant_columns(X: np.ndarray, rtol: float) -> List[int]:
    """
    Indices of columns whose sample std is zero relative to their magnitude.

    A column is constant when std <= rtol * max|column|; an all-zero
    column is always constant.
    """
    std = X.std(axis=0, ddof=1)
    magnitude = np.abs(X).max(axis=0)
    return np.flatnonzero(std <= rtol * magnitude).tolist()
