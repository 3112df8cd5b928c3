"""
Generalized Eigensolver Engine.

Solves LHS v = lambda RHS v for symmetric LHS and symmetric positive
(semi-)definite RHS, then selects a projection basis:

    maximize  -> top-d eigenvalues   (variance / scatter maximizing methods)
    minimize  -> bottom-d eigenvalues (Laplacian smoothness minimizing methods)

A singular RHS is the recurring rank-deficiency problem of linear
embedding methods. It is never patched silently: either the caller
supplies a ridge (RHS + ridge * I) or RankDeficientError is raised.

Basis columns are unit-norm and sign-normalized (largest-magnitude entry
positive), so identical inputs always give identical bases. Tied
eigenvalues keep the solver's index order.
"""

import logging
import numbers
from enum import Enum
from typing import Any, Optional, Tuple, Union

import numpy as np
from scipy import linalg

from dimtools.core.config import SolverConfig, resolve_config
from dimtools.errors import (
    InvalidDimensionError,
    InvalidInputError,
    RankDeficientError,
)
from dimtools.validation import check_ndim, check_square, check_symmetric

logger = logging.getLogger(__name__)


class EigenSense(str, Enum):
    """Which end of the generalized spectrum to keep."""
    MAXIMIZE = "maximize"
    MINIMIZE = "minimize"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            key = value.strip().lower()
            if key in ("max", "maximal", "top"):
                return cls.MAXIMIZE
            if key in ("min", "minimal", "bottom"):
                return cls.MINIMIZE
            for member in cls:
                if member.value == key:
                    return member
        return None


def resolve_sense(sense: Union[str, EigenSense]) -> EigenSense:
    try:
        return EigenSense(sense)
    except ValueError:
        raise InvalidInputError(
            f"Unknown eigen sense: {sense!r}. Use 'maximize' or 'minimize'"
        ) from None


def adjust_projection(basis: Any) -> np.ndarray:
    """
    Normalize basis columns to unit length with a fixed sign convention.

    The largest-magnitude entry of each column (first one on ties) is made
    positive. Zero columns are left as zero.

    Args:
        basis: p x d matrix (or length-p vector, treated as one column)

    Returns:
        New p x d array
    """
    basis = np.array(basis, dtype=np.float64)
    if basis.ndim == 1:
        basis = basis.reshape(-1, 1)

    norms = np.linalg.norm(basis, axis=0)
    norms[norms == 0] = 1.0
    basis = basis / norms

    pivot = np.argmax(np.abs(basis), axis=0)
    signs = np.sign(basis[pivot, np.arange(basis.shape[1])])
    signs[signs == 0] = 1.0
    return basis * signs


def generalized_eigenpairs(
    lhs: Any,
    rhs: Any = None,
    ndim: int = 1,
    sense: Union[str, EigenSense] = EigenSense.MAXIMIZE,
    ridge: Optional[float] = None,
    skip_trivial: bool = False,
    config: Optional[SolverConfig] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Selected generalized eigenvalues and normalized eigenvectors.

    Args:
        lhs: Symmetric p x p matrix
        rhs: Symmetric PSD p x p matrix; None means the identity
        ndim: Number of eigenpairs to return, 1 <= ndim <= p
        sense: 'maximize' (top) or 'minimize' (bottom)
        ridge: Tikhonov term added to rhs; required when rhs is singular
        skip_trivial: With 'minimize', drop a leading near-zero eigenpair
            whose eigenvector is constant
        config: Thresholds; defaults to SolverConfig()

    Returns:
        Tuple of (eigenvalues (ndim,), basis (p x ndim))
    """
    config = resolve_config(config)
    sense = resolve_sense(sense)

    lhs = check_square(lhs, name="lhs")
    p = lhs.shape[0]
    check_symmetric(lhs, name="lhs", atol=config.symmetry_tol)

    if rhs is None:
        rhs = np.eye(p)
    else:
        rhs = check_square(rhs, name="rhs")
        if rhs.shape != lhs.shape:
            raise InvalidInputError(
                f"'lhs' {lhs.shape} and 'rhs' {rhs.shape} shapes differ"
            )
        check_symmetric(rhs, name="rhs", atol=config.symmetry_tol)

    ndim = check_ndim(ndim, p)

    if ridge is not None:
        if (isinstance(ridge, bool) or not isinstance(ridge, numbers.Real)
                or not np.isfinite(ridge) or ridge < 0):
            raise InvalidInputError(f"'ridge' should be a non-negative number, got {ridge!r}")
        ridge = float(ridge)

    if skip_trivial and sense != EigenSense.MINIMIZE:
        raise InvalidInputError("'skip_trivial' only applies to sense='minimize'")

    lhs = (lhs + lhs.T) / 2.0
    rhs = (rhs + rhs.T) / 2.0

    rhs_values = linalg.eigvalsh(rhs)
    top = float(np.max(np.abs(rhs_values)))
    threshold = config.singular_tol * top
    singular = top == 0.0 or rhs_values[0] <= threshold

    if singular and not ridge:
        rank = int((rhs_values > threshold).sum())
        raise RankDeficientError(
            rank, p,
            f"'rhs' is singular (numerical rank {rank} < {p}) and no ridge was given",
        )

    if ridge:
        rhs = rhs + ridge * np.eye(p)
        logger.debug("geigen: ridge=%g added to rhs (singular=%s)", ridge, singular)

    try:
        values, vectors = linalg.eigh(lhs, rhs)
    except np.linalg.LinAlgError as e:
        raise RankDeficientError(
            int((rhs_values > threshold).sum()), p,
            f"Generalized eigenproblem failed: {e}",
        ) from e

    if sense == EigenSense.MAXIMIZE:
        order = np.argsort(-values, kind='stable')
    else:
        order = np.argsort(values, kind='stable')
    values = values[order]
    vectors = vectors[:, order]

    if skip_trivial and _is_trivial(values[0], vectors[:, 0], values, config):
        logger.debug("geigen: skipped trivial eigenpair (lambda=%.3e)", values[0])
        values = values[1:]
        vectors = vectors[:, 1:]
        if ndim > values.shape[0]:
            raise InvalidDimensionError(ndim, values.shape[0])

    return values[:ndim].copy(), adjust_projection(vectors[:, :ndim])


def solve_generalized_eigenproblem(
    lhs: Any,
    rhs: Any = None,
    ndim: int = 1,
    sense: Union[str, EigenSense] = EigenSense.MAXIMIZE,
    ridge: Optional[float] = None,
    skip_trivial: bool = False,
    config: Optional[SolverConfig] = None,
) -> np.ndarray:
    """
    Projection basis from the generalized eigenproblem (lhs, rhs).

    See generalized_eigenpairs() for arguments.

    Returns:
        p x ndim basis, columns ordered by selected eigenvalue rank

    Example:
        >>> basis = solve_generalized_eigenproblem(np.diag([3.0, 1.0]), None, 1)
        >>> basis[:, 0]
        array([1., 0.])
    """
    _, basis = generalized_eigenpairs(
        lhs, rhs, ndim=ndim, sense=sense, ridge=ridge,
        skip_trivial=skip_trivial, config=config,
    )
    return basis


def _is_trivial(
    value: float,
    vector: np.ndarray,
    values: np.ndarray,
    config: SolverConfig,
) -> bool:
    """Near-zero eigenvalue whose eigenvector is constant."""
    scale = float(np.max(np.abs(values)))
    if abs(value) > config.zero_tol * scale:
        return False
    unit = vector / np.linalg.norm(vector)
    return float(np.ptp(unit)) <= config.zero_tol
