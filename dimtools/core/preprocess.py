"""
Preprocessing Engine
====================

Pure computation engine for the affine transforms applied to a data
matrix before an embedding method runs. Every transform is stored as

    pX = (X - center) @ multiplier

so the identical map can be applied to unseen rows (out-of-sample
prediction) or inverted.

Modes:
- none:         identity
- center:       subtract column means
- scale:        divide columns by their sample std (ddof=1), no centering
- center_scale: center, then scale
- decorrelate:  center, then rotate onto covariance eigenvectors
- whiten:       decorrelate, then rescale each axis to unit variance

Variances and covariances use the sample (n-1) normalization throughout.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple, Union

import numpy as np
from scipy import linalg

from dimtools.core.config import SolverConfig, resolve_config
from dimtools.core.geigen import adjust_projection
from dimtools.errors import InvalidInputError, RankDeficientError
from dimtools.validation import check_matrix, find_constant_columns

logger = logging.getLogger(__name__)


# Legacy spellings accepted at the API boundary
_MODE_ALIASES = {
    'null': 'none',
    'cscale': 'center_scale',
    'centerscale': 'center_scale',
}


class PreprocessMode(str, Enum):
    """Preprocessing transforms, ordered by how much they change the data."""
    NONE = "none"
    CENTER = "center"
    SCALE = "scale"
    CENTER_SCALE = "center_scale"
    DECORRELATE = "decorrelate"
    WHITEN = "whiten"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            key = value.strip().lower()
            key = _MODE_ALIASES.get(key, key)
            for member in cls:
                if member.value == key:
                    return member
        return None


_CENTERED_MODES = (
    PreprocessMode.CENTER,
    PreprocessMode.CENTER_SCALE,
    PreprocessMode.DECORRELATE,
    PreprocessMode.WHITEN,
)


@dataclass(frozen=True)
class TransformRecord:
    """
    Fitted preprocessing transform.

    Attributes:
        mode: The preprocessing mode that produced this record
        center: Length-p offset subtracted from every row
        multiplier: p x p linear map applied after the offset
    """
    mode: PreprocessMode
    center: np.ndarray
    multiplier: np.ndarray

    def __post_init__(self):
        center = np.array(self.center, dtype=np.float64)
        multiplier = np.array(self.multiplier, dtype=np.float64)
        center.setflags(write=False)
        multiplier.setflags(write=False)
        object.__setattr__(self, 'center', center)
        object.__setattr__(self, 'multiplier', multiplier)

    @property
    def n_features(self) -> int:
        return self.center.shape[0]


def resolve_mode(mode: Union[str, PreprocessMode]) -> PreprocessMode:
    """Map a mode string (or member) onto PreprocessMode."""
    try:
        return PreprocessMode(mode)
    except ValueError:
        valid = ", ".join(m.value for m in PreprocessMode)
        raise InvalidInputError(
            f"Unknown preprocessing mode: {mode!r}. Use one of: {valid}"
        ) from None


def preprocess(
    X: Any,
    mode: Union[str, PreprocessMode] = PreprocessMode.CENTER,
    config: Optional[SolverConfig] = None,
) -> Tuple[np.ndarray, TransformRecord]:
    """
    Fit and apply a preprocessing transform.

    Args:
        X: Data matrix (n x p), rows are observations. Not modified.
        mode: One of 'none', 'center', 'scale', 'center_scale',
              'decorrelate', 'whiten' (aliases 'null', 'cscale')
        config: Thresholds; defaults to SolverConfig()

    Returns:
        Tuple of (transformed matrix, TransformRecord)

    Raises:
        InvalidInputError: bad matrix or unknown mode
        RankDeficientError: zero-variance column (scale modes) or singular
            covariance (whiten)
    """
    X = check_matrix(X)
    mode = resolve_mode(mode)
    config = resolve_config(config)

    n, p = X.shape
    center = np.zeros(p)
    multiplier = np.eye(p)

    if mode in _CENTERED_MODES:
        center = X.mean(axis=0)

    if mode in (PreprocessMode.SCALE, PreprocessMode.CENTER_SCALE):
        multiplier = np.diag(1.0 / _column_std(X, config))

    elif mode in (PreprocessMode.DECORRELATE, PreprocessMode.WHITEN):
        eigenvalues, eigenvectors = _covariance_eigen(X)
        multiplier = eigenvectors

        if mode == PreprocessMode.WHITEN:
            top = max(float(eigenvalues[0]), 0.0)
            rank = int((eigenvalues > config.rank_tol * top).sum()) if top > 0.0 else 0
            if rank < p:
                raise RankDeficientError(
                    rank, p,
                    f"Cannot whiten: covariance has numerical rank {rank} < {p}",
                )
            multiplier = eigenvectors / np.sqrt(eigenvalues)

    record = TransformRecord(mode=mode, center=center, multiplier=multiplier)
    logger.debug("preprocess: mode=%s n=%d p=%d", mode.value, n, p)

    return _affine(X, record), record


def apply_transform(record: TransformRecord, X_new: Any) -> np.ndarray:
    """
    Apply a fitted transform to new rows.

    Args:
        record: TransformRecord from preprocess()
        X_new: A single row (length p) or a matrix (m x p)

    Returns:
        Transformed row (1-D) or matrix (2-D), matching the input
    """
    rows, single = _as_rows(X_new, record.n_features, "X_new")
    out = _affine(rows, record)
    return out[0] if single else out


def inverse_transform(record: TransformRecord, pX: Any) -> np.ndarray:
    """
    Map preprocessed rows back to the original variable space.

    Uses the pseudo-inverse of the multiplier, which is exact for every
    mode since the stored multiplier is always full rank.
    """
    rows, single = _as_rows(pX, record.n_features, "pX")
    out = rows @ linalg.pinv(record.multiplier) + record.center
    return out[0] if single else out


def _affine(X: np.ndarray, record: TransformRecord) -> np.ndarray:
    return (X - record.center) @ record.multiplier


def _as_rows(values: Any, p: int, name: str) -> Tuple[np.ndarray, bool]:
    """Coerce a row or matrix to 2-D with width p."""
    try:
        arr = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"'{name}' should be numeric: {e}") from e

    single = arr.ndim == 1
    if single:
        arr = arr.reshape(1, -1)

    arr = check_matrix(arr, name=name, min_rows=1)
    if arr.shape[1] != p:
        raise InvalidInputError(
            f"'{name}' has {arr.shape[1]} columns, transform expects {p}"
        )
    return arr, single


def _column_std(X: np.ndarray, config: SolverConfig) -> np.ndarray:
    """Sample std per column; zero-variance columns are rank deficient."""
    constant = find_constant_columns(X, config.rank_tol)
    if constant:
        raise RankDeficientError(
            X.shape[1] - len(constant), X.shape[1],
            f"Cannot scale: zero-variance column(s) {constant}",
        )
    return X.std(axis=0, ddof=1)


def _covariance_eigen(X: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Eigenpairs of the sample covariance, descending, sign-normalized."""
    cov = np.atleast_2d(np.cov(X, rowvar=False, ddof=1))
    eigenvalues, eigenvectors = linalg.eigh(cov)
    order = np.argsort(-eigenvalues, kind='stable')
    return eigenvalues[order], adjust_projection(eigenvectors[:, order])
