"""
Graph / Laplacian Engine.

Builds a weighted adjacency matrix W and its graph Laplacian L from an
n x n pairwise matrix, the way manifold and supervised projection methods
encode local-smoothness objectives.

Rules:
- kernel: every pair, heat-kernel (or given similarity) weights
- knn:    keep the k nearest neighbours of each row (directed)
- label:  keep same-class weights, reweight different-class ones;
          optionally keep only entries above the row's mean same-class
          weight (sample-dependent graph, directed)

Symmetrization of directed graphs is a fixed, explicit choice:
    max -> max(W, W^T)   (default; "i or j is a neighbour")
    min -> min(W, W^T)   ("mutual neighbours")
    sum -> W + W^T
    none -> W must already be symmetric

Output W is non-negative with zero diagonal. L = D - W is symmetric
positive semi-definite with zero row sums.
"""

import logging
import numbers
from enum import Enum
from typing import Any, Dict, Optional, Union

import numpy as np
from scipy.spatial.distance import pdist, squareform

from dimtools.core.config import SolverConfig, resolve_config
from dimtools.errors import InvalidInputError
from dimtools.validation import (
    check_labels,
    check_matrix,
    check_no_degenerate_class,
    check_square,
    check_symmetric,
)

logger = logging.getLogger(__name__)


class GraphRule(str, Enum):
    """Edge construction rules."""
    KERNEL = "kernel"
    KNN = "knn"
    LABEL = "label"


class PairwiseKind(str, Enum):
    """How to read the pairwise input matrix."""
    DISTANCE = "distance"      # heat kernel exp(-d^2 / (2 t^2))
    SIMILARITY = "similarity"  # used as weights directly


class Symmetrize(str, Enum):
    MAX = "max"
    MIN = "min"
    SUM = "sum"
    NONE = "none"


class LaplacianKind(str, Enum):
    UNNORMALIZED = "unnormalized"  # D - W
    SYMMETRIC = "symmetric"        # I - D^-1/2 W D^-1/2
    RANDOM_WALK = "random_walk"    # I - D^-1 W


def _resolve(enum_cls, value, name: str):
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(m.value for m in enum_cls)
        raise InvalidInputError(
            f"Unknown {name}: {value!r}. Use one of: {valid}"
        ) from None


def pairwise_distances(
    X: Any,
    metric: str = "euclidean",
    squared: bool = False,
) -> np.ndarray:
    """
    Pairwise distance matrix between the rows of X.

    Args:
        X: Data matrix (n x p)
        metric: Any metric accepted by scipy.spatial.distance.pdist
        squared: Return squared distances

    Returns:
        n x n symmetric matrix with zero diagonal
    """
    X = check_matrix(X, min_rows=1)
    try:
        D = squareform(pdist(X, metric=metric))
    except ValueError as e:
        raise InvalidInputError(f"Cannot compute '{metric}' distances: {e}") from e

    return D ** 2 if squared else D


def heat_kernel(distances: np.ndarray, bandwidth: float) -> np.ndarray:
    """exp(-d^2 / (2 t^2)) elementwise."""
    return np.exp(-(distances ** 2) / (2.0 * bandwidth ** 2))


def laplacian_matrix(
    weights: Any,
    kind: Union[str, LaplacianKind] = LaplacianKind.UNNORMALIZED,
) -> np.ndarray:
    """
    Graph Laplacian of a non-negative weight matrix.

    Vertices with zero degree use 0 for their inverse degree in the
    normalized variants.

    Args:
        weights: n x n non-negative adjacency
        kind: 'unnormalized', 'symmetric' or 'random_walk'

    Returns:
        n x n Laplacian
    """
    kind = _resolve(LaplacianKind, kind, "laplacian kind")
    W = check_square(weights, name="weights")
    if (W < 0).any():
        raise InvalidInputError("'weights' should be non-negative")

    degree = W.sum(axis=1)

    if kind == LaplacianKind.UNNORMALIZED:
        return np.diag(degree) - W

    connected = degree > 0
    n = W.shape[0]

    if kind == LaplacianKind.SYMMETRIC:
        inv_sqrt = np.zeros(n)
        inv_sqrt[connected] = 1.0 / np.sqrt(degree[connected])
        return np.eye(n) - inv_sqrt[:, None] * W * inv_sqrt[None, :]

    inv = np.zeros(n)
    inv[connected] = 1.0 / degree[connected]
    return np.eye(n) - inv[:, None] * W


def build_graph(
    pairwise: Any,
    rule: Union[str, GraphRule] = GraphRule.KERNEL,
    kind: Union[str, PairwiseKind] = PairwiseKind.DISTANCE,
    bandwidth: float = 1.0,
    k: Optional[int] = None,
    labels: Any = None,
    inter_class_weight: Any = 0.0,
    class_threshold: bool = False,
    symmetrize: Union[str, Symmetrize] = Symmetrize.MAX,
    laplacian: Union[str, LaplacianKind] = LaplacianKind.UNNORMALIZED,
    config: Optional[SolverConfig] = None,
) -> Dict[str, np.ndarray]:
    """
    Build adjacency weights and the graph Laplacian.

    Args:
        pairwise: n x n non-negative distances or similarities
        rule: 'kernel', 'knn' or 'label'
        kind: 'distance' (heat kernel applied) or 'similarity'
        bandwidth: Heat-kernel bandwidth t > 0 (distance input only)
        k: Neighbour count for 'knn', 1 <= k <= n-1
        labels: Length-n class labels for 'label'
        inter_class_weight: Factor for different-class pairs under 'label';
            non-negative scalar or n x n array
        class_threshold: Under 'label', keep (i, j) only if it exceeds the
            mean same-class weight of row i (self excluded)
        symmetrize: 'max', 'min', 'sum' or 'none'
        laplacian: 'unnormalized', 'symmetric' or 'random_walk'
        config: Thresholds; defaults to SolverConfig()

    Returns:
        dict with:
            weights : np.ndarray (n x n), symmetric, zero diagonal
            laplacian : np.ndarray (n x n)
            degree : np.ndarray (n,)

    Raises:
        InvalidInputError: bad matrix or parameters
        DegenerateClassError: 'label' rule with a singleton class
    """
    config = resolve_config(config)
    rule = _resolve(GraphRule, rule, "graph rule")
    kind = _resolve(PairwiseKind, kind, "pairwise kind")
    symmetrize = _resolve(Symmetrize, symmetrize, "symmetrization")
    laplacian = _resolve(LaplacianKind, laplacian, "laplacian kind")

    M = check_square(pairwise, name="pairwise")
    n = M.shape[0]
    if (M < 0).any():
        raise InvalidInputError("'pairwise' should be non-negative")

    if kind == PairwiseKind.DISTANCE:
        if (isinstance(bandwidth, bool) or not isinstance(bandwidth, numbers.Real)
                or not np.isfinite(bandwidth) or bandwidth <= 0):
            raise InvalidInputError(
                f"'bandwidth' should be a positive number, got {bandwidth!r}"
            )

    if rule == GraphRule.KNN:
        if (isinstance(k, bool) or not isinstance(k, numbers.Integral)
                or k < 1 or k > n - 1):
            raise InvalidInputError(
                f"'k' should be an integer in [1, {n - 1}], got {k!r}"
            )

    if rule == GraphRule.LABEL:
        if labels is None:
            raise InvalidInputError("rule 'label' requires 'labels'")
        labels = check_labels(labels, n)
        check_no_degenerate_class(labels)
        inter_class_weight = _check_inter_weight(inter_class_weight, n)

    # Base weights
    if kind == PairwiseKind.DISTANCE:
        W = heat_kernel(M, float(bandwidth))
    else:
        W = M.copy()
    np.fill_diagonal(W, 0.0)

    if rule == GraphRule.KNN:
        W = np.where(_knn_mask(M, int(k), kind), W, 0.0)

    elif rule == GraphRule.LABEL:
        same = labels[:, None] == labels[None, :]
        W = np.where(same, W, W * inter_class_weight)

        if class_threshold:
            intra = same & ~np.eye(n, dtype=bool)
            row_mean = (W * intra).sum(axis=1) / intra.sum(axis=1)
            W = np.where(W > row_mean[:, None], W, 0.0)

    np.fill_diagonal(W, 0.0)
    W = _symmetrize(W, symmetrize, config)

    degree = W.sum(axis=1)
    logger.debug(
        "build_graph: rule=%s n=%d edges=%d",
        rule.value, n, int(np.count_nonzero(np.triu(W))),
    )

    return {
        'weights': W,
        'laplacian': laplacian_matrix(W, laplacian),
        'degree': degree,
    }


def _check_inter_weight(value: Any, n: int):
    if np.ndim(value) == 0:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise InvalidInputError(
                f"'inter_class_weight' should be a number, got {value!r}"
            )
        value = float(value)
        if not np.isfinite(value) or value < 0:
            raise InvalidInputError("'inter_class_weight' should be non-negative")
        return value

    arr = check_square(value, name="inter_class_weight")
    if arr.shape != (n, n):
        raise InvalidInputError(
            f"'inter_class_weight' should be {n} x {n}, got {arr.shape}"
        )
    if (arr < 0).any():
        raise InvalidInputError("'inter_class_weight' should be non-negative")
    return arr


def _knn_mask(M: np.ndarray, k: int, kind: PairwiseKind) -> np.ndarray:
    """Boolean mask of each row's k nearest neighbours, self excluded."""
    n = M.shape[0]
    if kind == PairwiseKind.DISTANCE:
        key = M.copy()
        np.fill_diagonal(key, np.inf)
    else:
        key = -M
        np.fill_diagonal(key, np.inf)

    nearest = np.argsort(key, axis=1, kind='stable')[:, :k]
    mask = np.zeros((n, n), dtype=bool)
    mask[np.arange(n)[:, None], nearest] = True
    return mask


def _symmetrize(W: np.ndarray, mode: Symmetrize, config: SolverConfig) -> np.ndarray:
    if mode == Symmetrize.MAX:
        return np.maximum(W, W.T)
    if mode == Symmetrize.MIN:
        return np.minimum(W, W.T)
    if mode == Symmetrize.SUM:
        return W + W.T
    check_symmetric(W, name="weights", atol=config.symmetry_tol)
    return (W + W.T) / 2.0
