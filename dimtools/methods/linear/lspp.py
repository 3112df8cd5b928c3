"""
Local Similarity Preserving Projection (LSPP).

Supervised variant of Locality Preserving Projection with a
sample-dependent graph:

1. PCA pre-projection onto every component with positive variance.
2. Squared distances, each row divided by its row sum, turned into
   heat-kernel similarities.
3. Different-class similarities are multiplied by the cosine similarity
   of the two rows, so intra-class weights dominate. Negative cosines
   are clipped to 0: a pair pointing in opposite directions gets no
   edge, and the adjacency stays non-negative.
4. Row i keeps only entries above its mean same-class similarity.
5. The directed graph is symmetrized as W + W^T, and the projection
   minimizes X^T L X against X^T D X.

Reference: Huang et al., "Local similarity preserving projections" (2015).
"""

import logging
import numbers
import warnings
from typing import Any, Dict, Optional

import numpy as np
from scipy import linalg

from dimtools.core.config import SolverConfig, resolve_config
from dimtools.core.geigen import EigenSense, solve_generalized_eigenproblem
from dimtools.core.graph import build_graph, pairwise_distances
from dimtools.core.preprocess import preprocess as fit_preprocess
from dimtools.errors import InvalidInputError
from dimtools.validation import (
    check_labels,
    check_matrix,
    check_ndim,
    check_no_degenerate_class,
)

logger = logging.getLogger(__name__)


def lspp(
    X: Any,
    labels: Any,
    ndim: int = 2,
    t: float = 1.0,
    preprocess: str = "center",
    ridge: Optional[float] = None,
    config: Optional[SolverConfig] = None,
) -> Dict[str, Any]:
    """
    Local Similarity Preserving Projection.

    Args:
        X: Data matrix (n x p)
        labels: Length-n class labels; no class may have a single member
        ndim: Target dimension, 1 <= ndim < p
        t: Heat-kernel bandwidth, t > 0
        preprocess: Preprocessing mode (default 'center')
        ridge: Optional Tikhonov term for a singular X^T D X
        config: Thresholds; defaults to SolverConfig()

    Returns:
        dict with:
            embedding : np.ndarray (n x ndim)
            projection : np.ndarray (p x ndim)
            transform : TransformRecord
    """
    X = check_matrix(X)
    n, p = X.shape
    labels = check_labels(labels, n)
    check_no_degenerate_class(labels)
    ndim = check_ndim(ndim, p, strict=True)
    if (isinstance(t, bool) or not isinstance(t, numbers.Real)
            or not np.isfinite(t) or t <= 0):
        raise InvalidInputError(f"'t' should be a positive number, got {t!r}")
    config = resolve_config(config)

    pX, transform = fit_preprocess(X, preprocess, config=config)

    # PCA pre-projection
    cov = np.atleast_2d(np.cov(pX, rowvar=False, ddof=1))
    eigenvalues = linalg.eigvalsh(cov)
    top = float(eigenvalues.max())
    pcadim = int((eigenvalues > config.rank_tol * top).sum()) if top > 0 else 0

    if pcadim <= ndim:
        warnings.warn(
            f"lspp: target ndim={ndim} is not below the PCA dimension "
            f"{pcadim}; skipping the PCA pre-projection.",
            UserWarning,
            stacklevel=2,
        )
        first = np.eye(p)
    else:
        first = solve_generalized_eigenproblem(
            cov, None, ndim=pcadim, sense=EigenSense.MAXIMIZE, config=config,
        )
    Z = pX @ first

    # Row-normalized squared distances
    D = pairwise_distances(Z, squared=True)
    row_sums = D.sum(axis=1)
    row_sums[row_sums == 0] = 1.0
    D = D / row_sums[:, None]

    # Cosine similarity damps different-class pairs; clipped at 0 to keep W >= 0
    norms = np.linalg.norm(Z, axis=1)
    norms[norms == 0] = 1.0
    eta = np.clip((Z @ Z.T) / np.outer(norms, norms), 0.0, None)

    graph = build_graph(
        np.sqrt(D),
        rule="label",
        kind="distance",
        bandwidth=t,
        labels=labels,
        inter_class_weight=eta,
        class_threshold=True,
        symmetrize="sum",
        config=config,
    )
    L = graph['laplacian']
    degree = graph['degree']

    lhs = Z.T @ L @ Z
    rhs = Z.T @ (degree[:, None] * Z)
    second = solve_generalized_eigenproblem(
        lhs, rhs, ndim=ndim, sense=EigenSense.MINIMIZE, ridge=ridge, config=config,
    )

    projection = first @ second
    logger.debug("lspp: n=%d p=%d pcadim=%d ndim=%d", n, p, pcadim, ndim)

    return {
        'embedding': pX @ projection,
        'projection': projection,
        'transform': transform,
    }
