"""
Bayesian Principal Component Analysis (BPCA).

Probabilistic PCA with an automatic-relevance-determination prior on each
column of a full p x (p-1) loading matrix W, fitted by EM to the posterior
mode (Bishop, "Bayesian PCA", NIPS 1999).

    t = W x + mu + e,   x ~ N(0, I),   e ~ N(0, sigma2 I)
    w_i ~ N(0, alpha_i^-1 I),   alpha_i = p / ||w_i||^2

Small alpha_i means column w_i carries signal. The ndim columns with the
smallest alpha span the projection

    projection = W_k (W_k^T W_k + sigma2 I)^-1

which maps a preprocessed row onto the posterior mean of its latent
coordinates.
"""

import logging
import numbers
import warnings
from typing import Any, Dict, Optional

import numpy as np
from scipy import linalg

from dimtools.core.config import SolverConfig, resolve_config
from dimtools.core.geigen import EigenSense, generalized_eigenpairs
from dimtools.core.preprocess import preprocess as fit_preprocess
from dimtools.errors import InvalidInputError, RankDeficientError
from dimtools.validation import check_matrix, check_ndim

logger = logging.getLogger(__name__)

# Upper bound on alpha once a column has collapsed to zero
MAX_PRECISION = 1e10


def bpca(
    X: Any,
    ndim: int = 2,
    preprocess: str = "center",
    reltol: float = 1e-4,
    maxiter: int = 123,
    config: Optional[SolverConfig] = None,
) -> Dict[str, Any]:
    """
    Bayesian PCA.

    Args:
        X: Data matrix (n x p)
        ndim: Target dimension, 1 <= ndim < p
        preprocess: Preprocessing mode (default 'center')
        reltol: Relative change in W that stops EM, in [machine eps, 1)
        maxiter: Maximum EM iterations, >= 5
        config: Thresholds; defaults to SolverConfig()

    Returns:
        dict with:
            embedding : np.ndarray (n x ndim)
            projection : np.ndarray (p x ndim)
            transform : TransformRecord
            n_iter : int, EM iterations run
            sigma2 : float, noise variance estimate
            alpha : np.ndarray (p-1,), ARD precision per column of W
            loadings : np.ndarray (p x p-1), full EM loading matrix W
    """
    X = check_matrix(X)
    ndim = check_ndim(ndim, X.shape[1], strict=True)

    eps = np.finfo(np.float64).eps
    if (isinstance(reltol, bool) or not isinstance(reltol, numbers.Real)
            or not np.isfinite(reltol) or reltol < eps or reltol >= 1):
        raise InvalidInputError("'reltol' should be in [machine epsilon, 1)")
    if isinstance(maxiter, bool) or not isinstance(maxiter, numbers.Integral) or maxiter < 5:
        raise InvalidInputError("'maxiter' should be an integer >= 5")
    config = resolve_config(config)

    pX, transform = fit_preprocess(X, preprocess, config=config)
    fit = _bpca_em(pX, float(reltol), int(maxiter), config)

    keep = np.argsort(fit['alpha'], kind='stable')[:ndim]
    W = fit['W'][:, keep]
    M = W.T @ W + fit['sigma2'] * np.eye(ndim)
    projection = linalg.solve(M, W.T, assume_a='pos').T

    return {
        'embedding': pX @ projection,
        'projection': projection,
        'transform': transform,
        'n_iter': fit['n_iter'],
        'sigma2': fit['sigma2'],
        'alpha': fit['alpha'],
        'loadings': fit['W'],
    }


def _bpca_em(
    T: np.ndarray,
    reltol: float,
    maxiter: int,
    config: SolverConfig,
) -> Dict[str, Any]:
    """
    EM iterations for the BPCA posterior mode.

    Initialized from the maximum-likelihood probabilistic PCA solution.
    """
    n, p = T.shape
    q = p - 1

    Tc = T - T.mean(axis=0)
    S = Tc.T @ Tc / n
    values, vectors = generalized_eigenpairs(
        S, None, ndim=p, sense=EigenSense.MAXIMIZE, config=config,
    )
    top = float(values[0])
    if top <= 0:
        raise RankDeficientError(0, p, "bpca: data has zero variance")

    floor = config.rank_tol * top
    sigma2 = max(float(values[q:].mean()), floor)
    W = vectors[:, :q] * np.sqrt(np.maximum(values[:q] - sigma2, sigma2))
    alpha = _precisions(W, p)

    total = float(np.sum(Tc ** 2))
    I_q = np.eye(q)
    n_iter = 0
    converged = False

    for n_iter in range(1, maxiter + 1):
        # E-step: posterior moments of the latent coordinates
        M_inv = linalg.inv(W.T @ W + sigma2 * I_q)
        Ex = Tc @ W @ M_inv
        Sxx = n * sigma2 * M_inv + Ex.T @ Ex

        # M-step with the ARD prior
        A = Sxx + sigma2 * np.diag(alpha)
        W_new = linalg.solve(A, (Tc.T @ Ex).T, assume_a='pos').T
        sigma2_new = (
            total
            - 2.0 * np.sum((Tc @ W_new) * Ex)
            + np.trace(Sxx @ W_new.T @ W_new)
        ) / (n * p)
        sigma2_new = max(float(sigma2_new), floor)

        change = linalg.norm(W_new - W) / max(linalg.norm(W), np.finfo(np.float64).tiny)
        W, sigma2 = W_new, sigma2_new
        alpha = _precisions(W, p)

        if change < reltol:
            converged = True
            break

    if not converged:
        warnings.warn(
            f"bpca: EM did not reach reltol={reltol:g} in {maxiter} iterations",
            RuntimeWarning,
            stacklevel=3,
        )
    logger.debug("bpca: EM stopped after %d iterations (sigma2=%.4g)", n_iter, sigma2)

    return {'W': W, 'sigma2': sigma2, 'alpha': alpha, 'n_iter': n_iter}


def _precisions(W: np.ndarray, p: int) -> np.ndarray:
    """alpha_i = p / ||w_i||^2, capped for collapsed columns."""
    sq = np.sum(W ** 2, axis=0)
    alpha = np.full(sq.shape, MAX_PRECISION)
    alive = sq > p / MAX_PRECISION
    alpha[alive] = p / sq[alive]
    return alpha
