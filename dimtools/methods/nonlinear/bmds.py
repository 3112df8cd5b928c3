"""
Bayesian Multidimensional Scaling (BMDS).

Oh & Raftery, "Bayesian Multidimensional Scaling and Choice of Dimension",
JASA 2001. Observed dissimilarities are modelled as truncated-normal
measurements of the Euclidean distances of a latent configuration:

    delta_ij ~ N(d_ij, sigma2) I(delta_ij > 0)
    x_i ~ N(0, Lambda),  Lambda = diag(lambda_1..lambda_d)
    sigma2 ~ IG(a, b),   lambda_j ~ IG(alpha, beta_j)

Sampler, per iteration:
    1. random-walk Metropolis move of each point x_i
    2. Metropolis-Hastings move of sigma2 with an inverse-gamma proposal
    3. Gibbs draw of each lambda_j

Only the maximum-a-posteriori configuration visited is returned. The
method has no explicit projection, so there is no out-of-sample map
beyond the preprocessing record.
"""

import logging
import numbers
from typing import Any, Dict, Optional

import numpy as np
from scipy import stats
from scipy.special import log_ndtr

from dimtools.core.config import SolverConfig, resolve_config
from dimtools.core.geigen import EigenSense, generalized_eigenpairs
from dimtools.core.graph import pairwise_distances
from dimtools.core.preprocess import preprocess as fit_preprocess
from dimtools.errors import InvalidInputError
from dimtools.validation import check_matrix, check_ndim

logger = logging.getLogger(__name__)


def bmds(
    X: Any,
    ndim: int = 2,
    a: float = 5.0,
    alpha: float = 0.5,
    step: float = 1.0,
    mc_iter: int = 50,
    preprocess: str = "none",
    random_state: Optional[int] = None,
    config: Optional[SolverConfig] = None,
) -> Dict[str, Any]:
    """
    Bayesian MDS, maximum-a-posteriori configuration.

    Args:
        X: Data matrix (n x p)
        ndim: Target dimension, 1 <= ndim <= p
        a: Shape of the IG prior on sigma2, a > 1
        alpha: Shape of the IG priors on the configuration variances, > 0
        step: Scale of the random-walk proposal, > 0
        mc_iter: Number of MCMC iterations, >= 1
        preprocess: Preprocessing mode (default 'none')
        random_state: Seed for numpy.random.default_rng
        config: Thresholds; defaults to SolverConfig()

    Returns:
        dict with:
            embedding : np.ndarray (n x ndim), MAP configuration
            transform : TransformRecord
            sigma2 : float, measurement variance at the MAP
            log_posterior : float, unnormalized log posterior at the MAP
            acceptance_rate : float, fraction of accepted point moves
    """
    X = check_matrix(X)
    n, p = X.shape
    ndim = check_ndim(ndim, p)
    if ndim > n - 1:
        raise InvalidInputError(f"bmds needs more than {ndim} observations, got {n}")
    _check_positive(a, "a", lower=1.0)
    _check_positive(alpha, "alpha")
    _check_positive(step, "step")
    if isinstance(mc_iter, bool) or not isinstance(mc_iter, numbers.Integral) or mc_iter < 1:
        raise InvalidInputError("'mc_iter' should be a positive integer")
    config = resolve_config(config)

    pX, transform = fit_preprocess(X, preprocess, config=config)
    delta = pairwise_distances(pX)
    if not (delta > 0).any():
        raise InvalidInputError("bmds: all observations are identical")

    iu = np.triu_indices(n, 1)
    m = iu[0].shape[0]

    # Classical MDS start, rotated onto its principal axes
    Xc = _classical_mds(delta, ndim, config)
    _, axes = generalized_eigenpairs(
        np.atleast_2d(np.cov(Xc, rowvar=False)), None, ndim=ndim,
        sense=EigenSense.MAXIMIZE, config=config,
    )
    Xc = Xc @ axes

    # Variance floors follow the squared scale of the dissimilarities
    floor = config.rank_tol * float(delta.max()) ** 2
    sigma2 = max(_ssr(delta, Xc, iu) / m, floor)
    b = (a - 1.0) * sigma2
    spread = np.maximum(Xc.var(axis=0, ddof=1), floor)
    beta = spread / 2.0
    lam = spread.copy()

    sampler = _Posterior(delta, iu, a, b, alpha, beta)
    rng = np.random.default_rng(random_state)

    best_X = Xc.copy()
    best_sigma2 = sigma2
    best_logpost = sampler.log_posterior(Xc, sigma2, lam)
    accepted = 0

    for it in range(mc_iter):
        # 1. points
        sd = step * np.sqrt(sigma2 / max(n - 1, 1))
        for i in range(n):
            proposal = Xc[i] + rng.normal(0.0, sd, size=ndim)
            log_ratio = (
                sampler.point_term(Xc, i, proposal, sigma2, lam)
                - sampler.point_term(Xc, i, Xc[i], sigma2, lam)
            )
            if np.log(rng.uniform()) < log_ratio:
                Xc[i] = proposal
                accepted += 1

        # 2. sigma2
        ssr = _ssr(delta, Xc, iu)
        candidate = stats.invgamma.rvs(
            m / 2.0 + a, scale=ssr / 2.0 + b, random_state=rng,
        )
        d = _distances(Xc, iu)
        log_ratio = (
            np.sum(log_ndtr(d / np.sqrt(sigma2)))
            - np.sum(log_ndtr(d / np.sqrt(candidate)))
        )
        if np.log(rng.uniform()) < log_ratio:
            sigma2 = float(candidate)

        # 3. configuration variances
        s = np.sum(Xc ** 2, axis=0)
        lam = np.array([
            stats.invgamma.rvs(alpha + n / 2.0, scale=beta[j] + s[j] / 2.0, random_state=rng)
            for j in range(ndim)
        ])

        logpost = sampler.log_posterior(Xc, sigma2, lam)
        if logpost > best_logpost:
            best_X = Xc.copy()
            best_sigma2 = sigma2
            best_logpost = logpost

        logger.debug("bmds: iter=%d sigma2=%.4g logpost=%.4f", it + 1, sigma2, logpost)

    acceptance_rate = accepted / float(n * mc_iter)
    logger.debug("bmds: acceptance_rate=%.3f", acceptance_rate)

    return {
        'embedding': best_X,
        'transform': transform,
        'sigma2': float(best_sigma2),
        'log_posterior': float(best_logpost),
        'acceptance_rate': acceptance_rate,
    }


class _Posterior:
    """Unnormalized log posterior of the BMDS model for one call."""

    def __init__(self, delta, iu, a, b, alpha, beta):
        self.delta = delta
        self.iu = iu
        self.a = a
        self.b = b
        self.alpha = alpha
        self.beta = beta

    def log_posterior(self, X: np.ndarray, sigma2: float, lam: np.ndarray) -> float:
        n = X.shape[0]
        d = _distances(X, self.iu)
        resid = self.delta[self.iu] - d
        m = d.shape[0]
        sigma = np.sqrt(sigma2)

        value = (
            -0.5 * m * np.log(sigma2)
            - np.sum(resid ** 2) / (2.0 * sigma2)
            - np.sum(log_ndtr(d / sigma))
            - 0.5 * n * np.sum(np.log(lam))
            - 0.5 * np.sum(X ** 2 / lam)
            - (self.a + 1.0) * np.log(sigma2) - self.b / sigma2
            - np.sum((self.alpha + 1.0) * np.log(lam) + self.beta / lam)
        )
        return float(value)

    def point_term(
        self,
        X: np.ndarray,
        i: int,
        x_i: np.ndarray,
        sigma2: float,
        lam: np.ndarray,
    ) -> float:
        """Log posterior terms that depend on the position of point i."""
        others = np.delete(np.arange(X.shape[0]), i)
        d = np.linalg.norm(X[others] - x_i, axis=1)
        resid = self.delta[i, others] - d
        return float(
            -np.sum(resid ** 2) / (2.0 * sigma2)
            - np.sum(log_ndtr(d / np.sqrt(sigma2)))
            - 0.5 * np.sum(x_i ** 2 / lam)
        )


def _classical_mds(delta: np.ndarray, ndim: int, config: SolverConfig) -> np.ndarray:
    """Torgerson scaling of a distance matrix."""
    n = delta.shape[0]
    J = np.eye(n) - np.full((n, n), 1.0 / n)
    B = -0.5 * J @ (delta ** 2) @ J
    values, vectors = generalized_eigenpairs(
        (B + B.T) / 2.0, None, ndim=ndim, sense=EigenSense.MAXIMIZE, config=config,
    )
    return vectors * np.sqrt(np.maximum(values, 0.0))


def _distances(X: np.ndarray, iu) -> np.ndarray:
    diff = X[iu[0]] - X[iu[1]]
    return np.sqrt(np.sum(diff ** 2, axis=1))


def _ssr(delta: np.ndarray, X: np.ndarray, iu) -> float:
    return float(np.sum((delta[iu] - _distances(X, iu)) ** 2))


def _check_positive(value: Any, name: str, lower: float = 0.0) -> None:
    if (isinstance(value, bool) or not isinstance(value, numbers.Real)
            or not np.isfinite(value) or value <= lower):
        raise InvalidInputError(f"'{name}' should be a number > {lower:g}, got {value!r}")
