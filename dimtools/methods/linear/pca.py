"""
Principal Component Analysis.

Eigendecomposition of the sample covariance (or correlation) matrix of the
preprocessed data. The top-ndim eigenvectors form the projection.
"""

from typing import Any, Dict, Optional

import numpy as np

from dimtools.core.config import SolverConfig, resolve_config
from dimtools.core.geigen import EigenSense, generalized_eigenpairs
from dimtools.core.preprocess import preprocess as fit_preprocess
from dimtools.errors import RankDeficientError
from dimtools.validation import check_matrix, check_ndim, find_constant_columns


def pca(
    X: Any,
    ndim: int = 2,
    cor: bool = False,
    preprocess: str = "center",
    config: Optional[SolverConfig] = None,
) -> Dict[str, Any]:
    """
    Classical PCA.

    Args:
        X: Data matrix (n x p), rows are observations
        ndim: Target dimension, 1 <= ndim <= p
        cor: Decompose the correlation matrix instead of the covariance
        preprocess: Preprocessing mode (default 'center')
        config: Thresholds; defaults to SolverConfig()

    Returns:
        dict with:
            embedding : np.ndarray (n x ndim)
            variances : np.ndarray (ndim,), variance along each component
            projection : np.ndarray (p x ndim), principal components
            transform : TransformRecord, for out-of-sample prediction
    """
    X = check_matrix(X)
    ndim = check_ndim(ndim, X.shape[1])
    config = resolve_config(config)

    pX, transform = fit_preprocess(X, preprocess, config=config)

    if cor:
        constant = find_constant_columns(pX, config.rank_tol)
        if constant:
            raise RankDeficientError(
                X.shape[1] - len(constant), X.shape[1],
                f"Correlation undefined for zero-variance column(s) {constant}",
            )
        psd = np.atleast_2d(np.corrcoef(pX, rowvar=False))
    else:
        psd = np.atleast_2d(np.cov(pX, rowvar=False, ddof=1))

    variances, projection = generalized_eigenpairs(
        psd, None, ndim=ndim, sense=EigenSense.MAXIMIZE, config=config,
    )

    return {
        'embedding': pX @ projection,
        'variances': variances,
        'projection': projection,
        'transform': transform,
    }
