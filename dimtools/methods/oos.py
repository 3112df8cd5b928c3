"""Out-of-sample prediction for linear methods."""

from typing import Any

import numpy as np

from dimtools.core.preprocess import TransformRecord, apply_transform
from dimtools.errors import InvalidInputError
from dimtools.validation import check_matrix


def predict_linear(X_new: Any, transform: TransformRecord, projection: Any) -> np.ndarray:
    """
    Embed new rows with a fitted linear method.

    Args:
        X_new: A single row (length p) or a matrix (m x p)
        transform: The 'transform' entry of a method result
        projection: The 'projection' entry of a method result (p x d)

    Returns:
        Embedded row (d,) or matrix (m x d)

    Example:
        >>> out = pca(X_train, ndim=2)
        >>> Y_test = predict_linear(X_test, out['transform'], out['projection'])
    """
    if not isinstance(transform, TransformRecord):
        raise InvalidInputError(
            f"'transform' should be a TransformRecord, got {type(transform).__name__}"
        )
    projection = check_matrix(projection, name="projection", min_rows=1)
    if projection.shape[0] != transform.n_features:
        raise InvalidInputError(
            f"'projection' has {projection.shape[0]} rows, "
            f"transform expects {transform.n_features} variables"
        )
    return apply_transform(transform, X_new) @ projection
