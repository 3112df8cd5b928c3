"""
Embedding methods built on dimtools.core.

    linear/     pca, lspp, bpca     (projection + transform)
    nonlinear/  bmds                (embedding + transform)
    oos.py      predict_linear      (out-of-sample embedding)

Every method takes an (n x p) matrix, validates eagerly, preprocesses, and
returns a plain dict with at least 'embedding' and 'transform'.
"""

from dimtools.methods.linear import pca, lspp, bpca
from dimtools.methods.nonlinear import bmds
from dimtools.methods.oos import predict_linear

__all__ = ['pca', 'lspp', 'bpca', 'bmds', 'predict_linear']
