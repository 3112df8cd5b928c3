"""
Linear embedding methods.

Each returns an explicit (p x ndim) projection, so new rows can be
embedded with dimtools.methods.predict_linear.
"""

from dimtools.methods.linear.pca import pca
from dimtools.methods.linear.lspp import lspp
from dimtools.methods.linear.bpca import bpca

__all__ = ['pca', 'lspp', 'bpca']
