"""
Dimtools: dimension reduction on shared numeric machinery.

Public API:
    from dimtools import preprocess, solve_generalized_eigenproblem, build_graph
    from dimtools import pca, lspp, bpca, bmds, predict_linear

Layers:
    dimtools.core        Preprocessing, generalized eigensolver, graph Laplacian
    dimtools.methods     Embedding methods composed from the core
    dimtools.validation  Eager input checks
    dimtools.errors      Typed failures (all ValueError subclasses)

Every call is a pure, single-shot computation: arrays in, dict or arrays
out, nothing kept between calls.
"""

from dimtools.errors import (
    DimtoolsError,
    InvalidInputError,
    InvalidDimensionError,
    RankDeficientError,
    DegenerateClassError,
)

from dimtools.core import (
    SolverConfig,
    load_config,
    EigenSense,
    adjust_projection,
    generalized_eigenpairs,
    solve_generalized_eigenproblem,
    PreprocessMode,
    TransformRecord,
    preprocess,
    apply_transform,
    inverse_transform,
    GraphRule,
    PairwiseKind,
    Symmetrize,
    LaplacianKind,
    build_graph,
    heat_kernel,
    laplacian_matrix,
    pairwise_distances,
)

from dimtools.methods import pca, lspp, bpca, bmds, predict_linear

__version__ = "0.1.0"

__all__ = [
    # Errors
    'DimtoolsError',
    'InvalidInputError',
    'InvalidDimensionError',
    'RankDeficientError',
    'DegenerateClassError',
    # Config
    'SolverConfig',
    'load_config',
    # Eigensolver
    'EigenSense',
    'adjust_projection',
    'generalized_eigenpairs',
    'solve_generalized_eigenproblem',
    # Preprocessing
    'PreprocessMode',
    'TransformRecord',
    'preprocess',
    'apply_transform',
    'inverse_transform',
    # Graph
    'GraphRule',
    'PairwiseKind',
    'Symmetrize',
    'LaplacianKind',
    'build_graph',
    'heat_kernel',
    'laplacian_matrix',
    'pairwise_distances',
    # Methods
    'pca',
    'lspp',
    'bpca',
    'bmds',
    'predict_linear',
]
