"""
Dimtools Core
=============

Shared numeric machinery reused by every embedding method.

Structure:
    config.py      - SolverConfig thresholds, YAML loading
    preprocess.py  - center / scale / decorrelate / whiten with out-of-sample map
    geigen.py      - generalized eigensolver with maximize/minimize selection
    graph.py       - adjacency and graph Laplacian construction

Pure functions only: arrays in, arrays out, no state kept between calls.
"""

from dimtools.core.config import SolverConfig, load_config

from dimtools.core.geigen import (
    EigenSense,
    adjust_projection,
    generalized_eigenpairs,
    solve_generalized_eigenproblem,
)

from dimtools.core.preprocess import (
    PreprocessMode,
    TransformRecord,
    preprocess,
    apply_transform,
    inverse_transform,
)

from dimtools.core.graph import (
    GraphRule,
    PairwiseKind,
    Symmetrize,
    LaplacianKind,
    build_graph,
    heat_kernel,
    laplacian_matrix,
    pairwise_distances,
)

__all__ = [
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
]
