"""
Dimtools Validation Module

Eager input checks used at the entry of every component.
"""

from dimtools.validation.input_validation import (
    check_matrix,
    check_ndim,
    check_labels,
    find_degenerate_classes,
    check_no_degenerate_class,
    check_square,
    check_symmetric,
    find_constant_columns,
)

__all__ = [
    'check_matrix',
    'check_ndim',
    'check_labels',
    'find_degenerate_classes',
    'check_no_degenerate_class',
    'check_square',
    'check_symmetric',
    'find_constant_columns',
]
