"""Nonlinear embedding methods (no explicit projection)."""

from dimtools.methods.nonlinear.bmds import bmds

__all__ = ['bmds']
