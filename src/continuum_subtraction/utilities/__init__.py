"""Numerical helpers."""

from .polynomial import fit_polynomial, evaluate, solve_quadratic, derivative_roots

__all__ = ['fit_polynomial', 'evaluate', 'solve_quadratic', 'derivative_roots']
