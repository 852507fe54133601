"""Sparse LU factorization: matrix storage, AMD ordering, pivoting factorization, scheduling analysis and timing."""

__version__ = "0.1.0"
__all__ = ["errors", "sparse", "timer", "ordering", "factor", "schedule"]