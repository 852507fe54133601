"""Exceptions raised by the sparse LU package."""


class SparseLUError(Exception):
    """Base class for every error the package raises."""


class MatrixInvalidError(SparseLUError):
    """The matrix structure is malformed (bad order, pointers or indices)."""


class DuplicateEntryError(SparseLUError):
    """A row holds the same column index twice in a row."""


class StructurallySingularError(SparseLUError):
    """The sparsity pattern admits no full matching, or a row is empty."""


class NumericallySingularError(SparseLUError):
    """A pivot of exactly zero was met during factorization."""


class NumericOverflowError(SparseLUError):
    """A pivot became NaN during factorization."""