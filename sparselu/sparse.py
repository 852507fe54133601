"""Compressed sparse row matrices, their validation and permutation."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from .errors import DuplicateEntryError, MatrixInvalidError


def check_matrix(n: int, indices: Sequence[int], pointers: Sequence[int]) -> None:
    """Validate the structure of a compressed matrix of order ``n``.

    Raises MatrixInvalidError when the order or the number of entries is
    zero, the pointer array is inconsistent, or an index is out of range.
    """
    if n <= 0:
        raise MatrixInvalidError("matrix order must be positive")
    nnz = len(indices)
    if nnz == 0:
        raise MatrixInvalidError("matrix has no entries")
    if len(pointers) != n + 1:
        raise MatrixInvalidError(f"expected {n + 1} pointers, got {len(pointers)}")
    if pointers[0] != 0:
        raise MatrixInvalidError("first pointer must be zero")
    if pointers[n] != nnz:
        raise MatrixInvalidError("last pointer must equal the number of entries")
    if any(a > b for a, b in zip(pointers, pointers[1:])):
        raise MatrixInvalidError("pointers must not decrease")
    if any(not 0 <= j < n for j in indices):
        raise MatrixInvalidError("index out of range")


@dataclass(frozen=True)
class SparseMatrix:
    """A square matrix stored row by row: column indices and values per row."""

    n: int
    values: tuple[float, ...]
    indices: tuple[int, ...]
    pointers: tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(float(v) for v in self.values))
        object.__setattr__(self, "indices", tuple(int(j) for j in self.indices))
        object.__setattr__(self, "pointers", tuple(int(p) for p in self.pointers))
        check_matrix(self.n, self.indices, self.pointers)
        if len(self.values) != len(self.indices):
            raise MatrixInvalidError("values and indices differ in length")

    @property
    def nnz(self) -> int:
        """Number of stored entries."""
        return len(self.indices)

    def row(self, i: int) -> tuple[tuple[int, ...], tuple[float, ...]]:
        """Return the column indices and values of row ``i``."""
        if not 0 <= i < self.n:
            raise IndexError(f"row {i} out of range for order {self.n}")
        start, end = self.pointers[i], self.pointers[i + 1]
        return self.indices[start:end], self.values[start:end]

    def rows(self) -> Iterator[tuple[tuple[int, ...], tuple[float, ...]]]:
        """Yield every row as a pair of index and value tuples."""
        for i in range(self.n):
            yield self.row(i)

    @classmethod
    def from_dense(cls, rows: Sequence[Sequence[float]]) -> SparseMatrix:
        """Build a matrix from a square list of rows, dropping zeros."""
        n = len(rows)
        values: list[float] = []
        indices: list[int] = []
        pointers = [0]
        for row in rows:
            if len(row) != n:
                raise MatrixInvalidError("dense matrix must be square")
            for j, v in enumerate(row):
                if v != 0:
                    indices.append(j)
                    values.append(v)
            pointers.append(len(indices))
        return cls(n, tuple(values), tuple(indices), tuple(pointers))

    def to_dense(self) -> list[list[float]]:
        """Return the matrix as a list of rows."""
        dense = [[0.0] * self.n for _ in range(self.n)]
        for out_row, (idx, vals) in zip(dense, self.rows()):
            for j, v in zip(idx, vals):
                out_row[j] = v
        return dense


@dataclass(frozen=True)
class Permutation:
    """A permutation with its inverse: ``inverse[forward[i]] == i``."""

    forward: tuple[int, ...]
    inverse: tuple[int, ...]

    def __post_init__(self) -> None:
        forward = tuple(int(v) for v in self.forward)
        inverse = tuple(int(v) for v in self.inverse)
        object.__setattr__(self, "forward", forward)
        object.__setattr__(self, "inverse", inverse)
        n = len(forward)
        if len(inverse) != n or sorted(forward) != list(range(n)):
            raise ValueError("not a permutation")
        if any(inverse[f] != i for i, f in enumerate(forward)):
            raise ValueError("inverse does not match forward permutation")

    @classmethod
    def identity(cls, n: int) -> Permutation:
        """The identity permutation of length ``n``."""
        ident = tuple(range(n))
        return cls(ident, ident)

    @classmethod
    def from_forward(cls, forward: Sequence[int]) -> Permutation:
        """Build a permutation from its forward mapping."""
        forward = tuple(forward)
        if sorted(forward) != list(range(len(forward))):
            raise ValueError("not a permutation")
        inverse = [0] * len(forward)
        for i, f in enumerate(forward):
            inverse[f] = i
        return cls(forward, tuple(inverse))

    def inverted(self) -> Permutation:
        """The inverse permutation."""
        return Permutation(self.inverse, self.forward)

    def __len__(self) -> int:
        return len(self.forward)

    def __getitem__(self, i: int) -> int:
        return self.forward[i]

    def __iter__(self) -> Iterator[int]:
        return iter(self.forward)


def is_sorted(matrix: SparseMatrix) -> bool:
    """Tell whether every row lists its column indices in ascending order.

    Raises DuplicateEntryError when a row repeats an index in adjacent
    positions, and MatrixInvalidError when the structure is broken.
    """
    ordered = True
    n = matrix.n
    for i in range(n):
        start, end = matrix.pointers[i], matrix.pointers[i + 1]
        if start > end:
            raise MatrixInvalidError("pointers must not decrease")
        last = -1
        for j in matrix.indices[start:end]:
            if not 0 <= j < n:
                raise MatrixInvalidError("index out of range")
            if j == last:
                raise DuplicateEntryError(f"row {i} repeats column {j}")
            if j < last:
                ordered = False
            last = j
    return ordered


def construct_rows(matrix: SparseMatrix, match: Sequence[int]) -> SparseMatrix:
    """Reorder rows so that row ``i`` of the result is row ``match[i]``."""
    if len(match) != matrix.n:
        raise ValueError("match must have one entry per row")
    values: list[float] = []
    indices: list[int] = []
    pointers = [0]
    for source_row in match:
        idx, vals = matrix.row(source_row)
        indices.extend(idx)
        values.extend(vals)
        pointers.append(len(indices))
    return SparseMatrix(matrix.n, tuple(values), tuple(indices), tuple(pointers))


def permute(
    matrix: SparseMatrix,
    match: Sequence[int],
    perm: Sequence[int],
    perm_inv: Sequence[int],
) -> tuple[SparseMatrix, Permutation, Permutation]:
    """Apply a matching and a symmetric ordering.

    Returns the matrix with column indices renumbered through ``perm_inv``,
    the row permutation (row ``i`` of the permuted matrix is original row
    ``match[perm[i]]``), and the column permutation ``perm``.
    """
    row_perm = Permutation.from_forward([match[p] for p in perm])
    col_perm = Permutation(tuple(perm), tuple(perm_inv))
    renumbered = SparseMatrix(
        matrix.n,
        matrix.values,
        tuple(col_perm.inverse[j] for j in matrix.indices),
        matrix.pointers,
    )
    return renumbered, row_perm, col_perm


def dump_permuted(
    matrix: SparseMatrix, row_perm: Sequence[int], pivot_inv: Sequence[int]
) -> SparseMatrix:
    """Return the matrix with rows taken in ``row_perm`` order and columns
    renumbered through ``pivot_inv``."""
    if len(row_perm) != matrix.n or len(pivot_inv) != matrix.n:
        raise ValueError("permutations must match the matrix order")
    values: list[float] = []
    indices: list[int] = []
    pointers = [0]
    for old_row in row_perm:
        idx, vals = matrix.row(old_row)
        indices.extend(pivot_inv[j] for j in idx)
        values.extend(vals)
        pointers.append(len(indices))
    return SparseMatrix(matrix.n, tuple(values), tuple(indices), tuple(pointers))