"""Row-oriented sparse LU factorization with threshold partial pivoting.

Rows are factorized one after another. For every row a depth-first search
over the rows of U already computed finds the pivots it depends on, a
sparse triangular solve eliminates them, and a pivot is picked among the
remaining columns. The diagonal is kept as the pivot whenever it is no
smaller than ``tol`` times the largest candidate.

The result is ``L`` with its pivots on the diagonal and a unit upper
triangular ``U``, both in pivot order. Row ``i`` of ``L @ U`` is row
``row_perm[i]`` of the matrix, with column ``c`` moved to position
``pivot_inv[c]``.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from .errors import (
    NumericallySingularError,
    NumericOverflowError,
    StructurallySingularError,
)
from .sparse import SparseMatrix, dump_permuted

REAL_BYTES = 8
INDEX_BYTES = 4
ENTRY_BYTES = REAL_BYTES + INDEX_BYTES

MIN_TOLERANCE = 1.0e-32
MAX_TOLERANCE = 0.99999999


def _clamp_tolerance(tol: float) -> float:
    if tol <= MIN_TOLERANCE:
        return MIN_TOLERANCE
    if tol > MAX_TOLERANCE:
        return MAX_TOLERANCE
    return float(tol)


@dataclass(frozen=True)
class TriangularPart:
    """One triangular factor stored row by row."""

    n: int
    values: tuple[float, ...]
    indices: tuple[int, ...]
    pointers: tuple[int, ...]

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

    def to_dense(self) -> list[list[float]]:
        """Return the factor as a list of rows."""
        dense = [[0.0] * self.n for _ in range(self.n)]
        for out_row, (idx, vals) in zip(dense, self.rows()):
            for j, v in zip(idx, vals):
                out_row[j] = v
        return dense


@dataclass(frozen=True)
class LUFactors:
    """The factors of a row-permuted matrix.

    ``pivot[i]`` is the column chosen as the ``i``-th pivot and
    ``pivot_inv`` its inverse. ``l_indices[i]``/``l_values[i]`` hold the
    off-diagonal entries of row ``i`` of L (pivot order), ``ldiag[i]`` its
    diagonal. ``u_indices[i]``/``u_values[i]`` hold the off-diagonal entries
    of row ``i`` of the unit upper factor U (pivot order).
    """

    n: int
    row_perm: tuple[int, ...]
    pivot: tuple[int, ...]
    pivot_inv: tuple[int, ...]
    ldiag: tuple[float, ...]
    l_indices: tuple[tuple[int, ...], ...]
    l_values: tuple[tuple[float, ...], ...]
    u_indices: tuple[tuple[int, ...], ...]
    u_values: tuple[tuple[float, ...], ...]
    off_diagonal_pivots: int

    @property
    def lower_lengths(self) -> tuple[int, ...]:
        """Off-diagonal entry count of each row of L."""
        return tuple(len(r) for r in self.l_indices)

    @property
    def upper_lengths(self) -> tuple[int, ...]:
        """Off-diagonal entry count of each row of U."""
        return tuple(len(r) for r in self.u_indices)

    @property
    def l_nnz(self) -> int:
        """Entries of L, diagonal included."""
        return sum(self.lower_lengths) + self.n

    @property
    def u_nnz(self) -> int:
        """Entries of U, unit diagonal included."""
        return sum(self.upper_lengths) + self.n

    @property
    def lu_nnz(self) -> int:
        """Entries of L + U - I."""
        return self.l_nnz + self.u_nnz - self.n

    @property
    def storage_bytes(self) -> int:
        """Bytes the off-diagonal entries take as packed index/value pairs."""
        return (self.l_nnz + self.u_nnz - 2 * self.n) * ENTRY_BYTES

    def dump_lu(self) -> tuple[TriangularPart, TriangularPart]:
        """Return L and U as compressed rows.

        Each row of L ends with its diagonal; each row of U starts with
        its unit diagonal.
        """
        lx: list[float] = []
        li: list[int] = []
        lp = [0]
        ux: list[float] = []
        ui: list[int] = []
        up = [0]
        rows = zip(
            self.l_indices, self.l_values, self.ldiag, self.u_indices, self.u_values
        )
        for i, (lidx, lval, diag, uidx, uval) in enumerate(rows):
            li.extend(lidx)
            lx.extend(lval)
            li.append(i)
            lx.append(diag)
            lp.append(len(li))
            ui.append(i)
            ux.append(1.0)
            ui.extend(uidx)
            ux.extend(uval)
            up.append(len(ui))
        lower = TriangularPart(self.n, tuple(lx), tuple(li), tuple(lp))
        upper = TriangularPart(self.n, tuple(ux), tuple(ui), tuple(up))
        return lower, upper

    def dump_a(
        self, matrix: SparseMatrix, row_perm: Sequence[int] | None = None
    ) -> SparseMatrix:
        """Return ``matrix`` with rows in factorization order and columns in
        pivot order. ``row_perm`` defaults to the one factorized with."""
        rows = self.row_perm if row_perm is None else tuple(row_perm)
        return dump_permuted(matrix, rows, self.pivot_inv)

    def to_dense(self) -> list[list[float]]:
        """Return the product L·U as a dense list of rows."""
        lower, upper = self.dump_lu()
        u_dense = upper.to_dense()
        product = []
        for idx, vals in lower.rows():
            out = [0.0] * self.n
            for k, lv in zip(idx, vals):
                for j, uv in enumerate(u_dense[k]):
                    if uv:
                        out[j] += lv * uv
            product.append(out)
        return product


def _symbolic(
    k: int,
    row_cols: Sequence[int],
    pinv: list[int],
    flag: list[int],
    pend: list[int],
    u_idx: list[list[int]],
) -> tuple[list[int], list[int]]:
    """Find the U pattern of row ``k`` and the pivotal columns it depends on.

    Returns the non-pivotal columns reached and the pivotal ones in
    topological order.
    """
    upper: list[int] = []
    finished: list[int] = []
    for col in row_cols:
        if flag[col] == k:
            continue
        if pinv[col] < 0:
            flag[col] = k
            upper.append(col)
            continue
        stack = [col]
        appos: list[int] = []
        while stack:
            j = stack[-1]
            jnew = pinv[j]
            row = u_idx[jnew]
            if flag[j] != k:
                flag[j] = k
                appos.append(pend[jnew] if pend[jnew] >= 0 else len(row))
            pos = appos[-1] - 1
            while pos >= 0:
                ucol = row[pos]
                if flag[ucol] != k:
                    if pinv[ucol] >= 0:
                        break
                    flag[ucol] = k
                    upper.append(ucol)
                pos -= 1
            if pos >= 0:
                appos[-1] = pos
                stack.append(row[pos])
            else:
                stack.pop()
                appos.pop()
                finished.append(j)
    finished.reverse()
    return upper, finished


def _pivot(
    diagcol: int, upper: list[int], x: list[float], tol: float
) -> tuple[list[int], list[float], int, float]:
    """Choose the pivot of a row and gather its scaled U entries."""
    if not upper:
        raise StructurallySingularError("row has no candidate pivot")
    last_col = upper[-1]
    idx = upper[:-1]
    vals: list[float] = []
    pdiag = -1
    abs_pivot = -1.0
    ppivcol = -1
    for p, c in enumerate(idx):
        tx = x[c]
        x[c] = 0.0
        vals.append(tx)
        xabs = abs(tx)
        if c == diagcol:
            pdiag = p
        if xabs > abs_pivot:
            abs_pivot = xabs
            ppivcol = p

    xabs = abs(x[last_col])
    if xabs > abs_pivot:
        abs_pivot = xabs
        ppivcol = -1

    if last_col == diagcol:
        if xabs >= tol * abs_pivot:
            ppivcol = -1
    elif pdiag >= 0:
        if abs(vals[pdiag]) >= tol * abs_pivot:
            ppivcol = pdiag

    if ppivcol >= 0:
        pivcol = idx[ppivcol]
        pivot = vals[ppivcol]
        idx[ppivcol] = last_col
        vals[ppivcol] = x[last_col]
    else:
        pivcol = last_col
        pivot = x[last_col]
    x[last_col] = 0.0

    if pivot == 0.0:
        raise NumericallySingularError(f"zero pivot in column {pivcol}")
    if math.isnan(pivot):
        raise NumericOverflowError(f"pivot in column {pivcol} is NaN")
    return idx, [v / pivot for v in vals], pivcol, pivot


def _prune(
    pend: list[int],
    lower: Sequence[int],
    pinv: Sequence[int],
    pivcol: int,
    u_idx: list[list[int]],
    u_val: list[list[float]],
) -> None:
    """Move pivotal columns to the front of every U row that holds ``pivcol``."""
    for j in lower:
        if pend[j] >= 0:
            continue
        idx = u_idx[j]
        if pivcol not in idx:
            continue
        vals = u_val[j]
        head, tail = 0, len(idx)
        while head < tail:
            c = idx[head]
            if pinv[c] >= 0:
                head += 1
            else:
                tail -= 1
                idx[head], idx[tail] = idx[tail], c
                vals[head], vals[tail] = vals[tail], vals[head]
        pend[j] = tail


def factorize(
    matrix: SparseMatrix,
    row_perm: Sequence[int] | None = None,
    tol: float = 1.0,
    col_scale: Sequence[float] | None = None,
) -> LUFactors:
    """Factorize ``matrix`` with its rows taken in ``row_perm`` order.

    ``tol`` is the diagonal preference threshold, clamped to
    ``[1e-32, 0.99999999]``. With ``col_scale`` every entry is divided by
    the scale of its column first.
    """
    n = matrix.n
    rows = tuple(range(n)) if row_perm is None else tuple(int(r) for r in row_perm)
    if sorted(rows) != list(range(n)):
        raise ValueError("row_perm must be a permutation of the matrix rows")
    scale: tuple[float, ...] | None = None
    if col_scale is not None:
        scale = tuple(float(s) for s in col_scale)
        if len(scale) != n:
            raise ValueError("col_scale must have one entry per column")
    tol = _clamp_tolerance(tol)

    p = list(range(n))
    pinv = [-i - 2 for i in range(n)]
    x = [0.0] * n
    flag = [-1] * n
    pend = [-1] * n
    u_idx: list[list[int]] = [[] for _ in range(n)]
    u_val: list[list[float]] = [[] for _ in range(n)]
    l_idx: list[tuple[int, ...]] = []
    l_val: list[tuple[float, ...]] = []
    ldiag: list[float] = []
    off_diagonal = 0

    for i, old_row in enumerate(rows):
        cols, vals = matrix.row(old_row)
        upper, order = _symbolic(i, cols, pinv, flag, pend, u_idx)

        if scale is None:
            for c, v in zip(cols, vals):
                x[c] = v
        else:
            for c, v in zip(cols, vals):
                x[c] = v / scale[c]

        for j in order:
            xj = x[j]
            jnew = pinv[j]
            for c, v in zip(u_idx[jnew], u_val[jnew]):
                x[c] -= xj * v

        diagcol = p[i]
        idx, uvals, pivcol, pivot = _pivot(diagcol, upper, x, tol)
        u_idx[i] = idx
        u_val[i] = uvals

        lower = tuple(pinv[j] for j in order)
        l_idx.append(lower)
        l_val.append(tuple(x[j] for j in order))
        for j in order:
            x[j] = 0.0
        ldiag.append(pivot)

        if pivcol != diagcol:
            off_diagonal += 1
            if pinv[diagcol] < 0:
                kb = -pinv[pivcol] - 2
                p[kb] = diagcol
                pinv[diagcol] = -kb - 2
        p[i] = pivcol
        pinv[pivcol] = i

        _prune(pend, lower, pinv, pivcol, u_idx, u_val)

    return LUFactors(
        n=n,
        row_perm=rows,
        pivot=tuple(p),
        pivot_inv=tuple(pinv),
        ldiag=tuple(ldiag),
        l_indices=tuple(l_idx),
        l_values=tuple(l_val),
        u_indices=tuple(tuple(pinv[c] for c in row) for row in u_idx),
        u_values=tuple(tuple(row) for row in u_val),
        off_diagonal_pivots=off_diagonal,
    )