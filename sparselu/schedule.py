"""Scheduling of row factorization: elimination trees, level sets and work.

Rows whose level numbers are equal have no dependence on one another and
may be factorized at the same time. Levels are built either from the
elimination tree of the pattern (before factorization) or from the actual
dependences recorded in the L factor (for refactorization).
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from .factor import LUFactors
from .sparse import SparseMatrix


@dataclass(frozen=True)
class Levels:
    """Nodes grouped by level.

    ``depth[i]`` is the level of node ``i``. ``nodes`` lists every node,
    ordered by level and, inside a level, by node number; the nodes of
    level ``k`` are ``nodes[header[k]:header[k + 1]]``.
    """

    depth: tuple[int, ...]
    header: tuple[int, ...]
    nodes: tuple[int, ...]

    @property
    def count(self) -> int:
        """Number of levels."""
        return len(self.header) - 1

    def level(self, k: int) -> tuple[int, ...]:
        """Return the nodes of level ``k``."""
        if not 0 <= k < self.count:
            raise IndexError(f"level {k} out of range for {self.count} levels")
        return self.nodes[self.header[k] : self.header[k + 1]]

    def __len__(self) -> int:
        return self.count

    def __iter__(self) -> Iterator[tuple[int, ...]]:
        for k in range(self.count):
            yield self.level(k)


def _build_levels(depth: Sequence[int]) -> Levels:
    depth = tuple(depth)
    count = max(depth) + 1 if depth else 0
    sizes = [0] * count
    for d in depth:
        sizes[d] += 1
    header = [0]
    for size in sizes:
        header.append(header[-1] + size)
    nodes = sorted(range(len(depth)), key=lambda i: depth[i])
    return Levels(depth, tuple(header), tuple(nodes))


def _row_order(n: int, row_perm: Sequence[int] | None) -> tuple[int, ...]:
    rows = tuple(range(n)) if row_perm is None else tuple(int(r) for r in row_perm)
    if sorted(rows) != list(range(n)):
        raise ValueError("row_perm must be a permutation of the matrix rows")
    return rows


def _find_path(i: int, pp: list[int]) -> int:
    p = pp[i]
    gp = pp[p]
    while gp != p:
        pp[i] = gp
        i = gp
        p = pp[i]
        gp = pp[p]
    return p


def elimination_tree(
    matrix: SparseMatrix, row_perm: Sequence[int] | None = None
) -> list[int]:
    """Compute the elimination tree of the rows taken in ``row_perm`` order.

    Returns ``parent`` where ``parent[i]`` is the parent of row ``i`` of
    the permuted matrix, or ``n`` when row ``i`` is a root.
    """
    n = matrix.n
    rows = _row_order(n, row_perm)

    first = [n] * n
    for i, old_row in enumerate(rows):
        cols, _ = matrix.row(old_row)
        for col in cols:
            if i < first[col]:
                first[col] = i

    pp = [0] * n
    root = [0] * n
    parent = [n] * n
    for i, old_row in enumerate(rows):
        pp[i] = i
        cset = i
        root[cset] = i
        cols, _ = matrix.row(old_row)
        for col in cols:
            row = first[col]
            if row >= i:
                continue
            rset = _find_path(row, pp)
            rroot = root[rset]
            if rroot != i:
                parent[rroot] = i
                pp[cset] = rset
                cset = rset
                root[cset] = i
    return parent


def etree_levels(
    matrix: SparseMatrix, row_perm: Sequence[int] | None = None
) -> Levels:
    """Group the rows by their height in the elimination tree.

    Leaves are at level 0; a parent sits one level above its highest child.
    """
    parent = elimination_tree(matrix, row_perm)
    n = matrix.n
    depth = [0] * n
    for i, j in enumerate(parent):
        if j < n:
            lv = depth[i] + 1
            if lv > depth[j]:
                depth[j] = lv
    return _build_levels(depth)


def refactor_levels(factors: LUFactors) -> Levels:
    """Group the rows of a factorization by their actual dependences.

    Row ``i`` depends on row ``c`` when L holds column ``c`` in row ``i``
    and row ``c`` of U is not empty.
    """
    ulen = factors.upper_lengths
    depth: list[int] = []
    for lower in factors.l_indices:
        deepest = -1
        for col in lower:
            if ulen[col] > 0 and depth[col] > deepest:
                deepest = depth[col]
        depth.append(deepest + 1)
    return _build_levels(depth)


def _row_flops(factors: LUFactors) -> list[float]:
    ulen = factors.upper_lengths
    return [
        float(sum(2 * ulen[c] for c in lower) + ulen[i])
        for i, lower in enumerate(factors.l_indices)
    ]


def flops(factors: LUFactors) -> float:
    """Count the floating-point operations of the numeric factorization."""
    return sum(_row_flops(factors))


def thread_load(
    factors: LUFactors,
    levels: Levels,
    threads: int,
    workloads: Sequence[float],
    threshold: int,
    balance: float,
) -> list[float]:
    """Estimate the operations each thread performs in a parallel run.

    Runs of levels wider than ``threshold`` are split among the threads by
    the estimated ``workloads`` of their rows, each thread taking about
    ``balance`` times an even share; runs of narrower levels are dealt out
    round robin as a pipeline. The work of each slot is charged by its
    position in the level ordering.
    """
    if threads <= 0:
        raise ValueError("threads must be positive")
    n = factors.n
    if len(workloads) != n:
        raise ValueError("workloads must have one entry per row")
    if len(levels.nodes) != n:
        raise ValueError("levels must cover every row")

    row_work = _row_flops(factors)
    load = [0.0] * threads
    header = levels.header
    data = levels.nodes
    level = levels.count

    def width(lv: int) -> int:
        return header[lv + 1] - header[lv]

    clv = 0
    while clv < level:
        pipeline = width(clv) <= threshold
        lstart = clv
        lend = level
        clv += 1
        while clv < level:
            if (width(clv) <= threshold) != pipeline:
                lend = clv
                break
            clv += 1

        if pipeline:
            start, end = header[lstart], header[lend]
            for t in range(threads):
                for k in range(start + t, end, threads):
                    load[t] += row_work[k]
            continue

        for lv in range(lstart, lend):
            aegh, stop = header[lv], header[lv + 1]
            total = sum(workloads[data[j]] for j in range(aegh, stop))
            avg = int(total / threads * balance)

            j = aegh
            sub = 0
            while j < stop:
                sub += workloads[data[j]]
                j += 1
                if sub >= avg:
                    break
            for k in range(aegh, j):
                load[0] += row_work[k]

            start = j
            for t in range(1, threads):
                sub = 0
                while j < stop:
                    sub += workloads[data[j]]
                    j += 1
                    if sub >= avg:
                        break
                end = stop if t == threads - 1 else j
                for k in range(start, end):
                    load[t] += row_work[k]
                start = end
    return load