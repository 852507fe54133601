import random

import pytest

from sparselu.factor import factorize
from sparselu.schedule import (
    Levels,
    elimination_tree,
    etree_levels,
    flops,
    refactor_levels,
    thread_load,
)
from sparselu.sparse import SparseMatrix


def _random_matrix(seed: int, n: int = 9, density: float = 0.3) -> SparseMatrix:
    rng = random.Random(seed)
    rows = []
    for i in range(n):
        row = []
        for j in range(n):
            if i == j:
                row.append(10.0 + rng.random())
            elif rng.random() < density:
                row.append(rng.uniform(-1.0, 1.0))
            else:
                row.append(0.0)
        rows.append(row)
    return SparseMatrix.from_dense(rows)


def _tridiagonal(n: int) -> SparseMatrix:
    rows = []
    for i in range(n):
        row = [0.0] * n
        row[i] = 4.0
        if i > 0:
            row[i - 1] = -1.0
        if i < n - 1:
            row[i + 1] = -1.0
        rows.append(row)
    return SparseMatrix.from_dense(rows)


def _diagonal(n: int) -> SparseMatrix:
    return SparseMatrix.from_dense(
        [[float(i + 1) if i == j else 0.0 for j in range(n)] for i in range(n)]
    )


def _check_levels(levels: Levels, n: int) -> None:
    assert levels.header[0] == 0
    assert levels.header[-1] == n
    assert sorted(levels.nodes) == list(range(n))
    for k, group in enumerate(levels):
        assert all(levels.depth[node] == k for node in group)
        assert list(group) == sorted(group)


def test_diagonal_tree_has_only_roots():
    assert elimination_tree(_diagonal(5)) == [5] * 5


def test_tridiagonal_tree_is_a_chain():
    n = 6
    assert elimination_tree(_tridiagonal(n)) == list(range(1, n + 1))


def test_tridiagonal_levels_one_node_each():
    n = 6
    levels = etree_levels(_tridiagonal(n))
    assert levels.count == n
    assert list(levels) == [(i,) for i in range(n)]
    _check_levels(levels, n)


def test_diagonal_levels_single_level():
    levels = etree_levels(_diagonal(4))
    assert levels.count == 1
    assert levels.level(0) == (0, 1, 2, 3)


@pytest.mark.parametrize("seed", range(6))
def test_etree_parent_is_later_row(seed):
    m = _random_matrix(seed)
    parent = elimination_tree(m)
    assert all(i < p <= m.n for i, p in enumerate(parent))


@pytest.mark.parametrize("seed", range(6))
def test_etree_levels_respect_parents(seed):
    m = _random_matrix(seed)
    perm = list(range(m.n))
    random.Random(seed).shuffle(perm)
    parent = elimination_tree(m, perm)
    levels = etree_levels(m, perm)
    _check_levels(levels, m.n)
    for i, p in enumerate(parent):
        if p < m.n:
            assert levels.depth[p] > levels.depth[i]


def test_bad_row_perm_rejected():
    with pytest.raises(ValueError):
        elimination_tree(_diagonal(3), [0, 0, 1])


def test_level_index_out_of_range():
    levels = etree_levels(_diagonal(3))
    with pytest.raises(IndexError):
        levels.level(1)


@pytest.mark.parametrize("seed", range(6))
def test_refactor_levels_respect_dependences(seed):
    m = _random_matrix(seed)
    factors = factorize(m)
    levels = refactor_levels(factors)
    _check_levels(levels, m.n)
    ulen = factors.upper_lengths
    for i, lower in enumerate(factors.l_indices):
        for c in lower:
            if ulen[c] > 0:
                assert levels.depth[c] < levels.depth[i]


def test_refactor_levels_diagonal_single_level():
    levels = refactor_levels(factorize(_diagonal(5)))
    assert levels.count == 1
    assert levels.level(0) == tuple(range(5))


def test_flops_diagonal_is_zero():
    assert flops(factorize(_diagonal(4))) == 0.0


def test_flops_two_by_two():
    m = SparseMatrix.from_dense([[4.0, 1.0], [1.0, 3.0]])
    assert flops(factorize(m)) == 3.0


@pytest.mark.parametrize("seed", range(5))
@pytest.mark.parametrize("threads", [1, 2, 3, 4])
@pytest.mark.parametrize("threshold", [0, 1, 2, 100])
def test_thread_load_sums_to_flops(seed, threads, threshold):
    m = _random_matrix(seed)
    factors = factorize(m)
    levels = etree_levels(m)
    load = thread_load(factors, levels, threads, [1.0] * m.n, threshold, 1.0)
    assert len(load) == threads
    assert all(value >= 0 for value in load)
    assert sum(load) == pytest.approx(flops(factors))


def test_thread_load_single_thread_pipeline_gets_everything():
    m = _tridiagonal(5)
    factors = factorize(m)
    levels = etree_levels(m)
    load = thread_load(factors, levels, 1, [1.0] * 5, 10, 1.0)
    assert load == [flops(factors)]


def test_thread_load_rejects_zero_threads():
    m = _diagonal(3)
    factors = factorize(m)
    with pytest.raises(ValueError):
        thread_load(factors, etree_levels(m), 0, [1.0] * 3, 1, 1.0)


def test_thread_load_rejects_wrong_workloads():
    m = _diagonal(3)
    factors = factorize(m)
    with pytest.raises(ValueError):
        thread_load(factors, etree_levels(m), 2, [1.0] * 2, 1, 1.0)