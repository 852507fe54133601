# sparselu

Sparse LU factorization in pure Python, with no dependencies outside the
standard library. It provides the building blocks of a row-oriented sparse
direct solver: matrix storage and validation, a fill-reducing ordering,
numeric factorization with threshold partial pivoting, and analysis of how
the factorization could be scheduled across threads.

## Modules

- `sparselu.sparse`
  - `SparseMatrix(n, values, indices, pointers)` is a square matrix stored
    row by row. Construction validates the structure. It has `nnz`,
    `row(i)`, `rows()`, `from_dense(rows)` and `to_dense()`.
  - `Permutation(forward, inverse)` is a checked permutation with its
    inverse, with `identity(n)`, `from_forward(forward)` and `inverted()`.
  - `check_matrix(n, indices, pointers)` validates a compressed structure.
  - `is_sorted(matrix)` tells whether every row lists its columns in
    ascending order, and raises on adjacent duplicates.
  - `construct_rows(matrix, match)` builds the matrix whose row `i` is row
    `match[i]`.
  - `permute(matrix, match, perm, perm_inv)` renumbers columns through
    `perm_inv` and returns the matrix with the row permutation
    (`match[perm[i]]`) and the column permutation.
  - `dump_permuted(matrix, row_perm, pivot_inv)` takes rows in `row_perm`
    order and renumbers columns through `pivot_inv`.
- `sparselu.ordering`
  - `amd(n, indices, pointers, alpha, aggressive)` orders the symmetric
    pattern A + A' by approximate minimum degree and returns an `AmdResult`
    with `perm`, `perm_inv`, an estimate `lu_nnz` of the factor entries,
    and `permutation`. A negative `alpha` sets the dense-row threshold to
    `n - 2`; `aggressive` turns on aggressive element absorption. Unsorted
    rows are sorted first.
  - Helpers: `sort_transpose`, `count_aat`, `build_aat` and `post_order`.
- `sparselu.factor`
  - `factorize(matrix, row_perm=None, tol=1.0, col_scale=None)` factorizes
    the matrix with its rows taken in `row_perm` order. The diagonal is
    kept as pivot when it is at least `tol` times the largest candidate;
    `tol` is clamped to `[1e-32, 0.99999999]`. With `col_scale`, each
    entry is divided by the scale of its column first.
  - `LUFactors` holds L (pivots on the diagonal, `ldiag`) and a unit upper
    U, both in pivot order, with `pivot`, `pivot_inv`, `l_nnz`, `u_nnz`,
    `lu_nnz`, `off_diagonal_pivots` and `storage_bytes`.
    `dump_lu()` returns L and U as `TriangularPart`s (each L row ends with
    its diagonal, each U row starts with its unit diagonal), `dump_a(matrix)`
    returns the input with rows in factorization order and columns in pivot
    order, and `to_dense()` expands the product L @ U.
- `sparselu.schedule`
  - `elimination_tree(matrix, row_perm=None)` returns each row's parent,
    `n` for roots.
  - `etree_levels(matrix, row_perm=None)` and `refactor_levels(factors)`
    group rows into `Levels` (`depth`, `header`, `nodes`, `level(k)`);
    rows on one level do not depend on one another.
  - `flops(factors)` counts the operations of the numeric factorization.
  - `thread_load(factors, levels, threads, workloads, threshold, balance)`
    estimates the operations each thread would perform, splitting wide
    levels by workload and dealing narrow runs of levels out as a pipeline.
- `sparselu.timer`
  - `Timer` measures wall-clock, user and system time in milliseconds with
    `start()`, `elapsed_wallclock()`, `elapsed_user()`, `elapsed_system()`
    and `elapsed()`. It can also be used as a context manager, which starts
    it on entry.

Errors are subclasses of `sparselu.errors.SparseLUError`:
`MatrixInvalidError`, `DuplicateEntryError`, `StructurallySingularError`
(a row has no candidate pivot), `NumericallySingularError` (a zero pivot)
and `NumericOverflowError` (a NaN pivot).

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example

```python
from sparselu.sparse import SparseMatrix, permute
from sparselu.ordering import amd
from sparselu.factor import factorize
from sparselu.schedule import etree_levels, flops

matrix = SparseMatrix(
    n=3,
    values=[4.0, 1.0, 1.0, 3.0, 2.0, 5.0],
    indices=[0, 1, 0, 1, 1, 2],
    pointers=[0, 2, 4, 6],
)

ordering = amd(matrix.n, matrix.indices, matrix.pointers, alpha=10.0, aggressive=True)
renumbered, row_perm, col_perm = permute(
    matrix, list(range(matrix.n)), ordering.perm, ordering.perm_inv
)

factors = factorize(renumbered, row_perm=row_perm.forward, tol=1.0)
lower, upper = factors.dump_lu()
print(factors.to_dense())          # equals factors.dump_a(renumbered).to_dense()

print(etree_levels(renumbered, row_perm.forward).count)
print(flops(factors))
```

Timing a block of work:

```python
from sparselu.timer import Timer

with Timer() as timer:
    ...
print(timer.elapsed_user(), "ms of user time")
```

## What it does not do

- It has no triangular solve: it produces the factors but does not solve
  `Ax = b` with them, compute residuals or condition numbers.
- It has no maximum-weight matching or scaling step; `permute` and
  `construct_rows` take a matching you supply.
- It does not read matrix files and has no command-line program.
- It runs single-threaded. `etree_levels`, `refactor_levels` and
  `thread_load` analyse a parallel schedule but do not execute one.