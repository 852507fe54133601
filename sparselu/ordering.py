"""Approximate minimum degree ordering of the symmetric pattern A + A'."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from .sparse import Permutation, SparseMatrix, check_matrix, is_sorted

_INT_MAX = 2**31 - 1
_UINT_MASK = 0xFFFFFFFF


def _flip(i: int) -> int:
    return -i - 2


def _clear_flag(wflg: int, wbig: int, w: list[int]) -> int:
    if wflg < 2 or wflg >= wbig:
        for x, value in enumerate(w):
            if value != 0:
                w[x] = 1
        wflg = 2
    return wflg


@dataclass(frozen=True)
class AmdResult:
    """A fill-reducing ordering and the estimated number of LU entries.

    ``perm[k]`` is the row/column placed at position ``k``;
    ``perm_inv`` is its inverse.
    """

    perm: tuple[int, ...]
    perm_inv: tuple[int, ...]
    lu_nnz: int

    @property
    def permutation(self) -> Permutation:
        """The ordering as a :class:`Permutation`."""
        return Permutation(self.perm, self.perm_inv)


def sort_transpose(
    n: int, indices: Sequence[int], pointers: Sequence[int]
) -> tuple[list[int], list[int]]:
    """Return the transposed pattern, with every row's indices ascending."""
    counts = [0] * n
    for j in indices:
        counts[j] += 1
    rp = [0] * (n + 1)
    for i, c in enumerate(counts):
        rp[i + 1] = rp[i] + c
    fill = rp[:n]
    ri = [0] * len(indices)
    for j in range(n):
        for p in range(pointers[j], pointers[j + 1]):
            i = indices[p]
            ri[fill[i]] = j
            fill[i] += 1
    return ri, rp


def count_aat(
    n: int, indices: Sequence[int], pointers: Sequence[int]
) -> tuple[int, list[int]]:
    """Count the off-diagonal entries of each row of A + A'.

    Rows must list their indices in ascending order. Returns the total
    count and the per-row counts.
    """
    length = [0] * n
    tp = [0] * n
    for k in range(n):
        p = pointers[k]
        p2 = pointers[k + 1]
        while p < p2:
            j = indices[p]
            if j < k:
                length[j] += 1
                length[k] += 1
                p += 1
            elif j == k:
                p += 1
                break
            else:
                break
            pj2 = pointers[j + 1]
            pj = tp[j]
            while pj < pj2:
                i = indices[pj]
                if i < k:
                    length[i] += 1
                    length[j] += 1
                    pj += 1
                elif i == k:
                    pj += 1
                    break
                else:
                    break
            tp[j] = pj
        tp[k] = p
    for j in range(n):
        for pj in range(tp[j], pointers[j + 1]):
            length[indices[pj]] += 1
            length[j] += 1
    return sum(length), length


def build_aat(
    n: int, indices: Sequence[int], pointers: Sequence[int], lengths: Sequence[int]
) -> tuple[list[int], list[int]]:
    """Build the adjacency lists of A + A' (diagonal excluded).

    ``lengths`` are the counts from :func:`count_aat`. Returns the start of
    each row's list and the concatenated lists.
    """
    pe = [0] * n
    sp = [0] * n
    pfree = 0
    for j in range(n):
        pe[j] = sp[j] = pfree
        pfree += lengths[j]
    iw = [0] * pfree
    tp = [0] * n
    for k in range(n):
        p = pointers[k]
        p2 = pointers[k + 1]
        while p < p2:
            j = indices[p]
            if j < k:
                iw[sp[j]] = k
                sp[j] += 1
                iw[sp[k]] = j
                sp[k] += 1
                p += 1
            elif j == k:
                p += 1
                break
            else:
                break
            pj2 = pointers[j + 1]
            pj = tp[j]
            while pj < pj2:
                i = indices[pj]
                if i < k:
                    iw[sp[i]] = j
                    sp[i] += 1
                    iw[sp[j]] = i
                    sp[j] += 1
                    pj += 1
                elif i == k:
                    pj += 1
                    break
                else:
                    break
            tp[j] = pj
        tp[k] = p
    for j in range(n):
        for pj in range(tp[j], pointers[j + 1]):
            i = indices[pj]
            iw[sp[i]] = j
            sp[i] += 1
            iw[sp[j]] = i
            sp[j] += 1
    return pe, iw


def _post_tree(
    root: int, k: int, child: list[int], sibling: list[int], order: list[int]
) -> int:
    stack = [root]
    while stack:
        i = stack[-1]
        if child[i] != -1:
            children = []
            f = child[i]
            while f != -1:
                children.append(f)
                f = sibling[f]
            stack.extend(reversed(children))
            child[i] = -1
        else:
            stack.pop()
            order[i] = k
            k += 1
    return k


def post_order(
    parent: Sequence[int], nv: Sequence[int], fsize: Sequence[int]
) -> list[int]:
    """Postorder an assembly tree, visiting the largest child last.

    Returns ``order`` where ``order[i]`` is the position of node ``i``, or
    -1 for nodes with ``nv[i] <= 0``.
    """
    n = len(parent)
    child = [-1] * n
    sibling = [-1] * n
    for j in range(n - 1, -1, -1):
        if nv[j] > 0:
            par = parent[j]
            if par != -1:
                sibling[j] = child[par]
                child[par] = j
    for i in range(n):
        if nv[i] > 0 and child[i] != -1:
            fprev = maxfr = bigfp = bigf = -1
            f = child[i]
            while f != -1:
                frsize = fsize[f]
                if frsize >= maxfr:
                    maxfr = frsize
                    bigfp = fprev
                    bigf = f
                fprev = f
                f = sibling[f]
            fnext = sibling[bigf]
            if fnext != -1:
                if bigfp == -1:
                    child[i] = fnext
                else:
                    sibling[bigfp] = fnext
                sibling[bigf] = -1
                sibling[fprev] = bigf
    order = [-1] * n
    k = 0
    for i in range(n):
        if parent[i] == -1 and nv[i] > 0:
            k = _post_tree(i, k, child, sibling, order)
    return order


def _amd_core(
    n: int,
    pfree: int,
    iwlen: int,
    pe: list[int],
    iw: list[int],
    length: list[int],
    alpha: float,
    aggressive: bool,
) -> tuple[list[int], list[int], int]:
    nv = [1] * n
    head = [-1] * n
    elen = [0] * n
    degree = list(length)
    w = [1] * n
    last = [-1] * n
    nxt = [-1] * n

    lnz = 0.0
    dmax = 1.0
    me = -1
    mindeg = 0
    nel = 0
    lemax = 0

    dense = n - 2 if alpha < 0.0 else int(alpha * math.sqrt(n))
    dense = min(n, max(16, dense))

    wbig = _INT_MAX - n
    wflg = _clear_flag(0, wbig, w)
    ndense = 0

    for i in range(n):
        deg = degree[i]
        if deg == 0:
            elen[i] = _flip(1)
            nel += 1
            pe[i] = -1
            w[i] = 0
        elif deg > dense:
            ndense += 1
            nv[i] = 0
            elen[i] = -1
            nel += 1
            pe[i] = -1
        else:
            inext = head[deg]
            if inext != -1:
                last[inext] = i
            nxt[i] = inext
            head[deg] = i

    while nel < n:
        deg = mindeg
        while deg < n:
            me = head[deg]
            if me != -1:
                break
            deg += 1
        mindeg = deg

        inext = nxt[me]
        if inext != -1:
            last[inext] = -1
        head[deg] = inext

        elenme = elen[me]
        nvpiv = nv[me]
        nel += nvpiv
        nv[me] = -nvpiv
        degme = 0

        if elenme == 0:
            pme1 = pe[me]
            pme2 = pme1 - 1
            for p in range(pme1, pme1 + length[me]):
                i = iw[p]
                nvi = nv[i]
                if nvi > 0:
                    degme += nvi
                    nv[i] = -nvi
                    pme2 += 1
                    iw[pme2] = i
                    ilast = last[i]
                    inext = nxt[i]
                    if inext != -1:
                        last[inext] = ilast
                    if ilast != -1:
                        nxt[ilast] = inext
                    else:
                        head[degree[i]] = inext
        else:
            p = pe[me]
            pme1 = pfree
            slenme = length[me] - elenme
            for knt1 in range(1, elenme + 2):
                if knt1 > elenme:
                    e = me
                    pj = p
                    ln = slenme
                else:
                    e = iw[p]
                    p += 1
                    pj = pe[e]
                    ln = length[e]
                for knt2 in range(1, ln + 1):
                    i = iw[pj]
                    pj += 1
                    nvi = nv[i]
                    if nvi <= 0:
                        continue
                    if pfree >= iwlen:
                        # compress iw to make room for the new element
                        pe[me] = p
                        length[me] -= knt1
                        if length[me] == 0:
                            pe[me] = -1
                        pe[e] = pj
                        length[e] = ln - knt2
                        if length[e] == 0:
                            pe[e] = -1
                        for j in range(n):
                            pn = pe[j]
                            if pn >= 0:
                                pe[j] = iw[pn]
                                iw[pn] = _flip(j)
                        psrc = 0
                        pdst = 0
                        pend = pme1 - 1
                        while psrc <= pend:
                            j = _flip(iw[psrc])
                            psrc += 1
                            if j >= 0:
                                iw[pdst] = pe[j]
                                pe[j] = pdst
                                pdst += 1
                                for _ in range(length[j] - 1):
                                    iw[pdst] = iw[psrc]
                                    pdst += 1
                                    psrc += 1
                        p1 = pdst
                        for psrc in range(pme1, pfree):
                            iw[pdst] = iw[psrc]
                            pdst += 1
                        pme1 = p1
                        pfree = pdst
                        pj = pe[e]
                        p = pe[me]
                    degme += nvi
                    nv[i] = -nvi
                    iw[pfree] = i
                    pfree += 1
                    ilast = last[i]
                    inext = nxt[i]
                    if inext != -1:
                        last[inext] = ilast
                    if ilast != -1:
                        nxt[ilast] = inext
                    else:
                        head[degree[i]] = inext
                if e != me:
                    pe[e] = _flip(me)
                    w[e] = 0
            pme2 = pfree - 1

        degree[me] = degme
        pe[me] = pme1
        length[me] = pme2 - pme1 + 1
        elen[me] = _flip(nvpiv + degme)

        wflg = _clear_flag(wflg, wbig, w)

        # set differences
        for pme in range(pme1, pme2 + 1):
            i = iw[pme]
            eln = elen[i]
            if eln > 0:
                nvi = -nv[i]
                wnvi = wflg - nvi
                for p in range(pe[i], pe[i] + eln):
                    e = iw[p]
                    we = w[e]
                    if we >= wflg:
                        we -= nvi
                    elif we != 0:
                        we = degree[e] + wnvi
                    w[e] = we

        # degree update and element absorption
        for pme in range(pme1, pme2 + 1):
            i = iw[pme]
            p1 = pe[i]
            p2 = p1 + elen[i] - 1
            pn = p1
            hsh = 0
            deg = 0
            for p in range(p1, p2 + 1):
                e = iw[p]
                we = w[e]
                if we == 0:
                    continue
                dext = we - wflg
                if aggressive and dext <= 0:
                    pe[e] = _flip(me)
                    w[e] = 0
                    continue
                deg += dext
                iw[pn] = e
                pn += 1
                hsh += e
            elen[i] = pn - p1 + 1

            p3 = pn
            for p in range(p2 + 1, p1 + length[i]):
                j = iw[p]
                nvj = nv[j]
                if nvj > 0:
                    deg += nvj
                    iw[pn] = j
                    pn += 1
                    hsh += j

            if elen[i] == 1 and p3 == pn:
                # mass elimination
                pe[i] = _flip(me)
                nvi = -nv[i]
                degme -= nvi
                nvpiv += nvi
                nel += nvi
                nv[i] = 0
                elen[i] = -1
            else:
                degree[i] = min(degree[i], deg)
                iw[pn] = iw[p3]
                iw[p3] = iw[p1]
                iw[p1] = me
                length[i] = pn - p1 + 1
                hsh = (hsh & _UINT_MASK) % n
                j = head[hsh]
                if j <= -1:
                    nxt[i] = _flip(j)
                    head[hsh] = _flip(i)
                else:
                    nxt[i] = last[j]
                    last[j] = i
                last[i] = hsh

        degree[me] = degme
        lemax = max(lemax, degme)
        wflg += lemax
        wflg = _clear_flag(wflg, wbig, w)

        # supervariable detection
        for pme in range(pme1, pme2 + 1):
            i = iw[pme]
            if nv[i] >= 0:
                continue
            hsh = last[i]
            j = head[hsh]
            if j == -1:
                i = -1
            elif j < -1:
                i = _flip(j)
                head[hsh] = -1
            else:
                i = last[j]
                last[j] = -1
            while i != -1 and nxt[i] != -1:
                ln = length[i]
                eln = elen[i]
                for p in range(pe[i] + 1, pe[i] + ln):
                    w[iw[p]] = wflg
                jlast = i
                j = nxt[i]
                while j != -1:
                    ok = length[j] == ln and elen[j] == eln
                    p = pe[j] + 1
                    pend2 = pe[j] + ln
                    while ok and p < pend2:
                        if w[iw[p]] != wflg:
                            ok = False
                        p += 1
                    if ok:
                        pe[j] = _flip(i)
                        nv[i] += nv[j]
                        nv[j] = 0
                        elen[j] = -1
                        j = nxt[j]
                        nxt[jlast] = j
                    else:
                        jlast = j
                        j = nxt[j]
                wflg += 1
                i = nxt[i]

        # restore degree lists, drop nonprincipal supervariables
        p = pme1
        nleft = n - nel
        for pme in range(pme1, pme2 + 1):
            i = iw[pme]
            nvi = -nv[i]
            if nvi > 0:
                nv[i] = nvi
                deg = min(degree[i] + degme - nvi, nleft - nvi)
                inext = head[deg]
                if inext != -1:
                    last[inext] = i
                nxt[i] = inext
                last[i] = -1
                head[deg] = i
                mindeg = min(mindeg, deg)
                degree[i] = deg
                iw[p] = i
                p += 1

        nv[me] = nvpiv
        length[me] = p - pme1
        if length[me] == 0:
            pe[me] = -1
            w[me] = 0
        if elenme != 0:
            pfree = p

        f = float(nvpiv)
        r = float(degme + ndense)
        dmax = max(dmax, f + r)
        lnz += f * r + (f - 1) * f * 0.5

    if ndense > 0:
        f = float(ndense)
        dmax = max(dmax, f)
        lnz += (f - 1) * f * 0.5
    lu_nnz = int(lnz + lnz)

    pe = [_flip(v) for v in pe]
    elen = [_flip(v) for v in elen]
    for i in range(n):
        if nv[i] != 0:
            continue
        j = pe[i]
        if j == -1:
            continue
        while nv[j] == 0:
            j = pe[j]
        e = j
        j = i
        while nv[j] == 0:
            jnext = pe[j]
            pe[j] = e
            j = jnext

    order = post_order(pe, nv, elen)

    head = [-1] * n
    nxt = [-1] * n
    for e, k in enumerate(order):
        if k != -1:
            head[k] = e

    nel = 0
    for e in head:
        if e == -1:
            break
        nxt[e] = nel
        nel += nv[e]

    for i in range(n):
        if nv[i] == 0:
            e = pe[i]
            if e != -1:
                nxt[i] = nxt[e]
                nxt[e] += 1
            else:
                nxt[i] = nel
                nel += 1

    last = [0] * n
    for i, position in enumerate(nxt):
        last[position] = i
    return last, nxt, lu_nnz


def amd(
    n: int,
    indices: Sequence[int],
    pointers: Sequence[int],
    alpha: float,
    aggressive: bool,
) -> AmdResult:
    """Order the symmetric pattern A + A' by approximate minimum degree.

    ``alpha`` controls which rows count as dense (a negative value means
    ``n - 2``); ``aggressive`` enables aggressive element absorption.
    Rows that are not sorted are sorted through a transpose first.
    """
    indices = list(indices)
    pointers = list(pointers)
    check_matrix(n, indices, pointers)
    pattern = SparseMatrix(n, (1.0,) * len(indices), tuple(indices), tuple(pointers))
    if not is_sorted(pattern):
        indices, pointers = sort_transpose(n, indices, pointers)

    nzaat, length = count_aat(n, indices, pointers)
    pe, iw = build_aat(n, indices, pointers, length)
    iwlen = n + nzaat + nzaat // 5
    iw.extend([0] * (iwlen - len(iw)))
    perm, perm_inv, lu_nnz = _amd_core(
        n, nzaat, iwlen, pe, iw, length, alpha, bool(aggressive)
    )
    return AmdResult(tuple(perm), tuple(perm_inv), lu_nnz)