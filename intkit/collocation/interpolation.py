from typing import Iterable

import numba as nb
import numpy as np

from intkit.base.runtime import mmin
from intkit.base.tableau import ButcherTableau
from intkit.base.vectypes import *
from .points import CollocationScheme, collocation_points


@nb.njit("float64[:](float64[:])")
def _barycentric_weights(t):
    """Compute the barycentric weights ``w_i = 1 / prod_{k != i} (t_i - t_k)``."""
    n = len(t)
    w = np.ones(n, dtype=np.float64)
    for i in range(n):
        for k in range(n):
            if k != i:
                w[i] /= t[i] - t[k]
    return w


@nb.njit("float64[:, :](float64[:], float64[:])")
def _derivative_matrix(t, w):
    """Compute ``C[j, i] = L_i'(t_j)`` for the Lagrange basis over ``t``.

    Off-diagonal entries are ``(w_i / w_j) / (t_j - t_i)``, diagonal entries
    ``sum_{k != j} 1 / (t_j - t_k)``.
    """
    n = len(t)
    C = np.zeros((n, n), dtype=np.float64)
    for j in range(n):
        for i in range(n):
            if i != j:
                C[j, i] = w[i] / w[j] / (t[j] - t[i])
                C[j, j] += 1.0 / (t[j] - t[i])
    return C


@nb.njit("float64[:](float64[:], float64[:], float64)")
def _basis_values(t, w, x):
    """Compute ``L_i(x)`` for the Lagrange basis over ``t``."""
    n = len(t)
    L = np.zeros(n, dtype=np.float64)
    for i in range(n):
        if t[i] == x:
            L[i] = 1.0
            return L
    s = 0.0
    for i in range(n):
        L[i] = w[i] / (x - t[i])
        s += L[i]
    for i in range(n):
        L[i] /= s
    return L


def _as_points(points: Iterable[float]) -> VecFloat:
    t = np.array([float(t_) for t_ in points], dtype=np.float64)
    if t.ndim != 1 or len(t) == 0:
        raise ValueError("at least one collocation point is required")
    if not np.all(np.isfinite(t)) or t[0] <= 0 or t[-1] > 1:
        raise ValueError("collocation points must lie in (0, 1]")
    if len(t) > 1 and mmin(np.diff(t)) <= 0:
        raise ValueError("collocation points must be strictly increasing")
    return t


def collocation_interpolators(points: Iterable[float]) -> tuple[VecFloat, VecFloat]:
    """Compute the collocation interpolating matrices.

    The points are augmented with the anchor ``t_0 = 0``. With ``L_i`` the
    Lagrange basis polynomial of node ``t_i`` over the ``order + 1`` nodes,

    .. code-block:: text

        dX/dt (t_j) ~ sum_i C[j, i] X(t_i),   j = 1, ..., order
        X(1)        ~ sum_i D[i] X(t_i)

    Row 0 of ``C`` holds the derivatives at the anchor ``t_0``; collocation
    only uses rows ``1, ..., order``, so callers should not rely on it.

    Args:
        points: Collocation points, e.g. as obtained by :func:`collocation_points`.

    Returns:
        ``C`` of shape ``(order + 1, order + 1)`` and ``D`` of shape ``(order + 1,)``.
    """
    t = np.concatenate(([0.0], _as_points(points)))
    w = _barycentric_weights(t)
    return _derivative_matrix(t, w), _basis_values(t, w, 1.0)


def collocation_tableau(
    order: int, scheme: str | CollocationScheme = "radau"
) -> ButcherTableau:
    """Compute the Butcher tableau of the implicit Runge-Kutta method
    equivalent to collocation.

    ``A[i, j]`` is the integral of the ``j``-th Lagrange basis polynomial
    over the collocation points from 0 to ``c_i``, ``b[j]`` the integral from
    0 to 1.

    Args:
        order: Number of collocation points.
        scheme: ``"legendre"`` or ``"radau"``.

    Returns:
        The tableau, with ``c`` the collocation points.
    """
    tau = collocation_points(order, scheme)
    A = np.zeros((order, order), dtype=np.float64)
    b = np.zeros(order, dtype=np.float64)
    for j in range(order):
        p = np.poly1d([1.0])
        for r in range(order):
            if r != j:
                p *= np.poly1d([1.0, -tau[r]]) / (tau[j] - tau[r])
        p_int = np.polyint(p)
        A[:, j] = p_int(tau)
        b[j] = p_int(1.0)
    return ButcherTableau(A, b, tau)
