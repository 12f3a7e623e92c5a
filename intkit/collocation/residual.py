# Copyright (c) 2024 Yilin Zou
from typing import Iterable

import sympy as sp

from intkit.base.function import FunctionBase, check_ode
from intkit.base.graph import Graph, GraphFunction
from .interpolation import collocation_interpolators


def collocation_residual(f: FunctionBase, points: Iterable[float]) -> GraphFunction:
    """Construct the residual function of a collocation step for an ODE.

    The constructed function has four inputs: the helper states ``V`` (shape
    ``n x order``, column ``j`` is the state at collocation point ``j``), the
    initial state ``x0``, the parameter ``p`` and the step size ``h``. It has
    two outputs: the collocation residual (shape ``n * order x 1``, stage
    after stage)

    .. code-block:: text

        res_j = sum_i C[j, i] X_i - h f(X_j, p),   X_0 = x0, X_j = V[:, j - 1]

    and the final state ``xf = sum_i D[i] X_i``.

    Args:
        f: ODE function with two inputs ``(x, p)`` and one output ``xdot``.
        points: Collocation points, e.g. as obtained by :func:`collocation_points`.

    Returns:
        The residual function.

    Raises:
        SignatureMismatchError: If ``f`` is not an ODE function.
    """
    check_ode(f)
    C, D = collocation_interpolators(points)
    order = len(D) - 1
    n = f.size_in(0)[0]

    g = Graph()
    V = g.symbol("V", n, order)
    x0 = g.symbol("x0", n)
    p = g.symbol("p", *f.size_in(1))
    h = g.symbol("h", 1)

    X = [x0] + [V[:, j] for j in range(order)]
    res = []
    for j in range(1, order + 1):
        xp_j = sp.zeros(n, 1)
        for i in range(order + 1):
            xp_j += float(C[j, i]) * X[i]
        f_j, = g.call(f, [X[j], p])
        res.append(xp_j - h[0, 0] * f_j)
    xf = sp.zeros(n, 1)
    for i in range(order + 1):
        if D[i] != 0:
            xf += float(D[i]) * X[i]

    return g.function(
        "collocation_residual",
        [V, x0, p, h],
        [sp.Matrix.vstack(*res), xf],
        ["V", "x0", "p", "h"],
        ["res", "xf"],
    )
