# Copyright (c) 2024 Yilin Zou

from intkit.base.errors import UnsupportedOrderError
from intkit.base.function import FunctionBase, check_ode
from intkit.base.graph import Graph, GraphFunction
from intkit.base.tableau import ButcherTableau

EXPLICIT_TABLEAU = {
    1: ButcherTableau([[0.0]], [1.0], [0.0]),
    2: ButcherTableau([[0.0, 0.0], [0.5, 0.0]], [0.0, 1.0], [0.0, 0.5]),
    3: ButcherTableau(
        [[0.0, 0.0, 0.0], [0.5, 0.0, 0.0], [-1.0, 2.0, 0.0]],
        [1 / 6, 2 / 3, 1 / 6],
        [0.0, 0.5, 1.0],
    ),
    4: ButcherTableau(
        [
            [0.0, 0.0, 0.0, 0.0],
            [0.5, 0.0, 0.0, 0.0],
            [0.0, 0.5, 0.0, 0.0],
            [0.0, 0.0, 1.0, 0.0],
        ],
        [1 / 6, 1 / 3, 1 / 3, 1 / 6],
        [0.0, 0.5, 0.5, 1.0],
    ),
}
"""Explicit tableaus by order: Euler, explicit midpoint, Kutta's third-order
method, and the classic fourth-order Runge-Kutta method."""


def check_steps(N: int) -> None:
    if isinstance(N, bool) or not isinstance(N, int) or N < 1:
        raise ValueError(f"number of steps must be a positive integer, got {N!r}")


def explicit_step(f: FunctionBase, tableau: ButcherTableau) -> GraphFunction:
    """Construct one step ``(x0, p, h) -> xf`` of an explicit Runge-Kutta
    method."""
    if not tableau.is_explicit:
        raise ValueError("explicit_step needs an explicit tableau")
    g = Graph()
    x0 = g.symbol("x0", *f.size_in(0))
    p = g.symbol("p", *f.size_in(1))
    h = g.symbol("h", 1)
    dt = h[0, 0]

    k = []
    for i in range(tableau.num_stage):
        x_i = x0
        for j in range(i):
            if tableau.A[i, j] != 0:
                x_i = x_i + dt * float(tableau.A[i, j]) * k[j]
        k_i, = g.call(f, [x_i, p])
        k.append(k_i)
    xf = x0
    for b_i, k_i in zip(tableau.b, k):
        if b_i != 0:
            xf = xf + dt * float(b_i) * k_i
    return g.function("rk_step", [x0, p, h], [xf], ["x0", "p", "h"], ["xf"])


def chain_steps(name: str, step: FunctionBase, N: int) -> GraphFunction:
    """Call ``step`` ``N`` times with step size ``h / N``, feeding each final
    state to the next step."""
    g = Graph()
    x0 = g.symbol("x0", *step.size_in(0))
    p = g.symbol("p", *step.size_in(1))
    h = g.symbol("h", 1)
    x = x0
    for _ in range(N):
        x, = g.call(step, [x, p, h / N])
    return g.function(name, [x0, p, h], [x], ["x0", "p", "h"], ["xf"])


def simple_rk(f: FunctionBase, N: int = 10, order: int = 4) -> GraphFunction:
    """Construct an explicit Runge-Kutta integrator.

    The constructed function has three inputs, the initial state ``x0``, the
    parameter ``p`` and the integration time ``h``, and one output, the final
    state ``xf``. It takes ``N`` steps of size ``h / N``.

    Args:
        f: ODE function with two inputs ``(x, p)`` and one output ``xdot``.
        N: Number of integrator steps.
        order: Order of the method, 1 to 4.

    Returns:
        The integrator.

    Raises:
        SignatureMismatchError: If ``f`` is not an ODE function.
        UnsupportedOrderError: If there is no tableau for ``order``.
    """
    check_ode(f)
    check_steps(N)
    if isinstance(order, bool) or order not in EXPLICIT_TABLEAU:
        raise UnsupportedOrderError(
            f"no explicit Runge-Kutta tableau of order {order!r}, "
            f"supported orders are {sorted(EXPLICIT_TABLEAU)}"
        )
    return chain_steps("simple_rk", explicit_step(f, EXPLICIT_TABLEAU[order]), N)
