# Copyright (c) 2024 Yilin Zou
from typing import Any, Optional

import sympy as sp

from intkit.base.function import FunctionBase, check_ode
from intkit.base.graph import Graph, GraphFunction
from intkit.base.rootfinder import Rootfinder
from intkit.collocation import CollocationScheme, collocation_points, collocation_residual
from .explicit import chain_steps, check_steps


def collocation_step(
    f: FunctionBase,
    order: int,
    scheme: str | CollocationScheme,
    solver: str,
    solver_options: Optional[dict[str, Any]] = None,
) -> GraphFunction:
    """Construct one collocation step ``(x0, p, h) -> xf``.

    The helper states are solved for by a :class:`Rootfinder` over the
    collocation residual, starting from ``x0`` at every collocation point.
    """
    tau = collocation_points(order, scheme)
    ifcn = Rootfinder("ifcn", solver, collocation_residual(f, tau), solver_options)

    g = Graph()
    x0 = g.symbol("x0", *f.size_in(0))
    p = g.symbol("p", *f.size_in(1))
    h = g.symbol("h", 1)
    _, xf = g.call(ifcn, [sp.Matrix.hstack(*([x0] * order)), x0, p, h])
    return g.function("irk_step", [x0, p, h], [xf], ["x0", "p", "h"], ["xf"])


def simple_irk(
    f: FunctionBase,
    N: int = 10,
    order: int = 4,
    scheme: str | CollocationScheme = "radau",
    solver: str = "newton",
    solver_options: Optional[dict[str, Any]] = None,
) -> GraphFunction:
    """Construct an implicit Runge-Kutta integrator using collocation.

    Each of the ``N`` steps solves the collocation equations of
    :func:`intkit.collocation.collocation_residual` for the states at the
    ``order`` collocation points, then interpolates the final state.

    Args:
        f: ODE function with two inputs ``(x, p)`` and one output ``xdot``.
        N: Number of integrator steps.
        order: Number of collocation points per step.
        scheme: ``"legendre"`` or ``"radau"``.
        solver: ``"newton"`` or ``"scipy"``.
        solver_options: Options of the solver. For ``"newton"``: ``abstol``,
            ``abstol_step`` and ``max_iter``. For ``"scipy"``: ``method``,
            ``tol``, everything else is passed to :func:`scipy.optimize.root`
            as ``options``.

    Returns:
        The integrator, with inputs ``(x0, p, h)`` and output ``xf``.

    Raises:
        SignatureMismatchError: If ``f`` is not an ODE function.
        UnknownSchemeError: If ``scheme`` is not recognized.
        UnknownBackendError: If ``solver`` is not recognized.
    """
    check_ode(f)
    check_steps(N)
    return chain_steps(
        "simple_irk", collocation_step(f, order, scheme, solver, solver_options), N
    )
