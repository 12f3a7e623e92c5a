# Copyright (c) 2024 Yilin Zou
"""Integrators delegating to the adaptive solvers of :func:`scipy.integrate.solve_ivp`.

The ODE is integrated over the normalized time ``tau`` in ``[0, 1]``, i.e.

.. code-block:: text

    dx/dtau = h f(x, p),   x(0) = x0,   xf = x(1)

so that the integration time ``h`` is an ordinary input. Derivatives are
obtained by integrating the forward sensitivity equations alongside the
state.
"""
from typing import Any, Optional

import scipy.integrate

from intkit.base.errors import ConvergenceError, UnknownBackendError
from intkit.base.function import FunctionBase, check_ode
from intkit.base.vectypes import *

PLUGINS = {
    "cvodes": "BDF",
    "bdf": "BDF",
    "radau": "Radau",
    "lsoda": "LSODA",
    "rk45": "RK45",
    "rk23": "RK23",
    "dop853": "DOP853",
}
"""Plugin names and the ``solve_ivp`` methods they select. ``"cvodes"`` is
the variable-order BDF method."""

_STIFF = {"BDF", "Radau", "LSODA"}

_RESERVED = {"fun", "t_span", "y0", "method", "jac", "t_eval", "dense_output", "args"}


class Integrator(FunctionBase):
    """Function ``(x0, p, h) -> xf`` integrating an ODE with ``solve_ivp``."""

    def __init__(
        self,
        name: str,
        f: FunctionBase,
        method: str,
        options: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Args:
            name: Name of the function.
            f: ODE function with two inputs ``(x, p)`` and one output ``xdot``.
            method: A ``solve_ivp`` method.
            options: Keyword arguments of ``solve_ivp``. ``rtol`` defaults to
                ``1e-8`` and ``atol`` to ``1e-10``.
        """
        check_ode(f)
        options = dict(options) if options is not None else {}
        reserved = set(options) & _RESERVED
        if reserved:
            raise ValueError(
                f"options {sorted(reserved)} are set by the integrator and cannot be given"
            )
        super().__init__(
            name,
            [f.size_in(0), f.size_in(1), (1, 1)],
            [f.size_in(0)],
            ["x0", "p", "h"],
            ["xf"],
        )
        self._f = f
        self._method = method
        self._options = {"rtol": 1e-8, "atol": 1e-10} | options

    @property
    def method(self) -> str:
        """Name of the ``solve_ivp`` method."""
        return self._method

    def _solve(self, rhs, y0: VecFloat, jac=None) -> VecFloat:
        kwargs = dict(self._options)
        if jac is not None and self._method in _STIFF:
            kwargs["jac"] = jac
        res = scipy.integrate.solve_ivp(rhs, (0.0, 1.0), y0, method=self._method, **kwargs)
        if not res.success:
            raise ConvergenceError(
                f"{self.name} ({self._method}) failed to integrate: {res.message}"
            )
        return res.y[:, -1]

    def _evaluate(self, args: list[VecFloat]) -> list[VecFloat]:
        x0, p, h = args
        shape = self.size_in(0)
        h = h[0, 0]

        def rhs(tau: float, x: VecFloat) -> VecFloat:
            return h * self._f._evaluate([x.reshape(shape), p])[0].ravel()

        def jac(tau: float, x: VecFloat) -> VecFloat:
            return h * self._f._jacobian([x.reshape(shape), p], 0)[0]

        return [self._solve(rhs, x0.ravel(), jac).reshape(shape)]

    def _jacobian(self, args: list[VecFloat], i_in: int) -> list[VecFloat]:
        x0, p, h = args
        shape = self.size_in(0)
        n = self.numel_in(0)
        m = self.numel_in(i_in)
        h = h[0, 0]

        def rhs(tau: float, y: VecFloat) -> VecFloat:
            x = y[:n].reshape(shape)
            S = y[n:].reshape(n, m)
            dx = self._f._evaluate([x, p])[0].ravel()
            dS = self._f._jacobian([x, p], 0)[0] @ S
            if i_in == 1:
                dS = dS + self._f._jacobian([x, p], 1)[0]
            dS = h * dS
            if i_in == 2:
                dS = dS + dx.reshape(n, 1)
            return np.concatenate((h * dx, dS.ravel()))

        S0 = np.eye(n) if i_in == 0 else np.zeros((n, m))
        y = self._solve(rhs, np.concatenate((x0.ravel(), S0.ravel())))
        return [y[n:].reshape(n, m)]


def simple_integrator(
    f: FunctionBase,
    integrator: str = "cvodes",
    integrator_options: Optional[dict[str, Any]] = None,
) -> Integrator:
    """Construct an integrator using an adaptive ``solve_ivp`` solver.

    Args:
        f: ODE function with two inputs ``(x, p)`` and one output ``xdot``.
        integrator: Name of the solver, one of :data:`PLUGINS`.
        integrator_options: Keyword arguments of :func:`scipy.integrate.solve_ivp`.

    Returns:
        The integrator, with inputs ``(x0, p, h)`` and output ``xf``.

    Raises:
        SignatureMismatchError: If ``f`` is not an ODE function.
        UnknownBackendError: If ``integrator`` is not recognized.
    """
    key = integrator.lower() if isinstance(integrator, str) else integrator
    if key not in PLUGINS:
        raise UnknownBackendError(
            f"unknown integrator {integrator!r}, expected one of {sorted(PLUGINS)}"
        )
    return Integrator("simple_integrator", f, PLUGINS[key], integrator_options)
