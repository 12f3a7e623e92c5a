# Copyright (c) 2024 Yilin Zou
"""Submodule for integrators.

An integrator is a :class:`intkit.base.FunctionBase` with inputs ``(x0, p, h)``
and output ``xf``, the state after integrating ``dx/dt = f(x, p)`` from ``x0``
for the time ``h``.
"""
import warnings
from typing import Any, Optional

from intkit.base.errors import IntegratorWarning, UnknownBackendError
from intkit.base.function import FunctionBase
from intkit.collocation import CollocationScheme, parse_scheme
from .explicit import EXPLICIT_TABLEAU, simple_rk
from .implicit import simple_irk
from .plugin import PLUGINS, Integrator, simple_integrator

__all__ = [
    "EXPLICIT_TABLEAU",
    "PLUGINS",
    "Integrator",
    "simple_rk",
    "simple_irk",
    "simple_integrator",
    "build",
]


def build(
    f: FunctionBase,
    method: str = "rk",
    N: int = 10,
    order: int = 4,
    scheme: str | CollocationScheme = "radau",
    options: Optional[dict[str, Any]] = None,
) -> FunctionBase:
    """Construct an integrator by method name.

    ``"rk"`` selects :func:`simple_rk` (``options`` are ignored), ``"irk"``
    selects :func:`simple_irk` (the option ``solver`` selects the root
    finder, ``"newton"`` by default, the remaining options are passed to it),
    and any name in :data:`PLUGINS` selects :func:`simple_integrator` with
    ``options`` as the integrator options. ``N``, ``order`` and ``scheme``
    only apply to the fixed-step methods.

    Raises:
        UnknownSchemeError: If ``scheme`` is not recognized.
        UnknownBackendError: If ``method`` is not recognized.
    """
    scheme = parse_scheme(scheme)
    key = method.lower() if isinstance(method, str) else method
    if key == "rk":
        if options:
            warnings.warn(
                f"options are ignored by the explicit Runge-Kutta integrator: "
                f"{sorted(options)}",
                IntegratorWarning,
                stacklevel=2,
            )
        return simple_rk(f, N, order)
    if key == "irk":
        options = dict(options) if options is not None else {}
        solver = options.pop("solver", "newton")
        return simple_irk(f, N, order, scheme, solver, options)
    if key in PLUGINS:
        return simple_integrator(f, key, options)
    raise UnknownBackendError(
        f"unknown integration method {method!r}, "
        f"expected 'rk', 'irk' or one of {sorted(PLUGINS)}"
    )
