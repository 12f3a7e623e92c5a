# Copyright (c) 2024 Yilin Zou
"""This submodule contains the function abstraction intkit is built on:
compiled SymPy functions, composition graphs, and root-finding nodes. The
``intkit.collocation`` and ``intkit.integrator`` submodules only talk to
functions through :class:`FunctionBase`."""

from .errors import (
    IntkitError,
    UnknownSchemeError,
    RootFindingError,
    SignatureMismatchError,
    UnsupportedOrderError,
    ConvergenceError,
    UnknownBackendError,
    IntegratorWarning,
)
from .function import FunctionBase, SymbolicFunction, JacobianFunction, check_ode
from .graph import Graph, GraphFunction
from .rootfinder import Rootfinder
from .tableau import ButcherTableau

__all__ = [
    "IntkitError",
    "UnknownSchemeError",
    "RootFindingError",
    "SignatureMismatchError",
    "UnsupportedOrderError",
    "ConvergenceError",
    "UnknownBackendError",
    "IntegratorWarning",
    "FunctionBase",
    "SymbolicFunction",
    "JacobianFunction",
    "check_ode",
    "Graph",
    "GraphFunction",
    "Rootfinder",
    "ButcherTableau",
]
