# Copyright (c) 2024 Yilin Zou
"""Submodule for collocation schemes.

Collocation points of the Legendre and Radau families, the interpolating
matrices built on them, and the residual of one collocation step.
"""

from .points import (
    CollocationScheme,
    parse_scheme,
    collocation_points,
    collocation_points_ext,
)
from .interpolation import collocation_interpolators, collocation_tableau
from .residual import collocation_residual

__all__ = [
    "CollocationScheme",
    "parse_scheme",
    "collocation_points",
    "collocation_points_ext",
    "collocation_interpolators",
    "collocation_tableau",
    "collocation_residual",
]
