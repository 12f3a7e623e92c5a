# Copyright (c) 2024 Yilin Zou
from typing import Iterable

import numba as nb
import sympy as sp

from .vectypes import *


class FastFunc:
    """Compiled numeric evaluation of a list of SymPy expressions.

    The expressions are turned into Python code by :func:`sympy.lambdify`
    with common subexpression elimination, and optionally compiled again by
    Numba.
    """

    n_out: int
    """Number of expressions."""
    symbols: list[sp.Symbol]
    """Arguments of the compiled function, in order."""

    def __init__(
        self,
        exprs: Iterable[sp.Expr | float],
        symbols: Iterable[sp.Symbol],
        simplify: bool = False,
        jit: bool = False,
        fastmath: bool = False,
    ) -> None:
        """
        Args:
            exprs: Expressions to compile.
            symbols: Free symbols of the expressions, one argument each.
            simplify: Whether to use Sympy to simplify the expressions before compilation.
            jit: Whether to compile the generated code with Numba.
            fastmath: Whether to use Numba ``fastmath`` mode, only used if ``jit`` is ``True``.
        """
        exprs = [sp.sympify(e) for e in exprs]
        if simplify:
            exprs = [sp.simplify(e) for e in exprs]
        self.n_out = len(exprs)
        self.symbols = list(symbols)

        f = sp.lambdify(self.symbols, tuple(exprs), modules="numpy", cse=True)
        if jit:
            f = nb.njit(fastmath=fastmath)(f)
        self._f = f

    def F(self, v: VecFloat) -> VecFloat:
        """Evaluate all expressions with ``v[i]`` bound to ``symbols[i]``."""
        if not self.n_out:
            return np.empty(0, dtype=np.float64)
        return np.array(self._f(*v), dtype=np.float64).reshape(self.n_out)
