# Copyright (c) 2024 Yilin Zou
from typing import Iterable, Optional

import sympy as sp

from .fastfunc import FastFunc
from .function import FunctionBase, _as_expr_matrix, _numel
from .vectypes import *


class _Call:
    """A recorded call of a function inside a graph."""

    function: FunctionBase
    """The called function."""
    args: list[sp.Matrix]
    """Argument expressions in terms of earlier graph symbols."""
    outputs: list[sp.Matrix]
    """Fresh symbols standing for the results of the call."""

    def __init__(
        self, function: FunctionBase, args: list[sp.Matrix], outputs: list[sp.Matrix]
    ) -> None:
        self.function = function
        self.args = args
        self.outputs = outputs


class Graph:
    """Builder of a :class:`GraphFunction`.

    A graph consists of input symbols, calls of other functions, and output
    expressions. Every call gets fresh symbols for its results, so results of
    a call can be fed to later calls without substituting (and copying) the
    expressions of the callee.

    Example:
        >>> g = Graph()
        >>> x = g.symbol("x", 2)
        >>> y, = g.call(f, [x, 1.0])
        >>> F = g.function("F", [x], [2 * y])
    """

    def __init__(self) -> None:
        self._calls = []
        self._symbols = set()

    def _fresh(self, name: str, shape: tuple[int, int]) -> sp.Matrix:
        m = sp.Matrix(shape[0], shape[1], lambda i, j: sp.Dummy(f"{name}_{i}_{j}"))
        self._symbols.update(m)
        return m

    def symbol(self, name: str, rows: int, cols: int = 1) -> sp.Matrix:
        """Create a matrix of fresh symbols to be used as a graph input.

        Args:
            name: Prefix of the symbol names.
            rows: Number of rows.
            cols: Number of columns.
        """
        return self._fresh(name, (rows, cols))

    def call(
        self, function: FunctionBase, args: Iterable[sp.Expr | float | sp.MatrixBase]
    ) -> list[sp.Matrix]:
        """Record a call of ``function``.

        Args:
            function: Function to call.
            args: One expression (or matrix of expressions) per input of ``function``,
                matching its input shapes. Scalars are accepted for ``1 x 1`` inputs.

        Returns:
            One matrix of fresh symbols per output of ``function``.
        """
        args = [_as_expr_matrix(a) for a in args]
        if len(args) != function.n_in:
            raise ValueError(
                f"{function.name} takes {function.n_in} arguments, got {len(args)}"
            )
        for i, a in enumerate(args):
            if a.shape != function.size_in(i):
                if _numel(a.shape) != function.numel_in(i) or 1 not in a.shape:
                    raise ValueError(
                        f"argument {function.name_in(i)} of {function.name} must have "
                        f"shape {function.size_in(i)}, got {a.shape}"
                    )
                args[i] = a.reshape(*function.size_in(i))
            unknown = args[i].free_symbols - self._symbols
            if unknown:
                raise ValueError(
                    f"argument {function.name_in(i)} of {function.name} depends on "
                    f"symbols outside this graph: {sorted(map(str, unknown))}"
                )
        i_call = len(self._calls)
        outputs = [
            self._fresh(f"{function.name}{i_call}_{function.name_out(k)}", function.size_out(k))
            for k in range(function.n_out)
        ]
        self._calls.append(_Call(function, args, outputs))
        return outputs

    def function(
        self,
        name: str,
        inputs: list[sp.MatrixBase],
        outputs: list[sp.Expr | sp.MatrixBase],
        name_in: Optional[list[str]] = None,
        name_out: Optional[list[str]] = None,
        simplify: bool = False,
        jit: bool = False,
        fastmath: bool = False,
    ) -> "GraphFunction":
        """Finish the graph.

        Args:
            name: Name of the function.
            inputs: Input symbol matrices created by :meth:`symbol`.
            outputs: Output expressions.
            name_in: Names of the inputs.
            name_out: Names of the outputs.
            simplify: Whether to use Sympy to simplify expressions before compilation.
            jit: Whether to compile the expressions with Numba.
            fastmath: Whether to use Numba ``fastmath`` mode.
        """
        return GraphFunction(
            name,
            [sp.Matrix(i) for i in inputs],
            list(self._calls),
            [_as_expr_matrix(o) for o in outputs],
            name_in,
            name_out,
            simplify,
            jit,
            fastmath,
        )


class _Block:
    """Compiled evaluation data of a list of expression matrices."""

    def __init__(
        self,
        exprs: list[sp.Matrix],
        layout: dict[sp.Symbol, int],
        compile_parameters: tuple[bool, bool, bool],
    ) -> None:
        flat = [e for m in exprs for e in m]
        free = set().union(*[m.free_symbols for m in exprs]) if exprs else set()
        free = sorted(free, key=layout.__getitem__)
        self.index = np.array([layout[s] for s in free], dtype=np.int32)
        self.shapes = [m.shape for m in exprs]
        self.n = len(flat)
        self.F = FastFunc(flat, free, *compile_parameters)
        self.F_jac = FastFunc(
            [e for e in sp.Matrix(flat).jacobian(free)] if flat and free else [],
            free,
            *compile_parameters,
        )

    def value(self, w: VecFloat) -> VecFloat:
        return self.F.F(w[self.index])

    def jacobian(self, w: VecFloat, dw: VecFloat) -> VecFloat:
        """Derivative of the expressions given the derivative ``dw`` of the
        workspace."""
        if not self.F_jac.n_out:
            return np.zeros((self.n, dw.shape[1]), dtype=np.float64)
        J = self.F_jac.F(w[self.index]).reshape(self.n, len(self.index))
        return J @ dw[self.index]

    def split(self, v: VecFloat) -> list[VecFloat]:
        result = []
        l = 0
        for shape in self.shapes:
            r = l + _numel(shape)
            result.append(v[l:r].reshape(shape))
            l = r
        return result

    def split_rows(self, d: VecFloat) -> list[VecFloat]:
        """Split a derivative with one row per flat expression."""
        result = []
        l = 0
        for shape in self.shapes:
            r = l + _numel(shape)
            result.append(d[l:r])
            l = r
        return result


class GraphFunction(FunctionBase):
    """Function composed of calls of other functions.

    Values are computed by running the calls in order on a flat workspace
    holding the inputs and the results of every call. Jacobians are
    propagated forward through the same sequence using the Jacobians of
    the callees.
    """

    def __init__(
        self,
        name: str,
        inputs: list[sp.Matrix],
        calls: list[_Call],
        outputs: list[sp.Matrix],
        name_in: Optional[list[str]] = None,
        name_out: Optional[list[str]] = None,
        simplify: bool = False,
        jit: bool = False,
        fastmath: bool = False,
    ) -> None:
        super().__init__(
            name, [i.shape for i in inputs], [o.shape for o in outputs], name_in, name_out
        )
        compile_parameters = simplify, jit, fastmath

        layout = {}
        self._slice_in = []
        for m in inputs:
            l = len(layout)
            for s in m:
                if not isinstance(s, sp.Symbol) or s in layout:
                    raise ValueError(f"inputs of {name} must be distinct graph symbols")
                layout[s] = len(layout)
            self._slice_in.append(slice(l, len(layout)))

        self._calls = []
        for call in calls:
            unknown = set().union(*[a.free_symbols for a in call.args]) - set(layout)
            if unknown:
                raise ValueError(
                    f"call of {call.function.name} in {name} depends on "
                    f"{sorted(map(str, unknown))}, which are neither inputs of "
                    f"{name} nor results of earlier calls"
                )
            args = _Block(call.args, layout, compile_parameters)
            slice_out = []
            for m in call.outputs:
                l = len(layout)
                for s in m:
                    layout[s] = len(layout)
                slice_out.append(slice(l, len(layout)))
            self._calls.append((call.function, args, slice_out))

        unknown = set().union(*[o.free_symbols for o in outputs]) - set(layout)
        if unknown:
            raise ValueError(
                f"outputs of {name} depend on {sorted(map(str, unknown))}, "
                f"which are neither inputs of {name} nor results of calls"
            )
        self._outputs = _Block(outputs, layout, compile_parameters)
        self._size_work = len(layout)

    @property
    def n_call(self) -> int:
        """Number of recorded calls."""
        return len(self._calls)

    def _forward(self, args: list[VecFloat], i_in: Optional[int] = None):
        w = np.zeros(self._size_work, dtype=np.float64)
        for a, s in zip(args, self._slice_in):
            w[s] = a.ravel()
        dw = None
        if i_in is not None:
            dw = np.zeros((self._size_work, self.numel_in(i_in)), dtype=np.float64)
            dw[self._slice_in[i_in]] = np.eye(self.numel_in(i_in))

        for function, block, slice_out in self._calls:
            call_args = block.split(block.value(w))
            result = function._evaluate(call_args)
            if dw is not None:
                d_args = block.split_rows(block.jacobian(w, dw))
                d_result = [np.zeros((s.stop - s.start, dw.shape[1])) for s in slice_out]
                for j, d_arg in enumerate(d_args):
                    if not d_arg.any():
                        continue
                    J = function._jacobian(call_args, j)
                    for k in range(len(d_result)):
                        d_result[k] += J[k] @ d_arg
                for d, s in zip(d_result, slice_out):
                    dw[s] = d
            for r, s in zip(result, slice_out):
                w[s] = r.ravel()
        return w, dw

    def _evaluate(self, args: list[VecFloat]) -> list[VecFloat]:
        w, _ = self._forward(args)
        return self._outputs.split(self._outputs.value(w))

    def _jacobian(self, args: list[VecFloat], i_in: int) -> list[VecFloat]:
        w, dw = self._forward(args, i_in)
        return self._outputs.split_rows(self._outputs.jacobian(w, dw))
