# Copyright (c) 2024 Yilin Zou
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import sympy as sp

from .errors import SignatureMismatchError
from .fastfunc import FastFunc
from .vectypes import *


def _numel(shape: tuple[int, int]) -> int:
    return shape[0] * shape[1]


def _as_symbol_matrix(arg: sp.Symbol | Iterable[sp.Symbol] | sp.MatrixBase) -> sp.Matrix:
    if isinstance(arg, sp.MatrixBase):
        m = sp.Matrix(arg)
    elif isinstance(arg, sp.Basic):
        m = sp.Matrix([arg])
    else:
        m = sp.Matrix(list(arg))
    for s in m:
        if not isinstance(s, sp.Symbol):
            raise ValueError(f"function inputs must be symbols, got {s}")
    return m


def _as_expr_matrix(arg: sp.Expr | float | Iterable | sp.MatrixBase) -> sp.Matrix:
    if isinstance(arg, sp.MatrixBase):
        return sp.Matrix(arg)
    if isinstance(arg, (sp.Expr, int, float)):
        return sp.Matrix([arg])
    return sp.Matrix(list(arg))


class FunctionBase(ABC):
    """A differentiable function with a fixed number of matrix-valued inputs
    and outputs.

    This is the only interface the collocation and integrator modules rely
    on. Subclasses implement :meth:`_evaluate` and :meth:`_jacobian`, which
    work on lists of two-dimensional ``float64`` arrays of the declared
    shapes; the public call converts user arguments to that form.
    """

    name: str
    """Name of the function."""

    def __init__(
        self,
        name: str,
        shape_in: list[tuple[int, int]],
        shape_out: list[tuple[int, int]],
        name_in: Optional[list[str]] = None,
        name_out: Optional[list[str]] = None,
    ) -> None:
        """
        Args:
            name: Name of the function.
            shape_in: Shape ``(rows, cols)`` of each input.
            shape_out: Shape ``(rows, cols)`` of each output.
            name_in: Names of the inputs, ``i0, i1, ...`` if not given.
            name_out: Names of the outputs, ``o0, o1, ...`` if not given.
        """
        if name_in is None:
            name_in = [f"i{i}" for i in range(len(shape_in))]
        if name_out is None:
            name_out = [f"o{i}" for i in range(len(shape_out))]
        if len(name_in) != len(shape_in) or len(name_out) != len(shape_out):
            raise ValueError("number of names must match number of inputs/outputs")
        self.name = name
        self._shape_in = [tuple(s) for s in shape_in]
        self._shape_out = [tuple(s) for s in shape_out]
        self._name_in = list(name_in)
        self._name_out = list(name_out)

    @property
    def n_in(self) -> int:
        """Number of inputs."""
        return len(self._shape_in)

    @property
    def n_out(self) -> int:
        """Number of outputs."""
        return len(self._shape_out)

    def size_in(self, i: int) -> tuple[int, int]:
        """Shape of input ``i``."""
        return self._shape_in[i]

    def size_out(self, i: int) -> tuple[int, int]:
        """Shape of output ``i``."""
        return self._shape_out[i]

    def numel_in(self, i: int) -> int:
        """Number of entries of input ``i``."""
        return _numel(self._shape_in[i])

    def numel_out(self, i: int) -> int:
        """Number of entries of output ``i``."""
        return _numel(self._shape_out[i])

    def name_in(self, i: int) -> str:
        """Name of input ``i``."""
        return self._name_in[i]

    def name_out(self, i: int) -> str:
        """Name of output ``i``."""
        return self._name_out[i]

    @abstractmethod
    def _evaluate(self, args: list[VecFloat]) -> list[VecFloat]:
        """Evaluate all outputs, arguments and results are 2-D arrays."""
        pass

    @abstractmethod
    def _jacobian(self, args: list[VecFloat], i_in: int) -> list[VecFloat]:
        """Jacobian of every output with respect to input ``i_in``.

        Element ``k`` of the result has shape ``(numel_out(k),
        numel_in(i_in))``; matrices are vectorized row by row.
        """
        pass

    def _prepare(self, args: tuple) -> list[VecFloat]:
        if len(args) != self.n_in:
            raise ValueError(
                f"{self.name} takes {self.n_in} arguments, got {len(args)}"
            )
        prepared = []
        for i, a in enumerate(args):
            a = np.asarray(a, dtype=np.float64)
            if a.size != self.numel_in(i):
                raise ValueError(
                    f"argument {self.name_in(i)} of {self.name} must have shape "
                    f"{self.size_in(i)}, got {a.shape}"
                )
            prepared.append(a.reshape(self.size_in(i)))
        return prepared

    @staticmethod
    def _finish(result: list[VecFloat]) -> VecFloat | list[VecFloat]:
        result = [r[:, 0] if r.shape[1] == 1 else r for r in result]
        if len(result) == 1:
            return result[0]
        return result

    def __call__(self, *args) -> VecFloat | list[VecFloat]:
        """Evaluate the function numerically.

        Arguments are reshaped to the input shapes. Column vector outputs are
        returned flat. A single output is returned as an array, multiple
        outputs as a list.
        """
        return self._finish(self._evaluate(self._prepare(args)))

    def jacobian(self, i_in: int = 0, i_out: int = 0) -> "FunctionBase":
        """Function with the same inputs returning the Jacobian of output
        ``i_out`` with respect to input ``i_in``."""
        return JacobianFunction(self, i_in, i_out)

    def __repr__(self) -> str:
        ins = ", ".join(f"{n}[{r}x{c}]" for n, (r, c) in zip(self._name_in, self._shape_in))
        outs = ", ".join(
            f"{n}[{r}x{c}]" for n, (r, c) in zip(self._name_out, self._shape_out)
        )
        return f"{type(self).__name__}({self.name}: ({ins}) -> ({outs}))"


class JacobianFunction(FunctionBase):
    """Numeric Jacobian of another function, evaluated through its
    :meth:`FunctionBase._jacobian`."""

    def __init__(self, function: FunctionBase, i_in: int, i_out: int) -> None:
        super().__init__(
            f"jac_{function.name}",
            [function.size_in(i) for i in range(function.n_in)],
            [(function.numel_out(i_out), function.numel_in(i_in))],
            [function.name_in(i) for i in range(function.n_in)],
            [f"jac_{function.name_out(i_out)}_{function.name_in(i_in)}"],
        )
        self._function = function
        self._i_in = i_in
        self._i_out = i_out

    def _evaluate(self, args: list[VecFloat]) -> list[VecFloat]:
        return [self._function._jacobian(args, self._i_in)[self._i_out]]

    def _jacobian(self, args: list[VecFloat], i_in: int) -> list[VecFloat]:
        raise NotImplementedError(
            f"second-order derivatives of {self._function.name} are not available"
        )


class SymbolicFunction(FunctionBase):
    """Function defined by SymPy expressions of its input symbols."""

    def __init__(
        self,
        name: str,
        inputs: list[sp.Symbol | Iterable[sp.Symbol] | sp.MatrixBase],
        outputs: list[sp.Expr | Iterable[sp.Expr] | sp.MatrixBase],
        name_in: Optional[list[str]] = None,
        name_out: Optional[list[str]] = None,
        simplify: bool = False,
        jit: bool = False,
        fastmath: bool = False,
    ) -> None:
        """A single symbol becomes a ``1 x 1`` input, a list of symbols a
        column vector; ``sympy.Matrix`` inputs keep their shape. Outputs are
        converted the same way.

        If ``simplify`` is ``True``, every expression is simplified (by :func:`sympy.simplify`)
        before being compiled. If ``jit`` is ``True``, the generated code is compiled by Numba,
        optionally in ``fastmath`` mode.

        Args:
            name: Name of the function.
            inputs: Input symbols.
            outputs: Output expressions of the input symbols.
            name_in: Names of the inputs.
            name_out: Names of the outputs.
            simplify: Whether to use Sympy to simplify expressions before compilation.
            jit: Whether to compile with Numba.
            fastmath: Whether to use Numba ``fastmath`` mode.
        """
        inputs = [_as_symbol_matrix(i) for i in inputs]
        outputs = [_as_expr_matrix(o) for o in outputs]
        super().__init__(
            name, [i.shape for i in inputs], [o.shape for o in outputs], name_in, name_out
        )

        self._symbols = [s for m in inputs for s in m]
        if len(set(self._symbols)) != len(self._symbols):
            raise ValueError(f"inputs of {name} must be distinct symbols")
        known = set(self._symbols)
        for o in outputs:
            unknown = o.free_symbols - known
            if unknown:
                raise ValueError(
                    f"outputs of {name} depend on {sorted(map(str, unknown))}, "
                    f"which are not inputs"
                )

        self._inputs = inputs
        self._outputs = outputs
        self._compile_parameters = simplify, jit, fastmath
        self._F = FastFunc(
            [e for o in outputs for e in o], self._symbols, *self._compile_parameters
        )
        self._F_jac = {}

    @property
    def inputs(self) -> list[sp.Matrix]:
        """Input symbols."""
        return self._inputs

    @property
    def outputs(self) -> list[sp.Matrix]:
        """Output expressions."""
        return self._outputs

    def _split(self, v: VecFloat, shapes: list[tuple[int, int]]) -> list[VecFloat]:
        result = []
        l = 0
        for shape in shapes:
            r = l + _numel(shape)
            result.append(v[l:r].reshape(shape))
            l = r
        return result

    def _evaluate(self, args: list[VecFloat]) -> list[VecFloat]:
        v = np.concatenate([a.ravel() for a in args]) if args else np.empty(0)
        return self._split(self._F.F(v), self._shape_out)

    def _symbolic_jacobian(self, i_in: int) -> list[sp.Matrix]:
        x = self._inputs[i_in].reshape(self.numel_in(i_in), 1)
        return [o.reshape(_numel(o.shape), 1).jacobian(x) for o in self._outputs]

    def _jacobian(self, args: list[VecFloat], i_in: int) -> list[VecFloat]:
        if i_in not in self._F_jac:
            self._F_jac[i_in] = FastFunc(
                [e for J in self._symbolic_jacobian(i_in) for e in J],
                self._symbols,
                *self._compile_parameters,
            )
        v = np.concatenate([a.ravel() for a in args]) if args else np.empty(0)
        shapes = [(self.numel_out(k), self.numel_in(i_in)) for k in range(self.n_out)]
        return self._split(self._F_jac[i_in].F(v), shapes)

    def jacobian(self, i_in: int = 0, i_out: int = 0) -> "SymbolicFunction":
        """Symbolic Jacobian of output ``i_out`` with respect to input
        ``i_in``, as a new ``SymbolicFunction`` with the same inputs."""
        return SymbolicFunction(
            f"jac_{self.name}",
            self._inputs,
            [self._symbolic_jacobian(i_in)[i_out]],
            self._name_in,
            [f"jac_{self.name_out(i_out)}_{self.name_in(i_in)}"],
            *self._compile_parameters,
        )


def check_ode(f: FunctionBase) -> None:
    """Check that ``f`` maps a state column vector ``x`` and a parameter
    ``p`` to ``xdot`` of the same shape as ``x``.

    Raises:
        TypeError: If ``f`` is not a ``FunctionBase``.
        SignatureMismatchError: If the inputs or outputs do not fit.
    """
    if not isinstance(f, FunctionBase):
        raise TypeError(f"ODE function must be a FunctionBase, got {type(f).__name__}")
    if f.n_in != 2:
        raise SignatureMismatchError(
            f"ODE function {f.name} must have 2 inputs (x, p), got {f.n_in}"
        )
    if f.n_out != 1:
        raise SignatureMismatchError(
            f"ODE function {f.name} must have 1 output (xdot), got {f.n_out}"
        )
    if f.size_in(0)[1] != 1:
        raise SignatureMismatchError(
            f"state of ODE function {f.name} must be a column vector, got {f.size_in(0)}"
        )
    if f.size_out(0) != f.size_in(0):
        raise SignatureMismatchError(
            f"output of ODE function {f.name} has shape {f.size_out(0)}, "
            f"but the state has shape {f.size_in(0)}"
        )
