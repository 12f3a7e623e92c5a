# Copyright (c) 2024 Yilin Zou
import warnings
from typing import Any, Callable, Optional

import scipy.optimize

from .errors import ConvergenceError, IntegratorWarning, UnknownBackendError
from .function import FunctionBase
from .runtime import mmax
from .vectypes import *

Residual = Callable[[VecFloat], VecFloat]
ResidualJacobian = Callable[[VecFloat], VecFloat]


def _solve_newton(
    fun: Residual, jac: ResidualJacobian, z: VecFloat, options: dict[str, Any]
) -> VecFloat:
    """Full-step Newton iteration.

    Stops when the infinity norm of the residual is below ``abstol`` or the
    infinity norm of the step is below ``abstol_step``.
    """
    abstol = options.get("abstol", 1e-12)
    abstol_step = options.get("abstol_step", 1e-12)
    max_iter = options.get("max_iter", 50)

    z = z.copy()
    for _ in range(max_iter):
        r = fun(z)
        if not np.all(np.isfinite(r)):
            raise ConvergenceError("residual is not finite during Newton iteration")
        if mmax(np.abs(r)) <= abstol:
            return z
        try:
            dz = np.linalg.solve(jac(z), r)
        except np.linalg.LinAlgError as e:
            raise ConvergenceError("singular Jacobian during Newton iteration") from e
        z -= dz
        if mmax(np.abs(dz)) <= abstol_step:
            return z
    raise ConvergenceError(f"Newton iteration did not converge in {max_iter} steps")


def _solve_scipy(
    fun: Residual, jac: ResidualJacobian, z: VecFloat, options: dict[str, Any]
) -> VecFloat:
    """Solve with :func:`scipy.optimize.root`.

    ``method`` and ``tol`` are passed as keyword arguments, everything else
    as ``options``. The solve is accepted when the infinity norm of the
    residual at the returned point is below ``abstol`` (default ``1e-12``),
    whatever status the SciPy method reports.
    """
    abstol = options.pop("abstol", 1e-12)
    method = options.pop("method", "hybr")
    tol = options.pop("tol", None)
    res = scipy.optimize.root(fun, z, jac=jac, method=method, tol=tol, options=options)
    x = np.asarray(res.x, dtype=np.float64)
    r = fun(x)
    if not np.all(np.isfinite(r)) or mmax(np.abs(r)) > abstol:
        raise ConvergenceError(
            f"scipy.optimize.root ({method}) failed: {res.message}, "
            f"residual {mmax(np.abs(r)):.3g} exceeds {abstol:.3g}"
        )
    return x


_NEWTON_OPTIONS = {"abstol", "abstol_step", "max_iter"}

_SOLVERS = {
    "newton": _solve_newton,
    "scipy": _solve_scipy,
}


class Rootfinder(FunctionBase):
    """Implicit function defined by the root of a residual.

    For a residual function ``g(z, a_1, ..., a_k) -> (r, y_1, ..., y_m)``
    whose first output ``r`` has as many entries as ``z``, the rootfinder is
    the function ``(z_0, a_1, ..., a_k) -> (z, y_1, ..., y_m)`` where ``z``
    solves ``r(z, a_1, ..., a_k) = 0`` starting from the guess ``z_0``, and
    ``y_i`` are the remaining outputs of ``g`` at the solution.

    Derivatives follow from the implicit function theorem; they do not
    depend on the guess.
    """

    def __init__(
        self,
        name: str,
        solver: str,
        residual: FunctionBase,
        options: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        Args:
            name: Name of the function.
            solver: ``"newton"`` or ``"scipy"``.
            residual: Residual function, unknowns are its first input and
                the residual its first output.
            options: Options of the solver, see :func:`_solve_newton` and :func:`_solve_scipy`.

        Raises:
            UnknownBackendError: If ``solver`` is not recognized.
        """
        if solver not in _SOLVERS:
            raise UnknownBackendError(
                f"unknown rootfinder {solver!r}, expected one of {sorted(_SOLVERS)}"
            )
        if residual.n_in < 1 or residual.n_out < 1:
            raise ValueError(f"residual {residual.name} needs an input and an output")
        if residual.numel_out(0) != residual.numel_in(0):
            raise ValueError(
                f"residual {residual.name} has {residual.numel_out(0)} equations "
                f"for {residual.numel_in(0)} unknowns"
            )
        super().__init__(
            name,
            [residual.size_in(i) for i in range(residual.n_in)],
            [residual.size_in(0)]
            + [residual.size_out(i) for i in range(1, residual.n_out)],
            [residual.name_in(i) for i in range(residual.n_in)],
            [residual.name_in(0)]
            + [residual.name_out(i) for i in range(1, residual.n_out)],
        )
        self._solver = solver
        self._residual = residual
        self._options = dict(options) if options is not None else {}
        self._last = None
        if solver == "newton" and set(self._options) - _NEWTON_OPTIONS:
            warnings.warn(
                f"unknown options for the newton solver are ignored: "
                f"{sorted(set(self._options) - _NEWTON_OPTIONS)}",
                IntegratorWarning,
                stacklevel=2,
            )

    @property
    def solver(self) -> str:
        """Name of the solver."""
        return self._solver

    def _solve(self, args: list[VecFloat]) -> VecFloat:
        shape = self.size_in(0)
        rest = args[1:]

        def fun(z: VecFloat) -> VecFloat:
            return self._residual._evaluate([z.reshape(shape)] + rest)[0].ravel()

        def jac(z: VecFloat) -> VecFloat:
            return self._residual._jacobian([z.reshape(shape)] + rest, 0)[0]

        z = _SOLVERS[self._solver](fun, jac, args[0].ravel(), dict(self._options))
        return z.reshape(shape)

    def _root(self, args: list[VecFloat]) -> VecFloat:
        """Root for ``args``, the last one is memoized for the Jacobian pass."""
        key = tuple(a.tobytes() for a in args)
        if self._last is None or self._last[0] != key:
            self._last = key, self._solve(args)
        return self._last[1]

    def _evaluate(self, args: list[VecFloat]) -> list[VecFloat]:
        z = self._root(args).copy()
        result = self._residual._evaluate([z] + args[1:])
        return [z] + result[1:]

    def _jacobian(self, args: list[VecFloat], i_in: int) -> list[VecFloat]:
        n = self.numel_in(i_in)
        if i_in == 0:
            return [np.zeros((self.numel_out(k), n)) for k in range(self.n_out)]
        a = [self._root(args)] + args[1:]
        J_z = self._residual._jacobian(a, 0)
        J_a = self._residual._jacobian(a, i_in)
        try:
            dz = -np.linalg.solve(J_z[0], J_a[0])
        except np.linalg.LinAlgError as e:
            raise ConvergenceError(
                f"singular residual Jacobian at the root of {self.name}"
            ) from e
        return [dz] + [J_z[k] @ dz + J_a[k] for k in range(1, self.n_out)]
