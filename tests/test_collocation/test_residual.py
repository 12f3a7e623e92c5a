# Copyright (c) 2024 Yilin Zou
import numpy as np
import pytest
import sympy as sp

from intkit.base import Rootfinder, SignatureMismatchError, SymbolicFunction
from intkit.collocation import (
    collocation_interpolators,
    collocation_points,
    collocation_residual,
)


class TestResidual:
    x, p = sp.symbols("x, p")
    # linear decay with rate p
    f = SymbolicFunction("f", [[x], p], [[-p * x]], ["x", "p"], ["xdot"])
    tau = collocation_points(2, "radau")
    res = collocation_residual(f, tau)

    def test_signature(self):
        assert self.res.n_in == 4
        assert self.res.n_out == 2
        assert self.res.size_in(0) == (1, 2)
        assert self.res.size_in(1) == (1, 1)
        assert self.res.size_in(3) == (1, 1)
        assert self.res.size_out(0) == (2, 1)
        assert self.res.size_out(1) == (1, 1)
        assert [self.res.name_in(i) for i in range(4)] == ["V", "x0", "p", "h"]
        assert [self.res.name_out(i) for i in range(2)] == ["res", "xf"]

    def test_value(self):
        # constant helper states: only the dynamics remain
        r, xf = self.res([2.0, 2.0], 2.0, 1.0, 0.1)
        assert np.allclose(r, [0.2, 0.2])
        assert np.allclose(xf, 2.0)

        V = np.array([0.5, 1.5])
        C, D = collocation_interpolators(self.tau)
        X = np.concatenate(([3.0], V))
        r, xf = self.res(V, 3.0, 0.7, 0.2)
        assert np.allclose(r, C[1:] @ X + 0.2 * 0.7 * V)
        assert np.allclose(xf, D @ X)

    def test_jacobian(self):
        C, _ = collocation_interpolators(self.tau)
        args = [0.5, 1.5], 3.0, 0.7, 0.2
        assert np.allclose(self.res.jacobian(0)(*args), C[1:, 1:] + 0.2 * 0.7 * np.eye(2))
        assert np.allclose(self.res.jacobian(1)(*args), C[1:, 0])
        assert np.allclose(self.res.jacobian(2)(*args), 0.2 * np.array([0.5, 1.5]))
        assert np.allclose(self.res.jacobian(3)(*args), 0.7 * np.array([0.5, 1.5]))

    def test_exponential_decay(self):
        rf = Rootfinder("ifcn", "newton", self.res)
        errors = []
        for h in [0.1, 0.05]:
            _, xf = rf([1.0, 1.0], 1.0, 1.0, h)
            errors.append(abs(xf[0] - np.exp(-h)))
        # local error of the 2-stage Radau IIA method is O(h^4)
        assert errors[0] < 5e-6
        assert 10 < errors[0] / errors[1] < 24

    def test_vector_state(self):
        x = sp.symbols("x:2")
        q = sp.symbols("q")
        A = np.array([[0.0, 1.0], [-4.0, -0.5]])
        f = SymbolicFunction("f", [x, q], [sp.Matrix(A) * sp.Matrix(x)])
        tau = collocation_points(3, "legendre")
        res = collocation_residual(f, tau)
        assert res.size_in(0) == (2, 3)
        assert res.size_out(0) == (6, 1)
        x0 = np.array([1.0, -1.0])
        V = np.tile(x0.reshape(2, 1), (1, 3))
        r, xf = res(V, x0, 0.0, 0.1)
        # residual is stacked stage after stage
        assert np.allclose(r, np.tile(-0.1 * A @ x0, 3))
        assert np.allclose(xf, x0)


def test_invalid_ode():
    x, p, q = sp.symbols("x, p, q")
    f = SymbolicFunction("f", [[x], p, q], [[-p * x * q]])
    with pytest.raises(SignatureMismatchError):
        collocation_residual(f, collocation_points(2))
    g = SymbolicFunction("g", [[x], p], [[-p * x], x])
    with pytest.raises(SignatureMismatchError):
        collocation_residual(g, collocation_points(2))
