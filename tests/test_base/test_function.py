# Copyright (c) 2024 Yilin Zou
import numpy as np
import pytest
import sympy as sp

from intkit.base import (
    SignatureMismatchError,
    SymbolicFunction,
    JacobianFunction,
    check_ode,
)


class TestSymbolicFunction:
    # harmonic oscillator with stiffness p
    x = sp.symbols("x:2")
    p = sp.symbols("p")
    f = SymbolicFunction("f", [x, p], [[x[1], -p * x[0]]], ["x", "p"], ["xdot"])

    def test_signature(self):
        assert self.f.n_in == 2
        assert self.f.n_out == 1
        assert self.f.size_in(0) == (2, 1)
        assert self.f.size_in(1) == (1, 1)
        assert self.f.size_out(0) == (2, 1)
        assert self.f.numel_in(0) == 2
        assert self.f.name_in(1) == "p"
        assert self.f.name_out(0) == "xdot"
        assert repr(self.f) == "SymbolicFunction(f: (x[2x1], p[1x1]) -> (xdot[2x1]))"

    def test_value(self):
        assert np.allclose(self.f([1.0, 2.0], 3.0), np.array([2.0, -3.0]))
        assert np.allclose(self.f(np.array([[1.0], [2.0]]), [3.0]), np.array([2.0, -3.0]))

    def test_jacobian(self):
        assert np.allclose(
            self.f.jacobian(0)([1.0, 2.0], 3.0), np.array([[0.0, 1.0], [-3.0, 0.0]])
        )
        assert np.allclose(self.f.jacobian(1)([1.0, 2.0], 3.0), np.array([0.0, -1.0]))
        assert isinstance(self.f.jacobian(0), SymbolicFunction)

        J = JacobianFunction(self.f, 0, 0)
        assert J.size_out(0) == (2, 2)
        assert np.allclose(J([1.0, 2.0], 3.0), self.f.jacobian(0)([1.0, 2.0], 3.0))
        with pytest.raises(NotImplementedError):
            J._jacobian(J._prepare(([1.0, 2.0], 3.0)), 0)

    def test_arguments(self):
        with pytest.raises(ValueError):
            self.f([1.0, 2.0])
        with pytest.raises(ValueError):
            self.f([1.0, 2.0, 3.0], 3.0)

    def test_matrix(self):
        A = sp.Matrix(2, 2, sp.symbols("a:4"))
        g = SymbolicFunction("g", [A], [A.T, A.det()])
        assert g.size_in(0) == (2, 2)
        assert g.size_out(0) == (2, 2)
        # matrices are vectorized row by row
        a = np.array([1.0, 2.0, 3.0, 4.0])
        At, det = g(a)
        assert np.allclose(At, np.array([[1.0, 3.0], [2.0, 4.0]]))
        assert np.allclose(det, np.array([-2.0]))
        assert np.allclose(g.jacobian(0, 1)(a), np.array([[4.0, -3.0, -2.0, 1.0]]))

    def test_configs(self):
        f = SymbolicFunction(
            "f", [self.x, self.p], [[self.x[1], -self.p * self.x[0]]], jit=True
        )
        assert np.allclose(f([1.0, 2.0], 3.0), np.array([2.0, -3.0]))
        assert np.allclose(f.jacobian(1)([1.0, 2.0], 3.0), np.array([0.0, -1.0]))


def test_invalid_function():
    x, y = sp.symbols("x, y")
    with pytest.raises(ValueError):
        SymbolicFunction("f", [x], [x + y])
    with pytest.raises(ValueError):
        SymbolicFunction("f", [x, [x, y]], [x])
    with pytest.raises(ValueError):
        SymbolicFunction("f", [x + 1], [x])


def test_check_ode():
    x = sp.symbols("x:2")
    p, q = sp.symbols("p, q")
    check_ode(SymbolicFunction("f", [x, p], [[-p * x[0], x[0]]]))

    with pytest.raises(TypeError):
        check_ode(lambda x, p: -x)
    with pytest.raises(SignatureMismatchError):
        check_ode(SymbolicFunction("f", [x, p, q], [[x[0], x[1]]]))
    with pytest.raises(SignatureMismatchError):
        check_ode(SymbolicFunction("f", [x, p], [[x[0], x[1]], p]))
    with pytest.raises(SignatureMismatchError):
        check_ode(SymbolicFunction("f", [x, p], [[x[0], x[1], p]]))
    with pytest.raises(SignatureMismatchError):
        check_ode(SymbolicFunction("f", [sp.Matrix([list(x)]), p], [sp.Matrix([list(x)])]))
    # SignatureMismatchError is also a ValueError
    with pytest.raises(ValueError):
        check_ode(SymbolicFunction("f", [x], [[x[0], x[1]]]))
