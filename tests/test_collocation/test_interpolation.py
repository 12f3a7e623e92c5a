# Copyright (c) 2024 Yilin Zou
import numpy as np
import pytest

from intkit.collocation import (
    collocation_interpolators,
    collocation_points,
    collocation_tableau,
)


@pytest.mark.parametrize("scheme", ["legendre", "radau"])
def test_shape(scheme):
    for order in range(1, 10):
        C, D = collocation_interpolators(collocation_points(order, scheme))
        assert C.shape == (order + 1, order + 1)
        assert D.shape == (order + 1,)


@pytest.mark.parametrize("scheme", ["legendre", "radau"])
def test_partition_of_unity(scheme):
    for order in range(1, 10):
        C, D = collocation_interpolators(collocation_points(order, scheme))
        assert np.isclose(D.sum(), 1.0)
        # derivatives of a constant vanish
        assert np.allclose(C.sum(axis=1), 0.0)


def test_radau_end_weights():
    # the last Radau point is 1, so D selects it
    for order in range(1, 8):
        _, D = collocation_interpolators(collocation_points(order, "radau"))
        assert np.allclose(D, np.eye(order + 1)[-1])


@pytest.mark.parametrize("scheme", ["legendre", "radau"])
def test_polynomial_derivative(scheme):
    # exact for polynomials up to degree order
    for order in range(1, 8):
        tau = collocation_points(order, scheme)
        t = np.concatenate(([0.0], tau))
        C, D = collocation_interpolators(tau)
        coef = np.arange(1, order + 2, dtype=np.float64)[::-1]
        poly = np.poly1d(coef)
        assert np.allclose(C[1:] @ poly(t), np.polyder(poly)(tau))
        assert np.isclose(D @ poly(t), poly(1.0))


def test_smooth_derivative():
    # derivative of exp converges with the number of points
    errors = []
    for order in [2, 4, 6, 8]:
        tau = collocation_points(order, "legendre")
        t = np.concatenate(([0.0], tau))
        C, _ = collocation_interpolators(tau)
        errors.append(np.max(np.abs(C[1:] @ np.exp(t) - np.exp(tau))))
    assert all(e_1 < e_0 for e_0, e_1 in zip(errors, errors[1:]))
    assert errors[-1] < 1e-6


def test_row_zero():
    # row 0 holds the derivatives at the anchor t = 0
    tau = [0.5, 1.0]
    C, D = collocation_interpolators(tau)
    # L_0 = (t - 0.5)(t - 1) / 0.5, L_1 = -4 t (t - 1), L_2 = 2 t (t - 0.5)
    assert np.allclose(C[0], [-3.0, 4.0, -1.0])
    assert np.allclose(C[1], [-1.0, 0.0, 1.0])
    assert np.allclose(C[2], [1.0, -4.0, 3.0])
    assert np.allclose(D, [0.0, 0.0, 1.0])


def test_deterministic():
    tau = collocation_points(5, "legendre")
    C_0, D_0 = collocation_interpolators(tau)
    C_1, D_1 = collocation_interpolators(list(tau))
    assert np.array_equal(C_0, C_1)
    assert np.array_equal(D_0, D_1)


def test_invalid_points():
    with pytest.raises(ValueError):
        collocation_interpolators([])
    with pytest.raises(ValueError):
        collocation_interpolators([0.0, 0.5])
    with pytest.raises(ValueError):
        collocation_interpolators([0.5, 1.5])
    with pytest.raises(ValueError):
        collocation_interpolators([0.6, 0.3])
    with pytest.raises(ValueError):
        collocation_interpolators([0.5, 0.5])


def test_tableau():
    t = collocation_tableau(2, "radau")
    assert np.allclose(t.A, [[5 / 12, -1 / 12], [3 / 4, 1 / 4]])
    assert np.allclose(t.b, [3 / 4, 1 / 4])
    assert np.allclose(t.c, [1 / 3, 1.0])
    assert not t.is_explicit

    t = collocation_tableau(1, "legendre")  # implicit midpoint
    assert np.allclose(t.A, [[0.5]])
    assert np.allclose(t.b, [1.0])

    # row sums of A are the stage times
    for scheme in ["legendre", "radau"]:
        for order in range(1, 6):
            t = collocation_tableau(order, scheme)
            assert np.allclose(t.A.sum(axis=1), t.c)
            assert np.isclose(t.b.sum(), 1.0)
