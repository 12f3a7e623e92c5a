# Copyright (c) 2024 Yilin Zou
import mpmath
import numpy as np
import pytest

from intkit.base import RootFindingError, UnknownSchemeError
from intkit.collocation import points
from intkit.collocation import (
    CollocationScheme,
    collocation_points,
    collocation_points_ext,
    parse_scheme,
)


def test_parse_scheme():
    assert parse_scheme("radau") is CollocationScheme.RADAU
    assert parse_scheme("Legendre") is CollocationScheme.LEGENDRE
    assert parse_scheme(CollocationScheme.RADAU) is CollocationScheme.RADAU
    with pytest.raises(UnknownSchemeError):
        parse_scheme("midpoint")
    with pytest.raises(UnknownSchemeError):
        collocation_points(3, "midpoint")
    # UnknownSchemeError is also a ValueError
    with pytest.raises(ValueError):
        collocation_points(3, "lobatto")


def test_known_points():
    assert np.allclose(collocation_points(1, "legendre"), [0.5])
    assert np.allclose(
        collocation_points(2, "legendre"), [0.5 - np.sqrt(3) / 6, 0.5 + np.sqrt(3) / 6]
    )
    assert np.allclose(
        collocation_points(3, "legendre"),
        [0.5 - np.sqrt(15) / 10, 0.5, 0.5 + np.sqrt(15) / 10],
    )
    assert np.allclose(collocation_points(1, "radau"), [1.0])
    assert np.allclose(collocation_points(2, "radau"), [1 / 3, 1.0])
    assert np.allclose(
        collocation_points(3, "radau"),
        [(4 - np.sqrt(6)) / 10, (4 + np.sqrt(6)) / 10, 1.0],
    )


@pytest.mark.parametrize("scheme", ["legendre", "radau"])
def test_properties(scheme):
    for order in range(1, 21):
        t = collocation_points(order, scheme)
        assert t.shape == (order,)
        assert t.dtype == np.float64
        assert np.all(np.diff(t) > 0)
        assert t[0] > 0
        assert t[-1] <= 1
        if scheme == "radau":
            assert t[-1] == 1.0
        else:
            assert t[-1] < 1
            # symmetric about 1/2
            assert np.allclose(t + t[::-1], 1.0)


def test_against_gauss():
    for order in [4, 7, 12]:
        x, _ = np.polynomial.legendre.leggauss(order)
        assert np.allclose(collocation_points(order, "legendre"), (1 + x) / 2)


def test_fresh_result():
    t = collocation_points(4)
    t[0] = 100.0
    assert collocation_points(4)[0] < 1


def test_invalid_order():
    for order in [0, -1, 2.5, True]:
        with pytest.raises(ValueError):
            collocation_points(order)
    with pytest.raises(ValueError):
        collocation_points_ext(0)


def test_extended_precision():
    for scheme in ["legendre", "radau"]:
        for order in [1, 3, 6, 9]:
            t = collocation_points_ext(order, scheme, dps=40)
            assert len(t) == order
            assert all(isinstance(t_, mpmath.mpf) for t_ in t)
            assert np.allclose([float(t_) for t_ in t], collocation_points(order, scheme))

    t = collocation_points_ext(3, "radau", dps=50)
    with mpmath.workdps(50):
        assert abs(t[0] - (4 - mpmath.sqrt(6)) / 10) < mpmath.mpf(10) ** -45
        assert t[2] == 1
    t = collocation_points_ext(3, "legendre", dps=50)
    with mpmath.workdps(50):
        assert abs(t[2] - (mpmath.mpf(1) / 2 + mpmath.sqrt(15) / 10)) < mpmath.mpf(10) ** -45

    with pytest.raises(ValueError):
        collocation_points_ext(3, dps=10)


def test_iteration_cutoff(monkeypatch):
    monkeypatch.setattr(points, "MAX_ITER", 1)
    points._points.cache_clear()
    points._points_ext.cache_clear()
    with pytest.raises(RootFindingError):
        collocation_points(6, "legendre")
    with pytest.raises(RootFindingError):
        collocation_points_ext(6, "radau", dps=30)
    # closed forms need no iteration
    assert np.allclose(collocation_points(2, "radau"), [1 / 3, 1.0])
    assert issubclass(RootFindingError, ArithmeticError)


def test_guess_at_known_root(monkeypatch):
    def family(ctx, n):
        def q(x):
            return x - 1, ctx.mpf(1)

        return q, [ctx.mpf(1)], [ctx.mpf(1)]

    monkeypatch.setitem(points._FAMILY, CollocationScheme.RADAU, family)
    points._points.cache_clear()
    with pytest.raises(RootFindingError):
        collocation_points(5, "radau")
    points._points.cache_clear()
