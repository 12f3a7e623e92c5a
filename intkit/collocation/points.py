# Copyright (c) 2024 Yilin Zou
"""Collocation points of Legendre-Gauss and Legendre-Gauss-Radau schemes.

The roots are located by the same code for every precision: the algorithm
is written against an mpmath context, ``mpmath.fp`` for ``float64`` results
and ``mpmath.mp`` (at a chosen number of digits) for extended precision.
"""
import functools
from enum import Enum
from typing import Callable

import mpmath

from intkit.base.errors import RootFindingError, UnknownSchemeError
from intkit.base.runtime import mmin
from intkit.base.vectypes import *

MAX_ITER = 100
"""Maximum number of Newton iterations per root."""


class CollocationScheme(Enum):
    """Family of collocation points."""

    LEGENDRE = "legendre"
    """Roots of the Legendre polynomial, interior points only."""
    RADAU = "radau"
    """Roots of the right Radau polynomial, the last point is 1."""


def parse_scheme(scheme: str | CollocationScheme) -> CollocationScheme:
    """Convert a scheme name (case-insensitive) to :class:`CollocationScheme`.

    Raises:
        UnknownSchemeError: If the name is not recognized.
    """
    if isinstance(scheme, CollocationScheme):
        return scheme
    if isinstance(scheme, str):
        try:
            return CollocationScheme(scheme.lower())
        except ValueError:
            pass
    raise UnknownSchemeError(
        f"unknown collocation scheme {scheme!r}, "
        f"expected one of {[s.value for s in CollocationScheme]}"
    )


def _check_order(order: int) -> None:
    if isinstance(order, bool) or not isinstance(order, (int, np.integer)) or order < 1:
        raise ValueError(f"order must be a positive integer, got {order!r}")


def _legendre(ctx, n: int, x):
    """Values and derivatives of ``P_n`` and ``P_{n-1}`` at ``x`` by the
    three-term recurrence."""
    p_prev, p = ctx.mpf(1), x
    d_prev, d = ctx.mpf(0), ctx.mpf(1)
    for k in range(1, n):
        p_prev, p = p, ((2 * k + 1) * x * p - k * p_prev) / (k + 1)
        d_prev, d = d, d_prev + (2 * k + 1) * p_prev
    return p, d, p_prev, d_prev


def _legendre_family(ctx, n: int):
    def q(x):
        p, d, _, _ = _legendre(ctx, n, x)
        return p, d

    quarter = ctx.mpf(1) / 4
    guess = [ctx.cos(ctx.pi * (k - quarter) / (n + 2 * quarter)) for k in range(1, n + 1)]
    return q, guess, []


def _radau_family(ctx, n: int):
    # P_n - P_{n-1} vanishes at x = 1 and at the n - 1 interior Radau points
    def q(x):
        p, d, p_prev, d_prev = _legendre(ctx, n, x)
        return p - p_prev, d - d_prev

    guess = [ctx.cos(2 * ctx.pi * k / (2 * n - 1)) for k in range(1, n)]
    return q, guess, [ctx.mpf(1)]


_FAMILY = {
    CollocationScheme.LEGENDRE: _legendre_family,
    CollocationScheme.RADAU: _radau_family,
}

_CLOSED_FORM = {
    (CollocationScheme.LEGENDRE, 1): lambda ctx: [ctx.mpf(1) / 2],
    (CollocationScheme.LEGENDRE, 2): lambda ctx: [
        ctx.mpf(1) / 2 - ctx.sqrt(3) / 6,
        ctx.mpf(1) / 2 + ctx.sqrt(3) / 6,
    ],
    (CollocationScheme.RADAU, 1): lambda ctx: [ctx.mpf(1)],
    (CollocationScheme.RADAU, 2): lambda ctx: [ctx.mpf(1) / 3, ctx.mpf(1)],
}


def _newton(ctx, q: Callable, guess: list, fixed: list) -> list:
    """Refine every guess to a root of ``q`` by Newton iteration with
    Maehly deflation of the roots found so far.

    Returns:
        Roots on ``[-1, 1]``, the ``fixed`` roots first.
    """
    roots = list(fixed)
    tol = 16 * ctx.eps
    for x in guess:
        for _ in range(MAX_ITER):
            v, d = q(x)
            s = ctx.mpf(0)
            for r in roots:
                s += 1 / (x - r)
            dx = v / (d - v * s)
            x -= dx
            if abs(dx) <= tol:
                break
        else:
            raise RootFindingError(
                f"Newton iteration for a root near {float(x)} did not converge "
                f"in {MAX_ITER} steps"
            )
        roots.append(x)
    return roots


def _locate(ctx, order: int, scheme: CollocationScheme) -> list:
    if (scheme, order) in _CLOSED_FORM:
        return _CLOSED_FORM[scheme, order](ctx)
    q, guess, fixed = _FAMILY[scheme](ctx, order)
    try:
        x = _newton(ctx, q, guess, fixed)
    except ZeroDivisionError as e:
        raise RootFindingError(
            f"Newton iteration hit a known root for order {order}"
        ) from e
    t = sorted((1 + x_) / 2 for x_ in x)
    if scheme is CollocationScheme.RADAU:
        t[-1] = ctx.mpf(1)
    return t


def _validate(t: VecFloat, order: int, scheme: CollocationScheme) -> None:
    if len(t) != order or not np.all(np.isfinite(t)):
        raise RootFindingError(f"failed to locate {order} {scheme.value} points")
    if t[0] <= 0 or t[-1] > 1 or (order > 1 and mmin(np.diff(t)) <= 0):
        raise RootFindingError(
            f"{scheme.value} points of order {order} are not strictly increasing in (0, 1]"
        )


@functools.lru_cache
def _points(order: int, scheme: CollocationScheme) -> tuple[float, ...]:
    t = _locate(mpmath.fp, order, scheme)
    _validate(np.array(t, dtype=np.float64), order, scheme)
    return tuple(float(t_) for t_ in t)


@functools.lru_cache
def _points_ext(order: int, scheme: CollocationScheme, dps: int) -> tuple:
    with mpmath.workdps(dps):
        t = _locate(mpmath.mp, order, scheme)
    _validate(np.array([float(t_) for t_ in t], dtype=np.float64), order, scheme)
    return tuple(t)


def collocation_points(
    order: int, scheme: str | CollocationScheme = "radau"
) -> VecFloat:
    """Compute the collocation points of an integration step scaled to ``[0, 1]``.

    For ``"legendre"`` these are the roots of the Legendre polynomial of
    degree ``order``; for ``"radau"`` the roots of ``P_order - P_{order-1}``,
    the last of which is exactly 1.

    Args:
        order: Number of collocation points.
        scheme: ``"legendre"`` or ``"radau"``.

    Returns:
        Ascending collocation points in ``(0, 1]``.

    Raises:
        UnknownSchemeError: If ``scheme`` is not recognized.
        RootFindingError: If the roots cannot be located.
    """
    scheme = parse_scheme(scheme)
    _check_order(order)
    return np.array(_points(int(order), scheme), dtype=np.float64)


def collocation_points_ext(
    order: int, scheme: str | CollocationScheme = "radau", dps: int = 34
) -> tuple[mpmath.mpf, ...]:
    """Compute the collocation points in extended precision.

    Same as :func:`collocation_points`, but the roots are located with
    ``dps`` significant decimal digits and returned as ``mpmath.mpf``.

    Args:
        order: Number of collocation points.
        scheme: ``"legendre"`` or ``"radau"``.
        dps: Decimal digits of the computation.

    Returns:
        Ascending collocation points in ``(0, 1]``.
    """
    scheme = parse_scheme(scheme)
    _check_order(order)
    if dps < 15:
        raise ValueError(f"dps must be at least 15, got {dps}")
    return _points_ext(int(order), scheme, int(dps))
