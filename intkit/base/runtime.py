"""Reduction kernels over dense or sparse nonzero arrays.

For a sparse array only the nonzeros are stored, the structural zeros
still take part in the reduction, so the reduction starts from ``0``.
A dense reduction starts from ``-inf`` (``mmax``) or ``inf`` (``mmin``).
"""
from typing import Optional

import numba as nb
import numpy as np

from .vectypes import *


@nb.njit("float64(float64[:], float64)")
def _vfmax(x, r):
    for v in x:
        if v > r:
            r = v
    return r


@nb.njit("float64(float64[:], float64)")
def _vfmin(x, r):
    for v in x:
        if v < r:
            r = v
    return r


def mmax(x: Optional[VecFloat], is_dense: bool = True) -> float:
    """Maximum of the nonzeros ``x``.

    Args:
        x: Nonzeros of the array, or ``None`` if the array is absent.
        is_dense: Whether ``x`` holds every entry of the array.

    Returns:
        The maximum, ``-inf`` for an absent dense array and ``0`` for an absent sparse one.
    """
    r = -np.inf if is_dense else 0.0
    if x is None:
        return r
    return _vfmax(np.ascontiguousarray(x, dtype=np.float64).ravel(), r)


def mmin(x: Optional[VecFloat], is_dense: bool = True) -> float:
    """Minimum of the nonzeros ``x``, see :func:`mmax`."""
    r = np.inf if is_dense else 0.0
    if x is None:
        return r
    return _vfmin(np.ascontiguousarray(x, dtype=np.float64).ravel(), r)
