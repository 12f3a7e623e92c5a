# Copyright (c) 2024 Yilin Zou
from .vectypes import *


class ButcherTableau:
    """Coefficients ``A``, ``b``, ``c`` of a Runge-Kutta method."""

    def __init__(self, A, b, c) -> None:
        A = np.atleast_2d(np.asarray(A, dtype=np.float64))
        b = np.atleast_1d(np.asarray(b, dtype=np.float64))
        c = np.atleast_1d(np.asarray(c, dtype=np.float64))
        if A.ndim != 2 or A.shape[0] != A.shape[1]:
            raise ValueError(f"A must be a square matrix, got shape {A.shape}")
        if b.ndim != 1 or b.size != A.shape[1]:
            raise ValueError(f"b must have {A.shape[1]} entries, got shape {b.shape}")
        if c.ndim != 1 or c.size != A.shape[0]:
            raise ValueError(f"c must have {A.shape[0]} entries, got shape {c.shape}")
        self._A = A
        self._b = b
        self._c = c

    @property
    def A(self) -> VecFloat:
        """Stage coefficients."""
        return self._A

    @property
    def b(self) -> VecFloat:
        """Output weights."""
        return self._b

    @property
    def c(self) -> VecFloat:
        """Stage times."""
        return self._c

    @property
    def num_stage(self) -> int:
        """Number of stages."""
        return len(self._b)

    @property
    def is_explicit(self) -> bool:
        """Whether ``A`` is strictly lower triangular."""
        return not np.any(np.triu(self._A))
