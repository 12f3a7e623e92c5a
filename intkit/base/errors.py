# Copyright (c) 2024 Yilin Zou
"""Exceptions and warnings raised by intkit."""

__all__ = [
    "IntkitError",
    "UnknownSchemeError",
    "RootFindingError",
    "SignatureMismatchError",
    "UnsupportedOrderError",
    "ConvergenceError",
    "UnknownBackendError",
    "IntegratorWarning",
]


class IntkitError(Exception):
    """Base exception for intkit errors."""

    pass


class UnknownSchemeError(IntkitError, ValueError):
    """Raised when a collocation scheme name is not recognized."""

    pass


class RootFindingError(IntkitError, ArithmeticError):
    """Raised when the roots of an orthogonal polynomial cannot be located."""

    pass


class SignatureMismatchError(IntkitError, ValueError):
    """Raised when an ODE function does not map ``(x, p)`` to ``xdot``."""

    pass


class UnsupportedOrderError(IntkitError, ValueError):
    """Raised when no explicit Butcher tableau exists for an order."""

    pass


class ConvergenceError(IntkitError, RuntimeError):
    """Raised when a nonlinear solve or a plugin integration fails."""

    pass


class UnknownBackendError(IntkitError, ValueError):
    """Raised when a solver, plugin or method name is not recognized."""

    pass


class IntegratorWarning(UserWarning):
    """Warning for ignored or unrecognized options."""

    pass
