# Copyright (c) 2024 Yilin Zou
"""# intkit: INTegrator construction KIT

**intkit** builds fixed-step integrators for ordinary differential equations
``dx/dt = f(x, p)``. The right-hand side is a differentiable function of the
state and a parameter, and the result is again a differentiable function
``(x0, p, h) -> xf``.

- **Explicit:** Runge-Kutta methods of order 1 to 4.
- **Implicit:** collocation on Legendre or Radau points, with the stage
  equations solved by Newton iteration or [SciPy](https://scipy.org/).
- **Adaptive:** the solvers of `scipy.integrate.solve_ivp` behind the same
  interface.

Right-hand sides are defined with [SymPy](https://www.sympy.org/) and
compiled with `sympy.lambdify`, optionally through [Numba](https://numba.pydata.org/).
"""

__author__ = "Yilin Zou"
__copyright__ = "Copyright (c) 2024 Yilin Zou"
