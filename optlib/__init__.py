"""optlib - deterministic unconstrained minimization in NumPy.

Example
-------
>>> import numpy as np
>>> from optlib import FunctionProblem, LBFGS, LBFGSSettings
>>> def rosen(x):
...     return (1 - x[0])**2 + 100 * (x[1] - x[0]**2)**2
>>> def rosen_grad(x):
...     return np.array([
...         -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
...         200 * (x[1] - x[0] ** 2),
...     ])
>>> problem = FunctionProblem(fun=rosen, grad=rosen_grad, dim=2)
>>> x = np.zeros(2)
>>> nit = LBFGS(LBFGSSettings(max_iters=200, eps=1e-10)).minimize(problem, x)
>>> np.allclose(x, 1.0, atol=1e-4)
True
"""

__version__ = "0.1.0"

from .conjugate_gradient import CGSettings, NonlinearCG, nonlinear_cg
from .core import (
    ATOL,
    FAILURE,
    RTOL,
    FunctionProblem,
    LineSearchMethod,
    OptimizeResult,
    Problem,
    Status,
    check_convergence,
)
from .line_search import (
    Backtracking,
    BacktrackingCurvature,
    LineSearch,
    LineSearchSettings,
    WolfeBisection,
    backtracking_armijo,
    backtracking_cubic,
    make_line_search,
    wolfe_bisection,
)
from .logging import configure_logging, get_logger, set_log_level
from .minimizer import EvaluationCounter, Minimizer, MinimizerSettings
from .newton import Newton, NewtonSettings, newton_method
from .quasi_newton import LBFGS, LBFGSSettings, lbfgs
from .utils import finite_gradient, finite_hessian, safe_solve, solve_newton_system

__all__ = [
    "ATOL",
    "Backtracking",
    "BacktrackingCurvature",
    "CGSettings",
    "EvaluationCounter",
    "FAILURE",
    "FunctionProblem",
    "LBFGS",
    "LBFGSSettings",
    "LineSearch",
    "LineSearchMethod",
    "LineSearchSettings",
    "Minimizer",
    "MinimizerSettings",
    "Newton",
    "NewtonSettings",
    "NonlinearCG",
    "OptimizeResult",
    "Problem",
    "RTOL",
    "Status",
    "WolfeBisection",
    "backtracking_armijo",
    "backtracking_cubic",
    "check_convergence",
    "configure_logging",
    "finite_gradient",
    "finite_hessian",
    "get_logger",
    "lbfgs",
    "make_line_search",
    "newton_method",
    "nonlinear_cg",
    "safe_solve",
    "set_log_level",
    "solve_newton_system",
    "wolfe_bisection",
]
