"""Newton's method globalized with a line search."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .core import (
    FAILURE,
    RTOL,
    Array,
    LineSearchMethod,
    OptimizeResult,
    Problem,
    Status,
    inf_norm,
    is_descent_direction,
)
from .line_search import LineSearchSettings
from .logging import get_logger
from .minimizer import Minimizer, MinimizerSettings, run_minimizer
from .utils import all_finite, solve_newton_system

logger = get_logger(__name__)


@dataclass(frozen=True)
class NewtonSettings(MinimizerSettings):
    """
    Newton settings.

    Args:
        inverse_max_dim: Systems up to this size are solved with an explicit
            inverse; larger ones with a QR factorization.
    """

    max_iters: int = 20
    inverse_max_dim: int = 4

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.inverse_max_dim < 0:
            raise ValueError("inverse_max_dim must be non-negative")


class Newton(Minimizer):
    """Newton's method with an exact (or finite-difference) Hessian.

    Convergence is judged on the infinity norm of the gradient at the start
    of each iteration. A line search that cannot find a step is fatal: the
    Newton direction should always descend for a positive definite Hessian,
    so a failure points at an indefinite Hessian or a broken problem.
    """

    settings_class = NewtonSettings

    def _newton_step(self, grad: Array, hess: Array, nit: int) -> Array:
        step = solve_newton_system(hess, -grad, self.settings.inverse_max_dim)
        if not all_finite(step) or not is_descent_direction(grad, step):
            logger.info("iteration %d: Newton step is not a descent direction, using -grad", nit)
            return -grad
        return step

    def _minimize(self, problem: Problem, x: Array) -> int:
        settings = self.settings
        nit = 0
        x_prev: Optional[Array] = None
        while nit < settings.max_iters:
            fx, grad = problem.gradient(x)
            grad = np.asarray(grad, dtype=float)
            grad_norm = inf_norm(grad)
            logger.debug("iteration %d: f=%.6e |g|=%.3e", nit, fx, grad_norm)
            if grad_norm <= settings.eps:
                self.status = Status.GRADIENT_TOLERANCE
                break
            if x_prev is not None and problem.converged(x_prev, x, grad):
                self.status = Status.PROBLEM_CONVERGED
                break

            nit += 1
            hess = np.asarray(problem.hessian(x), dtype=float)
            step = self._newton_step(grad, hess, nit)

            alpha = self._step_length(x, step, problem, 1.0)
            if alpha <= 0:
                logger.warning("iteration %d: line search failed", nit)
                self.status = Status.LINE_SEARCH_FAILED
                return FAILURE
            x_new = x + alpha * step
            if not all_finite(x_new):
                logger.warning("iteration %d: step produced non-finite values, stopping", nit)
                self.status = Status.NON_FINITE
                break
            x_prev = x.copy()
            x[:] = x_new
        return nit


def newton_method(
    problem: Problem,
    x0: Array,
    max_iters: int = 100,
    eps: float = RTOL,
    line_search: LineSearchMethod | str = LineSearchMethod.BACKTRACKING,
    line_search_settings: Optional[LineSearchSettings] = None,
    inverse_max_dim: int = 4,
) -> OptimizeResult:
    """Newton's method on a copy of ``x0``."""
    settings = NewtonSettings(
        max_iters=max_iters,
        eps=eps,
        line_search=line_search,
        line_search_settings=line_search_settings,
        inverse_max_dim=inverse_max_dim,
    )
    return run_minimizer(Newton(settings), problem, x0)


__all__ = ["Newton", "NewtonSettings", "newton_method"]
