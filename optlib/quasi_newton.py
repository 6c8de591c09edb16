"""Limited-memory BFGS using the two-loop recursion (Nocedal & Wright, 7.2)."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

import numpy as np

from .core import (
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
from .utils import all_finite

logger = get_logger(__name__)

# Smallest cosine between -grad and the search direction accepted as descent.
DESCENT_THRESHOLD = 1e-4


@dataclass(frozen=True)
class LBFGSSettings(MinimizerSettings):
    """
    L-BFGS settings.

    Args:
        init_hess: Initial inverse-Hessian scale ``gamma``. Must be positive.
        m: Number of ``(s, y)`` pairs kept in the history window.
    """

    max_iters: int = 30
    init_hess: float = 1.0
    m: int = 8

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.init_hess > 0:
            raise ValueError("init_hess must be positive")
        if self.m < 1:
            raise ValueError("Memory parameter m must be positive.")


def _initial_step(grad: Array) -> float:
    grad_norm = inf_norm(grad)
    if grad_norm > 0 and np.isfinite(grad_norm):
        return min(1.0, 1.0 / grad_norm)
    return 1.0


class LBFGS(Minimizer):
    """Limited-memory BFGS.

    The curvature scale of a call that converges by gradient norm is kept in
    :attr:`curvature_scale` and used as the starting scale of the next call
    when ``minimize(..., warm_start=True)`` is requested.
    """

    settings_class = LBFGSSettings

    def __init__(self, settings: Optional[LBFGSSettings] = None) -> None:
        super().__init__(settings)
        self.curvature_scale = self.settings.init_hess
        self._s_history: Deque[Array] = deque(maxlen=self.settings.m)
        self._y_history: Deque[Array] = deque(maxlen=self.settings.m)

    @property
    def history(self) -> list[tuple[Array, Array]]:
        """Copies of the stored ``(s, y)`` pairs, oldest first."""
        return [(s.copy(), y.copy()) for s, y in zip(self._s_history, self._y_history)]

    def _reset_history(self) -> None:
        self._s_history.clear()
        self._y_history.clear()

    def _two_loop(self, grad: Array, gamma: float) -> Array:
        q = grad.copy()
        alpha_vals = []
        for s, y in reversed(list(zip(self._s_history, self._y_history))):
            rho = 1.0 / float(np.dot(y, s))
            alpha_i = rho * float(np.dot(s, q))
            q = q - alpha_i * y
            alpha_vals.append((rho, alpha_i, s, y))
        r = gamma * q
        for rho, alpha_i, s, y in reversed(alpha_vals):
            beta = rho * float(np.dot(y, r))
            r = r + s * (alpha_i - beta)
        return r

    def _minimize(self, problem: Problem, x: Array, warm_start: bool = False) -> int:
        settings = self.settings
        self._reset_history()
        gamma = self.curvature_scale if warm_start else settings.init_hess
        # Only a converged call hands its curvature scale to the next one.
        self.curvature_scale = settings.init_hess

        _, grad = problem.gradient(x)
        grad = np.asarray(grad, dtype=float)
        alpha_init = _initial_step(grad)

        nit = 0
        while nit < settings.max_iters:
            nit += 1
            x_old = x.copy()
            grad_old = grad

            q = self._two_loop(grad, gamma)
            if not is_descent_direction(grad, -q, DESCENT_THRESHOLD):
                logger.info("iteration %d: not a descent direction, resetting to steepest descent", nit)
                q = grad.copy()
                self._reset_history()
                alpha_init = _initial_step(grad)

            rate = self._step_length(x, -q, problem, alpha_init)
            if rate <= 0:
                logger.warning("iteration %d: line search failed, stopping", nit)
                self.status = Status.LINE_SEARCH_FAILED
                break
            x_new = x - rate * q
            if not all_finite(x_new):
                logger.warning("iteration %d: step produced non-finite values, stopping", nit)
                self.status = Status.NON_FINITE
                break
            x[:] = x_new

            if rate * float(np.dot(q, q)) <= settings.eps:
                self.status = Status.STEP_TOLERANCE
                break

            fx, grad = problem.gradient(x)
            grad = np.asarray(grad, dtype=float)
            grad_norm = inf_norm(grad)
            logger.debug("iteration %d: f=%.6e |g|=%.3e alpha=%.3e", nit, fx, grad_norm, rate)
            if grad_norm <= settings.eps:
                self.curvature_scale = gamma
                self.status = Status.GRADIENT_TOLERANCE
                break
            if problem.converged(x_old, x, grad):
                self.status = Status.PROBLEM_CONVERGED
                break

            s = x - x_old
            y = grad - grad_old
            yy = float(np.dot(y, y))
            if not yy > 0:
                logger.info("iteration %d: non-positive curvature (y'y=%.3e), stopping", nit, yy)
                self.status = Status.CURVATURE_BREAKDOWN
                break
            sy = float(np.dot(s, y))
            if sy > 0:
                self._s_history.append(s)
                self._y_history.append(y)
                gamma = sy / yy
            else:
                logger.debug("iteration %d: skipping pair with s'y=%.3e", nit, sy)
            alpha_init = 1.0

        return nit


def lbfgs(
    problem: Problem,
    x0: Array,
    m: int = 8,
    max_iters: int = 1000,
    eps: float = RTOL,
    init_hess: float = 1.0,
    line_search: LineSearchMethod | str = LineSearchMethod.BACKTRACKING,
    line_search_settings: Optional[LineSearchSettings] = None,
) -> OptimizeResult:
    """Limited-memory BFGS on a copy of ``x0``."""
    settings = LBFGSSettings(
        max_iters=max_iters,
        eps=eps,
        line_search=line_search,
        line_search_settings=line_search_settings,
        init_hess=init_hess,
        m=m,
    )
    return run_minimizer(LBFGS(settings), problem, x0)


__all__ = ["DESCENT_THRESHOLD", "LBFGS", "LBFGSSettings", "lbfgs"]
