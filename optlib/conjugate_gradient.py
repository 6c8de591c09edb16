"""Nonlinear conjugate gradient (Fletcher-Reeves and Polak-Ribiere+)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

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

BETA_RULES = ("fletcher-reeves", "polak-ribiere")


@dataclass(frozen=True)
class CGSettings(MinimizerSettings):
    """
    Nonlinear CG settings.

    Args:
        beta: Conjugacy rule, ``"fletcher-reeves"`` or ``"polak-ribiere"``
            (the non-negative PR+ variant).
        restart_every: Reset to steepest descent after this many iterations.
            ``0`` (default) restarts only when the direction stops
            descending, ``None`` uses the problem dimension.
    """

    max_iters: int = 100
    beta: str = "fletcher-reeves"
    restart_every: Optional[int] = 0

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.beta not in BETA_RULES:
            raise ValueError(f"beta must be one of {BETA_RULES}, got '{self.beta}'")
        if self.restart_every is not None and self.restart_every < 0:
            raise ValueError("restart_every must be non-negative")


class NonlinearCG(Minimizer):
    """Nonlinear conjugate gradient with periodic and descent-based restarts."""

    settings_class = CGSettings

    def _beta(self, grad: Array, grad_old: Array) -> float:
        denom = float(np.dot(grad_old, grad_old))
        if self.settings.beta == "fletcher-reeves":
            return float(np.dot(grad, grad)) / denom
        return max(0.0, float(np.dot(grad, grad - grad_old)) / denom)

    def _minimize(self, problem: Problem, x: Array) -> int:
        settings = self.settings
        restart_every = x.size if settings.restart_every is None else settings.restart_every

        p: Optional[Array] = None
        grad_old: Optional[Array] = None
        fx_old: Optional[float] = None
        x_prev: Optional[Array] = None
        since_restart = 0
        nit = 0
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
            restart = p is None or grad_old is None or (
                restart_every > 0 and since_restart >= restart_every
            )
            if not restart:
                p = -grad + self._beta(grad, grad_old) * p
                if not is_descent_direction(grad, p):
                    logger.info("iteration %d: not a descent direction, restarting", nit)
                    restart = True
            if restart:
                p = -grad
                since_restart = 0

            alpha_init = 1.0
            if not restart and fx_old is not None:
                guess = 2.02 * (fx - fx_old) / float(np.dot(grad, p))
                if np.isfinite(guess) and guess > 0:
                    alpha_init = min(1.0, guess)

            alpha = self._step_length(x, p, problem, alpha_init)
            if alpha <= 0:
                logger.warning("iteration %d: line search failed, stopping", nit)
                self.status = Status.LINE_SEARCH_FAILED
                break
            x_new = x + alpha * p
            if not all_finite(x_new):
                logger.warning("iteration %d: step produced non-finite values, stopping", nit)
                self.status = Status.NON_FINITE
                break
            x_prev = x.copy()
            x[:] = x_new
            grad_old = grad
            fx_old = float(fx)
            since_restart += 1
        return nit


def nonlinear_cg(
    problem: Problem,
    x0: Array,
    max_iters: int = 1000,
    eps: float = RTOL,
    beta: str = "fletcher-reeves",
    restart_every: Optional[int] = 0,
    line_search: LineSearchMethod | str = LineSearchMethod.BACKTRACKING,
    line_search_settings: Optional[LineSearchSettings] = None,
) -> OptimizeResult:
    """Nonlinear conjugate gradient on a copy of ``x0``."""
    settings = CGSettings(
        max_iters=max_iters,
        eps=eps,
        line_search=line_search,
        line_search_settings=line_search_settings,
        beta=beta,
        restart_every=restart_every,
    )
    return run_minimizer(NonlinearCG(settings), problem, x0)


__all__ = ["BETA_RULES", "CGSettings", "NonlinearCG", "nonlinear_cg"]
