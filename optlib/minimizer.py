"""Shared machinery for the iterative minimizers.

A minimizer is constructed once from a frozen settings dataclass and reused.
``minimize(problem, x)`` updates ``x`` in place and returns the number of outer
iterations, or ``FAILURE`` when the solver cannot continue. Algorithmic
outcomes are reported through the return value and :attr:`Minimizer.status`,
never through exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Optional

import numpy as np

from .core import (
    FAILURE,
    Array,
    LineSearchMethod,
    OptimizeResult,
    Problem,
    Status,
    check_convergence,
    inf_norm,
    status_message,
)
from .line_search import LineSearch, LineSearchSettings, make_line_search
from .logging import get_logger
from .utils import all_finite

logger = get_logger(__name__)


@dataclass(frozen=True)
class MinimizerSettings:
    """
    Settings common to every minimizer.

    Args:
        max_iters: Outer iteration budget. Must be positive.
        eps: Convergence tolerance. ``0`` disables the early exits and runs
            the full budget.
        line_search: Strategy used to pick step lengths.
        line_search_settings: Overrides the strategy's default constants.
    """

    max_iters: int = 100
    eps: float = 0.0
    line_search: LineSearchMethod = LineSearchMethod.BACKTRACKING
    line_search_settings: Optional[LineSearchSettings] = None

    def __post_init__(self) -> None:
        if self.max_iters < 1:
            raise ValueError("max_iters must be a positive integer")
        if not self.eps >= 0:
            raise ValueError("eps must be non-negative")
        object.__setattr__(self, "line_search", LineSearchMethod(self.line_search))


class EvaluationCounter(Problem):
    """Problem proxy counting value, gradient and Hessian evaluations."""

    def __init__(self, problem: Problem) -> None:
        self.problem = problem
        self.nfev = 0
        self.njev = 0
        self.nhev = 0

    def value(self, x: Array) -> float:
        self.nfev += 1
        return self.problem.value(x)

    def gradient(self, x: Array) -> tuple[float, Array]:
        self.njev += 1
        return self.problem.gradient(x)

    def hessian(self, x: Array) -> Array:
        self.nhev += 1
        return self.problem.hessian(x)

    def converged(self, x_prev: Array, x_new: Array, grad: Array) -> bool:
        return self.problem.converged(x_prev, x_new, grad)


class Minimizer(ABC):
    """Base class holding settings and the configured line search."""

    FAILURE: ClassVar[int] = FAILURE
    settings_class: ClassVar[type[MinimizerSettings]] = MinimizerSettings

    def __init__(self, settings: Optional[MinimizerSettings] = None) -> None:
        self.settings = settings if settings is not None else self.settings_class()
        self.line_search: Optional[LineSearch] = make_line_search(
            self.settings.line_search, self.settings.line_search_settings
        )
        self.status: Optional[Status] = None

    def minimize(self, problem: Problem, x: Array, **kwargs: Any) -> int:
        """Minimize ``problem`` starting from ``x``, which is updated in place.

        Returns:
            Number of outer iterations executed, or ``FAILURE``.

        Raises:
            TypeError: If ``x`` is not a float64 numpy array.
            ValueError: If ``x`` is not one-dimensional.

        A start containing NaN or Inf is left untouched and reported as
        ``Status.NON_FINITE`` with a ``FAILURE`` return.
        """
        if not isinstance(x, np.ndarray) or x.dtype != np.float64:
            raise TypeError("x must be a float64 numpy array updated in place")
        if x.ndim != 1:
            raise ValueError(f"x must be one-dimensional, got shape {x.shape}")
        if not all_finite(x):
            logger.warning("starting point contains non-finite values, not minimizing")
            self.status = Status.NON_FINITE
            return FAILURE
        self.status = Status.MAX_ITER
        return self._minimize(problem, x, **kwargs)

    @abstractmethod
    def _minimize(self, problem: Problem, x: Array, **kwargs: Any) -> int:
        """Algorithm body; ``x`` has been validated."""

    def _step_length(self, x: Array, p: Array, problem: Problem, alpha_init: float) -> float:
        if self.line_search is None:
            return 1.0
        return self.line_search.search(x, p, problem, alpha_init)


def run_minimizer(
    minimizer: Minimizer, problem: Problem, x0: Array, **kwargs: Any
) -> OptimizeResult:
    """Run ``minimizer`` on a copy of ``x0`` and package an :class:`OptimizeResult`."""
    x = np.asarray(x0, dtype=float).copy()
    counter = EvaluationCounter(problem)
    nit = minimizer.minimize(counter, x, **kwargs)
    fun, grad = problem.gradient(x)
    grad_norm = inf_norm(np.asarray(grad, dtype=float))
    status = minimizer.status if minimizer.status is not None else Status.MAX_ITER
    if status is Status.MAX_ITER and check_convergence(grad_norm, minimizer.settings.eps):
        status = Status.GRADIENT_TOLERANCE
    return OptimizeResult(
        x=x,
        fun=float(fun),
        nit=nit,
        success=nit != FAILURE and status.converged,
        status=status,
        message=status_message(status),
        grad_norm=grad_norm,
        nfev=counter.nfev,
        njev=counter.njev,
        nhev=counter.nhev,
    )


__all__ = ["EvaluationCounter", "Minimizer", "MinimizerSettings", "run_minimizer"]
