"""Deterministic line-search routines following Nocedal & Wright.

Every strategy shares one contract: given a point ``x``, a direction ``p``
and a :class:`~optlib.core.Problem`, return a step length ``alpha > 0``, or
``-1.0`` when the inner iteration budget runs out. The functions are pure;
the :class:`LineSearch` classes only bind a :class:`LineSearchSettings` to
them so minimizers can select a strategy by :class:`LineSearchMethod`.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Optional

import numpy as np

from .core import FAILURE, Array, LineSearchMethod, Problem
from .logging import get_logger

logger = get_logger(__name__)

MACHINE_EPS = float(np.finfo(float).eps)


@dataclass(frozen=True)
class LineSearchSettings:
    """
    Constants controlling a line search.

    Args:
        c1: Sufficient-decrease (Armijo) constant, in (0, 1).
        c2: Curvature (Wolfe) constant, in (c1, 1). Only the bisection
            strategy reads it.
        tau: Step decay for plain backtracking, in (0, 1).
        max_iters: Upper bound on trial steps before giving up.
        min_change: Bisection stops once successive trial steps differ by
            less than this.
    """

    c1: float = 1e-4
    c2: float = 0.9
    tau: float = 0.7
    max_iters: int = 100
    min_change: float = 1e-10

    def __post_init__(self) -> None:
        if not (0 < self.c1 < 1):
            raise ValueError("Armijo constant c1 must lie in (0, 1)")
        if not (self.c1 < self.c2 < 1):
            raise ValueError("Require 0 < c1 < c2 < 1 for Wolfe conditions.")
        if not (0 < self.tau < 1):
            raise ValueError("tau must lie in (0, 1)")
        if self.max_iters < 1:
            raise ValueError("max_iters must be at least 1")
        if self.min_change < 0:
            raise ValueError("min_change must be non-negative")


def _initial_step(alpha_init: float) -> float:
    alpha = abs(float(alpha_init))
    if alpha == 0.0 or not math.isfinite(alpha):
        raise ValueError(f"alpha_init must be finite and non-zero, got {alpha_init}")
    return alpha


def backtracking_armijo(
    x: Array,
    p: Array,
    problem: Problem,
    alpha_init: float = 1.0,
    c1: float = 1e-4,
    tau: float = 0.7,
    max_iters: int = 100,
) -> float:
    """Classic Armijo backtracking line search."""
    alpha = _initial_step(alpha_init)
    fx, grad = problem.gradient(x)
    gtp = float(np.dot(grad, p))
    for _ in range(max_iters):
        f_new = problem.value(x + alpha * p)
        if f_new <= fx + c1 * alpha * gtp:
            return alpha
        alpha *= tau
    logger.warning("Armijo backtracking reached max_iters=%d", max_iters)
    return float(FAILURE)


def cubic_step(
    alpha: float,
    phi_alpha: float,
    alpha_prev: Optional[float],
    phi_prev: Optional[float],
    phi0: float,
    gtp: float,
) -> float:
    """Minimizer of the interpolant through the latest trial steps.

    With a single trial the interpolant is the quadratic matching ``phi(0)``,
    ``phi'(0) = gtp`` and ``phi(alpha)``. With two trials it is the cubic
    ``r0 a^3 + r1 a^2 + gtp a + phi0`` through both. The result is clamped to
    ``[0.1 alpha, 0.5 alpha]``; a degenerate fit returns ``0.5 alpha``.
    """
    lower, upper = 0.1 * alpha, 0.5 * alpha
    if not math.isfinite(phi_alpha):
        return upper

    trial = math.nan
    if alpha_prev is None or phi_prev is None or not math.isfinite(phi_prev):
        denom = 2.0 * (phi_alpha - phi0 - gtp * alpha)
        if denom > 0:
            trial = -gtp * alpha * alpha / denom
    else:
        a, b = alpha, alpha_prev
        fa = phi_alpha - phi0 - gtp * a
        fb = phi_prev - phi0 - gtp * b
        scale = a * a * b * b * (a - b)
        if scale != 0:
            r0 = (b * b * fa - a * a * fb) / scale
            r1 = (-b * b * b * fa + a * a * a * fb) / scale
            if abs(r0) <= 1e-12 * abs(r1):
                if r1 > 0:
                    trial = -gtp / (2.0 * r1)
            else:
                disc = r1 * r1 - 3.0 * r0 * gtp
                if disc >= 0:
                    trial = (-r1 + math.sqrt(disc)) / (3.0 * r0)

    if not math.isfinite(trial):
        return upper
    return min(max(trial, lower), upper)


def backtracking_cubic(
    x: Array,
    p: Array,
    problem: Problem,
    alpha_init: float = 1.0,
    c1: float = 1e-4,
    max_iters: int = 100,
) -> float:
    """Armijo backtracking that shrinks the step by polynomial interpolation."""
    alpha = _initial_step(alpha_init)
    phi0, grad = problem.gradient(x)
    gtp = float(np.dot(grad, p))
    alpha_prev: Optional[float] = None
    phi_prev: Optional[float] = None
    for _ in range(max_iters):
        phi_alpha = float(problem.value(x + alpha * p))
        if phi_alpha <= phi0 + c1 * alpha * gtp:
            return alpha
        alpha_next = cubic_step(alpha, phi_alpha, alpha_prev, phi_prev, phi0, gtp)
        alpha_prev, phi_prev = alpha, phi_alpha
        alpha = alpha_next
    logger.warning("Cubic backtracking reached max_iters=%d", max_iters)
    return float(FAILURE)


def wolfe_bisection(
    x: Array,
    p: Array,
    problem: Problem,
    alpha_init: float = 1.0,
    c1: float = 0.3,
    c2: float = 0.6,
    max_iters: int = 1000,
    min_change: float = 1e-10,
) -> float:
    """Bisection search for a step satisfying the weak Wolfe conditions.

    The bracket ``[low, high)`` starts unbounded above (``high = -1``); the
    step doubles until an upper bound is found and is bisected afterwards.
    """
    if float(np.linalg.norm(p)) < MACHINE_EPS:
        return MACHINE_EPS
    alpha = _initial_step(alpha_init)
    low, high = 0.0, -1.0
    alpha_last = 0.0
    fx, grad = problem.gradient(x)
    gtp = float(np.dot(grad, p))
    for _ in range(max_iters):
        fx_new, grad_new = problem.gradient(x + alpha * p)
        if not fx_new <= fx + c1 * alpha * gtp:
            high = alpha
            alpha = 0.5 * (high + low)
        elif float(np.dot(grad_new, p)) < c2 * gtp:
            low = alpha
            alpha = 2.0 * low if high < 0 else 0.5 * (high + low)
        else:
            return alpha
        if abs(alpha - alpha_last) < min_change:
            logger.debug("Wolfe bisection stagnated at alpha=%.3e", alpha)
            return alpha
        alpha_last = alpha
    logger.warning("Wolfe bisection reached max_iters=%d", max_iters)
    return float(FAILURE)


class LineSearch(ABC):
    """A line-search strategy with its settings bound."""

    FAILURE: ClassVar[float] = float(FAILURE)
    default_settings: ClassVar[LineSearchSettings] = LineSearchSettings()

    def __init__(self, settings: Optional[LineSearchSettings] = None) -> None:
        self.settings = settings if settings is not None else self.default_settings

    @abstractmethod
    def search(self, x: Array, p: Array, problem: Problem, alpha_init: float) -> float:
        """Return a step length along ``p`` or :attr:`FAILURE`."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.settings!r})"


class Backtracking(LineSearch):
    """Backtracking with sufficient decrease and a fixed decay factor."""

    def search(self, x: Array, p: Array, problem: Problem, alpha_init: float) -> float:
        s = self.settings
        return backtracking_armijo(
            x, p, problem, alpha_init, c1=s.c1, tau=s.tau, max_iters=s.max_iters
        )


class BacktrackingCurvature(LineSearch):
    """Backtracking with quadratic/cubic interpolation of the trial steps."""

    def search(self, x: Array, p: Array, problem: Problem, alpha_init: float) -> float:
        s = self.settings
        return backtracking_cubic(x, p, problem, alpha_init, c1=s.c1, max_iters=s.max_iters)


class WolfeBisection(LineSearch):
    """Weak Wolfe bisection. Robust but needs many gradient evaluations."""

    default_settings: ClassVar[LineSearchSettings] = LineSearchSettings(
        c1=0.3, c2=0.6, max_iters=1000
    )

    def search(self, x: Array, p: Array, problem: Problem, alpha_init: float) -> float:
        s = self.settings
        return wolfe_bisection(
            x,
            p,
            problem,
            alpha_init,
            c1=s.c1,
            c2=s.c2,
            max_iters=s.max_iters,
            min_change=s.min_change,
        )


_STRATEGIES: dict[LineSearchMethod, type[LineSearch]] = {
    LineSearchMethod.BACKTRACKING: Backtracking,
    LineSearchMethod.BACKTRACKING_CURVATURE: BacktrackingCurvature,
    LineSearchMethod.WEAK_WOLFE_BISECTION: WolfeBisection,
}


def make_line_search(
    method: LineSearchMethod | str,
    settings: Optional[LineSearchSettings] = None,
) -> Optional[LineSearch]:
    """
    Create the line search selected by ``method``.

    Returns:
        A :class:`LineSearch`, or None for :attr:`LineSearchMethod.NONE`
        (minimizers then take unit steps).

    Raises:
        ValueError: If ``method`` is not a known strategy name.
        NotImplementedError: For :attr:`LineSearchMethod.MORE_THUENTE`.
    """
    method = LineSearchMethod(method)
    if method is LineSearchMethod.NONE:
        return None
    if method is LineSearchMethod.MORE_THUENTE:
        raise NotImplementedError("More-Thuente line search is not implemented.")
    return _STRATEGIES[method](settings)


__all__ = [
    "Backtracking",
    "BacktrackingCurvature",
    "LineSearch",
    "LineSearchSettings",
    "WolfeBisection",
    "backtracking_armijo",
    "backtracking_cubic",
    "cubic_step",
    "make_line_search",
    "wolfe_bisection",
]
