"""Core interfaces shared across the minimizers and line searches."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from .utils import finite_gradient, finite_hessian

Array = np.ndarray
Objective = Callable[[Array], float]
Gradient = Callable[[Array], Array]
Hessian = Callable[[Array], Array]

RTOL = 1e-8
ATOL = 1e-10

# Returned in place of a step length or an iteration count when a routine fails.
FAILURE = -1


class LineSearchMethod(Enum):
    """Line-search strategies a minimizer can be configured with."""

    NONE = "none"
    MORE_THUENTE = "more-thuente"
    BACKTRACKING = "backtracking"
    BACKTRACKING_CURVATURE = "backtracking-curvature"
    WEAK_WOLFE_BISECTION = "weak-wolfe-bisection"


class Status(Enum):
    """Why the most recent ``minimize`` call stopped."""

    GRADIENT_TOLERANCE = "gradient_tolerance"
    STEP_TOLERANCE = "step_tolerance"
    PROBLEM_CONVERGED = "problem_converged"
    MAX_ITER = "max_iter"
    CURVATURE_BREAKDOWN = "curvature_breakdown"
    LINE_SEARCH_FAILED = "line_search_failed"
    NON_FINITE = "non_finite"

    @property
    def converged(self) -> bool:
        return self in (
            Status.GRADIENT_TOLERANCE,
            Status.STEP_TOLERANCE,
            Status.PROBLEM_CONVERGED,
        )


_MESSAGES = {
    Status.GRADIENT_TOLERANCE: "Gradient tolerance satisfied.",
    Status.STEP_TOLERANCE: "Step tolerance satisfied.",
    Status.PROBLEM_CONVERGED: "Problem convergence test satisfied.",
    Status.MAX_ITER: "Maximum iterations reached.",
    Status.CURVATURE_BREAKDOWN: "Non-positive curvature in the L-BFGS update.",
    Status.LINE_SEARCH_FAILED: "Line search failed to find an acceptable step.",
    Status.NON_FINITE: "Step produced non-finite values.",
}


def status_message(status: Status) -> str:
    """Human-readable description of ``status``."""
    return _MESSAGES[status]


class Problem(ABC):
    """Objective seen by the minimizers.

    Subclasses implement :meth:`value` and override :meth:`gradient` and
    :meth:`hessian` when analytic derivatives are available. The defaults
    fall back to finite differences, which is slow but always available.
    """

    # Stencil size used by the finite-difference gradient (2, 4, 6 or 8).
    fd_points: int = 2

    @abstractmethod
    def value(self, x: Array) -> float:
        """Objective value at ``x``."""

    def gradient(self, x: Array) -> tuple[float, Array]:
        """Return the objective value and gradient at ``x``."""
        grad = finite_gradient(self.value, x, points=self.fd_points)
        return self.value(x), grad

    def hessian(self, x: Array) -> Array:
        """Return the Hessian at ``x`` by central differences of :meth:`value`."""
        return finite_hessian(self.value, x)

    def converged(self, x_prev: Array, x_new: Array, grad: Array) -> bool:
        """Problem-specific stopping test, checked after every accepted step."""
        del x_prev, x_new, grad  # unused by default
        return False


@dataclass(frozen=True)
class FunctionProblem(Problem):
    """Problem assembled from plain callables.

    Missing derivatives are approximated with finite differences.
    """

    fun: Objective
    grad: Optional[Gradient] = None
    hess: Optional[Hessian] = None
    dim: Optional[int] = None
    fd_points: int = 2

    def value(self, x: Array) -> float:
        return float(self.fun(x))

    def gradient(self, x: Array) -> tuple[float, Array]:
        if self.grad is None:
            return super().gradient(x)
        return self.value(x), np.asarray(self.grad(x), dtype=float)

    def hessian(self, x: Array) -> Array:
        if self.hess is None:
            return super().hessian(x)
        return np.asarray(self.hess(x), dtype=float)


@dataclass
class OptimizeResult:
    """Result object returned by the functional minimizer wrappers."""

    x: Array
    fun: float
    nit: int
    success: bool
    status: Status
    message: str
    grad_norm: float
    nfev: int
    njev: int
    nhev: int


def inf_norm(vec: Array) -> float:
    """Largest absolute entry of ``vec`` (0 for an empty vector)."""
    if vec.size == 0:
        return 0.0
    return float(np.max(np.abs(vec)))


def check_convergence(grad_norm: float, tol: float) -> bool:
    """Return True if gradient norm satisfies tolerance."""
    return grad_norm <= max(tol, ATOL)


def is_descent_direction(grad: Array, p: Array, threshold: float = 0.0) -> bool:
    """Return True when ``p`` decreases the objective to first order.

    ``threshold`` bounds the cosine of the angle between ``-grad`` and ``p``
    from below.
    """
    slope = float(np.dot(grad, p))
    if not np.isfinite(slope):
        return False
    scale = float(np.linalg.norm(grad) * np.linalg.norm(p))
    return slope < -threshold * scale


__all__ = [
    "ATOL",
    "Array",
    "FAILURE",
    "FunctionProblem",
    "Gradient",
    "Hessian",
    "LineSearchMethod",
    "Objective",
    "OptimizeResult",
    "Problem",
    "RTOL",
    "Status",
    "check_convergence",
    "inf_norm",
    "is_descent_direction",
    "status_message",
]
