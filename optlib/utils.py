"""Utility helpers for finite differences and linear algebra routines.

These utilities avoid any dependency on SciPy and provide deterministic,
pure NumPy implementations suitable for small to medium scale problems.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

Array = np.ndarray
Objective = Callable[[Array], float]

GRADIENT_STEP = 2.2204e-6
HESSIAN_STEP = 1e-4

# Centred stencils keyed by number of points: (offsets, weights, denominator).
_STENCILS: dict[int, tuple[tuple[int, ...], tuple[float, ...], float]] = {
    2: ((1, -1), (1.0, -1.0), 2.0),
    4: ((-2, -1, 1, 2), (1.0, -8.0, 8.0, -1.0), 12.0),
    6: ((-3, -2, -1, 1, 2, 3), (-1.0, 9.0, -45.0, 45.0, -9.0, 1.0), 60.0),
    8: (
        (-4, -3, -2, -1, 1, 2, 3, 4),
        (3.0, -32.0, 168.0, -672.0, 672.0, -168.0, 32.0, -3.0),
        840.0,
    ),
}

STENCIL_POINTS = tuple(sorted(_STENCILS))


def finite_gradient(
    fun: Objective,
    x: Array,
    eps: float = GRADIENT_STEP,
    points: int = 2,
    return_evals: bool = False,
) -> Array | tuple[Array, int]:
    """Compute a centred finite-difference gradient approximation.

    Parameters
    ----------
    fun:
        Objective function returning a scalar given x.
    x:
        Point where the gradient is approximated. It is never modified.
    eps:
        Perturbation size for finite differences.
    points:
        Stencil size, one of 2, 4, 6 or 8. Larger stencils cancel more
        truncation terms at the cost of more evaluations.
    """
    if eps <= 0:
        raise ValueError("eps must be positive")
    if points not in _STENCILS:
        raise ValueError(f"points must be one of {STENCIL_POINTS}, got {points}")
    offsets, weights, denom = _STENCILS[points]
    x = np.asarray(x, dtype=float)
    grad = np.zeros_like(x, dtype=float)
    evals = 0
    for i in range(x.size):
        total = 0.0
        for offset, weight in zip(offsets, weights):
            xx = x.copy()
            xx[i] += offset * eps
            total += weight * fun(xx)
            evals += 1
        grad[i] = total / (denom * eps)
    if return_evals:
        return grad, evals
    return grad


def finite_hessian(
    fun: Objective, x: Array, eps: float = HESSIAN_STEP, return_evals: bool = False
) -> Array | tuple[Array, int]:
    """Approximate the Hessian using second-order central differences.

    Uses ``1 + 2n + 2n(n-1)`` objective evaluations and never modifies ``x``.
    """
    if eps <= 0:
        raise ValueError("eps must be positive")
    x = np.asarray(x, dtype=float)
    n = x.size
    hess = np.zeros((n, n), dtype=float)
    basis = np.eye(n) * eps
    fx = fun(x)
    evals = 1
    for i in range(n):
        ei = basis[i]
        hess[i, i] = (fun(x + ei) - 2.0 * fx + fun(x - ei)) / (eps * eps)
        evals += 2
        for j in range(i + 1, n):
            ej = basis[j]
            value = (
                fun(x + ei + ej) - fun(x + ei - ej) - fun(x - ei + ej) + fun(x - ei - ej)
            ) / (4.0 * eps * eps)
            evals += 4
            hess[i, j] = value
            hess[j, i] = value
    if return_evals:
        return hess, evals
    return hess


def safe_solve(mat: Array, vec: Array, reg: float = 1e-12) -> Array:
    """Solve linear system with ridge fallback for singular matrices."""
    try:
        return np.linalg.solve(mat, vec)
    except np.linalg.LinAlgError:
        eye = np.eye(mat.shape[0], dtype=mat.dtype)
        return np.linalg.solve(mat + reg * eye, vec)


def solve_newton_system(hess: Array, rhs: Array, inverse_max_dim: int = 4) -> Array:
    """Solve ``hess @ dx = rhs`` for the Newton step.

    Small systems use an explicit inverse; larger ones a Householder QR
    factorization. A singular factor is retried with a ridge term.
    """
    n = hess.shape[0]
    if n <= inverse_max_dim:
        try:
            return np.linalg.inv(hess) @ rhs
        except np.linalg.LinAlgError:
            return safe_solve(hess, rhs)
    q, r = np.linalg.qr(hess)
    return safe_solve(r, q.T @ rhs)


def all_finite(x: Array) -> bool:
    """Return True when every entry of ``x`` is finite."""
    return bool(np.all(np.isfinite(x)))


__all__ = [
    "Array",
    "GRADIENT_STEP",
    "HESSIAN_STEP",
    "Objective",
    "STENCIL_POINTS",
    "all_finite",
    "finite_gradient",
    "finite_hessian",
    "safe_solve",
    "solve_newton_system",
]
