"""Pytest configuration and shared fixtures for optlib tests.

This module provides:
- A deterministic RNG fixture
- Reference objectives (SPD quadratic, Rosenbrock) used across test modules
"""

import os

import numpy as np
import pytest

from optlib import Problem


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    """
    seed = int(os.environ.get("TEST_RNG_SEED", "0"))
    return np.random.default_rng(seed)


class QuadraticProblem(Problem):
    """f(x) = 0.5 x'Ax - b'x, minimized where Ax = b."""

    def __init__(self, A: np.ndarray, b: np.ndarray) -> None:
        self.A = A
        self.b = b

    def value(self, x: np.ndarray) -> float:
        return float(0.5 * x @ (self.A @ x) - self.b @ x)

    def gradient(self, x: np.ndarray) -> tuple[float, np.ndarray]:
        return self.value(x), self.A @ x - self.b

    def hessian(self, x: np.ndarray) -> np.ndarray:
        return self.A

    def residual(self, x: np.ndarray) -> float:
        return float(np.linalg.norm(self.A @ x - self.b))


class Rosenbrock(Problem):
    """Value-only Rosenbrock; derivatives come from finite differences."""

    def value(self, x: np.ndarray) -> float:
        a = 1.0 - x[0]
        b = x[1] - x[0] * x[0]
        return float(a * a + 100.0 * b * b)


class AnalyticRosenbrock(Rosenbrock):
    def gradient(self, x: np.ndarray) -> tuple[float, np.ndarray]:
        grad = np.array(
            [
                -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
                200 * (x[1] - x[0] ** 2),
            ]
        )
        return self.value(x), grad

    def hessian(self, x: np.ndarray) -> np.ndarray:
        return np.array(
            [
                [1200 * x[0] ** 2 - 400 * x[1] + 2, -400 * x[0]],
                [-400 * x[0], 200.0],
            ]
        )


class ExpSum(Problem):
    """Unbounded below; the gradient exp(x) never reaches zero."""

    def value(self, x: np.ndarray) -> float:
        return float(np.sum(np.exp(x)))

    def gradient(self, x: np.ndarray) -> tuple[float, np.ndarray]:
        return self.value(x), np.exp(x)

    def hessian(self, x: np.ndarray) -> np.ndarray:
        return np.diag(np.exp(x))


def make_spd_quadratic(rng: np.random.Generator, dim: int) -> QuadraticProblem:
    q, _ = np.linalg.qr(rng.normal(size=(dim, dim)))
    eigvals = np.linspace(1.0, 5.0, dim)
    A = q @ np.diag(eigvals) @ q.T
    A = 0.5 * (A + A.T)
    b = rng.normal(size=dim)
    return QuadraticProblem(A, b)


@pytest.fixture
def quadratic16(rng: np.random.Generator) -> QuadraticProblem:
    return make_spd_quadratic(rng, 16)


@pytest.fixture
def quadratic2(rng: np.random.Generator) -> QuadraticProblem:
    return make_spd_quadratic(rng, 2)


@pytest.fixture
def rosenbrock() -> Rosenbrock:
    return Rosenbrock()


@pytest.fixture
def analytic_rosenbrock() -> AnalyticRosenbrock:
    return AnalyticRosenbrock()


@pytest.fixture
def exp_sum() -> ExpSum:
    return ExpSum()
