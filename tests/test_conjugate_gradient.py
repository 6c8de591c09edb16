import numpy as np
import pytest

from optlib import (
    CGSettings,
    FunctionProblem,
    LineSearchMethod,
    NonlinearCG,
    Status,
    nonlinear_cg,
)


def _rosen(x: np.ndarray) -> float:
    return float((1 - x[0]) ** 2 + 100 * (x[1] - x[0] ** 2) ** 2)


def _rosen_grad(x: np.ndarray) -> np.ndarray:
    return np.array(
        [
            -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
            200 * (x[1] - x[0] ** 2),
        ]
    )


def square_problem() -> FunctionProblem:
    return FunctionProblem(fun=lambda x: float(x @ x), grad=lambda x: 2 * x)


def quartic_problem(dim: int = 6) -> FunctionProblem:
    """Strictly convex quadratic plus a quartic term; minimizer is not closed form."""
    diag = np.linspace(1.0, 4.0, dim)
    shift = np.linspace(-1.0, 1.0, dim)

    def fun(x: np.ndarray) -> float:
        return float(0.5 * np.sum(diag * x * x) - shift @ x + 0.25 * np.sum(x**4))

    def grad(x: np.ndarray) -> np.ndarray:
        return diag * x - shift + x**3

    return FunctionProblem(fun=fun, grad=grad, dim=dim)


def test_first_iteration_is_steepest_descent():
    # alpha = 1 overshoots to -x; the Armijo backtrack to 0.7 lands on -0.4 x.
    solver = NonlinearCG(CGSettings(max_iters=1))
    x = np.array([1.0, -2.0])
    assert solver.minimize(square_problem(), x) == 1
    assert np.allclose(x, [-0.4, 0.8])


def test_beta_rules():
    grad_old = np.array([2.0, 0.0])
    fletcher = NonlinearCG(CGSettings(beta="fletcher-reeves"))
    polak = NonlinearCG(CGSettings(beta="polak-ribiere"))
    assert fletcher._beta(np.array([1.0, 0.0]), grad_old) == pytest.approx(0.25)
    assert polak._beta(np.array([1.0, 0.0]), grad_old) == 0.0
    assert polak._beta(np.array([3.0, 0.0]), grad_old) == pytest.approx(0.75)


@pytest.mark.parametrize("beta", ["fletcher-reeves", "polak-ribiere"])
def test_cg_solves_quadratic(quadratic16, beta):
    res = nonlinear_cg(
        quadratic16,
        np.zeros(16),
        max_iters=100,
        beta=beta,
        restart_every=None,
        line_search=LineSearchMethod.BACKTRACKING_CURVATURE,
    )
    assert quadratic16.residual(res.x) < 1e-4


def test_cg_fletcher_reeves_armijo_solves_quadratic(quadratic16):
    solver = NonlinearCG(CGSettings(max_iters=100, eps=1e-10, restart_every=None))
    assert solver.settings.beta == "fletcher-reeves"
    assert solver.settings.line_search is LineSearchMethod.BACKTRACKING
    x = np.zeros(16)
    assert solver.minimize(quadratic16, x) <= 100
    assert quadratic16.residual(x) < 1e-4


@pytest.mark.parametrize("beta", ["fletcher-reeves", "polak-ribiere"])
@pytest.mark.parametrize(
    "line_search",
    [
        LineSearchMethod.BACKTRACKING_CURVATURE,
        LineSearchMethod.WEAK_WOLFE_BISECTION,
    ],
)
def test_cg_convex_quartic(beta, line_search):
    problem = quartic_problem()
    res = nonlinear_cg(
        problem, np.zeros(6), max_iters=2000, eps=1e-6, beta=beta, line_search=line_search
    )
    assert res.success
    assert res.status is Status.GRADIENT_TOLERANCE
    assert res.grad_norm <= 1e-6


@pytest.mark.parametrize("restart_every", [0, 1, 3])
def test_cg_restart_schedules_converge(quadratic16, restart_every):
    res = nonlinear_cg(
        quadratic16,
        np.zeros(16),
        max_iters=500,
        eps=1e-6,
        restart_every=restart_every,
        line_search=LineSearchMethod.BACKTRACKING_CURVATURE,
    )
    assert res.success
    assert quadratic16.residual(res.x) < 1e-4


def test_cg_stops_on_line_search_failure():
    broken = FunctionProblem(fun=lambda x: float(x @ x), grad=lambda x: -2 * x)
    solver = NonlinearCG()
    x = np.array([1.0, -1.0])
    assert solver.minimize(broken, x) == 1
    assert solver.status is Status.LINE_SEARCH_FAILED
    assert np.array_equal(x, [1.0, -1.0])


def test_cg_consults_problem_convergence(analytic_rosenbrock):
    class StopAfterFirstStep(type(analytic_rosenbrock)):
        def converged(self, x_prev, x_new, grad):
            return True

    solver = NonlinearCG(CGSettings(max_iters=50, eps=1e-12))
    assert solver.minimize(StopAfterFirstStep(), np.zeros(2)) == 1
    assert solver.status is Status.PROBLEM_CONVERGED


def test_default_restarts_only_on_lost_descent():
    assert CGSettings().restart_every == 0
    solver = NonlinearCG(CGSettings(max_iters=1000, eps=1e-10))
    x = np.zeros(2)
    solver.minimize(FunctionProblem(fun=_rosen, grad=_rosen_grad), x)
    assert np.linalg.norm(x - 1.0) < 1e-4
