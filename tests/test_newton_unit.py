"""Tests for the single-variable and multivariate Newton-Raphson solvers."""

import math

import numpy as np
import pytest

from eqsolver import BuildError, ConvergenceError, ConvergenceFailure, EvalError
from eqsolver.newton import multivariate_newton_raphson, newton_raphson


# ── Single variable ──────────────────────────────────────────────────────

class TestNewtonRaphson:
    def test_square_root_of_two(self):
        root = newton_raphson(lambda x: x * x - 2, 1.0, 1e-10, 20)
        assert root == pytest.approx(math.sqrt(2))

    def test_near_zero_root(self):
        root = newton_raphson(lambda x: x * x, 1.0, 1e-4, 100)
        assert abs(root) < 0.01

    def test_initial_guess_already_a_root(self):
        calls = []

        def f(x):
            calls.append(x)
            return x - 3

        assert newton_raphson(f, 3.0, 1e-6, 5) == 3.0
        assert calls == [3.0]

    def test_transcendental(self):
        root = newton_raphson(lambda x: math.cos(x) - x, 1.0, 1e-12, 50)
        assert math.cos(root) == pytest.approx(root)

    def test_zero_derivative(self):
        with pytest.raises(ConvergenceError) as info:
            newton_raphson(lambda x: x * x + 1, 0.0, 1e-6, 10)
        assert info.value.reason is ConvergenceFailure.ZERO_DERIVATIVE
        assert info.value.last_guess == 0.0

    def test_iteration_limit_keeps_last_guess(self):
        with pytest.raises(ConvergenceError) as info:
            newton_raphson(lambda x: x * x - 2, 100.0, 1e-12, 2)
        err = info.value
        assert err.reason is ConvergenceFailure.ITERATION_LIMIT
        assert err.iterations == 2
        assert 1.4 < err.last_guess < 100.0

    def test_errors_from_function_propagate(self):
        def f(x):
            raise EvalError("boom")

        with pytest.raises(EvalError, match="boom"):
            newton_raphson(f, 1.0, 1e-6, 10)

    @pytest.mark.parametrize("tolerance", [0.0, -1e-3])
    def test_bad_tolerance(self, tolerance):
        with pytest.raises(ValueError, match="Tolerance"):
            newton_raphson(lambda x: x, 1.0, tolerance, 10)


# ── Multiple variables ───────────────────────────────────────────────────

def _f1(v):
    return v["x"] + v["y"] - 9.0


def _f2(v):
    return v["x"] - v["y"] - 4.0


class TestMultivariate:
    def test_linear_pair(self):
        guess = {"x": 7.0, "y": 2.0}
        result = multivariate_newton_raphson([_f1, _f2], guess, 1e-6, 50)
        assert result is guess
        assert guess["x"] == pytest.approx(6.5)
        assert guess["y"] == pytest.approx(2.5)

    def test_nonlinear_circle_and_line(self):
        functions = [
            lambda v: v["x"] ** 2 + v["y"] ** 2 - 25.0,
            lambda v: v["x"] - v["y"] - 1.0,
        ]
        guess = {"x": 5.0, "y": 2.0}
        multivariate_newton_raphson(functions, guess, 1e-9, 50)
        assert np.isclose(guess["x"], 4.0)
        assert np.isclose(guess["y"], 3.0)

    def test_bounds_clamp_steps(self):
        # roots at x = -2 and x = 2; the lower bound keeps the solver on the positive side
        functions = [lambda v: v["x"] ** 2 - 4.0]
        guess = {"x": 0.5}
        multivariate_newton_raphson(functions, guess, 1e-9, 50, bounds={"x": (0.1, 10.0)})
        assert guess["x"] == pytest.approx(2.0)

    def test_jacobian_steps_back_at_upper_bound(self):
        # residual is undefined above x = 1
        functions = [lambda v: math.sqrt(1.0 - v["x"]) - 0.5]
        guess = {"x": 1.0}
        multivariate_newton_raphson(functions, guess, 1e-9, 50, bounds={"x": (-10.0, 1.0)})
        assert guess["x"] == pytest.approx(0.75)

    def test_clamped_at_boundary_when_root_outside(self):
        functions = [lambda v: v["x"] - 5.0]
        guess = {"x": 1.0}
        with pytest.raises(ConvergenceError) as info:
            multivariate_newton_raphson(functions, guess, 1e-9, 5, bounds={"x": (0.0, 2.0)})
        assert info.value.reason is ConvergenceFailure.ITERATION_LIMIT
        assert guess["x"] == 2.0
        assert info.value.last_guess == {"x": 2.0}

    def test_singular_jacobian(self):
        # y appears in neither residual
        functions = [
            lambda v: v["x"] - 1.0,
            lambda v: 2 * v["x"] - 3.0,
        ]
        guess = {"x": 0.0, "y": 0.0}
        with pytest.raises(ConvergenceError) as info:
            multivariate_newton_raphson(functions, guess, 1e-9, 10)
        assert info.value.reason is ConvergenceFailure.SINGULAR_JACOBIAN
        assert info.value.iterations == 0
        assert guess == {"x": 0.0, "y": 0.0}

    def test_non_square(self):
        with pytest.raises(BuildError, match="not square"):
            multivariate_newton_raphson([_f1], {"x": 1.0, "y": 1.0}, 1e-6, 10)

    def test_zero_iterations_only_checks_guess(self):
        guess = {"x": 6.5, "y": 2.5}
        assert multivariate_newton_raphson([_f1, _f2], guess, 1e-9, 0) == {"x": 6.5, "y": 2.5}
        with pytest.raises(ConvergenceError):
            multivariate_newton_raphson([_f1, _f2], {"x": 0.0, "y": 0.0}, 1e-9, 0)
