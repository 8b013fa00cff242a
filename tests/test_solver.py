"""Tests for structflow/structured/solver.py and strategy.py.

Covers:
- Beliefs and the Bethe partition estimate vs brute-force enumeration
- Constant and degenerate factor sets
- Early stopping with a tolerance
- Clamping of global variables in nested problems
- Post-order solving of the problem tree
"""

from __future__ import annotations

import functools

import numpy as np
import pytest

from structflow.core.types import Regular, Variable
from structflow.core.universe import Universe
from structflow.elements.atomic import Constant, Flip
from structflow.elements.compound import Apply, Chain
from structflow.errors import ConfigurationError
from structflow.factors.factor import Factor
from structflow.structured.components import ComponentCollection
from structflow.structured.problem import Problem
from structflow.structured.solver import belief_propagation, run_belief_propagation
from structflow.structured.strategy import _post_order, recursive_solver


# ------------------------------------------------------------------ #
#  Helpers
# ------------------------------------------------------------------ #

def _brute_force(factors):
    """Partition function and marginals of the product of *factors*."""
    joint = functools.reduce(lambda a, b: a.product(b), factors)
    z = float(joint.values.sum())
    marginals = {}
    for axis, v in enumerate(joint.variables):
        others = tuple(k for k in range(joint.values.ndim) if k != axis)
        marginals[v.id] = joint.values.sum(axis=others) / z
    return z, marginals


def _random_tree_factors(seed):
    rng = np.random.default_rng(seed)
    a = Variable("A", [0, 1])
    b = Variable("B", [0, 1, 2])
    c = Variable("C", [0, 1])
    d = Variable("D", [0, 1])
    return [
        Factor([a], rng.random(2)),
        Factor([a, b], rng.random((2, 3))),
        Factor([b, c], rng.random((3, 2))),
        Factor([b, d], rng.random((3, 2))),
        Factor([d], rng.random(2)),
    ]


# ------------------------------------------------------------------ #
#  Belief propagation on factor lists
# ------------------------------------------------------------------ #

class TestRunBeliefPropagation:
    """Tests for run_belief_propagation."""

    def test_single_factor(self):
        a = Variable("A", [0, 1])
        log_z, beliefs = run_belief_propagation([Factor([a], np.array([2.0, 6.0]))], 5)
        assert np.exp(log_z) == pytest.approx(8.0)
        np.testing.assert_allclose(beliefs[a.id], [0.25, 0.75])

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_tree_matches_brute_force(self, seed):
        """On a tree, beliefs and Z are exact."""
        factors = _random_tree_factors(seed)
        z, marginals = _brute_force(factors)
        log_z, beliefs = run_belief_propagation(factors, 10)
        assert np.exp(log_z) == pytest.approx(z, rel=1e-8)
        for vid, marginal in marginals.items():
            np.testing.assert_allclose(beliefs[vid], marginal, atol=1e-10)

    def test_constant_factor(self):
        a = Variable("A", [0, 1])
        factors = [Factor([], np.array(0.5)), Factor([a], np.array([2.0, 6.0]))]
        log_z, _ = run_belief_propagation(factors, 5)
        assert np.exp(log_z) == pytest.approx(4.0)

    def test_zero_constant_factor(self):
        a = Variable("A", [0, 1])
        factors = [Factor([], np.array(0.0)), Factor([a], np.array([2.0, 6.0]))]
        log_z, beliefs = run_belief_propagation(factors, 5)
        assert log_z == -np.inf
        np.testing.assert_allclose(beliefs[a.id], [0.0, 0.0])

    def test_contradictory_evidence(self):
        a = Variable("A", [0, 1])
        factors = [Factor([a], np.array([1.0, 0.0])), Factor([a], np.array([0.0, 1.0]))]
        log_z, beliefs = run_belief_propagation(factors, 5)
        assert log_z == -np.inf
        np.testing.assert_allclose(beliefs[a.id], [0.0, 0.0])

    def test_loopy_beliefs_normalized(self):
        rng = np.random.default_rng(3)
        a, b, c = (Variable(n, [0, 1]) for n in "ABC")
        factors = [
            Factor([a, b], rng.random((2, 2)) + 0.1),
            Factor([b, c], rng.random((2, 2)) + 0.1),
            Factor([c, a], rng.random((2, 2)) + 0.1),
        ]
        log_z, beliefs = run_belief_propagation(factors, 50)
        assert np.isfinite(log_z)
        for belief in beliefs.values():
            assert belief.sum() == pytest.approx(1.0)

    def test_tolerance_stops_early_with_same_answer(self):
        factors = _random_tree_factors(4)
        log_z, beliefs = run_belief_propagation(factors, 10)
        log_z_tol, beliefs_tol = run_belief_propagation(factors, 1000, tolerance=1e-12)
        assert log_z_tol == pytest.approx(log_z)
        for vid in beliefs:
            np.testing.assert_allclose(beliefs_tol[vid], beliefs[vid], atol=1e-10)


class TestBeliefPropagationConfig:
    """Validation of the belief_propagation subsolver factory."""

    @pytest.mark.parametrize("iterations", [0, -1, 1.5])
    def test_bad_iterations(self, iterations):
        with pytest.raises(ConfigurationError, match="iterations"):
            belief_propagation(iterations)

    def test_bad_tolerance(self):
        with pytest.raises(ConfigurationError, match="tolerance"):
            belief_propagation(10, tolerance=0.0)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            belief_propagation(0)


# ------------------------------------------------------------------ #
#  Solving problems
# ------------------------------------------------------------------ #

class TestSolveProblems:
    """Subsolver and recursive strategy on problem trees."""

    def test_root_solution_keeps_evidence_weight(self):
        with Universe():
            a = Flip(0.3)
        a.observe(True)
        collection = ComponentCollection()
        problem = Problem(collection, [a])
        recursive_solver(belief_propagation(5))(problem)
        (solution,) = problem.solution
        np.testing.assert_allclose(solution.values, [0.0, 0.3], atol=1e-12)

    def test_global_variable_is_clamped(self):
        with Universe():
            x = Flip(0.6)
            s = Flip(0.5)
            c = Chain(s, lambda v: Apply(lambda a: not a, x) if v else Constant(False))
        collection = ComponentCollection()
        problem = Problem(collection, [c])
        recursive_solver(belief_propagation(5))(problem)
        nested = collection[c].outcomes[Regular(True)]
        (solution,) = nested.solution
        assert solution.variables == nested.target_variables + [collection.variable(x)]
        np.testing.assert_allclose(solution.values, np.eye(2), atol=1e-12)

    def test_post_order(self):
        with Universe():
            s = Flip(0.5)
            c = Chain(s, lambda v: Chain(Flip(0.5), lambda w: Constant(w)))
        collection = ComponentCollection()
        problem = Problem(collection, [c])
        order = _post_order(problem)
        assert order[-1] is problem
        assert len(order) == 1 + 2 + 4
        for p in order:
            for sub in p.subproblems:
                assert order.index(sub) < order.index(p)

    def test_solved_problems_are_skipped(self):
        with Universe():
            s = Flip(0.5)
            c = Chain(s, lambda v: Constant(1) if v else Constant(2))
        collection = ComponentCollection()
        problem = Problem(collection, [c])
        bp = belief_propagation(5)
        seen = []

        def recording(current, *args):
            seen.append(current)
            return bp(current, *args)

        solve = recursive_solver(recording)
        solve(problem)
        assert seen[-1] is problem
        assert len(seen) == 3
        solve(problem)
        assert len(seen) == 3
