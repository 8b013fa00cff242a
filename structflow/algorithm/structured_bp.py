"""Structured belief propagation.

:class:`StructuredBP` answers marginal queries about a set of target
elements:

1. Build the root :class:`~structflow.structured.problem.Problem` from
   the targets and add every conditioned or constrained element of the
   universe that is not registered yet.
2. Solve the problem tree with :func:`recursive_solver` and a
   :func:`belief_propagation` subsolver running a fixed number of rounds
   in each problem.
3. Multiply the root solution into one joint factor, marginalize it to
   each target and divide by the total mass.

The normalizing constant includes the mass of the irregular value ``*``;
:meth:`StructuredBP.compute_distribution` drops ``*`` afterwards, so a
target with irregular mass has a distribution summing to less than 1.

Example
-------
>>> with Universe():
...     a = Flip(0.3)
...     b = Apply(lambda x: x, a)
>>> round(probability(b, True, iterations=10), 6)
0.3
"""

from __future__ import annotations

import functools
import logging
import math
import operator
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from structflow.algorithm.base import OneTimeProbQuery
from structflow.config import DEFAULT_ITERATIONS, DEFAULT_MAX_DEPTH
from structflow.core.types import Element
from structflow.core.universe import Universe
from structflow.errors import (
    ConfigurationError,
    DegenerateNormalizationError,
    UnreachableTargetError,
)
from structflow.factors.factor import SUM_PRODUCT, Factor
from structflow.structured.components import ComponentCollection
from structflow.structured.factory import unit
from structflow.structured.problem import Problem
from structflow.structured.solver import belief_propagation
from structflow.structured.strategy import recursive_solver

logger = logging.getLogger(__name__)


def validate_targets(targets: Sequence[Element]) -> Universe:
    """Return the universe shared by *targets*.

    Raises
    ------
    ConfigurationError
        If *targets* is empty or spans more than one universe.
    """
    if not targets:
        raise ConfigurationError("Cannot run structured BP with no targets")
    universes = {id(t.universe): t.universe for t in targets}
    if len(universes) > 1:
        raise ConfigurationError("Cannot have targets in different universes")
    return targets[0].universe


class StructuredBP(OneTimeProbQuery):
    """Structured factored inference using belief propagation.

    Parameters
    ----------
    universe : Universe
        The universe holding the targets and the evidence.
    iterations : int
        Belief-propagation rounds run in every problem.
    *targets : Element
        Query targets; all become targets of the root problem.
    max_depth : int
        Deepest nesting of chain problems; deeper chain values map to
        the irregular value ``*``.
    tolerance : float, optional
        Early-stopping threshold for message changes; off by default.
    """

    def __init__(
        self,
        universe: Universe,
        iterations: int,
        *targets: Element,
        max_depth: int = DEFAULT_MAX_DEPTH,
        tolerance: Optional[float] = None,
    ) -> None:
        super().__init__(universe, *targets)
        if int(iterations) != iterations or iterations < 1:
            raise ConfigurationError(f"iterations must be a positive integer, got {iterations}")
        if max_depth < 0:
            raise ConfigurationError(f"max_depth must be >= 0, got {max_depth}")
        self.iterations = int(iterations)
        self.max_depth = max_depth
        self.tolerance = tolerance
        self.target_factors: Dict[Element, Factor] = {}
        self.collection: Optional[ComponentCollection] = None
        self.problem: Optional[Problem] = None

    @classmethod
    def create(
        cls,
        iterations: int,
        *targets: Element,
        max_depth: int = DEFAULT_MAX_DEPTH,
        tolerance: Optional[float] = None,
    ) -> 'StructuredBP':
        """Create the algorithm for *targets*, which share one universe.

        Raises
        ------
        ConfigurationError
            If there are no targets, the targets span several universes,
            or *iterations* is not a positive integer.
        """
        universe = validate_targets(targets)
        return cls(universe, iterations, *targets, max_depth=max_depth, tolerance=tolerance)

    @property
    def targets(self) -> List[Element]:
        return self.query_targets

    # ------------------------------------------------------------------ #
    #  Run
    # ------------------------------------------------------------------ #

    def run(self) -> None:
        self.collection = ComponentCollection(max_depth=self.max_depth)
        self.target_factors = {}
        problem = Problem(self.collection, self.targets)
        evidence = self.universe.conditioned_elements + self.universe.constrained_elements
        for element in evidence:
            if not self.collection.contains(element):
                problem.add(element)
        self.problem = problem
        logger.info(
            "Structured BP: %d components, %d targets, %d iterations",
            len(self.collection), len(self.targets), self.iterations,
        )

        recursive_solver(self.subsolver())(problem)
        joint = functools.reduce(
            lambda a, b: a.product(b, SUM_PRODUCT), problem.solution, unit(SUM_PRODUCT),
        )

        factors = {}
        for target in self.targets:
            factors[target] = self._marginalize_to_target(joint, target)
        self.target_factors = factors

    def subsolver(self):
        """The per-problem strategy handed to the recursive solver."""
        return belief_propagation(self.iterations, self.tolerance)

    def _marginalize_to_target(self, joint: Factor, target: Element) -> Factor:
        target_var = self.collection.variable(target)
        if not joint.contains(target_var):
            raise UnreachableTargetError(
                f"Target '{target.name}' is not part of the solved joint factor"
            )
        unnormalized = joint.marginalize_to(SUM_PRODUCT, target_var)
        z = unnormalized.fold(0.0, operator.add)
        if z <= 0 or not math.isfinite(z):
            raise DegenerateNormalizationError(
                f"Marginal of '{target.name}' has total mass {z}; "
                f"the evidence may be inconsistent"
            )
        return unnormalized.map(lambda d: d / z)

    def cleanup(self) -> None:
        self.collection = None
        self.problem = None

    # ------------------------------------------------------------------ #
    #  Queries
    # ------------------------------------------------------------------ #

    def compute_distribution(self, target: Element) -> List[Tuple[float, Any]]:
        """Normalized ``(probability, value)`` pairs over the regular range.

        Normalization already happened when the run stored the factor,
        so irregular mass is simply left out here.
        """
        factor = self.target_factors[target]
        target_var = factor.variables[0]
        return [
            (factor.get(index), target_var.range[index[0]].value)
            for index in factor.indices()
            if target_var.range[index[0]].is_regular
        ]

    def compute_expectation(self, target: Element, function: Callable[[Any], float]) -> float:
        """Expectation of *function* under the distribution of *target*."""
        return functools.reduce(
            lambda total, pair: total + pair[0] * function(pair[1]),
            self.compute_distribution(target),
            0.0,
        )


def probability(
    target: Element,
    predicate: Any,
    iterations: int = DEFAULT_ITERATIONS,
) -> float:
    """Use structured BP to compute the probability of *predicate*.

    A non-callable *predicate* is a value: the result is the probability
    that *target* equals it.
    """
    algorithm = StructuredBP.create(iterations, target)
    algorithm.start()
    try:
        return algorithm.probability(target, predicate)
    finally:
        algorithm.kill()
