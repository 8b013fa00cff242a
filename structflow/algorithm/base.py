"""Algorithm lifecycle and the one-time probability query interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, List, Tuple

from structflow.core.types import Element
from structflow.core.universe import Universe
from structflow.errors import (
    AlgorithmActiveError,
    AlgorithmInactiveError,
    NotATargetError,
)


class Algorithm(ABC):
    """Start/run/kill lifecycle shared by inference algorithms.

    :meth:`start` runs the algorithm once; queries are answered while it
    is active; :meth:`kill` releases run-time state.
    """

    def __init__(self) -> None:
        self.active = False

    @abstractmethod
    def run(self) -> None:
        """Do the work of the algorithm."""
        pass

    def cleanup(self) -> None:
        """Release state that is not needed to answer queries."""
        pass

    def start(self) -> None:
        """Run the algorithm.

        A run that raises leaves the algorithm inactive with its run-time
        state released.

        Raises:
            AlgorithmActiveError: If the algorithm is already active.
        """
        if self.active:
            raise AlgorithmActiveError(f"{type(self).__name__} is already active")
        self.active = True
        try:
            self.run()
        except Exception:
            self.active = False
            self.cleanup()
            raise

    def kill(self) -> None:
        """Release run-time state and deactivate the algorithm."""
        self.cleanup()
        self.active = False

    @property
    def is_active(self) -> bool:
        return self.active


class OneTimeProbQuery(Algorithm):
    """An algorithm answering marginal queries about fixed targets.

    Subclasses implement :meth:`compute_distribution` and
    :meth:`compute_expectation`; the public query methods check that the
    algorithm is active and that the element is a query target.
    """

    def __init__(self, universe: Universe, *targets: Element) -> None:
        super().__init__()
        self.universe = universe
        self.query_targets: List[Element] = list(targets)

    @abstractmethod
    def compute_distribution(self, target: Element) -> List[Tuple[float, Any]]:
        pass

    @abstractmethod
    def compute_expectation(self, target: Element, function: Callable[[Any], float]) -> float:
        pass

    def _check(self, target: Element) -> None:
        if not self.active:
            raise AlgorithmInactiveError(f"{type(self).__name__} is not active")
        if target not in self.query_targets:
            raise NotATargetError(f"'{target.name}' is not a query target")

    def distribution(self, target: Element) -> List[Tuple[float, Any]]:
        """``(probability, value)`` pairs for *target*."""
        self._check(target)
        return self.compute_distribution(target)

    def expectation(self, target: Element, function: Callable[[Any], float]) -> float:
        """Expected value of ``function(target)``."""
        self._check(target)
        return self.compute_expectation(target, function)

    def probability(self, target: Element, predicate: Any) -> float:
        """Probability that *target* satisfies *predicate*.

        A non-callable *predicate* is treated as a value, giving the
        probability that *target* equals it.
        """
        if not callable(predicate):
            value = predicate

            def predicate(v: Any) -> bool:
                return v == value

        return self.expectation(target, lambda v: 1.0 if predicate(v) else 0.0)

    def mean(self, target: Element) -> float:
        """Expected value of a numeric target."""
        return self.expectation(target, float)
