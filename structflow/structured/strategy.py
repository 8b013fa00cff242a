"""Strategies for solving a problem tree."""

from __future__ import annotations

import logging
from typing import Callable, List

from structflow.core.types import Variable
from structflow.factors.factor import Factor
from structflow.structured.problem import Problem

logger = logging.getLogger(__name__)

# (problem, to_eliminate, to_preserve, factors) -> solution factors
Subsolver = Callable[[Problem, List[Variable], List[Variable], List[Factor]], List[Factor]]


def recursive_solver(subsolver: Subsolver) -> Callable[[Problem], None]:
    """Strategy solving every problem of a tree with *subsolver*.

    Nested problems are solved before the problem whose chain uses them.
    The walk uses an explicit stack, so the tree depth is not limited by
    the interpreter's recursion limit.
    """

    def solve(problem: Problem) -> None:
        for current in _post_order(problem):
            if current.solved:
                continue
            factors = current.factors()
            to_preserve = current.target_variables
            preserved = {v.id for v in to_preserve}
            to_eliminate = [v for v in current.owned_variables if v.id not in preserved]
            logger.debug(
                "Solving problem %d: %d factors, %d variables to eliminate",
                current.id, len(factors), len(to_eliminate),
            )
            current.solution = subsolver(current, to_eliminate, to_preserve, factors)

    return solve


def _post_order(root: Problem) -> List[Problem]:
    """Problems of the tree, every child before its parent."""
    order: List[Problem] = []
    stack = [(root, False)]
    while stack:
        problem, expanded = stack.pop()
        if expanded:
            order.append(problem)
            continue
        stack.append((problem, True))
        for sub in reversed(problem.subproblems):
            stack.append((sub, False))
    return order
