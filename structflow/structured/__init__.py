"""Structured (decomposition-based) factored inference.

A model is split into a tree of problems; :func:`recursive_solver`
solves the tree bottom-up with a per-problem subsolver such as
:func:`belief_propagation`.
"""

from structflow.structured.components import (
    ChainComponent,
    ComponentCollection,
    ProblemComponent,
)
from structflow.structured.factory import make_factors, unit
from structflow.structured.problem import NestedProblem, Problem
from structflow.structured.solver import belief_propagation
from structflow.structured.strategy import recursive_solver

__all__ = [
    "ChainComponent",
    "ComponentCollection",
    "ProblemComponent",
    "make_factors",
    "unit",
    "NestedProblem",
    "Problem",
    "belief_propagation",
    "recursive_solver",
]
