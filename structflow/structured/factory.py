"""Conversion of registered components into factors."""

from __future__ import annotations

import functools
from collections import OrderedDict
from typing import List

import numpy as np

from structflow.core.types import STAR, Variable
from structflow.elements.atomic import AtomicElement
from structflow.elements.compound import Apply
from structflow.errors import UnreachableTargetError
from structflow.factors.factor import SUM_PRODUCT, Factor, SumProductSemiring
from structflow.structured.components import ChainComponent, ProblemComponent


def unit(semiring: SumProductSemiring = SUM_PRODUCT) -> Factor:
    """Multiplicative identity used to seed factor folds."""
    return Factor.unit(semiring)


def make_factors(component: ProblemComponent) -> List[Factor]:
    """All factors a component contributes to its problem.

    The element's own factor, followed by a condition factor and a
    constraint factor when the element carries evidence.
    """
    element = component.element
    if isinstance(component, ChainComponent):
        factors = [_chain_factor(component)]
    elif isinstance(element, AtomicElement):
        factors = [_atomic_factor(component)]
    elif isinstance(element, Apply):
        factors = [_apply_factor(component)]
    else:
        raise TypeError(f"No factor for element type {type(element).__name__}")

    var = component.variable
    if element.is_conditioned:
        weights = [element.condition_weight(x) for x in var.range]
        factors.append(Factor([var], np.array(weights)))
    if element.is_constrained:
        weights = [element.constraint_weight(x) for x in var.range]
        factors.append(Factor([var], np.array(weights)))
    return factors


def _atomic_factor(component: ProblemComponent) -> Factor:
    var = component.variable
    values = np.zeros(var.num_states)
    for x, p in component.element.outcomes():
        values[var.index_of(x)] += p
    return Factor([var], values)


def _apply_factor(component: ProblemComponent) -> Factor:
    """Deterministic table over the distinct arguments and the result."""
    var = component.variable
    scope = component.arg_variables + [var]
    values = np.zeros(tuple(v.num_states for v in scope))
    for index, result in component.mapping.items():
        values[index + (var.index_of(result),)] = 1.0
    return Factor(scope, values)


def _chain_factor(component: ChainComponent) -> Factor:
    """Table over ``[parent, chain, globals...]``.

    The row for parent value ``v`` is the solved nested problem for
    ``v`` (its target's range mapped into the chain's range), an
    equality with the result variable when the result is registered
    elsewhere, or a point mass on ``*``.
    """
    parent = component.collection.variable(component.element.parent)
    var = component.variable

    joints = {}
    extra: OrderedDict = OrderedDict()
    for value, outcome in component.outcomes.items():
        if outcome is STAR:
            continue
        if isinstance(outcome, Variable):
            if outcome is not parent:
                extra.setdefault(outcome.id, outcome)
            continue
        if outcome.solution is None:
            raise ValueError(f"{outcome!r} must be solved before its chain")
        target = outcome.target_variables[0]
        joint = functools.reduce(
            lambda a, b: a.product(b, SUM_PRODUCT), outcome.solution, unit(SUM_PRODUCT),
        )
        if not joint.contains(target):
            raise UnreachableTargetError(
                f"Solution of {outcome!r} has no dimension for '{target.name}'"
            )
        joints[value] = (target, joint)
        for v in joint.variables:
            if v is not target and v is not parent:
                extra.setdefault(v.id, v)

    extras = list(extra.values())
    scope = [parent, var] + extras
    values = np.zeros(tuple(v.num_states for v in scope))
    for i, value in enumerate(parent.range):
        outcome = component.outcomes[value]
        row = values[i]
        if outcome is STAR:
            row[var.index_of(STAR)] = 1.0
        elif outcome is parent:
            row[var.index_of(value)] = 1.0
        elif isinstance(outcome, Variable):
            axis = 1 + extras.index(outcome)
            for j, x in enumerate(outcome.range):
                index = [slice(None)] * row.ndim
                index[0] = var.index_of(x)
                index[axis] = j
                row[tuple(index)] = 1.0
        else:
            target, joint = joints[value]
            if joint.contains(parent):
                joint = joint.reduce(parent, i)
            aligned = joint.aligned([target] + extras)
            for j, r in enumerate(target.range):
                row[var.index_of(r)] += aligned[j]
    return Factor(scope, values)
