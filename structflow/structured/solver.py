"""Belief propagation subsolver for a single problem.

Runs a fixed number of flooding sum-product rounds on the factor graph
of one problem:

1. **Factor to variable**: each factor sends, to each of its
   variables, its table times the other incoming messages, summed over
   the other variables.
2. **Variable to factor**: each variable sends, to each of its factors,
   the product of the messages from its other factors.

Messages are normalized when their mass is positive.  Afterwards the
variable beliefs and the Bethe estimate of the partition function are
computed; both are exact on tree-structured factor graphs once the
number of rounds reaches the tree's diameter, and approximate on loopy
graphs.  Convergence is not checked unless a tolerance is given.
"""

from __future__ import annotations

import functools
import itertools
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

import numpy as np

from structflow.core.types import Variable
from structflow.errors import ConfigurationError
from structflow.factors.factor import Factor

logger = logging.getLogger(__name__)


def belief_propagation(iterations: int, tolerance: Optional[float] = None):
    """Subsolver running *iterations* rounds of belief propagation.

    Parameters
    ----------
    iterations : int
        Rounds run in every problem, at least 1.
    tolerance : float, optional
        Stop early once no message changes by more than this amount.
        ``None`` (the default) always runs every round.

    Returns
    -------
    callable
        A strategy for :func:`~structflow.structured.strategy.recursive_solver`.

    Raises
    ------
    ConfigurationError
        If *iterations* is below 1 or *tolerance* is not positive.
    """
    if int(iterations) != iterations or iterations < 1:
        raise ConfigurationError(f"iterations must be a positive integer, got {iterations}")
    if tolerance is not None and tolerance <= 0:
        raise ConfigurationError(f"tolerance must be positive, got {tolerance}")
    return functools.partial(
        solve_with_belief_propagation,
        iterations=int(iterations),
        tolerance=tolerance,
    )


def solve_with_belief_propagation(
    problem,
    to_eliminate: List[Variable],
    to_preserve: List[Variable],
    factors: List[Factor],
    iterations: int,
    tolerance: Optional[float] = None,
) -> List[Factor]:
    """Solve one problem, keeping its targets and global variables.

    Global variables (those owned by an enclosing problem) are clamped
    to each joint assignment in turn.  For every assignment the first
    target gets its belief scaled by the partition estimate, so the
    solution keeps the evidence weight of the problem; further targets
    get plain beliefs.

    Returns
    -------
    list of Factor
        One factor over ``[target] + globals`` per target that appears in
        at least one factor.
    """
    globals_ = problem.global_variables(factors)
    global_ids = {g.id for g in globals_}
    targets = [v for v in to_preserve if v.id not in global_ids]
    shape = tuple(g.num_states for g in globals_)
    tables = [np.zeros((t.num_states,) + shape) for t in targets]
    present = set()

    for assignment in itertools.product(*(range(n) for n in shape)):
        clamped = factors
        for g, index in zip(globals_, assignment):
            clamped = [f.reduce(g, index) if f.contains(g) else f for f in clamped]
        log_z, beliefs = run_belief_propagation(clamped, iterations, tolerance)
        z = float(np.exp(log_z))
        for k, (target, table) in enumerate(zip(targets, tables)):
            belief = beliefs.get(target.id)
            if belief is None:
                continue
            present.add(target.id)
            table[(slice(None),) + assignment] = belief * z if k == 0 else belief

    logger.debug(
        "Problem %d: %d targets, %d global variables, %d eliminated",
        problem.id, len(targets), len(globals_), len(to_eliminate),
    )
    return [
        Factor([t] + globals_, table)
        for t, table in zip(targets, tables)
        if t.id in present
    ]


def run_belief_propagation(
    factors: List[Factor],
    iterations: int,
    tolerance: Optional[float] = None,
) -> Tuple[float, Dict[int, np.ndarray]]:
    """Loopy belief propagation on a list of factors.

    Returns
    -------
    (float, dict)
        The Bethe estimate of ``log Z`` (``-inf`` when the factors admit
        no positive configuration) and the normalized belief of every
        variable, keyed by variable id.
    """
    variables: "OrderedDict[int, Variable]" = OrderedDict()
    live: List[Factor] = []
    log_const = 0.0
    degenerate = False
    for f in factors:
        if f.variables:
            live.append(f)
            for v in f.variables:
                variables.setdefault(v.id, v)
            continue
        # fully clamped factor: a constant weight
        c = float(f.values)
        if c > 0:
            log_const += np.log(c)
        else:
            degenerate = True
    if degenerate:
        return -np.inf, _zero_beliefs(variables)

    # neighbours[v.id] = [(factor index, axis), ...]
    neighbours: Dict[int, List[Tuple[int, int]]] = {vid: [] for vid in variables}
    for fi, f in enumerate(live):
        for axis, v in enumerate(f.variables):
            neighbours[v.id].append((fi, axis))

    msg_vf = {
        (fi, axis): np.ones(v.num_states)
        for fi, f in enumerate(live)
        for axis, v in enumerate(f.variables)
    }
    msg_fv = {edge: msg.copy() for edge, msg in msg_vf.items()}

    for iteration in range(iterations):
        delta = 0.0
        # --- factor -> variable ---
        new_fv = {}
        for fi, f in enumerate(live):
            incoming = [msg_vf[(fi, axis)] for axis in range(len(f.variables))]
            for axis in range(len(f.variables)):
                msg = _normalize(_factor_message(f.values, incoming, axis))
                delta = max(delta, float(np.max(np.abs(msg - msg_fv[(fi, axis)]))))
                new_fv[(fi, axis)] = msg
        msg_fv = new_fv

        # --- variable -> factor ---
        for vid, edges in neighbours.items():
            for edge in edges:
                msg = np.ones(variables[vid].num_states)
                for other in edges:
                    if other != edge:
                        msg = msg * msg_fv[other]
                msg_vf[edge] = _normalize(msg)

        if tolerance is not None and delta < tolerance:
            logger.debug("Belief propagation converged after %d iterations", iteration + 1)
            break

    # --- beliefs and Bethe partition estimate ---
    log_z = log_const
    for fi, f in enumerate(live):
        belief = f.values
        for axis in range(len(f.variables)):
            shape = [1] * f.values.ndim
            shape[axis] = -1
            belief = belief * msg_vf[(fi, axis)].reshape(shape)
        total = belief.sum()
        if total <= 0:
            return -np.inf, _zero_beliefs(variables)
        belief = belief / total
        mask = belief > 0
        log_z += float(np.sum(belief[mask] * (np.log(f.values[mask]) - np.log(belief[mask]))))

    beliefs: Dict[int, np.ndarray] = {}
    for vid, edges in neighbours.items():
        belief = np.ones(variables[vid].num_states)
        for edge in edges:
            belief = belief * msg_fv[edge]
        total = belief.sum()
        if total <= 0:
            return -np.inf, _zero_beliefs(variables)
        belief = belief / total
        beliefs[vid] = belief
        mask = belief > 0
        log_z += (len(edges) - 1) * float(np.sum(belief[mask] * np.log(belief[mask])))

    return log_z, beliefs


def _factor_message(values: np.ndarray, incoming: List[np.ndarray], axis: int) -> np.ndarray:
    """Sum of the factor times all incoming messages except *axis*'s."""
    product = values
    for k, msg in enumerate(incoming):
        if k == axis:
            continue
        shape = [1] * values.ndim
        shape[k] = -1
        product = product * msg.reshape(shape)
    others = tuple(k for k in range(values.ndim) if k != axis)
    return product.sum(axis=others) if others else product.copy()


def _normalize(msg: np.ndarray) -> np.ndarray:
    # Normalize to avoid underflow
    total = msg.sum()
    if total > 0:
        return msg / total
    return msg


def _zero_beliefs(variables: Dict[int, Variable]) -> Dict[int, np.ndarray]:
    return {vid: np.zeros(v.num_states) for vid, v in variables.items()}
