"""Network construction utilities for StructFlow.

Builds random discrete networks out of :class:`Select` and
:class:`Chain` elements.  The returned :class:`Network` keeps the
probability tables it was generated from, so marginals can be checked
against enumeration.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from structflow.core.types import Element
from structflow.core.universe import Universe
from structflow.elements.atomic import Select
from structflow.elements.compound import Chain


@dataclass
class Network:
    """Elements of a generated network and their tables.

    ``parents[i]`` is the index of node *i*'s parent (``None`` for the
    root); ``tables[i]`` is the prior of the root or the CPT of a child,
    with shape ``(parent_states, child_states)``.
    """

    nodes: List[Element]
    states: List[str]
    parents: List[Optional[int]]
    tables: List[np.ndarray] = field(default_factory=list)

    @property
    def root(self) -> Element:
        return self.nodes[0]

    def joint(self) -> Dict[Tuple[int, ...], float]:
        """Probability of every joint state index assignment."""
        k = len(self.states)
        result = {}
        for assignment in itertools.product(range(k), repeat=len(self.nodes)):
            p = 1.0
            for i, parent in enumerate(self.parents):
                if parent is None:
                    p *= self.tables[i][assignment[i]]
                else:
                    p *= self.tables[i][assignment[parent], assignment[i]]
            result[assignment] = p
        return result

    def marginal(self, node: int, evidence: Optional[Dict[int, str]] = None) -> np.ndarray:
        """Marginal of node *node* by enumeration, given observed states."""
        evidence = evidence or {}
        totals = np.zeros(len(self.states))
        for assignment, p in self.joint().items():
            if all(self.states[assignment[i]] == s for i, s in evidence.items()):
                totals[assignment[node]] += p
        return totals / totals.sum()


def _child(parent: Element, cpt: np.ndarray, states: List[str], name: str) -> Chain:
    """Chain selecting the CPT row of the parent's state."""
    return Chain(
        parent,
        lambda v: Select(cpt[states.index(v)], states),
        name=name,
    )


def _random_cpt(rng: np.random.Generator, num_states: int) -> np.ndarray:
    cpt = np.empty((num_states, num_states))
    for s in range(num_states):
        cpt[s] = rng.dirichlet(np.ones(num_states))
    return cpt


def build_tree(
    num_nodes: int,
    num_states: int = 2,
    seed: Optional[int] = None,
    universe: Optional[Universe] = None,
) -> Network:
    """Build a tree-structured network.

    Node *i*'s children are ``2i+1`` and ``2i+2``.  The root is a
    :class:`Select` with a random prior; each child is a :class:`Chain`
    on its parent with a random CPT.
    """
    rng = np.random.default_rng(seed)
    universe = universe if universe is not None else Universe.current()
    states = [f"s{i}" for i in range(num_states)]
    prior = rng.dirichlet(np.ones(num_states))
    network = Network(
        nodes=[Select(prior, states, name=universe.fresh_name("X0"), universe=universe)],
        states=states,
        parents=[None],
        tables=[prior],
    )
    for i in range(1, num_nodes):
        parent = (i - 1) // 2
        cpt = _random_cpt(rng, num_states)
        name = universe.fresh_name(f"X{i}")
        network.nodes.append(_child(network.nodes[parent], cpt, states, name))
        network.parents.append(parent)
        network.tables.append(cpt)
    return network


def build_chain(
    num_nodes: int,
    num_states: int = 2,
    seed: Optional[int] = None,
    universe: Optional[Universe] = None,
) -> Network:
    """Build a chain-structured network (Markov chain)."""
    rng = np.random.default_rng(seed)
    universe = universe if universe is not None else Universe.current()
    states = [f"s{i}" for i in range(num_states)]
    prior = rng.dirichlet(np.ones(num_states))
    network = Network(
        nodes=[Select(prior, states, name=universe.fresh_name("X0"), universe=universe)],
        states=states,
        parents=[None],
        tables=[prior],
    )
    for i in range(1, num_nodes):
        cpt = _random_cpt(rng, num_states)
        name = universe.fresh_name(f"X{i}")
        network.nodes.append(_child(network.nodes[i - 1], cpt, states, name))
        network.parents.append(i - 1)
        network.tables.append(cpt)
    return network
