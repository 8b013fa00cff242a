"""Problems: the nodes of the decomposition tree.

A :class:`Problem` owns the components of the elements registered in it.
Chains split off a :class:`NestedProblem` per parent value, which is
solved on its own and enters its parent as part of the chain's factor.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Iterable, List, Optional

import networkx as nx

from structflow.core.types import STAR, Element, Variable
from structflow.elements.compound import Chain
from structflow.errors import ModelError
from structflow.factors.factor import Factor
from structflow.structured.components import (
    ChainComponent,
    ComponentCollection,
    ProblemComponent,
)
from structflow.structured.factory import make_factors

logger = logging.getLogger(__name__)


class Problem:
    """A node of the decomposition tree.

    Parameters
    ----------
    collection : ComponentCollection
        The registry shared by every problem of one run.
    targets : iterable of Element
        Elements whose marginal information the problem must keep.
        They are registered immediately.
    """

    def __init__(
        self,
        collection: ComponentCollection,
        targets: Iterable[Element] = (),
        parent: Optional['Problem'] = None,
        chain: Optional[Chain] = None,
    ) -> None:
        self.collection = collection
        self.id = collection.next_problem_id()
        self.parent = parent
        self.chain = chain
        self.depth = 0 if parent is None else parent.depth + 1
        self.components: List[ProblemComponent] = []
        self.solution: Optional[List[Factor]] = None
        self.targets: List[Element] = list(OrderedDict.fromkeys(targets))
        for target in self.targets:
            self.add(target)

    # ------------------------------------------------------------------ #
    #  Tree structure
    # ------------------------------------------------------------------ #

    @property
    def root(self) -> 'Problem':
        problem = self
        while problem.parent is not None:
            problem = problem.parent
        return problem

    @property
    def subproblems(self) -> List['Problem']:
        """Problems created by the chains registered here."""
        result: List[Problem] = []
        for component in self.components:
            if isinstance(component, ChainComponent):
                for sub in component.subproblems:
                    if sub not in result:
                        result.append(sub)
        return result

    @property
    def solved(self) -> bool:
        return self.solution is not None

    # ------------------------------------------------------------------ #
    #  Variables and factors
    # ------------------------------------------------------------------ #

    @property
    def target_variables(self) -> List[Variable]:
        return [self.collection.variable(t) for t in self.targets]

    @property
    def owned_variables(self) -> List[Variable]:
        return [c.variable for c in self.components]

    def global_variables(self, factors: Iterable[Factor]) -> List[Variable]:
        """Variables of *factors* owned by some other problem."""
        owned = {v.id for v in self.owned_variables}
        found: OrderedDict = OrderedDict()
        for factor in factors:
            for v in factor.variables:
                if v.id not in owned:
                    found.setdefault(v.id, v)
        return list(found.values())

    def factors(self) -> List[Factor]:
        """Factors of every component; nested problems must be solved."""
        result: List[Factor] = []
        for component in self.components:
            result.extend(make_factors(component))
        return result

    # ------------------------------------------------------------------ #
    #  Registration
    # ------------------------------------------------------------------ #

    def add(self, element: Element) -> None:
        """Register *element* and its unregistered dependencies.

        Dependencies are registered before their dependants.  A
        dependency created inside a chain function goes to the nearest
        problem of that chain; any other goes to the root problem.

        Raises
        ------
        ModelError
            If the dependencies of *element* form a cycle.
        """
        if element in self.collection:
            return
        graph = nx.DiGraph()
        graph.add_node(element)
        visited = set()
        stack = [element]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            for arg in current.args:
                if arg not in self.collection:
                    graph.add_edge(arg, current)
                    stack.append(arg)

        try:
            order = list(nx.topological_sort(graph))
        except nx.NetworkXUnfeasible as exc:
            raise ModelError(
                f"Element '{element.name}' depends on itself"
            ) from exc

        for current in order:
            # chain expansion may have registered it meanwhile
            if current in self.collection:
                continue
            home = self if current is element else self._home_for(current)
            home._register(current)

    def _home_for(self, element: Element) -> 'Problem':
        if element.owner is not None:
            problem: Optional[Problem] = self
            while problem is not None:
                if problem.chain is element.owner:
                    return problem
                problem = problem.parent
        return self.root

    def _register(self, element: Element) -> None:
        component = self.collection.add(element, self)
        self.components.append(component)
        if isinstance(component, ChainComponent):
            self._expand(component)
        else:
            component.generate_range()
        logger.debug(
            "Problem %d (depth %d): registered '%s' with %d values",
            self.id, self.depth, element.name, component.variable.num_states,
        )

    def _expand(self, component: ChainComponent) -> None:
        """Decide the outcome of the chain for every parent value."""
        chain = component.element
        parent_var = self.collection.variable(chain.parent)
        for value in parent_var.range:
            if not value.is_regular or self.depth + 1 > self.collection.max_depth:
                component.outcomes[value] = STAR
                continue
            result = chain.get(value.value)
            if result in self.collection:
                component.outcomes[value] = self._existing_outcome(chain, result)
            elif result.owner is chain:
                component.outcomes[value] = NestedProblem(
                    self.collection, [result], parent=self, chain=chain,
                )
            else:
                self._home_for(result).add(result)
                component.outcomes[value] = self.collection.variable(result)
        component.set_range()

    def _existing_outcome(self, chain: Chain, result: Element):
        existing = self.collection[result]
        if existing.variable is None:
            raise ModelError(
                f"Chain '{chain.name}' returns '{result.name}', "
                f"which depends on the chain itself"
            )
        problem = existing.problem
        if problem.chain is chain and problem.parent is self and problem.targets == [result]:
            return problem
        return existing.variable

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id}, depth={self.depth}, "
            f"targets={[t.name for t in self.targets]}, "
            f"components={len(self.components)})"
        )


class NestedProblem(Problem):
    """Problem solving the result element of one chain value."""

    def __init__(
        self,
        collection: ComponentCollection,
        targets: Iterable[Element],
        parent: Problem,
        chain: Chain,
    ) -> None:
        super().__init__(collection, targets, parent=parent, chain=chain)
