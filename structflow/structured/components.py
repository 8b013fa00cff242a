"""Per-run registry mapping model elements to their solver components."""

from __future__ import annotations

import itertools
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

from structflow.config import DEFAULT_MAX_DEPTH
from structflow.core.types import STAR, Element, Extended, Regular, Variable
from structflow.elements.atomic import AtomicElement
from structflow.elements.compound import Apply, Chain


class ProblemComponent:
    """The solver-side view of one element.

    Holds the problem the element was registered in and, once its range
    is generated, the factor :class:`Variable` for it.
    """

    def __init__(self, collection: 'ComponentCollection', element: Element, problem: Any):
        self.collection = collection
        self.element = element
        self.problem = problem
        self.variable: Optional[Variable] = None
        # Apply only: argument index tuple -> result, over the distinct
        # argument variables
        self.arg_variables: List[Variable] = []
        self.mapping: Dict[Tuple[int, ...], Extended] = {}

    def generate_range(self) -> Variable:
        """Enumerate the element's range and create its variable.

        Every argument must already be registered.
        """
        element = self.element
        if isinstance(element, AtomicElement):
            values = [x for x, _ in element.outcomes()]
        elif isinstance(element, Apply):
            values = self._apply_range(element)
        else:
            raise TypeError(f"No range generation for {type(element).__name__}")
        self.variable = Variable(element.name, _unique(values))
        return self.variable

    def _apply_range(self, element: Apply) -> List[Extended]:
        arg_vars = [self.collection.variable(a) for a in element.args]
        distinct = list(OrderedDict((v.id, v) for v in arg_vars).values())
        positions = [next(i for i, d in enumerate(distinct) if d is v) for v in arg_vars]
        values: List[Extended] = []
        for index in itertools.product(*(range(v.num_states) for v in distinct)):
            args = [distinct[p].range[index[p]] for p in positions]
            if all(a.is_regular for a in args):
                result: Extended = Regular(element.compute(*(a.value for a in args)))
            else:
                result = STAR
            self.mapping[index] = result
            values.append(result)
        self.arg_variables = distinct
        return values

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.element.name!r})"


class ChainComponent(ProblemComponent):
    """Component of a :class:`Chain`.

    ``outcomes`` maps each parent range value to what the chain becomes
    for it: a nested problem solving the result element, the variable of
    a result element registered elsewhere, or ``STAR``.
    """

    def __init__(self, collection, element, problem):
        super().__init__(collection, element, problem)
        self.outcomes: Dict[Extended, Any] = OrderedDict()

    @property
    def subproblems(self) -> List[Any]:
        return [
            o for o in self.outcomes.values()
            if o is not STAR and not isinstance(o, Variable)
        ]

    def set_range(self) -> Variable:
        """Create the variable from the union of the outcome ranges."""
        values: List[Extended] = []
        for outcome in self.outcomes.values():
            if outcome is STAR:
                values.append(STAR)
            elif isinstance(outcome, Variable):
                values.extend(outcome.range)
            else:
                values.extend(outcome.target_variables[0].range)
        self.variable = Variable(self.element.name, _unique(values))
        return self.variable


class ComponentCollection:
    """Registry from elements to components, scoped to one algorithm run.

    Parameters
    ----------
    max_depth : int
        Deepest nesting of problems created by chain expansion.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.max_depth = max_depth
        self.components: Dict[Element, ProblemComponent] = OrderedDict()
        self._problem_ids = itertools.count()

    def contains(self, element: Element) -> bool:
        return element in self.components

    def __contains__(self, element: Element) -> bool:
        return self.contains(element)

    def __getitem__(self, element: Element) -> ProblemComponent:
        try:
            return self.components[element]
        except KeyError:
            raise KeyError(
                f"Element '{element.name}' has no component in this collection"
            ) from None

    def __len__(self) -> int:
        return len(self.components)

    def variable(self, element: Element) -> Variable:
        """The factor variable of a registered element."""
        component = self[element]
        if component.variable is None:
            raise KeyError(f"Element '{element.name}' has no range yet")
        return component.variable

    def add(self, element: Element, problem: Any) -> ProblemComponent:
        """Create and register the component of *element* in *problem*.

        Raises:
            ValueError: If the element is already registered.
        """
        if element in self.components:
            raise ValueError(f"Element '{element.name}' is already registered")
        cls = ChainComponent if isinstance(element, Chain) else ProblemComponent
        component = cls(self, element, problem)
        self.components[element] = component
        return component

    def next_problem_id(self) -> int:
        return next(self._problem_ids)


def _unique(values: List[Extended]) -> List[Extended]:
    """Distinct values in first-seen order."""
    return list(OrderedDict.fromkeys(values))
