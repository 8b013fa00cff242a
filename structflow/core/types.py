"""Core types for StructFlow models."""

from __future__ import annotations

import itertools
import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from structflow.core.universe import Universe
from structflow.errors import IrregularValueError


# ---------------------------------------------------------------------------
# Range values
# ---------------------------------------------------------------------------

class Extended(ABC):
    """An entry of a variable's range: a regular value or ``*``."""

    @property
    @abstractmethod
    def is_regular(self) -> bool:
        pass

    @property
    @abstractmethod
    def value(self) -> Any:
        pass


@dataclass(frozen=True, eq=False)
class Regular(Extended):
    """A range entry holding an ordinary model value.

    Entries compare by value type as well as value, so ``Regular(True)``
    and ``Regular(1)`` stay distinct range entries.
    """

    _value: Any

    @property
    def is_regular(self) -> bool:
        return True

    @property
    def value(self) -> Any:
        return self._value

    def _key(self):
        return (type(self._value), self._value)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Regular):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"Regular({self._value!r})"


class _Star(Extended):
    """The irregular range entry.

    Stands for every outcome the range does not enumerate: the tail of a
    truncated support or the values of a chain that was not expanded.
    """

    _instance: Optional['_Star'] = None

    def __new__(cls) -> '_Star':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def is_regular(self) -> bool:
        return False

    @property
    def value(self) -> Any:
        raise IrregularValueError("The irregular value '*' has no value")

    def __repr__(self) -> str:
        return "*"


STAR = _Star()


def extend(value: Any) -> Extended:
    """Wrap *value* as a range entry unless it already is one."""
    if isinstance(value, Extended):
        return value
    return Regular(value)


# ---------------------------------------------------------------------------
# Variables
# ---------------------------------------------------------------------------

_variable_ids = itertools.count()


@dataclass(eq=False)
class Variable:
    """A discrete factor variable with an ordered, finite range.

    Variables compare by identity: two variables with equal ranges are
    still different dimensions of a factor.
    """

    name: str
    range: List[Extended]
    id: int = field(default_factory=lambda: next(_variable_ids))

    def __post_init__(self) -> None:
        self.range = [extend(v) for v in self.range]
        if not self.range:
            raise ValueError(f"Variable '{self.name}' has an empty range")
        self._positions = {v: i for i, v in enumerate(self.range)}
        if len(self._positions) != len(self.range):
            raise ValueError(f"Variable '{self.name}' has repeated range values")

    @property
    def num_states(self) -> int:
        return len(self.range)

    @property
    def regular_values(self) -> List[Any]:
        return [v.value for v in self.range if v.is_regular]

    def index_of(self, value: Any) -> int:
        """Position of *value* (raw or extended) in the range.

        Raises:
            ValueError: If the value is not in the range.
        """
        key = extend(value)
        if key not in self._positions:
            raise ValueError(f"{key!r} is not in the range of '{self.name}'")
        return self._positions[key]

    def __repr__(self) -> str:
        return f"Variable({self.name!r}, range={self.range})"


# ---------------------------------------------------------------------------
# Element ABC
# ---------------------------------------------------------------------------

class Element(ABC):
    """Abstract base class for model elements (random variables).

    An element belongs to exactly one :class:`Universe` and may carry
    evidence: hard conditions (predicates its value must satisfy) and
    soft constraints (functions weighting its values).

    Operator overloads build deterministic :class:`Apply` elements:
    - __add__: Sum of the two values
    - __mul__: Product of the two values
    - __and__ / __or__: Logical conjunction / disjunction
    """

    def __init__(self, name: Optional[str] = None, universe: Optional[Universe] = None):
        self.name = name
        self.owner: Any = None
        self.universe = universe if universe is not None else Universe.current()
        self.conditions: List[Callable[[Any], bool]] = []
        self.constraints: List[Callable[[Any], float]] = []
        self.observation: Any = None
        self._observed = False
        self.universe.register(self)

    @property
    @abstractmethod
    def args(self) -> List['Element']:
        """Elements this element's value directly depends on."""
        pass

    # ----- evidence -------------------------------------------------------

    def observe(self, value: Any) -> None:
        """Condition the element on having exactly *value*."""
        self.remove_conditions()
        self.add_condition(lambda v: v == value)
        self.observation = value
        self._observed = True

    def unobserve(self) -> None:
        """Remove the observation (and any other condition)."""
        self.remove_conditions()

    def add_condition(self, predicate: Callable[[Any], bool]) -> None:
        self.conditions.append(predicate)

    def remove_conditions(self) -> None:
        self.conditions = []
        self.observation = None
        self._observed = False

    def add_constraint(self, weight: Callable[[Any], float]) -> None:
        """Attach a soft constraint; *weight* maps a value to a factor >= 0."""
        self.constraints.append(weight)

    def remove_constraints(self) -> None:
        self.constraints = []

    @property
    def is_conditioned(self) -> bool:
        return bool(self.conditions)

    @property
    def is_constrained(self) -> bool:
        return bool(self.constraints)

    @property
    def is_observed(self) -> bool:
        return self._observed

    def condition_weight(self, value: Extended) -> float:
        """1.0 if every condition holds for *value*, else 0.0.

        The irregular value never satisfies a condition.
        """
        if not self.conditions:
            return 1.0
        if not value.is_regular:
            return 0.0
        return 1.0 if all(c(value.value) for c in self.conditions) else 0.0

    def constraint_weight(self, value: Extended) -> float:
        """Product of the constraint weights of *value* (1.0 for ``*``)."""
        if not value.is_regular:
            return 1.0
        weight = 1.0
        for c in self.constraints:
            weight *= float(c(value.value))
        return weight

    # ----- composition ----------------------------------------------------

    def _combine(self, other: Any, fn: Callable[[Any, Any], Any]) -> 'Element':
        from structflow.elements.atomic import Constant
        from structflow.elements.compound import Apply

        if not isinstance(other, Element):
            other = Constant(other, universe=self.universe)
        return Apply(fn, self, other, universe=self.universe)

    def __add__(self, other: Any) -> 'Element':
        return self._combine(other, operator.add)

    def __mul__(self, other: Any) -> 'Element':
        return self._combine(other, operator.mul)

    def __and__(self, other: Any) -> 'Element':
        return self._combine(other, lambda a, b: bool(a and b))

    def __or__(self, other: Any) -> 'Element':
        return self._combine(other, lambda a, b: bool(a or b))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
