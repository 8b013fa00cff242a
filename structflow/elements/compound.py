"""Compound elements: values computed from other elements."""

from __future__ import annotations

from typing import Any, Callable, Dict, List

from ..core.types import Element
from ..errors import ModelError


class Apply(Element):
    """Deterministic function of one or more argument elements.

    Parameters
    ----------
    fn : callable
        Called with one value per argument; must return a hashable value.
    *elements : Element
        The arguments, in call order.
    """

    def __init__(self, fn: Callable[..., Any], *elements: Element, name=None, universe=None):
        if not elements:
            raise ValueError("Apply needs at least one argument element")
        self.fn = fn
        self._args = list(elements)
        if universe is None:
            universe = elements[0].universe
        super().__init__(name=name, universe=universe)

    @property
    def args(self) -> List[Element]:
        return list(self._args)

    def compute(self, *values: Any) -> Any:
        return self.fn(*values)


class If(Apply):
    """``then`` when *test* is true, ``else_`` otherwise."""

    def __init__(self, test: Element, then: Element, else_: Element, name=None, universe=None):
        super().__init__(
            lambda t, a, b: a if t else b, test, then, else_,
            name=name, universe=universe,
        )

    def __repr__(self):
        return f"If({self.name!r})"


class Chain(Element):
    """Element defined by a parent value and a function to an element.

    ``fn(v)`` is called at most once per parent value *v*; the element it
    returns is cached.  Elements created inside ``fn`` are owned by this
    chain, which lets the solver place them in their own subproblem.

    Parameters
    ----------
    parent : Element
        The element whose value selects the result element.
    fn : callable
        Maps a parent value to an :class:`Element`.
    """

    def __init__(self, parent: Element, fn: Callable[[Any], Element], name=None, universe=None):
        self.parent = parent
        self.fn = fn
        self._cache: Dict[Any, Element] = {}
        if universe is None:
            universe = parent.universe
        super().__init__(name=name, universe=universe)

    @property
    def args(self) -> List[Element]:
        return [self.parent]

    def get(self, value: Any) -> Element:
        """The result element for parent value *value*.

        Raises:
            ModelError: If the chain function does not return an element.
        """
        if value not in self._cache:
            with self.universe.owned_by(self):
                result = self.fn(value)
            if not isinstance(result, Element):
                raise ModelError(
                    f"Chain '{self.name}' function returned "
                    f"{type(result).__name__} for {value!r}; expected an Element"
                )
            self._cache[value] = result
        return self._cache[value]

    @property
    def results(self) -> Dict[Any, Element]:
        """Result elements created so far, keyed by parent value."""
        return dict(self._cache)
