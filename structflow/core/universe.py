"""Universes: the containers model elements are created in."""

import itertools
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional


class Universe:
    """Context manager collecting the elements of one model.

    Elements created while a universe is active belong to it.  Outside
    any ``with`` block elements go to the process-wide default universe.

    Example:
        >>> with Universe() as u:
        ...     rain = Flip(0.2)
        ...     wet = If(rain, Flip(0.9), Flip(0.1))
        >>> rain.universe is u
        True
    """

    _active_context: Optional['Universe'] = None
    _default: Optional['Universe'] = None

    def __init__(self, name: Optional[str] = None):
        """Initialize an empty universe.

        Args:
            name: Optional label used in ``repr``.
        """
        self.name = name
        self.elements: List[Any] = []
        self.variables: Dict[str, Any] = {}
        self._parent_contexts: List[Optional['Universe']] = []
        self._owners: List[Any] = []
        self._name_ids = itertools.count()

    def __enter__(self) -> 'Universe':
        """Make this universe the active one.

        Returns:
            The universe instance.
        """
        self._parent_contexts.append(Universe._active_context)
        Universe._active_context = self
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Restore the previously active universe.

        Returns:
            False to propagate any exceptions.
        """
        Universe._active_context = self._parent_contexts.pop()
        return False

    def register(self, element: Any) -> None:
        """Add a newly created element to this universe.

        The element is named ``<type>_<n>`` unless it already has a name,
        and is marked as owned by the chain currently expanding, if any.

        Args:
            element: The element to register.

        Raises:
            ValueError: If another element already uses the name the
                element was given.
        """
        if element.name is None:
            prefix = type(element).__name__.lower()
            element.name = f"{prefix}_{next(self._name_ids)}"
            while element.name in self.variables:
                element.name = f"{prefix}_{next(self._name_ids)}"
        elif element.name in self.variables:
            raise ValueError(
                f"An element named '{element.name}' already exists in {self!r}"
            )
        element.owner = self.current_owner
        self.elements.append(element)
        self.variables[element.name] = element

    def fresh_name(self, base: str) -> str:
        """*base* if no element uses it, else *base* with the lowest free suffix."""
        if base not in self.variables:
            return base
        for n in itertools.count(1):
            candidate = f"{base}_{n}"
            if candidate not in self.variables:
                return candidate

    def get_element(self, name: str) -> Any:
        """Retrieve a named element from this universe.

        Raises:
            KeyError: If no element with the given name exists.
        """
        return self.variables[name]

    @property
    def conditioned_elements(self) -> List[Any]:
        """Elements carrying at least one condition, in creation order."""
        return [e for e in self.elements if e.is_conditioned]

    @property
    def constrained_elements(self) -> List[Any]:
        """Elements carrying at least one constraint, in creation order."""
        return [e for e in self.elements if e.is_constrained]

    @property
    def current_owner(self) -> Any:
        """The chain whose function is currently creating elements."""
        return self._owners[-1] if self._owners else None

    @contextmanager
    def owned_by(self, chain: Any) -> Iterator[None]:
        """Mark elements created inside the block as owned by *chain*.

        The universe is also the active one inside the block, so chain
        functions create their elements here wherever they are called.
        """
        previous = Universe._active_context
        Universe._active_context = self
        self._owners.append(chain)
        try:
            yield
        finally:
            self._owners.pop()
            Universe._active_context = previous

    @classmethod
    def get_active_context(cls) -> Optional['Universe']:
        """Get the universe of the innermost ``with`` block, if any."""
        return cls._active_context

    @classmethod
    def current(cls) -> 'Universe':
        """Get the universe new elements are created in."""
        if cls._active_context is not None:
            return cls._active_context
        if cls._default is None:
            cls._default = Universe("default")
        return cls._default

    @classmethod
    def reset_default(cls) -> 'Universe':
        """Replace the default universe with an empty one and return it."""
        cls._default = Universe("default")
        return cls._default

    def __repr__(self) -> str:
        label = f"'{self.name}'" if self.name else hex(id(self))
        return f"Universe({label}, elements={len(self.elements)})"
