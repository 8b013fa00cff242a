"""Dense factors over discrete variables.

Provides:

* :class:`SumProductSemiring` – the (+, *) semiring factors are combined
  and marginalized under; :data:`SUM_PRODUCT` is its shared instance.
* :class:`Factor` – a table over the Cartesian product of the ranges of
  an ordered list of :class:`~structflow.core.types.Variable` objects,
  with product, marginalization, reduction and entry-wise folds.

Entries are stored row-major: ``values[i, j, ...]`` is the entry for the
``i``-th range value of the first variable, the ``j``-th of the second,
and so on.
"""

from __future__ import annotations

import functools
import itertools
from typing import Any, Callable, List, Optional, Sequence, Tuple

import numpy as np

from structflow.core.types import Variable


# ------------------------------------------------------------------ #
#  Semiring
# ------------------------------------------------------------------ #

class SumProductSemiring:
    """Ordinary arithmetic: combine with ``*``, marginalize with ``+``."""

    zero = 0.0
    one = 1.0

    def product(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return a * b

    def sum(self, values: np.ndarray, axes: Tuple[int, ...]) -> np.ndarray:
        if not axes:
            return values
        return values.sum(axis=axes)

    def __repr__(self) -> str:
        return "SumProductSemiring()"


SUM_PRODUCT = SumProductSemiring()


# ------------------------------------------------------------------ #
#  Factor
# ------------------------------------------------------------------ #

class Factor:
    """A discrete factor (potential function) over a set of variables.

    Parameters
    ----------
    variables : list of Variable
        Distinct variables indexing the axes of *values*.
    values : numpy.ndarray, optional
        An N-dimensional array whose shape equals the variables' range
        sizes.  Defaults to all zeros.
    """

    def __init__(
        self,
        variables: Sequence[Variable],
        values: Optional[np.ndarray] = None,
    ) -> None:
        variables = list(variables)
        if len({v.id for v in variables}) != len(variables):
            raise ValueError(
                f"Factor variables must be distinct, got {variables}"
            )
        expected = tuple(v.num_states for v in variables)
        if values is None:
            values = np.zeros(expected)
        values = np.asarray(values, dtype=np.float64)
        if values.shape != expected:
            raise ValueError(
                f"Factor shape {values.shape} does not match "
                f"cardinalities {expected}"
            )
        self.variables: List[Variable] = variables
        self.values: np.ndarray = values

    # ----- factory helpers ------------------------------------------------

    @classmethod
    def unit(cls, semiring: SumProductSemiring = SUM_PRODUCT) -> "Factor":
        """The zero-variable factor holding the semiring's ``one``."""
        return cls([], np.array(semiring.one))

    # ----- core operations ------------------------------------------------

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.values.shape

    def contains(self, variable: Variable) -> bool:
        return any(v is variable for v in self.variables)

    def product(
        self,
        other: "Factor",
        semiring: SumProductSemiring = SUM_PRODUCT,
    ) -> "Factor":
        """Point-wise product of two factors.

        Shared variables are aligned; non-shared variables are broadcast.
        The result has this factor's variables first, then the new ones
        from *other*.
        """
        combined: List[Variable] = list(self.variables)
        for v in other.variables:
            if not self.contains(v):
                combined.append(v)

        a = self._broadcast_into(combined)
        b = other._broadcast_into(combined)
        return Factor(combined, semiring.product(a, b))

    def marginalize_to(
        self,
        semiring: SumProductSemiring,
        *variables: Variable,
    ) -> "Factor":
        """Sum out every variable except *variables*.

        The result's axes follow the order of *variables*.

        Raises
        ------
        ValueError
            If one of *variables* is not in this factor.
        """
        for v in variables:
            if not self.contains(v):
                raise ValueError(f"Variable '{v.name}' not in factor")
        keep = [self._axis(v) for v in variables]
        drop = tuple(i for i in range(len(self.variables)) if i not in keep)
        summed = semiring.sum(self.values, drop)
        # axes left after summing, in original order
        remaining = sorted(keep)
        order = [remaining.index(k) for k in keep]
        if not order:
            return Factor([], np.asarray(summed))
        return Factor(list(variables), np.transpose(summed, order))

    def sum_over(
        self,
        variable: Variable,
        semiring: SumProductSemiring = SUM_PRODUCT,
    ) -> "Factor":
        """Sum out (marginalize) *variable* from this factor."""
        if not self.contains(variable):
            raise ValueError(f"Variable '{variable.name}' not in factor")
        rest = [v for v in self.variables if v is not variable]
        return self.marginalize_to(semiring, *rest)

    def reduce(self, variable: Variable, index: int) -> "Factor":
        """Condition on *variable* = its *index*-th range value.

        Returns a new :class:`Factor` without *variable*.
        """
        if not self.contains(variable):
            raise ValueError(f"Variable '{variable.name}' not in factor")
        axis = self._axis(variable)
        slices = [slice(None)] * len(self.variables)
        slices[axis] = index
        rest = [v for v in self.variables if v is not variable]
        return Factor(rest, np.asarray(self.values[tuple(slices)]))

    def fold(self, seed: Any, fn: Callable[[Any, float], Any]) -> Any:
        """Left fold of *fn* over the entries in row-major order."""
        return functools.reduce(fn, (float(x) for x in self.values.flat), seed)

    def map(self, fn: Callable[[float], float]) -> "Factor":
        """A factor over the same variables with *fn* applied to each entry."""
        mapped = np.array([fn(float(x)) for x in self.values.flat], dtype=np.float64)
        return Factor(list(self.variables), mapped.reshape(self.values.shape))

    def indices(self) -> List[Tuple[int, ...]]:
        """All index tuples in row-major order."""
        return list(itertools.product(*(range(n) for n in self.values.shape)))

    def get(self, index: Sequence[int]) -> float:
        return float(self.values[tuple(index)])

    def aligned(self, variables: Sequence[Variable]) -> np.ndarray:
        """Values broadcast to the full shape of *variables*.

        *variables* must include every variable of this factor.
        """
        variables = list(variables)
        for v in self.variables:
            if not any(v is t for t in variables):
                raise ValueError(f"Variable '{v.name}' not in target order")
        shape = tuple(v.num_states for v in variables)
        return np.broadcast_to(self._broadcast_into(variables), shape)

    # ----- helpers --------------------------------------------------------

    def _axis(self, variable: Variable) -> int:
        for i, v in enumerate(self.variables):
            if v is variable:
                return i
        raise ValueError(f"Variable '{variable.name}' not in factor")

    def _broadcast_into(self, target_vars: List[Variable]) -> np.ndarray:
        """Reshape values so axes align with *target_vars* (size-1 for missing)."""
        present = [tv for tv in target_vars if self.contains(tv)]
        src_axes = [self._axis(tv) for tv in present]
        transposed = np.transpose(self.values, src_axes) if src_axes else self.values
        shape = [tv.num_states if self.contains(tv) else 1 for tv in target_vars]
        return transposed.reshape(shape)

    def __repr__(self) -> str:
        names = [v.name for v in self.variables]
        return f"Factor(variables={names}, shape={self.values.shape})"
