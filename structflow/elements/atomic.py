"""Atomic (parameter-only) elements."""

from typing import Any, List, Optional, Tuple

import numpy as np
from scipy import stats

from ..config import DEFAULT_POISSON_TAIL
from ..core.types import STAR, Element, Extended, Regular


class AtomicElement(Element):
    """An element whose distribution does not depend on other elements.

    Subclasses implement :meth:`outcomes`, the enumerated support with
    the probability of each entry.
    """

    @property
    def args(self) -> List[Element]:
        return []

    def outcomes(self) -> List[Tuple[Extended, float]]:
        raise NotImplementedError


class Constant(AtomicElement):
    """Element that always takes *value*."""

    def __init__(self, value: Any, name=None, universe=None):
        self.value = value
        super().__init__(name=name, universe=universe)

    def outcomes(self):
        return [(Regular(self.value), 1.0)]

    def __repr__(self):
        return f"Constant({self.value!r})"


class Flip(AtomicElement):
    """Boolean element that is True with probability *p*.

    Parameters
    ----------
    p : float
        Probability of True, must be in [0, 1].
    """

    def __init__(self, p=0.5, name=None, universe=None):
        if not 0 <= p <= 1:
            raise ValueError(f"p must be in [0, 1], got {p}")
        self.p = float(p)
        super().__init__(name=name, universe=universe)

    def outcomes(self):
        probs = stats.bernoulli(self.p).pmf([0, 1])
        return [(Regular(False), float(probs[0])), (Regular(True), float(probs[1]))]

    def __repr__(self):
        return f"Flip(p={self.p})"


class Select(AtomicElement):
    """Element choosing among *values* with the given probabilities.

    Parameters
    ----------
    probs : array-like
        Probabilities for each value. Must be non-negative and sum to 1.
    values : list
        The values, one per probability, in range order.  Defaults to
        the indices ``0 .. k-1``.
    """

    def __init__(self, probs, values=None, name=None, universe=None):
        probs = np.asarray(probs, dtype=float)
        if np.any(probs < 0):
            raise ValueError("All probabilities must be non-negative.")
        if not np.isclose(probs.sum(), 1.0):
            raise ValueError(
                f"Probabilities must sum to 1, got {probs.sum()}"
            )
        values = list(values) if values is not None else list(range(len(probs)))
        if len(values) != len(probs):
            raise ValueError("Number of values must match number of probabilities")
        if len(set(values)) != len(values):
            raise ValueError("Select values must be distinct")
        self.probs = probs
        self.values = values
        super().__init__(name=name, universe=universe)

    def outcomes(self):
        return [(Regular(v), float(p)) for v, p in zip(self.values, self.probs)]

    def __repr__(self):
        return f"Select(probs={self.probs}, values={self.values})"


class Binomial(AtomicElement):
    """Number of successes in *n* independent trials of probability *p*."""

    def __init__(self, n, p, name=None, universe=None):
        if int(n) != n or n < 0:
            raise ValueError(f"n must be a non-negative integer, got {n}")
        if not 0 <= p <= 1:
            raise ValueError(f"p must be in [0, 1], got {p}")
        self.n = int(n)
        self.p = float(p)
        super().__init__(name=name, universe=universe)

    def outcomes(self):
        ks = np.arange(self.n + 1)
        probs = stats.binom(self.n, self.p).pmf(ks)
        return [(Regular(int(k)), float(q)) for k, q in zip(ks, probs)]

    def __repr__(self):
        return f"Binomial(n={self.n}, p={self.p})"


class Poisson(AtomicElement):
    """Poisson count element with a truncated range.

    Values ``0 .. cutoff`` are enumerated; the remaining tail mass is
    assigned to the irregular value ``*``.

    Parameters
    ----------
    lambda_ : float
        Rate parameter (mean), must be > 0.
    cutoff : int, optional
        Largest enumerated count.  Defaults to the quantile leaving
        ``DEFAULT_POISSON_TAIL`` of the mass in the tail.
    """

    def __init__(self, lambda_=1.0, cutoff: Optional[int] = None, name=None, universe=None):
        if lambda_ <= 0:
            raise ValueError(f"lambda_ must be > 0, got {lambda_}")
        self.lambda_ = float(lambda_)
        self._dist = stats.poisson(self.lambda_)
        if cutoff is None:
            cutoff = int(self._dist.ppf(1.0 - DEFAULT_POISSON_TAIL))
        if cutoff < 0:
            raise ValueError(f"cutoff must be >= 0, got {cutoff}")
        self.cutoff = int(cutoff)
        super().__init__(name=name, universe=universe)

    def outcomes(self):
        ks = np.arange(self.cutoff + 1)
        probs = self._dist.pmf(ks)
        result = [(Regular(int(k)), float(q)) for k, q in zip(ks, probs)]
        result.append((STAR, float(self._dist.sf(self.cutoff))))
        return result

    def __repr__(self):
        return f"Poisson(lambda_={self.lambda_}, cutoff={self.cutoff})"
