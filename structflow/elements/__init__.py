"""Model elements for StructFlow.

Atomic elements carry their own distribution; compound elements derive
their value from other elements.
"""

from .atomic import AtomicElement, Binomial, Constant, Flip, Poisson, Select
from .compound import Apply, Chain, If

__all__ = [
    "AtomicElement",
    "Constant",
    "Flip",
    "Select",
    "Binomial",
    "Poisson",
    "Apply",
    "If",
    "Chain",
]
