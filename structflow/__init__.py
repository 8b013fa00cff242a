"""StructFlow: structured belief propagation for discrete models.

This package provides model elements created inside a :class:`Universe`,
dense factors over their ranges, a decomposition of inference problems
into a tree of nested problems, and :class:`StructuredBP`, which solves
that tree with belief propagation and answers marginal queries.
"""

import logging

try:
    from structflow._version import version as __version__
except ImportError:
    __version__ = "0.1.0"

from .core.types import STAR, Element, Variable
from .core.universe import Universe
from .elements.atomic import Binomial, Constant, Flip, Poisson, Select
from .elements.compound import Apply, Chain, If
from .algorithm.structured_bp import StructuredBP, probability

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "STAR",
    "Element",
    "Variable",
    "Universe",
    "Constant",
    "Flip",
    "Select",
    "Binomial",
    "Poisson",
    "Apply",
    "If",
    "Chain",
    "StructuredBP",
    "probability",
]
