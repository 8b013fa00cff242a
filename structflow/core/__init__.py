"""Core module for StructFlow.

This module contains the universe container, range values, variables and
the element base class shared by the rest of the package.
"""

from .types import STAR, Element, Extended, Regular, Variable
from .universe import Universe

__all__ = ["STAR", "Element", "Extended", "Regular", "Variable", "Universe"]
