"""Inference algorithms for StructFlow."""

from structflow.algorithm.base import Algorithm, OneTimeProbQuery
from structflow.algorithm.structured_bp import (
    StructuredBP,
    probability,
    validate_targets,
)

__all__ = [
    "Algorithm",
    "OneTimeProbQuery",
    "StructuredBP",
    "probability",
    "validate_targets",
]
