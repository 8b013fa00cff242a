"""Exception hierarchy for StructFlow.

Every error raised on purpose by the package derives from
:class:`StructFlowError`.  Each class also inherits from the builtin
exception a caller would naturally catch, so ``except ValueError`` keeps
working for argument problems.
"""


class StructFlowError(Exception):
    """Base class for all StructFlow errors."""


class ConfigurationError(StructFlowError, ValueError):
    """Invalid algorithm configuration (targets, iteration counts)."""


class ModelError(StructFlowError, ValueError):
    """The model cannot be turned into a problem tree."""


class IrregularValueError(StructFlowError, ValueError):
    """The value of an irregular (``*``) range entry was requested."""


class UnreachableTargetError(StructFlowError, LookupError):
    """A target variable is not a dimension of the joint factor."""


class DegenerateNormalizationError(StructFlowError, ArithmeticError):
    """A marginal has no positive, finite mass to normalize by."""


class AlgorithmActiveError(StructFlowError, RuntimeError):
    """The algorithm was started while already active."""


class AlgorithmInactiveError(StructFlowError, RuntimeError):
    """A query was made against an algorithm that is not active."""


class NotATargetError(StructFlowError, LookupError):
    """A query was made for an element that is not a query target."""
