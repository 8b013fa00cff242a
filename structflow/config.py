"""Default settings for StructFlow algorithms.

Every value here can be overridden per call through the keyword
argument of the same name (lower-cased, without the ``DEFAULT_`` prefix).
"""

# Belief-propagation rounds run inside each problem.
DEFAULT_ITERATIONS = 100

# Deepest problem nesting created by chain expansion.  Chain values that
# would need a deeper problem map to the irregular value ``*``.
DEFAULT_MAX_DEPTH = 32

# Tail mass left outside the explicit range of a Poisson element when no
# cutoff is given.
DEFAULT_POISSON_TAIL = 1e-6
