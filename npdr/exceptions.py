"""
Error taxonomy for nearest-neighbor projected-distance regression.

Input problems fail fast before anything is computed. Problems confined to a
single attribute or a single sample are recorded in the results instead of
aborting the scoring pass.
"""


class NPDRError(Exception):
    """Base class for all package errors."""


class InputError(NPDRError, ValueError):
    """Malformed attribute matrix, outcome or configuration."""


class DegenerateAttributeError(NPDRError):
    """
    A single attribute's regression could not be computed.

    Raised inside one univariate fit (zero-variance difference vector, too
    few pairs, singular design) and caught by the scorer, which records the
    attribute as degenerate and moves on.
    """

    def __init__(self, attribute, reason):
        self.attribute = attribute
        self.reason = reason
        super().__init__(f"{attribute}: {reason}")


class NeighborhoodEmptyWarning(UserWarning):
    """One or more reference samples have no neighbors under the policy."""


class ConvergenceError(NPDRError, RuntimeError):
    """The penalized fit did not converge."""
