"""
NPDR: Nearest-neighbor Projected-Distance Regression

A Python package for feature selection that regresses outcome differences on
attribute differences over nearest-neighbor pairs of samples.
"""

__version__ = "0.1.0"
__author__ = "NPDR Development Team"

# Core module imports
from .config import NPDRConfig
from .exceptions import (
    NPDRError,
    InputError,
    DegenerateAttributeError,
    NeighborhoodEmptyWarning,
    ConvergenceError
)
from .neighbors import compute_distances, build_neighbors, dedupe, surf_k
from .stats import AttributeType, adjust_pvalues, score_attributes, fit_penalized
from .selector import NPDRSelector, PenalizedNPDRSelector, npdr
from .utils import join_scores, selection_set

# Convenience aliases
adjust = adjust_pvalues
select = npdr

__all__ = [
    'NPDRConfig',
    'NPDRError',
    'InputError',
    'DegenerateAttributeError',
    'NeighborhoodEmptyWarning',
    'ConvergenceError',
    'compute_distances',
    'build_neighbors',
    'dedupe',
    'surf_k',
    'AttributeType',
    'adjust_pvalues',
    'adjust',
    'score_attributes',
    'fit_penalized',
    'NPDRSelector',
    'PenalizedNPDRSelector',
    'npdr',
    'select',
    'join_scores',
    'selection_set'
]
