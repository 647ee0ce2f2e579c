"""
Projected differences, per-attribute regression, penalized regression and
multiple-testing correction.
"""

from .diff import (
    AttributeType,
    diff,
    projected_differences,
    difference_matrix,
    outcome_differences,
    resolve_attr_types
)
from .regression import fit_univariate, score_attributes
from .multitest import adjust_pvalues
from .penalized import fit_penalized, penalized_score

__all__ = [
    'AttributeType',
    'diff',
    'projected_differences',
    'difference_matrix',
    'outcome_differences',
    'resolve_attr_types',
    'fit_univariate',
    'score_attributes',
    'adjust_pvalues',
    'fit_penalized',
    'penalized_score'
]

# Convenience alias
adjust = adjust_pvalues
