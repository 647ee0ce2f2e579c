"""
Input validation and preparation of attribute matrices and outcomes.
"""

from .attributes import (
    validate_attributes,
    validate_outcome,
    validate_covariates,
    infer_outcome_type
)
from .preprocessing import range_scale, encode_categories, drop_attributes

__all__ = [
    'validate_attributes',
    'validate_outcome',
    'validate_covariates',
    'infer_outcome_type',
    'range_scale',
    'encode_categories',
    'drop_attributes'
]
