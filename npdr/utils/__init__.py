"""
Utility functions for NPDR result tables.
"""

from .helpers import rank_statistics, selection_set, join_scores, rank_agreement

__all__ = [
    'rank_statistics',
    'selection_set',
    'join_scores',
    'rank_agreement'
]
