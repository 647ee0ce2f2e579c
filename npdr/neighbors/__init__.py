"""
Neighbor search: distance matrices, neighborhood policies and pair sets.
"""

from .distance import compute_distances
from .neighborhood import NeighborRelation, build_neighbors, surf_k
from .pairs import canonical_pairs, dedupe

__all__ = [
    'compute_distances',
    'NeighborRelation',
    'build_neighbors',
    'surf_k',
    'canonical_pairs',
    'dedupe'
]
