"""
Unordered unique neighbor pairs.

A neighbor relation typically holds both (i, j) and (j, i) when two samples
are in each other's neighborhoods. Deduplication canonicalizes every pair to
(min, max) and keeps the first occurrence of each canonical key with a
hash-based duplicate check, linear in the number of pairs.
"""

import logging

import numpy as np
import pandas as pd

from .neighborhood import NeighborRelation

logger = logging.getLogger(__name__)


def canonical_pairs(pairs: np.ndarray) -> np.ndarray:
    """Sort the two indices of every pair ascending."""
    return np.sort(np.asarray(pairs, dtype=int).reshape(-1, 2), axis=1)


def dedupe(relation: NeighborRelation) -> NeighborRelation:
    """
    Collapse a neighbor relation to its set of unordered pairs.

    Args:
        relation: Neighbor relation, possibly holding both orientations of
            a pair and repeated pairs.

    Returns:
        NeighborRelation with ``unique=True``: one canonical (i < j) pair
        per unordered pair, in first-seen order. Sample bookkeeping
        (``n_samples``, ``empty_samples``) is carried over.

    Example:
        >>> relation = NeighborRelation(np.array([[2, 5], [5, 2], [1, 3]]), 6)
        >>> dedupe(relation).pairs
        array([[2, 5],
               [1, 3]])
    """
    canonical = pd.DataFrame(canonical_pairs(relation.pairs), columns=["lo", "hi"])
    keep = ~canonical.duplicated(keep="first").to_numpy()
    unique_pairs = canonical.to_numpy()[keep]

    logger.info("Deduplicated %d neighbor pairs to %d unique pairs",
                relation.n_pairs, len(unique_pairs))

    return NeighborRelation(
        pairs=unique_pairs,
        n_samples=relation.n_samples,
        empty_samples=list(relation.empty_samples),
        unique=True,
    )
