"""
Nearest-neighbor relations from a distance matrix.

Three neighborhood policies are supported:

- fixed-k: the k nearest other samples of every reference sample. When k
  is not given it is derived with :func:`surf_k`, the expected size of an
  adaptive neighborhood, so fixed-k and adaptive runs are comparable.
- multisurf: sample i keeps every j with
  ``d(i, j) < mean_i - sd_frac * std_i``, where mean and standard
  deviation are taken over row i without the self distance.
- surf: one global radius ``mean - sd_frac * std`` over all pairwise
  distances.

The relation is a set of ordered (reference, neighbor) pairs and is
asymmetric in general; see :mod:`npdr.neighbors.pairs` for the unordered
view.

Example:
    >>> from npdr.neighbors import compute_distances, build_neighbors
    >>>
    >>> dist = compute_distances(data, metric="manhattan")
    >>> relation = build_neighbors(dist, nbd_method="multisurf", sd_frac=0.5)
    >>> print(relation.n_pairs, relation.effective_n)
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging
import math
import warnings

import numpy as np
import pandas as pd
from scipy.special import erf

from ..config import NBD_METHODS
from ..exceptions import InputError, NeighborhoodEmptyWarning

# Configure module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class NeighborRelation:
    """
    Neighbor pairs over samples ``0..n_samples-1``.

    Attributes:
        pairs: Integer array of shape (n_pairs, 2); column 0 is the
            reference sample, column 1 the neighbor. For a unique pair set
            the orientation is arbitrary.
        n_samples: Number of samples the relation was built over.
        empty_samples: Reference samples that found no neighbor.
        unique: True once the relation has been deduplicated.
    """

    pairs: np.ndarray
    n_samples: int
    empty_samples: List[int] = field(default_factory=list)
    unique: bool = False

    @property
    def n_pairs(self) -> int:
        return int(self.pairs.shape[0])

    @property
    def effective_n(self) -> int:
        """Reference samples contributing at least one pair."""
        return self.n_samples - len(self.empty_samples)

    def neighbor_counts(self) -> np.ndarray:
        """Number of pairs each sample takes part in as reference."""
        return np.bincount(self.pairs[:, 0], minlength=self.n_samples)

    def as_frame(self) -> pd.DataFrame:
        """The pairs as a DataFrame with columns ``ref_idx`` and ``nbr_idx``."""
        return pd.DataFrame(self.pairs, columns=["ref_idx", "nbr_idx"])


def surf_k(n_samples: int, sd_frac: float = 0.5) -> int:
    """
    Expected number of neighbors of the adaptive radius policy.

    Under normally distributed distances the fraction of samples closer
    than ``mean - sd_frac * std`` is ``(1 - erf(sd_frac / sqrt(2))) / 2``.

    Args:
        n_samples: Number of samples.
        sd_frac: Density fraction (positive).

    Returns:
        ``floor((n_samples - 1) * (1 - erf(sd_frac / sqrt(2))) / 2)``

    Example:
        >>> surf_k(100, 0.5)
        30
    """
    if n_samples < 2:
        raise InputError(f"At least 2 samples are required, got {n_samples}")
    if sd_frac <= 0:
        raise InputError(f"sd_frac must be positive, got {sd_frac}")
    return int(math.floor((n_samples - 1) * (1 - erf(sd_frac / math.sqrt(2))) / 2))


def _resolve_k(n_samples: int, k: Optional[int], sd_frac: float) -> int:
    if k is None:
        k = surf_k(n_samples, sd_frac)
        logger.info("Derived k=%d from n=%d and sd_frac=%.3f", k, n_samples, sd_frac)
        if k < 1:
            logger.warning("Derived k=%d is below 1; using k=1", k)
            k = 1
    if k < 1:
        raise InputError(f"k must be a positive integer, got {k}")
    if k >= n_samples:
        raise InputError(
            f"k ({k}) must be smaller than the number of samples ({n_samples})"
        )
    return k


def _check_distance_matrix(distance_matrix) -> np.ndarray:
    distances = np.asarray(distance_matrix, dtype=float)
    if distances.ndim != 2 or distances.shape[0] != distances.shape[1]:
        raise InputError("Distance matrix must be square")
    if distances.shape[0] < 2:
        raise InputError("Distance matrix must cover at least 2 samples")
    if not np.isfinite(distances).all() or (distances < 0).any():
        raise InputError("Distance matrix must be finite and non-negative")
    if not np.allclose(distances, distances.T):
        raise InputError("Distance matrix must be symmetric")
    return distances


def _global_radius(distances: np.ndarray, sd_frac: float) -> float:
    upper = distances[np.triu_indices(distances.shape[0], k=1)]
    std = upper.std(ddof=1) if upper.size > 1 else 0.0
    return upper.mean() - sd_frac * std


def _adaptive_pairs(
    distances: np.ndarray,
    nbd_method: str,
    sd_frac: float
) -> np.ndarray:
    n_samples = distances.shape[0]
    off_diag = ~np.eye(n_samples, dtype=bool)

    if nbd_method == "multisurf":
        rows = distances[off_diag].reshape(n_samples, n_samples - 1)
        means = rows.mean(axis=1)
        stds = rows.std(axis=1, ddof=1) if n_samples > 2 else np.zeros(n_samples)
        radius = means - sd_frac * stds
    else:
        radius = np.full(n_samples, _global_radius(distances, sd_frac))

    mask = (distances < radius[:, np.newaxis]) & off_diag
    # row-major: references ascending, neighbors ascending within a reference
    return np.argwhere(mask)


def _fixed_k_pairs(distances: np.ndarray, k: int) -> np.ndarray:
    n_samples = distances.shape[0]
    ranked = distances.copy()
    np.fill_diagonal(ranked, np.inf)
    # stable sort: equal distances resolved by sample order
    nearest = np.argsort(ranked, axis=1, kind="stable")[:, :k]
    return np.column_stack([np.repeat(np.arange(n_samples), k), nearest.ravel()])


def _select_within(
    row: np.ndarray,
    candidates: np.ndarray,
    nbd_method: str,
    sd_frac: float,
    k: Optional[int],
    global_radius: float
) -> np.ndarray:
    """Neighbors of one reference sample among a candidate subset."""
    if candidates.size == 0:
        return candidates
    cand_dist = row[candidates]

    if nbd_method == "fixed-k":
        order = np.argsort(cand_dist, kind="stable")[:k]
        return candidates[order]

    if nbd_method == "multisurf":
        std = cand_dist.std(ddof=1) if cand_dist.size > 1 else 0.0
        radius = cand_dist.mean() - sd_frac * std
    else:
        radius = global_radius
    return candidates[cand_dist < radius]


def _hitmiss_pairs(
    distances: np.ndarray,
    labels: np.ndarray,
    nbd_method: str,
    sd_frac: float,
    k: Optional[int]
) -> np.ndarray:
    n_samples = distances.shape[0]
    global_radius = _global_radius(distances, sd_frac)
    sample_ids = np.arange(n_samples)
    chunks = []

    for i in range(n_samples):
        same = labels == labels[i]
        hits = sample_ids[same & (sample_ids != i)]
        misses = sample_ids[~same]
        for candidates in (hits, misses):
            chosen = _select_within(distances[i], candidates, nbd_method,
                                    sd_frac, k, global_radius)
            if chosen.size:
                chunks.append(np.column_stack([np.full(chosen.size, i), chosen]))

    if not chunks:
        return np.empty((0, 2), dtype=int)
    return np.vstack(chunks)


def build_neighbors(
    distance_matrix: np.ndarray,
    nbd_method: str = "multisurf",
    sd_frac: float = 0.5,
    k: Optional[int] = None,
    labels: Optional[np.ndarray] = None,
    separate_hitmiss: bool = False
) -> NeighborRelation:
    """
    Build the neighbor relation for every reference sample.

    Args:
        distance_matrix: Symmetric (n x n) distance matrix.
        nbd_method: 'multisurf', 'surf' or 'fixed-k'.
        sd_frac: Density fraction for the adaptive radius and for
            deriving k.
        k: Neighbors per sample for 'fixed-k'; None derives it with
            :func:`surf_k`.
        labels: Class label per sample, needed for separate_hitmiss.
        separate_hitmiss: Choose neighbors separately among same-class
            (hit) and other-class (miss) samples. For 'fixed-k' each
            reference gets up to k hits and k misses.

    Returns:
        NeighborRelation with no self pairs. Samples without neighbors are
        listed in ``empty_samples`` and a NeighborhoodEmptyWarning is
        issued.

    Raises:
        InputError: On a malformed distance matrix or invalid policy.
    """
    distances = _check_distance_matrix(distance_matrix)
    n_samples = distances.shape[0]

    if nbd_method not in NBD_METHODS:
        raise InputError(
            f"Unknown nbd_method '{nbd_method}'. Valid options are: {list(NBD_METHODS)}"
        )
    if sd_frac <= 0:
        raise InputError(f"sd_frac must be positive, got {sd_frac}")

    if nbd_method == "fixed-k":
        k = _resolve_k(n_samples, k, sd_frac)

    if separate_hitmiss:
        if labels is None:
            raise InputError("separate_hitmiss needs class labels")
        labels = np.asarray(labels)
        if len(labels) != n_samples:
            raise InputError("labels length does not match the distance matrix")
        pairs = _hitmiss_pairs(distances, labels, nbd_method, sd_frac, k)
    elif nbd_method == "fixed-k":
        pairs = _fixed_k_pairs(distances, k)
    else:
        pairs = _adaptive_pairs(distances, nbd_method, sd_frac)

    pairs = pairs.astype(int).reshape(-1, 2)
    counts = np.bincount(pairs[:, 0], minlength=n_samples)
    empty = np.flatnonzero(counts == 0).tolist()

    if empty:
        message = (f"{len(empty)} of {n_samples} samples have no neighbors under "
                   f"'{nbd_method}' (sd_frac={sd_frac}); effective N is "
                   f"{n_samples - len(empty)}")
        logger.warning(message)
        warnings.warn(message, NeighborhoodEmptyWarning, stacklevel=2)

    logger.info("Built %s neighborhoods: %d pairs, mean %.1f neighbors per sample",
                nbd_method, len(pairs), counts.mean())

    return NeighborRelation(pairs=pairs, n_samples=n_samples, empty_samples=empty)
