"""Tests for neighborhood construction and pair deduplication."""
import pytest
import numpy as np
from npdr.neighbors import (
    NeighborRelation,
    build_neighbors,
    canonical_pairs,
    compute_distances,
    dedupe,
    surf_k,
)
from npdr.exceptions import InputError, NeighborhoodEmptyWarning


@pytest.fixture
def distances(mock_attributes):
    return compute_distances(mock_attributes, "manhattan")


class TestSurfK:
    """Tests for the derived neighborhood size."""

    def test_reference_value(self):
        """surf_k(100, 0.5) is 30."""
        assert surf_k(100, 0.5) == 30

    def test_small_fraction_is_near_half(self):
        """A small sd_frac expects just under half of the other samples."""
        assert surf_k(101, 0.01) == 49

    def test_decreases_with_fraction(self):
        """A larger density fraction gives a smaller k."""
        ks = [surf_k(200, f) for f in (0.1, 0.5, 1.0, 2.0)]
        assert ks == sorted(ks, reverse=True)

    def test_invalid_input(self):
        with pytest.raises(InputError):
            surf_k(1, 0.5)
        with pytest.raises(InputError):
            surf_k(10, -0.1)
        with pytest.raises(InputError):
            surf_k(10, 0.0)


class TestFixedK:
    """Tests for the fixed-k policy."""

    def test_exactly_k_neighbors(self, distances):
        """Every sample gets exactly k neighbors."""
        relation = build_neighbors(distances, nbd_method="fixed-k", k=10)
        assert relation.n_pairs == 100 * 10
        assert (relation.neighbor_counts() == 10).all()
        assert relation.effective_n == 100

    def test_no_self_pairs(self, distances):
        relation = build_neighbors(distances, nbd_method="fixed-k", k=10)
        assert (relation.pairs[:, 0] != relation.pairs[:, 1]).all()

    def test_nearest_are_chosen(self, distances):
        """The chosen neighbors are the k closest other samples."""
        relation = build_neighbors(distances, nbd_method="fixed-k", k=5)
        chosen = relation.pairs[relation.pairs[:, 0] == 0, 1]
        row = distances[0].copy()
        row[0] = np.inf
        assert row[chosen].max() <= np.sort(row)[4] + 1e-12

    def test_derived_k(self, distances):
        """Without k, fixed-k uses surf_k."""
        relation = build_neighbors(distances, nbd_method="fixed-k", sd_frac=0.5)
        assert (relation.neighbor_counts() == surf_k(100, 0.5)).all()

    def test_ties_resolved_by_order(self):
        """Equidistant candidates are taken in sample order."""
        dist = np.ones((5, 5))
        np.fill_diagonal(dist, 0.0)
        relation = build_neighbors(dist, nbd_method="fixed-k", k=2)
        np.testing.assert_array_equal(relation.pairs[:2], [[0, 1], [0, 2]])
        np.testing.assert_array_equal(relation.pairs[2:4], [[1, 0], [1, 2]])

    def test_k_too_large(self, distances):
        with pytest.raises(InputError):
            build_neighbors(distances, nbd_method="fixed-k", k=100)


class TestAdaptive:
    """Tests for the multisurf and surf policies."""

    @pytest.mark.parametrize("method", ["multisurf", "surf"])
    def test_no_self_pairs(self, distances, method):
        relation = build_neighbors(distances, nbd_method=method, sd_frac=0.5)
        assert relation.n_pairs > 0
        assert (relation.pairs[:, 0] != relation.pairs[:, 1]).all()

    @pytest.mark.parametrize("method", ["multisurf", "surf"])
    def test_tighter_threshold_never_adds_neighbors(self, distances, method):
        """Raising sd_frac shrinks the radius, so the pair count never grows."""
        # radius is mean - sd_frac * std: a larger fraction is a tighter threshold
        counts = [
            build_neighbors(distances, nbd_method=method, sd_frac=f).n_pairs
            for f in (0.1, 0.25, 0.5, 1.0)
        ]
        assert counts == sorted(counts, reverse=True)

    def test_multisurf_radius(self, distances):
        """Neighbors of sample 0 lie strictly inside its own radius."""
        relation = build_neighbors(distances, nbd_method="multisurf", sd_frac=0.5)
        row = np.delete(distances[0], 0)
        radius = row.mean() - 0.5 * row.std(ddof=1)
        chosen = relation.pairs[relation.pairs[:, 0] == 0, 1]
        assert (distances[0, chosen] < radius).all()
        expected = np.sum(row < radius)
        assert len(chosen) == expected

    def test_surf_uses_global_radius(self, distances):
        """Every surf pair is closer than the global radius."""
        relation = build_neighbors(distances, nbd_method="surf", sd_frac=0.5)
        upper = distances[np.triu_indices(100, k=1)]
        radius = upper.mean() - 0.5 * upper.std(ddof=1)
        assert (distances[relation.pairs[:, 0], relation.pairs[:, 1]] < radius).all()
        # symmetric radius means a symmetric relation
        assert relation.n_pairs % 2 == 0

    def test_empty_neighborhoods_warn(self):
        """Equidistant samples have no neighbors under an adaptive radius."""
        dist = np.ones((4, 4))
        np.fill_diagonal(dist, 0.0)
        with pytest.warns(NeighborhoodEmptyWarning):
            relation = build_neighbors(dist, nbd_method="multisurf", sd_frac=0.5)
        assert relation.n_pairs == 0
        assert relation.empty_samples == [0, 1, 2, 3]
        assert relation.effective_n == 0

    def test_partially_empty(self):
        """An isolated sample is reported while the others still pair up."""
        points = np.array([0.0, 0.1, 0.2, 0.3, 10.0])
        dist = np.abs(points[:, None] - points[None, :])
        with pytest.warns(NeighborhoodEmptyWarning):
            relation = build_neighbors(dist, nbd_method="surf", sd_frac=0.01)
        assert relation.empty_samples == [4]
        assert relation.effective_n == 4
        assert relation.n_pairs > 0


class TestHitMiss:
    """Tests for separate hit and miss neighborhoods."""

    def test_fixed_k_hits_and_misses(self, distances):
        """Each reference gets k hits and k misses."""
        labels = np.array([0, 1] * 50)
        relation = build_neighbors(distances, nbd_method="fixed-k", k=3,
                                   labels=labels, separate_hitmiss=True)
        assert (relation.neighbor_counts() == 6).all()
        same = labels[relation.pairs[:, 0]] == labels[relation.pairs[:, 1]]
        assert same.sum() == 300

    def test_labels_required(self, distances):
        with pytest.raises(InputError):
            build_neighbors(distances, separate_hitmiss=True)


class TestValidation:
    """Tests for distance matrix checks."""

    def test_non_square(self):
        with pytest.raises(InputError):
            build_neighbors(np.zeros((3, 4)))

    def test_asymmetric(self):
        dist = np.array([[0.0, 1.0], [2.0, 0.0]])
        with pytest.raises(InputError):
            build_neighbors(dist, nbd_method="fixed-k", k=1)

    def test_unknown_method(self, distances):
        with pytest.raises(InputError):
            build_neighbors(distances, nbd_method="radius")

    @pytest.mark.parametrize("sd_frac", [0.0, -0.5])
    def test_non_positive_fraction(self, distances, sd_frac):
        with pytest.raises(InputError):
            build_neighbors(distances, nbd_method="multisurf", sd_frac=sd_frac)


class TestDedupe:
    """Tests for the unique pair set."""

    def test_reference_example(self):
        """(2,5), (5,2), (1,3) collapse to (2,5), (1,3)."""
        relation = NeighborRelation(np.array([[2, 5], [5, 2], [1, 3]]), 6)
        unique = dedupe(relation)
        np.testing.assert_array_equal(unique.pairs, [[2, 5], [1, 3]])
        assert unique.unique

    def test_canonical_pairs(self):
        np.testing.assert_array_equal(canonical_pairs([[3, 1], [0, 2]]), [[1, 3], [0, 2]])

    def test_no_duplicates_and_no_growth(self, distances):
        relation = build_neighbors(distances, nbd_method="fixed-k", k=10)
        unique = dedupe(relation)
        assert unique.n_pairs <= relation.n_pairs
        keys = {tuple(p) for p in unique.pairs}
        assert len(keys) == unique.n_pairs
        assert keys == {tuple(sorted(p)) for p in relation.pairs}

    def test_surf_halves(self, distances):
        """A symmetric relation loses exactly half its pairs."""
        relation = build_neighbors(distances, nbd_method="surf", sd_frac=0.5)
        assert dedupe(relation).n_pairs == relation.n_pairs // 2

    def test_bookkeeping_carried_over(self):
        relation = NeighborRelation(np.array([[0, 1], [1, 0]]), 3, empty_samples=[2])
        unique = dedupe(relation)
        assert unique.n_samples == 3
        assert unique.effective_n == 2

    def test_as_frame(self):
        relation = NeighborRelation(np.array([[0, 1]]), 2)
        assert list(relation.as_frame().columns) == ["ref_idx", "nbr_idx"]
