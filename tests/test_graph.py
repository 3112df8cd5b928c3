"""
Tests for the graph / Laplacian engine.

Validates:
    1. Weights are symmetric, non-negative, zero on the diagonal
    2. Laplacians have the advertised spectra and row sums
    3. Each edge rule keeps the edges it promises
    4. Bad inputs fail fast
"""

import numpy as np
import pytest

from dimtools.core.graph import (
    build_graph,
    heat_kernel,
    laplacian_matrix,
    pairwise_distances,
)
from dimtools.errors import DegenerateClassError, InvalidInputError


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def points():
    rng = np.random.default_rng(3)
    return rng.standard_normal((12, 3))


@pytest.fixture
def distances(points):
    return pairwise_distances(points)


@pytest.fixture
def two_class():
    """Two tight groups of four points far apart on a line."""
    X = np.array([[0.0], [0.1], [0.3], [0.4], [5.0], [5.2], [5.3], [5.6]])
    labels = np.array([0, 0, 0, 0, 1, 1, 1, 1])
    return pairwise_distances(X), labels


def assert_valid_weights(W):
    np.testing.assert_array_equal(W, W.T)
    np.testing.assert_array_equal(np.diag(W), 0.0)
    assert (W >= 0).all()


# ---------------------------------------------------------------------------
# Pairwise distances
# ---------------------------------------------------------------------------

class TestPairwiseDistances:

    def test_euclidean(self):
        D = pairwise_distances([[0.0, 0.0], [3.0, 4.0]])
        np.testing.assert_allclose(D, [[0.0, 5.0], [5.0, 0.0]])

    def test_squared(self, points):
        np.testing.assert_allclose(
            pairwise_distances(points, squared=True),
            pairwise_distances(points) ** 2,
        )

    def test_other_metric(self):
        D = pairwise_distances([[0.0, 0.0], [3.0, 4.0]], metric="cityblock")
        assert D[0, 1] == pytest.approx(7.0)

    def test_bad_metric(self, points):
        with pytest.raises(InvalidInputError):
            pairwise_distances(points, metric="nonsense")


# ---------------------------------------------------------------------------
# Kernel rule
# ---------------------------------------------------------------------------

class TestKernelRule:

    def test_weights_and_laplacian(self, distances):
        out = build_graph(distances, bandwidth=0.7)
        W, L = out['weights'], out['laplacian']
        assert_valid_weights(W)
        np.testing.assert_allclose(L.sum(axis=1), 0.0, atol=1e-12)
        np.testing.assert_allclose(out['degree'], W.sum(axis=1))

    def test_heat_kernel_values(self, distances):
        W = build_graph(distances, bandwidth=0.7)['weights']
        expected = np.exp(-distances ** 2 / (2 * 0.7 ** 2))
        np.fill_diagonal(expected, 0.0)
        np.testing.assert_allclose(W, expected)
        np.testing.assert_allclose(heat_kernel(distances, 0.7), np.exp(-distances ** 2 / 0.98))

    def test_unnormalized_is_psd(self, distances):
        L = build_graph(distances)['laplacian']
        assert np.linalg.eigvalsh(L).min() > -1e-10

    def test_sum_symmetrization_doubles(self, distances):
        base = build_graph(distances)['weights']
        doubled = build_graph(distances, symmetrize="sum")['weights']
        np.testing.assert_allclose(doubled, 2.0 * base)

    def test_similarity_input(self):
        S = np.array([[1.0, 0.5, 0.0], [0.5, 1.0, 0.2], [0.0, 0.2, 1.0]])
        out = build_graph(S, kind="similarity", symmetrize="none")
        expected = S.copy()
        np.fill_diagonal(expected, 0.0)
        np.testing.assert_allclose(out['weights'], expected)

    def test_asymmetric_similarity_rejected(self):
        S = np.array([[0.0, 0.5], [0.1, 0.0]])
        with pytest.raises(InvalidInputError, match="symmetric"):
            build_graph(S, kind="similarity", symmetrize="none")

    def test_asymmetric_similarity_with_max(self):
        S = np.array([[0.0, 0.5], [0.1, 0.0]])
        W = build_graph(S, kind="similarity")['weights']
        np.testing.assert_allclose(W, [[0.0, 0.5], [0.5, 0.0]])


# ---------------------------------------------------------------------------
# kNN rule
# ---------------------------------------------------------------------------

class TestKnnRule:

    def test_max_keeps_at_least_k(self, distances):
        W = build_graph(distances, rule="knn", k=3)['weights']
        assert_valid_weights(W)
        assert ((W > 0).sum(axis=1) >= 3).all()

    def test_min_keeps_at_most_k(self, distances):
        W = build_graph(distances, rule="knn", k=3, symmetrize="min")['weights']
        assert_valid_weights(W)
        assert ((W > 0).sum(axis=1) <= 3).all()

    def test_nearest_neighbour_kept(self, distances):
        W = build_graph(distances, rule="knn", k=1)['weights']
        key = distances.copy()
        np.fill_diagonal(key, np.inf)
        nearest = key.argmin(axis=1)
        for i, j in enumerate(nearest):
            assert W[i, j] > 0

    def test_similarity_picks_largest(self):
        S = np.array([
            [0.0, 0.9, 0.1],
            [0.9, 0.0, 0.2],
            [0.1, 0.2, 0.0],
        ])
        W = build_graph(S, rule="knn", k=1, kind="similarity", symmetrize="min")['weights']
        np.testing.assert_allclose(W, [[0.0, 0.9, 0.0], [0.9, 0.0, 0.0], [0.0, 0.0, 0.0]])

    @pytest.mark.parametrize("k", [None, 0, 12, 2.5, True])
    def test_invalid_k(self, distances, k):
        with pytest.raises(InvalidInputError):
            build_graph(distances, rule="knn", k=k)


# ---------------------------------------------------------------------------
# Label rule
# ---------------------------------------------------------------------------

class TestLabelRule:

    def test_zero_inter_weight_cuts_classes(self, two_class):
        D, labels = two_class
        W = build_graph(D, rule="label", labels=labels, inter_class_weight=0.0)['weights']
        assert_valid_weights(W)
        assert (W[:4, 4:] == 0).all()
        assert (W[:4, :4][~np.eye(4, dtype=bool)] > 0).all()

    def test_inter_weight_scales_cross_class(self, two_class):
        D, labels = two_class
        full = build_graph(D)['weights']
        half = build_graph(D, rule="label", labels=labels, inter_class_weight=0.5)['weights']
        np.testing.assert_allclose(half[:4, 4:], 0.5 * full[:4, 4:])
        np.testing.assert_allclose(half[:4, :4], full[:4, :4])

    def test_matrix_inter_weight(self, two_class):
        D, labels = two_class
        eta = np.full((8, 8), 0.25)
        W = build_graph(D, rule="label", labels=labels, inter_class_weight=eta)['weights']
        full = build_graph(D)['weights']
        np.testing.assert_allclose(W[:4, 4:], 0.25 * full[:4, 4:])

    def test_wrong_shape_inter_weight(self, two_class):
        D, labels = two_class
        with pytest.raises(InvalidInputError):
            build_graph(D, rule="label", labels=labels, inter_class_weight=np.ones((3, 3)))

    def test_negative_inter_weight(self, two_class):
        D, labels = two_class
        with pytest.raises(InvalidInputError):
            build_graph(D, rule="label", labels=labels, inter_class_weight=-1.0)

    def test_class_threshold_removes_edges(self, two_class):
        D, labels = two_class
        plain = build_graph(D, rule="label", labels=labels, inter_class_weight=1.0)['weights']
        cut = build_graph(
            D, rule="label", labels=labels, inter_class_weight=1.0, class_threshold=True,
        )['weights']
        assert_valid_weights(cut)
        assert (cut <= plain + 1e-15).all()
        assert np.count_nonzero(cut) < np.count_nonzero(plain)

    def test_string_labels(self, two_class):
        D, labels = two_class
        names = np.where(labels == 0, "a", "b")
        W = build_graph(D, rule="label", labels=names)['weights']
        assert (W[:4, 4:] == 0).all()

    def test_degenerate_class(self):
        D = pairwise_distances(np.arange(5.0)[:, None])
        with pytest.raises(DegenerateClassError) as excinfo:
            build_graph(D, rule="label", labels=[0, 0, 1, 1, 2])
        assert excinfo.value.classes == [2]

    def test_labels_required(self, distances):
        with pytest.raises(InvalidInputError, match="labels"):
            build_graph(distances, rule="label")

    def test_label_length_mismatch(self, distances):
        with pytest.raises(InvalidInputError):
            build_graph(distances, rule="label", labels=[0, 1])


# ---------------------------------------------------------------------------
# Laplacian variants
# ---------------------------------------------------------------------------

class TestLaplacian:

    def test_symmetric_spectrum_in_unit_range(self, distances):
        L = build_graph(distances, laplacian="symmetric")['laplacian']
        values = np.linalg.eigvalsh(L)
        assert values.min() > -1e-10
        assert values.max() < 2.0 + 1e-10

    def test_random_walk_row_sums(self, distances):
        L = build_graph(distances, laplacian="random_walk")['laplacian']
        np.testing.assert_allclose(L.sum(axis=1), 0.0, atol=1e-12)

    def test_isolated_vertex(self):
        W = np.array([[0.0, 1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 0.0]])
        L = laplacian_matrix(W, "symmetric")
        assert np.isfinite(L).all()
        assert L[2, 2] == 1.0

    def test_negative_weights_rejected(self):
        with pytest.raises(InvalidInputError):
            laplacian_matrix(np.array([[0.0, -1.0], [-1.0, 0.0]]))


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

class TestValidation:

    def test_negative_pairwise(self):
        with pytest.raises(InvalidInputError, match="non-negative"):
            build_graph(np.array([[0.0, -1.0], [-1.0, 0.0]]))

    def test_non_square(self):
        with pytest.raises(InvalidInputError):
            build_graph(np.ones((3, 2)))

    @pytest.mark.parametrize("bandwidth", [0.0, -1.0, np.inf, "1"])
    def test_bad_bandwidth(self, distances, bandwidth):
        with pytest.raises(InvalidInputError):
            build_graph(distances, bandwidth=bandwidth)

    def test_bandwidth_ignored_for_similarity(self):
        S = np.array([[0.0, 1.0], [1.0, 0.0]])
        build_graph(S, kind="similarity", bandwidth=0.0)

    @pytest.mark.parametrize("field,value", [
        ("rule", "epsilon"),
        ("kind", "kernel"),
        ("symmetrize", "average"),
        ("laplacian", "signless"),
    ])
    def test_unknown_options(self, distances, field, value):
        with pytest.raises(InvalidInputError, match="Unknown"):
            build_graph(distances, **{field: value})
