"""Tests for the distance sources."""

# Authors: exact_tsne developers
# License: BSD 3 clause

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal
from scipy.spatial.distance import cdist

from exact_tsne import (
    DistanceSource,
    MetricDistances,
    PrecomputedDistances,
    VectorDistances,
    compute_distances,
)


class AbsoluteDifference(DistanceSource):
    """One dimensional items compared by absolute difference."""

    def __init__(self, values):
        self.values = values

    def __len__(self):
        return len(self.values)

    def distance(self, i, j):
        return abs(self.values[i] - self.values[j])


def test_vector_distances_are_squared_euclidean():
    X = np.array([[0.0, 0.0], [0.0, 1.0], [3.0, 4.0]])
    source = VectorDistances(X)

    assert len(source) == 3
    assert source.distance(0, 2) == 25.0
    assert source.distance(1, 2) == 18.0
    assert_allclose(
        compute_distances(source),
        [[0.0, 1.0, 25.0], [1.0, 0.0, 18.0], [25.0, 18.0, 0.0]],
    )


def test_metric_distances():
    X = np.random.RandomState(0).rand(8, 3)

    squared = compute_distances(MetricDistances(X))
    assert_allclose(squared, cdist(X, X, "sqeuclidean"), atol=1e-12)

    cityblock = MetricDistances(X, metric="cityblock")
    assert_allclose(compute_distances(cityblock), cdist(X, X, "cityblock"))
    assert cityblock.distance(1, 4) == pytest.approx(np.abs(X[1] - X[4]).sum())

    minkowski = MetricDistances(X, metric="minkowski", metric_params={"p": 3})
    assert_allclose(compute_distances(minkowski), cdist(X, X, "minkowski", p=3))


def test_custom_distance_source():
    source = AbsoluteDifference([0.0, 2.0, 5.0])

    assert_array_equal(
        compute_distances(source),
        [[0.0, 2.0, 5.0], [2.0, 0.0, 3.0], [5.0, 3.0, 0.0]],
    )


def test_precomputed_distances():
    D = np.array([[0.0, 1.0, 2.0], [1.0, 0.0, 3.0], [2.0, 3.0, 0.0]])
    assert_array_equal(compute_distances(PrecomputedDistances(D)), D)

    with pytest.raises(ValueError, match="square"):
        compute_distances(PrecomputedDistances(np.zeros((3, 2))))

    D[0, 1] = 5.0
    with pytest.raises(ValueError, match="symmetric"):
        compute_distances(PrecomputedDistances(D))


def test_compute_distances_zeroes_diagonal():
    D = np.ones((3, 3))
    assert_array_equal(np.diag(compute_distances(PrecomputedDistances(D))), 0.0)


def test_compute_distances_rejects_invalid_input():
    with pytest.raises(ValueError, match="At least 2"):
        compute_distances(VectorDistances(np.zeros((1, 2))))

    with pytest.raises(ValueError, match="At least 2"):
        compute_distances(AbsoluteDifference([]))

    with pytest.raises(ValueError, match="negative"):
        compute_distances(PrecomputedDistances([[0.0, -1.0], [-1.0, 0.0]]))

    with pytest.raises(ValueError, match="invalid"):
        compute_distances(PrecomputedDistances([[0.0, np.nan], [np.nan, 0.0]]))

    with pytest.raises(TypeError):
        compute_distances(np.zeros((3, 3)))
