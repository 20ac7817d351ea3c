"""Tests for the perplexity calibration."""

# Authors: exact_tsne developers
# License: BSD 3 clause

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal
from scipy.spatial.distance import pdist, squareform

from exact_tsne import binary_search_perplexity, joint_probabilities
from exact_tsne._probabilities import PROBABILITY_FLOOR


def _random_distances(n_samples=30, n_features=5, seed=0):
    X = np.random.RandomState(seed).randn(n_samples, n_features)
    return squareform(pdist(X, "sqeuclidean"))


def _entropy(P):
    P = np.where(P > 1e-7, P, 1.0)
    return -np.sum(P * np.log(P), axis=1)


def test_joint_probabilities_properties():
    """P is symmetric, floored and sums to one."""
    P = joint_probabilities(_random_distances(), perplexity=10)

    assert P.shape == (30, 30)
    assert_array_equal(P, P.T)
    assert np.all(P >= PROBABILITY_FLOOR)
    assert_allclose(np.sum(P), 1.0, rtol=1e-10)


def test_conditional_rows_match_perplexity():
    perplexity = 10
    conditional_P, betas = binary_search_perplexity(
        _random_distances(), perplexity, tol=1e-5
    )

    assert_allclose(np.sum(conditional_P, axis=1), 1.0)
    assert_array_equal(np.diag(conditional_P), 0.0)
    assert_allclose(_entropy(conditional_P), np.log(perplexity), atol=1e-5)
    assert np.all(betas > 0)


def test_larger_perplexity_widens_the_kernel():
    D = _random_distances(n_samples=50)
    _, betas_small = binary_search_perplexity(D, 5, tol=1e-6)
    _, betas_large = binary_search_perplexity(D, 15, tol=1e-6)

    assert np.all(betas_large < betas_small)


def test_identical_points_do_not_produce_nan():
    """The search hits the iteration cap but stays finite."""
    D = np.zeros((2, 2))
    conditional_P, betas = binary_search_perplexity(D, perplexity=30)

    assert np.all(np.isfinite(conditional_P))
    assert np.all(np.isfinite(betas))
    assert_allclose(conditional_P, [[0.0, 1.0], [1.0, 0.0]])

    P = joint_probabilities(D, perplexity=30)
    assert_allclose(P[0, 1], 0.5)


def test_duplicates_among_distinct_points():
    X = np.array([[0.0, 0.0], [0.0, 0.0], [1.0, 1.0], [5.0, 2.0], [3.0, 3.0]])
    P = joint_probabilities(squareform(pdist(X, "sqeuclidean")), perplexity=2)

    assert np.all(np.isfinite(P))
    assert_allclose(np.sum(P), 1.0, rtol=1e-10)
    # Duplicates are each other's closest neighbors
    assert np.argmax(P[0] - np.eye(5)[0]) == 1


def test_underflowing_kernel_stays_finite():
    D = np.full((3, 3), 1e6)
    np.fill_diagonal(D, 0.0)
    conditional_P, _ = binary_search_perplexity(D, perplexity=1.5, max_tries=50)

    assert np.all(np.isfinite(conditional_P))
    assert_allclose(np.sum(conditional_P, axis=1), 1.0)


def test_degenerate_sizes():
    conditional_P, betas = binary_search_perplexity(np.zeros((0, 0)), perplexity=5)
    assert conditional_P.shape == (0, 0)
    assert betas.shape == (0,)
    assert joint_probabilities(np.zeros((0, 0)), perplexity=5).shape == (0, 0)

    P = joint_probabilities(np.zeros((1, 1)), perplexity=5)
    assert_array_equal(P, [[PROBABILITY_FLOOR]])


def test_parallel_search_matches_sequential():
    D = _random_distances(n_samples=40)
    sequential, betas_sequential = binary_search_perplexity(D, 8, n_jobs=1)
    parallel, betas_parallel = binary_search_perplexity(D, 8, n_jobs=3)

    assert_array_equal(sequential, parallel)
    assert_array_equal(betas_sequential, betas_parallel)


def test_invalid_input():
    with pytest.raises(ValueError, match="square"):
        joint_probabilities(np.zeros((3, 2)), perplexity=2)

    with pytest.raises(ValueError, match="negative"):
        joint_probabilities(-np.ones((3, 3)), perplexity=2)

    with pytest.raises(ValueError):
        joint_probabilities(_random_distances(), perplexity=0)

    with pytest.raises(ValueError):
        joint_probabilities(_random_distances(), perplexity=5, max_tries=0)


def test_verbose_output(capsys):
    binary_search_perplexity(_random_distances(), 10, verbose=1)
    captured = capsys.readouterr()

    assert "Computing P-values for point 0/30" in captured.out
    assert "Mean sigma" in captured.out
