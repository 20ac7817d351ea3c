"""Tests for the KL divergence and its gradient."""

# Authors: exact_tsne developers
# License: BSD 3 clause

import numpy as np
from numpy.testing import assert_allclose, assert_array_equal
from scipy.spatial.distance import pdist, squareform

from exact_tsne import joint_probabilities, kl_divergence


def _problem(n_samples=12, n_components=2, seed=0):
    rng = np.random.RandomState(seed)
    X = rng.randn(n_samples, 4)
    P = joint_probabilities(squareform(pdist(X, "sqeuclidean")), perplexity=4)
    Y = rng.randn(n_samples, n_components)
    return Y, P


def _reference_kl_divergence(Y, P, exaggeration):
    """Pair by pair evaluation of the cost and gradient."""
    n_samples = Y.shape[0]
    Q_unnorm = np.zeros((n_samples, n_samples))
    for i in range(n_samples - 1):
        for j in range(i + 1, n_samples):
            q = 1.0 / (1.0 + np.sum((Y[i] - Y[j]) ** 2))
            Q_unnorm[i, j] = q
            Q_unnorm[j, i] = q
    Q = np.maximum(Q_unnorm / np.sum(Q_unnorm), 1e-100)

    cost = 0.0
    grad = np.zeros_like(Y)
    for i in range(n_samples):
        for j in range(n_samples):
            if i == j:
                continue
            cost -= P[i, j] * np.log(Q[i, j])
            grad[i] += (
                4.0
                * (exaggeration * P[i, j] - Q[i, j])
                * Q_unnorm[i, j]
                * (Y[i] - Y[j])
            )
    return cost, grad


def test_matches_pairwise_reference():
    Y, P = _problem()
    for exaggeration in (1.0, 4.0):
        cost, grad = kl_divergence(Y, P, exaggeration)
        expected_cost, expected_grad = _reference_kl_divergence(Y, P, exaggeration)

        assert_allclose(cost, expected_cost, rtol=1e-10)
        assert_allclose(grad, expected_grad, rtol=1e-8, atol=1e-14)


def test_gradient_matches_finite_differences():
    Y, P = _problem(n_samples=10, n_components=3, seed=1)
    _, grad = kl_divergence(Y, P)

    h = 1e-6
    numerical = np.zeros_like(Y)
    for index in np.ndindex(*Y.shape):
        Y_plus = Y.copy()
        Y_plus[index] += h
        Y_minus = Y.copy()
        Y_minus[index] -= h
        numerical[index] = (
            kl_divergence(Y_plus, P)[0] - kl_divergence(Y_minus, P)[0]
        ) / (2 * h)

    assert_allclose(grad, numerical, rtol=1e-4, atol=1e-7)


def test_cost_is_non_negative():
    for seed in range(5):
        Y, P = _problem(seed=seed)
        cost, _ = kl_divergence(Y * 10 ** (seed - 2), P)
        assert cost >= 0


def test_exaggeration_does_not_modify_P():
    Y, P = _problem()
    P_before = P.copy()
    kl_divergence(Y, P, exaggeration=4.0)

    assert_array_equal(P, P_before)


def test_coincident_points():
    Y = np.zeros((5, 2))
    P = np.full((5, 5), 1.0 / 20)
    np.fill_diagonal(P, 1e-100)
    cost, grad = kl_divergence(Y, P)

    # Uniform Q matches uniform P
    assert_allclose(cost, np.log(20))
    assert_array_equal(grad, 0.0)


def test_parallel_evaluation_matches_sequential():
    Y, P = _problem(n_samples=30)
    cost, grad = kl_divergence(Y, P, 4.0, n_jobs=1)
    cost_parallel, grad_parallel = kl_divergence(Y, P, 4.0, n_jobs=4)

    assert_allclose(cost_parallel, cost, rtol=1e-12)
    assert_allclose(grad_parallel, grad, rtol=1e-10, atol=1e-15)
