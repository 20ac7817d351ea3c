# Authors: exact_tsne developers
# License: BSD 3 clause

"""Perplexity calibration of the high-dimensional joint probabilities."""

from numbers import Integral, Real

import numpy as np
from joblib import effective_n_jobs
from sklearn.utils import check_scalar, gen_even_slices
from sklearn.utils.parallel import Parallel, delayed

__all__ = [
    "binary_search_perplexity",
    "joint_probabilities",
    "symmetrize_probabilities",
    "PROBABILITY_FLOOR",
]

# Smallest value stored in P and Q, keeps the logarithms finite
PROBABILITY_FLOOR = 1e-100

# Probabilities below this cutoff do not contribute to the row entropy
ENTROPY_CUTOFF = 1e-7

MACHINE_EPSILON = np.finfo(np.double).eps


def _check_distances(distances):
    distances = np.asarray(distances, dtype=np.float64)
    if distances.ndim != 2 or distances.shape[0] != distances.shape[1]:
        raise ValueError(
            f"distances should be a square matrix but has shape {distances.shape}"
        )
    if not np.all(np.isfinite(distances)):
        raise ValueError("distances contains invalid values")
    if np.any(distances < 0):
        raise ValueError("distances contains negative values")
    return distances


def _row_distribution(distances_i, i, beta):
    """Gaussian kernel row with the self term excluded, and its entropy."""
    P_i = np.exp(-distances_i * beta)
    P_i[i] = 0.0
    sum_P_i = np.sum(P_i)
    if sum_P_i == 0:
        P_i = np.maximum(P_i, MACHINE_EPSILON)
        P_i[i] = 0.0
        sum_P_i = np.sum(P_i)
    P_i /= sum_P_i

    support = P_i[P_i > ENTROPY_CUTOFF]
    entropy = float(-np.sum(support * np.log(support)))
    return P_i, entropy


def _search_rows(distances, rows, target_entropy, tol, max_tries, verbose):
    """Binary search the kernel precision of every row in ``rows``."""
    n_samples = distances.shape[0]
    conditional_P = np.zeros((rows.stop - rows.start, n_samples))
    betas = np.ones(rows.stop - rows.start)
    n_unconverged = 0

    for k, i in enumerate(range(rows.start, rows.stop)):
        if verbose and i % 1000 == 0:
            print(f"Computing P-values for point {i}/{n_samples}")

        betamin = -np.inf
        betamax = np.inf
        beta = 1.0

        for _ in range(max_tries):
            P_i, entropy = _row_distribution(distances[i], i, beta)
            row_beta = beta
            entropy_diff = entropy - target_entropy
            if abs(entropy_diff) < tol:
                break

            if entropy_diff > 0:
                # Too diffuse, sharpen the kernel
                betamin = beta
                if betamax == np.inf:
                    beta = beta * 2.0
                else:
                    beta = (beta + betamax) / 2.0
            else:
                betamax = beta
                if betamin == -np.inf:
                    beta = beta / 2.0
                else:
                    beta = (beta + betamin) / 2.0
        else:
            n_unconverged += 1

        conditional_P[k] = P_i
        betas[k] = row_beta

    return conditional_P, betas, n_unconverged


def binary_search_perplexity(
    distances, perplexity, tol=1e-4, max_tries=500, n_jobs=None, verbose=0
):
    """Compute conditional probabilities p_{j|i} matching a perplexity.

    For each row a binary search over the Gaussian kernel precision beta
    finds the distribution whose Shannon entropy equals ``log(perplexity)``.
    A row that does not reach the tolerance within ``max_tries`` keeps the
    last evaluated distribution.

    Parameters
    ----------
    distances : ndarray of shape (n_samples, n_samples)
        Pairwise distances between samples.

    perplexity : float
        Desired perplexity of the conditional distributions.

    tol : float, default=1e-4
        Accepted absolute difference between the row entropy and its target.

    max_tries : int, default=500
        Maximum number of kernel evaluations per row.

    n_jobs : int, default=None
        Number of threads searching rows concurrently. ``None`` means 1,
        ``-1`` means all processors.

    verbose : int, default=0
        Verbosity level.

    Returns
    -------
    conditional_P : ndarray of shape (n_samples, n_samples)
        Row-stochastic matrix with a zero diagonal.

    betas : ndarray of shape (n_samples,)
        Kernel precision that produced each row.
    """
    distances = _check_distances(distances)
    check_scalar(
        perplexity, "perplexity", Real, min_val=0, include_boundaries="neither"
    )
    check_scalar(tol, "tol", Real, min_val=0, include_boundaries="neither")
    check_scalar(max_tries, "max_tries", Integral, min_val=1)

    n_samples = distances.shape[0]
    if n_samples == 0:
        return np.zeros((0, 0)), np.zeros(0)
    if n_samples == 1:
        # No neighbors to distribute mass over
        return np.zeros((1, 1)), np.ones(1)

    target_entropy = np.log(perplexity)
    n_packs = min(effective_n_jobs(n_jobs), n_samples)

    if n_packs == 1:
        results = [
            _search_rows(
                distances, slice(0, n_samples), target_entropy, tol, max_tries, verbose
            )
        ]
    else:
        results = Parallel(n_jobs=n_packs, prefer="threads")(
            delayed(_search_rows)(
                distances, rows, target_entropy, tol, max_tries, verbose
            )
            for rows in gen_even_slices(n_samples, n_packs)
        )

    conditional_P = np.vstack([result[0] for result in results])
    betas = np.concatenate([result[1] for result in results])

    if verbose:
        n_unconverged = sum(result[2] for result in results)
        print(f"Mean sigma: {np.mean(np.sqrt(1.0 / betas)):.6f}")
        if n_unconverged:
            print(
                f"Binary search did not reach the target perplexity for "
                f"{n_unconverged}/{n_samples} points"
            )

    return conditional_P, betas


def joint_probabilities(
    distances, perplexity, tol=1e-4, max_tries=500, n_jobs=None, verbose=0
):
    """Convert distances to symmetric joint probabilities P_ij.

    ``P_ij = max((p_{j|i} + p_{i|j}) / (2n), 1e-100)`` so that P sums to
    approximately one over all pairs and never holds an exact zero.

    Parameters
    ----------
    distances : ndarray of shape (n_samples, n_samples)
        Pairwise distance matrix.

    perplexity : float
        Perplexity parameter (related to the number of nearest neighbors).

    tol : float, default=1e-4
        Entropy tolerance of the binary search.

    max_tries : int, default=500
        Maximum number of binary search steps per row.

    n_jobs : int, default=None
        Number of threads used for the binary search.

    verbose : int, default=0
        Verbosity level.

    Returns
    -------
    P : ndarray of shape (n_samples, n_samples)
        Symmetric joint probability matrix.
    """
    conditional_P, _ = binary_search_perplexity(
        distances,
        perplexity,
        tol=tol,
        max_tries=max_tries,
        n_jobs=n_jobs,
        verbose=verbose,
    )
    return symmetrize_probabilities(conditional_P)


def symmetrize_probabilities(conditional_P):
    """Turn conditional probabilities into a floored joint distribution.

    Parameters
    ----------
    conditional_P : ndarray of shape (n_samples, n_samples)
        Row-stochastic conditional probabilities p_{j|i}.

    Returns
    -------
    P : ndarray of shape (n_samples, n_samples)
        ``max((p_{j|i} + p_{i|j}) / (2n), 1e-100)``.
    """
    n_samples = conditional_P.shape[0]
    if n_samples == 0:
        return np.zeros((0, 0))

    P = (conditional_P + conditional_P.T) / (2.0 * n_samples)
    np.maximum(P, PROBABILITY_FLOOR, out=P)

    assert np.all(np.isfinite(P)), "Joint probability matrix contains invalid values"
    return P
