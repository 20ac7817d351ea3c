# Authors: exact_tsne developers
# License: BSD 3 clause

"""Exact KL divergence and gradient of the t-SNE objective."""

from typing import Tuple

import numpy as np
from joblib import effective_n_jobs
from scipy.spatial.distance import cdist
from sklearn.utils import gen_even_slices
from sklearn.utils.parallel import Parallel, delayed

from ._probabilities import PROBABILITY_FLOOR

__all__ = ["kl_divergence"]


def _student_t_rows(embedding, rows):
    """Unnormalized Student-t similarities of ``rows`` against every point."""
    dist = cdist(embedding[rows], embedding, "sqeuclidean")
    dist += 1.0
    Q_unnorm = 1.0 / dist
    # Self similarity is never part of Q
    n_rows = rows.stop - rows.start
    Q_unnorm[np.arange(n_rows), np.arange(rows.start, rows.stop)] = 0.0
    return Q_unnorm


def _cost_gradient_rows(embedding, P, rows, Q_unnorm, sum_Q, exaggeration):
    """Partial cost and gradient rows for the block ``rows``."""
    n_rows = rows.stop - rows.start
    diagonal = (np.arange(n_rows), np.arange(rows.start, rows.stop))
    P_rows = P[rows]

    Q = np.maximum(Q_unnorm / sum_Q, PROBABILITY_FLOOR)
    log_Q = np.log(Q)
    log_Q[diagonal] = 0.0
    cost = float(-np.sum(P_rows * log_Q))

    PQd = 4.0 * (exaggeration * P_rows - Q) * Q_unnorm
    grad = np.sum(PQd, axis=1)[:, np.newaxis] * embedding[rows] - PQd @ embedding
    return cost, grad


def kl_divergence(
    embedding: np.ndarray,
    P: np.ndarray,
    exaggeration: float = 1.0,
    n_jobs=None,
) -> Tuple[float, np.ndarray]:
    """Compute the t-SNE cost and its gradient for an embedding.

    The low-dimensional similarities use a Student's t-distribution with one
    degree of freedom, ``Qu_ij = 1 / (1 + ||y_i - y_j||^2)``, normalized to
    ``Q_ij = max(Qu_ij / sum(Qu), 1e-100)``. The cost is the non-constant
    part of KL(P || Q), ``-sum_{i != j} P_ij log Q_ij``, and the gradient is

        grad_i = sum_j 4 (exaggeration * P_ij - Q_ij) Qu_ij (y_i - y_j)

    The exaggeration only scales P inside the gradient; the cost is always
    measured against the stored P.

    Parameters
    ----------
    embedding : ndarray of shape (n_samples, n_components)
        Current coordinates.

    P : ndarray of shape (n_samples, n_samples)
        Symmetric joint probability matrix.

    exaggeration : float, default=1.0
        Multiplier applied to P in the gradient.

    n_jobs : int, default=None
        Number of threads sharing the rows. ``None`` means 1.

    Returns
    -------
    kl_divergence : float
        Cost of the embedding.

    grad : ndarray of shape (n_samples, n_components)
        Gradient of the cost with respect to the embedding.
    """
    n_samples = embedding.shape[0]
    assert P.shape == (n_samples, n_samples), "P does not match the embedding"

    n_packs = min(effective_n_jobs(n_jobs), n_samples)
    if n_packs <= 1:
        rows = slice(0, n_samples)
        Q_unnorm = _student_t_rows(embedding, rows)
        sum_Q = max(np.sum(Q_unnorm), np.finfo(np.double).tiny)
        return _cost_gradient_rows(embedding, P, rows, Q_unnorm, sum_Q, exaggeration)

    slices = list(gen_even_slices(n_samples, n_packs))
    with Parallel(n_jobs=n_packs, prefer="threads") as parallel:
        Q_blocks = parallel(
            delayed(_student_t_rows)(embedding, rows) for rows in slices
        )
        # Normalization needs every block before any cost or gradient row
        sum_Q = max(
            sum(np.sum(block) for block in Q_blocks), np.finfo(np.double).tiny
        )
        results = parallel(
            delayed(_cost_gradient_rows)(
                embedding, P, rows, Q_unnorm, sum_Q, exaggeration
            )
            for rows, Q_unnorm in zip(slices, Q_blocks)
        )

    cost = sum(result[0] for result in results)
    grad = np.vstack([result[1] for result in results])
    return cost, grad
