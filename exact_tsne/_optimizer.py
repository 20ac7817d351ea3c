# Authors: exact_tsne developers
# License: BSD 3 clause

"""Momentum gradient descent with adaptive gains, and display rescaling."""

import numpy as np

from ._kl import kl_divergence

__all__ = ["gradient_descent_step", "normalize_embedding"]


def gradient_descent_step(
    embedding,
    P,
    update,
    gains,
    *,
    momentum,
    learning_rate,
    exaggeration=1.0,
    gain_decay=0.8,
    gain_increment=0.2,
    min_gain=0.0,
    n_jobs=None,
):
    """Perform one step of gradient descent with momentum and adaptive gains.

    ``embedding``, ``update`` and ``gains`` are modified in place. The
    embedding is recentered to zero mean on every axis after the update.

    Parameters
    ----------
    embedding : ndarray of shape (n_samples, n_components)
        Current coordinates.

    P : ndarray of shape (n_samples, n_samples)
        Joint probability matrix from the high-dimensional space.

    update : ndarray of shape (n_samples, n_components)
        Previous step, used for momentum.

    gains : ndarray of shape (n_samples, n_components)
        Per-coordinate step multipliers.

    momentum : float
        Fraction of the previous step kept in the new one.

    learning_rate : float
        Step size applied to the gained gradient.

    exaggeration : float, default=1.0
        Multiplier applied to P in the gradient.

    gain_decay : float, default=0.8
        Factor applied to a gain whose gradient sign matches the last step.

    gain_increment : float, default=0.2
        Amount added to a gain whose gradient sign differs from the last step.

    min_gain : float, default=0.0
        Lower bound of the gains.

    n_jobs : int, default=None
        Number of threads used for the gradient.

    Returns
    -------
    error : float
        Cost of the embedding before the update.
    """
    error, grad = kl_divergence(embedding, P, exaggeration, n_jobs=n_jobs)

    same_sign = np.sign(grad) == np.sign(update)
    gains[same_sign] *= gain_decay
    gains[~same_sign] += gain_increment
    np.maximum(gains, min_gain, out=gains)

    update *= momentum
    update -= learning_rate * gains * grad
    embedding += update

    embedding -= np.mean(embedding, axis=0)
    return error


def normalize_embedding(embedding):
    """Rescale every axis of ``embedding`` into [0, 1] in place.

    Each axis is mapped linearly so that its minimum becomes 0 and its
    maximum 1. An axis on which all points coincide is set to 0.5.

    Parameters
    ----------
    embedding : ndarray of shape (n_samples, n_components)
        Coordinates to rescale.

    Returns
    -------
    embedding : ndarray of shape (n_samples, n_components)
        The same array, rescaled.
    """
    if embedding.shape[0] == 0:
        return embedding

    mins = np.min(embedding, axis=0)
    maxs = np.max(embedding, axis=0)
    ranges = maxs - mins
    flat = ranges == 0

    embedding -= mins
    embedding[:, ~flat] /= ranges[~flat]
    embedding[:, flat] = 0.5
    return embedding
