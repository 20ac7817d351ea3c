# Authors: exact_tsne developers
# License: BSD 3 clause

"""Distance sources consumed once when an embedding is constructed."""

from abc import ABC, abstractmethod

import numpy as np
from scipy.spatial.distance import pdist, squareform
from sklearn.metrics import pairwise_distances
from sklearn.utils.validation import check_array

__all__ = [
    "DistanceSource",
    "VectorDistances",
    "MetricDistances",
    "PrecomputedDistances",
    "compute_distances",
]


class DistanceSource(ABC):
    """Collection of items with a pairwise distance.

    Subclasses implement ``__len__`` and ``distance``. The distance must be
    symmetric, non-negative and zero between an item and itself; it does not
    need to satisfy the triangle inequality.
    """

    @abstractmethod
    def __len__(self):
        """Number of items in the collection."""

    @abstractmethod
    def distance(self, i, j):
        """Distance between items ``i`` and ``j``."""

    def pairwise(self):
        """Return the dense ``(n_items, n_items)`` distance matrix.

        The default implementation calls :meth:`distance` once for every
        unordered pair. Subclasses backed by arrays override it with a
        vectorized computation.
        """
        n_items = len(self)
        distances = np.zeros((n_items, n_items), dtype=np.float64)
        for i in range(n_items - 1):
            for j in range(i + 1, n_items):
                d = float(self.distance(i, j))
                distances[i, j] = d
                distances[j, i] = d
        return distances


class VectorDistances(DistanceSource):
    """Squared euclidean distance between the rows of a 2D array.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
        One item per row.
    """

    def __init__(self, X):
        self.X = check_array(X, dtype=np.float64, ensure_min_samples=0)

    def __len__(self):
        return self.X.shape[0]

    def distance(self, i, j):
        diff = self.X[i] - self.X[j]
        return float(np.dot(diff, diff))

    def pairwise(self):
        if len(self) < 2:
            return np.zeros((len(self), len(self)))
        return squareform(pdist(self.X, "sqeuclidean"))


class MetricDistances(DistanceSource):
    """Distances between feature vectors under any scikit-learn metric.

    Parameters
    ----------
    X : array-like of shape (n_samples, n_features)
        One item per row.

    metric : str or callable, default='euclidean'
        Any metric accepted by :func:`sklearn.metrics.pairwise_distances`.
        ``'euclidean'`` is interpreted as squared euclidean distance.

    metric_params : dict, default=None
        Additional keyword arguments for the metric function.

    n_jobs : int, default=None
        Number of parallel jobs used by ``pairwise_distances``.
    """

    def __init__(self, X, metric="euclidean", metric_params=None, n_jobs=None):
        self.X = check_array(X, dtype=np.float64, ensure_min_samples=0)
        self.metric = metric
        self.metric_params = metric_params
        self.n_jobs = n_jobs

    def __len__(self):
        return self.X.shape[0]

    def _pairwise(self, A, B=None):
        if self.metric == "euclidean":
            return pairwise_distances(
                A, B, metric="euclidean", squared=True, n_jobs=self.n_jobs
            )
        metric_params = self.metric_params or {}
        return pairwise_distances(
            A, B, metric=self.metric, n_jobs=self.n_jobs, **metric_params
        )

    def distance(self, i, j):
        return float(self._pairwise(self.X[i : i + 1], self.X[j : j + 1])[0, 0])

    def pairwise(self):
        if len(self) == 0:
            return np.zeros((0, 0))
        return self._pairwise(self.X)


class PrecomputedDistances(DistanceSource):
    """A user supplied square distance matrix.

    Parameters
    ----------
    D : array-like of shape (n_samples, n_samples)
        Symmetric, non-negative distance matrix.
    """

    def __init__(self, D):
        self.D = np.asarray(D, dtype=np.float64)

    def __len__(self):
        return self.D.shape[0]

    def distance(self, i, j):
        return float(self.D[i, j])

    def pairwise(self):
        if self.D.ndim != 2 or self.D.shape[0] != self.D.shape[1]:
            raise ValueError(
                f"Precomputed distances should be a square matrix but has "
                f"shape {self.D.shape}"
            )
        if not np.allclose(self.D, self.D.T, equal_nan=True):
            raise ValueError("Precomputed distance matrix is not symmetric")
        return self.D.copy()


def compute_distances(source):
    """Build and validate the dense distance matrix of a distance source.

    Parameters
    ----------
    source : DistanceSource
        Items to measure.

    Returns
    -------
    distances : ndarray of shape (n_samples, n_samples)
        Symmetric matrix with a zero diagonal.

    Raises
    ------
    ValueError
        If the source holds fewer than 2 items or yields a malformed matrix.
    """
    if not isinstance(source, DistanceSource):
        raise TypeError(
            f"Expected a DistanceSource instance, got {type(source).__name__}"
        )
    n_samples = len(source)
    if n_samples < 2:
        raise ValueError(
            f"At least 2 items are required to compute an embedding, "
            f"got {n_samples}"
        )

    distances = np.asarray(source.pairwise(), dtype=np.float64)
    if distances.shape != (n_samples, n_samples):
        raise ValueError(
            f"Distance matrix has shape {distances.shape}, expected "
            f"({n_samples}, {n_samples})"
        )
    if not np.all(np.isfinite(distances)):
        raise ValueError("Distance matrix contains invalid values")
    if np.any(distances < 0):
        raise ValueError("Distance matrix contains negative values")

    np.fill_diagonal(distances, 0.0)
    return distances
