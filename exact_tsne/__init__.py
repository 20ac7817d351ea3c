"""Exact t-distributed Stochastic Neighbor Embedding."""

# License: BSD 3 clause

from ._distances import (
    DistanceSource,
    MetricDistances,
    PrecomputedDistances,
    VectorDistances,
    compute_distances,
)
from ._embedding import TSNEEmbedding
from ._kl import kl_divergence
from ._optimizer import gradient_descent_step, normalize_embedding
from ._probabilities import binary_search_perplexity, joint_probabilities
from ._tsne import TSNE
from ._version import __version__

__all__ = [
    "TSNE",
    "TSNEEmbedding",
    "DistanceSource",
    "VectorDistances",
    "MetricDistances",
    "PrecomputedDistances",
    "compute_distances",
    "binary_search_perplexity",
    "joint_probabilities",
    "kl_divergence",
    "gradient_descent_step",
    "normalize_embedding",
    "__version__",
]
