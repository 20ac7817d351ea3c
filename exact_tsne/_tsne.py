# Authors: exact_tsne developers
# License: BSD 3 clause

"""Scikit-learn estimator running exact t-SNE for a fixed number of iterations."""

import warnings
from numbers import Integral, Real

import numpy as np
from sklearn.base import BaseEstimator, TransformerMixin
from sklearn.decomposition import PCA
from sklearn.utils import check_random_state
from sklearn.utils._param_validation import Interval, StrOptions
from sklearn.utils.validation import check_array, check_is_fitted
from tqdm import tqdm

from ._distances import DistanceSource, MetricDistances, PrecomputedDistances
from ._embedding import INITIAL_STD, TSNEEmbedding

__all__ = ["TSNE"]

# Metrics accepted by sklearn.metrics.pairwise_distances
_VALID_METRICS = [
    "braycurtis",
    "canberra",
    "chebyshev",
    "cityblock",
    "correlation",
    "cosine",
    "euclidean",
    "hamming",
    "jaccard",
    "l1",
    "l2",
    "mahalanobis",
    "manhattan",
    "minkowski",
    "seuclidean",
    "sqeuclidean",
]


class TSNE(TransformerMixin, BaseEstimator):
    """Exact t-distributed Stochastic Neighbor Embedding.

    Pairwise distances are converted to joint probabilities calibrated to a
    target perplexity, and the embedding is optimized with momentum gradient
    descent and per-coordinate adaptive gains on the exact O(N^2) KL
    divergence. Early exaggeration is applied during the first iterations.

    Parameters
    ----------
    n_components : int, default=2
        Dimension of the embedded space.

    perplexity : float, default=30.0
        The perplexity is related to the number of nearest neighbors used.
        Larger datasets usually require a larger perplexity. It must be
        smaller than the number of samples, otherwise it is reduced to
        ``(n_samples - 1) / 3`` with a warning.

    learning_rate : float, default=10.0
        Step size of the gradient descent.

    n_iter : int, default=1000
        Maximum number of iterations for the optimization.

    n_iter_without_progress : int or None, default=300
        Maximum number of iterations without improvement of the cost after
        the early exaggeration phase before the optimization is aborted.
        None disables the check.

    early_exaggeration : float, default=4.0
        Multiplier applied to P in the gradient during the first
        ``exaggeration_iter`` iterations. Larger values pull natural clusters
        apart.

    exaggeration_iter : int, default=100
        Length of the early exaggeration phase.

    momentum : float, default=0.5
        Momentum used before ``momentum_switch_iter``.

    final_momentum : float, default=0.8
        Momentum used from ``momentum_switch_iter`` on.

    momentum_switch_iter : int, default=250
        Iteration at which the momentum switches.

    init : {'random', 'pca'} or ndarray of shape (n_samples, n_components), \
            default='random'
        Initialization of the embedding. 'random' draws from an isotropic
        Gaussian with standard deviation 1e-4; 'pca' uses the principal
        components of X scaled to the same spread and cannot be used with
        precomputed distances.

    metric : str or callable, default='euclidean'
        The metric to use when calculating distance between instances in a
        feature array. If metric is "precomputed", X is assumed to be a
        distance matrix. The default "euclidean" is interpreted as squared
        euclidean distance.

    metric_params : dict, default=None
        Additional keyword arguments for the metric function.

    normalize : bool, default=False
        Rescale every axis of the final embedding into [0, 1].

    verbose : int, default=0
        Verbosity level. If greater than 0, a progress bar and progress
        messages are printed.

    random_state : int, RandomState instance or None, default=None
        Determines the random number generator for initialization.
        Pass an int for reproducible results across multiple function calls.

    n_jobs : int, default=None
        The number of parallel threads used for the distance, calibration and
        gradient computations. ``None`` means 1, ``-1`` means all processors.

    Attributes
    ----------
    embedding_ : ndarray of shape (n_samples, n_components)
        Stores the embedding vectors.

    kl_divergence_ : float
        KL divergence cost of the last iteration.

    n_iter_ : int
        Number of iterations run.

    convergence_history_ : ndarray of shape (n_iter_,)
        Cost of every iteration.

    embedding_state_ : TSNEEmbedding
        The optimized embedding, which can be stepped further.

    n_features_in_ : int
        Number of features seen during :term:`fit`. Not set for precomputed
        distances.

    References
    ----------
    .. [1] van der Maaten, L.J.P. and Hinton, G.E., 2008. "Visualizing
       High-Dimensional Data Using t-SNE." Journal of Machine Learning
       Research, 9(Nov), pp.2579-2605.

    Examples
    --------
    >>> import numpy as np
    >>> from exact_tsne import TSNE
    >>> X = np.array([[0, 0, 0], [0, 1, 1], [1, 0, 1], [1, 1, 1]])
    >>> model = TSNE(perplexity=2, n_iter=50, random_state=0)
    >>> Y = model.fit_transform(X)
    >>> Y.shape
    (4, 2)
    """

    _parameter_constraints: dict = {
        "n_components": [Interval(Integral, 1, None, closed="left")],
        "perplexity": [Interval(Real, 0, None, closed="neither")],
        "learning_rate": [Interval(Real, 0, None, closed="neither")],
        "n_iter": [Interval(Integral, 1, None, closed="left")],
        "n_iter_without_progress": [Interval(Integral, 1, None, closed="left"), None],
        "early_exaggeration": [Interval(Real, 0, None, closed="neither")],
        "exaggeration_iter": [Interval(Integral, 0, None, closed="left")],
        "momentum": [Interval(Real, 0, 1, closed="both")],
        "final_momentum": [Interval(Real, 0, 1, closed="both")],
        "momentum_switch_iter": [Interval(Integral, 0, None, closed="left")],
        "init": [StrOptions({"random", "pca"}), np.ndarray],
        "metric": [StrOptions(set(_VALID_METRICS) | {"precomputed"}), callable],
        "metric_params": [dict, None],
        "normalize": ["boolean"],
        "verbose": ["verbose"],
        "random_state": ["random_state"],
        "n_jobs": [None, Integral],
    }

    def __init__(
        self,
        n_components=2,
        perplexity=30.0,
        learning_rate=10.0,
        n_iter=1000,
        n_iter_without_progress=300,
        early_exaggeration=4.0,
        exaggeration_iter=100,
        momentum=0.5,
        final_momentum=0.8,
        momentum_switch_iter=250,
        init="random",
        metric="euclidean",
        metric_params=None,
        normalize=False,
        verbose=0,
        random_state=None,
        n_jobs=None,
    ):
        self.n_components = n_components
        self.perplexity = perplexity
        self.learning_rate = learning_rate
        self.n_iter = n_iter
        self.n_iter_without_progress = n_iter_without_progress
        self.early_exaggeration = early_exaggeration
        self.exaggeration_iter = exaggeration_iter
        self.momentum = momentum
        self.final_momentum = final_momentum
        self.momentum_switch_iter = momentum_switch_iter
        self.init = init
        self.metric = metric
        self.metric_params = metric_params
        self.normalize = normalize
        self.verbose = verbose
        self.random_state = random_state
        self.n_jobs = n_jobs

    def _validate_parameters(self):
        """Validate input parameters.

        Raises
        ------
        ValueError
            If any parameter is invalid.
        """
        self._validate_params()

        if self.metric_params is not None and self.metric == "euclidean":
            warnings.warn(
                "metric_params is ignored for the squared euclidean metric.",
                UserWarning,
            )

    def _check_params_vs_input(self, n_samples):
        """Check if perplexity is smaller than number of samples."""
        if self.perplexity >= n_samples:
            self._perplexity_value = max(1.0, (n_samples - 1) / 3.0)
            warnings.warn(
                f"Perplexity ({self.perplexity}) should be less than "
                f"n_samples ({n_samples}). "
                f"Using perplexity = {self._perplexity_value:.3f} instead.",
                UserWarning,
            )
        else:
            self._perplexity_value = self.perplexity

    def _validate_data(self, X):
        """Validate the input data and wrap it in a distance source.

        Parameters
        ----------
        X : ndarray of shape (n_samples, n_features) or (n_samples, n_samples) \
                or DistanceSource
            If the metric is 'precomputed' X must be a square distance
            matrix. Otherwise it contains a sample per row.

        Returns
        -------
        X : ndarray or None
            The validated feature array, None when no features are available.

        source : DistanceSource
            Distances between the samples.
        """
        if isinstance(X, DistanceSource):
            if len(X) < 2:
                raise ValueError(
                    f"Found {len(X)} item(s) while a minimum of 2 is required."
                )
            return None, X

        if self.metric == "precomputed":
            X = check_array(
                X,
                accept_sparse=False,
                ensure_min_samples=2,
                dtype=np.float64,
            )
            if X.shape[0] != X.shape[1]:
                raise ValueError(
                    f"X should be a square distance matrix but has shape {X.shape}"
                )
            if np.any(X < 0):
                raise ValueError("Precomputed distance contains negative values")
            return None, PrecomputedDistances(X)

        X = check_array(
            X,
            accept_sparse=False,
            dtype=np.float64,
            ensure_min_samples=2,
        )
        self.n_features_in_ = X.shape[1]
        source = MetricDistances(
            X, metric=self.metric, metric_params=self.metric_params, n_jobs=self.n_jobs
        )
        return X, source

    def _initial_embedding(self, X, n_samples, random_state):
        """Starting coordinates, or None for a random start."""
        if isinstance(self.init, np.ndarray):
            if self.init.shape != (n_samples, self.n_components):
                raise ValueError(
                    f"init.shape={self.init.shape} but should be "
                    f"(n_samples, n_components)=({n_samples}, {self.n_components})"
                )
            return self.init

        if self.init == "pca":
            if X is None:
                raise ValueError(
                    'The parameter init="pca" cannot be used with '
                    "precomputed distances."
                )
            pca = PCA(n_components=self.n_components, random_state=random_state)
            embedding = pca.fit_transform(X).astype(np.float64, copy=False)
            std = np.std(embedding[:, 0])
            if not np.isfinite(std) or std == 0:
                # Constant data has no principal direction
                return None
            # Same spread as the random initialization
            return embedding / std * INITIAL_STD

        return None

    def _optimize_embedding(self, state):
        """Step ``state`` until ``n_iter`` steps or a cost plateau."""
        best_error = np.inf
        best_iter = 0
        errors = []

        iterator = tqdm(range(self.n_iter), disable=self.verbose < 1)
        for _ in iterator:
            error = state.step()
            errors.append(error)
            iteration = state.iteration

            if self.verbose and iteration % 50 == 0:
                tqdm.write(f"Iteration {iteration}: error = {error:.7f}")

            # The cost only plateaus once the exaggeration is lifted
            if iteration <= self.exaggeration_iter:
                continue
            if error < best_error:
                best_error = error
                best_iter = iteration
            elif (
                self.n_iter_without_progress is not None
                and iteration - best_iter > self.n_iter_without_progress
            ):
                if self.verbose:
                    tqdm.write(
                        f"Iteration {iteration}: did not make any progress "
                        f"during the last {self.n_iter_without_progress} "
                        f"iterations. Finished."
                    )
                break

        iterator.close()

        assert np.all(np.isfinite(state.embedding)), "Embedding contains invalid values"
        return errors

    def fit(self, X, y=None):
        """Fit t-SNE model to X.

        Parameters
        ----------
        X : ndarray of shape (n_samples, n_features) or (n_samples, n_samples) \
                or DistanceSource
            If the metric is 'precomputed' X must be a square distance
            matrix. Otherwise it contains a sample per row. A DistanceSource
            is used as is, whatever the metric.

        y : Ignored
            Not used, present for API consistency by convention.

        Returns
        -------
        self : object
            Returns the instance itself.
        """
        if hasattr(self, "n_features_in_"):
            # Only set when fitted on a feature array
            del self.n_features_in_
        self._validate_parameters()

        X, source = self._validate_data(X)
        n_samples = len(source)
        self._check_params_vs_input(n_samples)

        random_state = check_random_state(self.random_state)
        init = self._initial_embedding(X, n_samples, random_state)

        state = TSNEEmbedding(
            source,
            n_components=self.n_components,
            perplexity=self._perplexity_value,
            learning_rate=self.learning_rate,
            early_exaggeration=self.early_exaggeration,
            exaggeration_iter=self.exaggeration_iter,
            momentum=self.momentum,
            final_momentum=self.final_momentum,
            momentum_switch_iter=self.momentum_switch_iter,
            init=init,
            random_state=random_state,
            n_jobs=self.n_jobs,
            verbose=min(self.verbose, 1),
        )

        errors = self._optimize_embedding(state)
        if self.normalize:
            state.normalize()

        self.embedding_state_ = state
        self.embedding_ = np.array(state.embedding)
        self.kl_divergence_ = errors[-1]
        self.n_iter_ = len(errors)
        self.convergence_history_ = np.array(errors)

        if self.verbose:
            print(
                f"KL divergence after {self.n_iter_} iterations: "
                f"{self.kl_divergence_:.6f}"
            )

        return self

    def fit_transform(self, X, y=None):
        """Fit t-SNE model to X and return the embedding.

        Parameters
        ----------
        X : ndarray of shape (n_samples, n_features) or (n_samples, n_samples) \
                or DistanceSource
            If the metric is 'precomputed' X must be a square distance
            matrix. Otherwise it contains a sample per row.

        y : Ignored
            Not used, present for API consistency by convention.

        Returns
        -------
        embedding : ndarray of shape (n_samples, n_components)
            Embedding of the training data in low-dimensional space.
        """
        self.fit(X)
        return self.embedding_

    def transform(self, X):
        """Transform X to the embedded space.

        This is not implemented for t-SNE. New data points cannot be
        transformed to the embedded space without recomputing the full
        embedding.

        Raises
        ------
        NotImplementedError
            In all cases, as t-SNE does not have a transform method.
        """
        check_is_fitted(self)

        raise NotImplementedError(
            "t-SNE does not support the transform method. "
            "New data points cannot be transformed to the embedded space "
            "without recomputing the full embedding. "
            "Use fit_transform(X) on the full dataset instead."
        )

    def get_feature_names_out(self, input_features=None):
        """Get output feature names for transformation.

        Parameters
        ----------
        input_features : array-like of str or None, default=None
            Ignored.

        Returns
        -------
        feature_names_out : ndarray of str objects
            Output feature names.
        """
        check_is_fitted(self)
        return np.array([f"tsne{i}" for i in range(self.n_components)], dtype=object)
