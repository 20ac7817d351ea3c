# Authors: exact_tsne developers
# License: BSD 3 clause

"""Stateful exact t-SNE embedding driven one step at a time."""

from numbers import Integral, Real

import numpy as np
from sklearn.utils import check_random_state, check_scalar

from ._distances import DistanceSource, PrecomputedDistances, compute_distances
from ._optimizer import gradient_descent_step, normalize_embedding
from ._probabilities import binary_search_perplexity, symmetrize_probabilities

__all__ = ["TSNEEmbedding"]

# Standard deviation of the random starting coordinates
INITIAL_STD = 1e-4


def _read_only(array):
    view = array.view()
    view.flags.writeable = False
    return view


class TSNEEmbedding:
    """Exact t-SNE embedding of a fixed set of items.

    The distance source is consumed once: pairwise distances are turned into
    the joint probability matrix P and discarded. Each call to :meth:`step`
    runs one iteration of momentum gradient descent with adaptive gains on
    the KL divergence between P and the Student-t similarities of the
    current coordinates. Termination is left to the caller.

    Parameters
    ----------
    distances : DistanceSource or array-like of shape (n_samples, n_samples)
        Items to embed. A square array is treated as precomputed distances.

    metadata : sequence of length n_samples, default=None
        Arbitrary per-item payload, stored and returned unexamined.

    n_components : int, default=2
        Dimension of the embedded space.

    perplexity : float, default=30.0
        Effective number of neighbors of each item.

    learning_rate : float, default=10.0
        Step size of the gradient descent.

    tol : float, default=1e-4
        Entropy tolerance of the perplexity binary search.

    max_tries : int, default=500
        Maximum number of binary search steps per item.

    early_exaggeration : float, default=4.0
        Multiplier applied to P in the gradient while the iteration counter
        is below ``exaggeration_iter``.

    exaggeration_iter : int, default=100
        Iteration at which early exaggeration ends.

    momentum : float, default=0.5
        Momentum used while the iteration counter is below
        ``momentum_switch_iter``.

    final_momentum : float, default=0.8
        Momentum used afterwards.

    momentum_switch_iter : int, default=250
        Iteration at which the momentum switches.

    gain_decay : float, default=0.8
        Gain multiplier when the gradient keeps the sign of the last step.

    gain_increment : float, default=0.2
        Gain increment when the gradient sign flips.

    min_gain : float, default=0.0
        Lower bound of the gains.

    init : ndarray of shape (n_samples, n_components), default=None
        Starting coordinates. Random coordinates are drawn when None.

    random_state : int, RandomState instance or None, default=None
        Generator for the random starting coordinates. Pass an int for
        reproducible results.

    n_jobs : int, default=None
        Number of threads used by the calibration and gradient evaluation.
        ``None`` means 1, ``-1`` means all processors.

    verbose : int, default=0
        Verbosity level. 1 reports the calibration, 2 also prints the cost
        every 50 iterations.

    Examples
    --------
    >>> import numpy as np
    >>> from exact_tsne import TSNEEmbedding, VectorDistances
    >>> X = np.array([[0, 0], [0, 1], [100, 100], [100, 101]])
    >>> embedding = TSNEEmbedding(VectorDistances(X), perplexity=2, random_state=0)
    >>> costs = [embedding.step() for _ in range(10)]
    >>> embedding.embedding.shape
    (4, 2)
    """

    def __init__(
        self,
        distances,
        metadata=None,
        *,
        n_components=2,
        perplexity=30.0,
        learning_rate=10.0,
        tol=1e-4,
        max_tries=500,
        early_exaggeration=4.0,
        exaggeration_iter=100,
        momentum=0.5,
        final_momentum=0.8,
        momentum_switch_iter=250,
        gain_decay=0.8,
        gain_increment=0.2,
        min_gain=0.0,
        init=None,
        random_state=None,
        n_jobs=None,
        verbose=0,
    ):
        check_scalar(n_components, "n_components", Integral, min_val=1)
        check_scalar(
            learning_rate,
            "learning_rate",
            Real,
            min_val=0,
            include_boundaries="neither",
        )
        check_scalar(
            early_exaggeration,
            "early_exaggeration",
            Real,
            min_val=0,
            include_boundaries="neither",
        )
        check_scalar(exaggeration_iter, "exaggeration_iter", Integral, min_val=0)
        check_scalar(momentum, "momentum", Real, min_val=0, max_val=1)
        check_scalar(final_momentum, "final_momentum", Real, min_val=0, max_val=1)
        check_scalar(momentum_switch_iter, "momentum_switch_iter", Integral, min_val=0)
        check_scalar(
            gain_decay, "gain_decay", Real, min_val=0, include_boundaries="neither"
        )
        check_scalar(gain_increment, "gain_increment", Real, min_val=0)
        check_scalar(min_gain, "min_gain", Real, min_val=0)

        if not isinstance(distances, DistanceSource):
            distances = PrecomputedDistances(distances)
        D = compute_distances(distances)
        n_samples = D.shape[0]

        if metadata is not None and len(metadata) != n_samples:
            raise ValueError(
                f"metadata has {len(metadata)} entries but there are "
                f"{n_samples} items"
            )

        self.n_components = n_components
        self.perplexity = perplexity
        self.learning_rate = learning_rate
        self.early_exaggeration = early_exaggeration
        self.exaggeration_iter = exaggeration_iter
        self.momentum = momentum
        self.final_momentum = final_momentum
        self.momentum_switch_iter = momentum_switch_iter
        self.gain_decay = gain_decay
        self.gain_increment = gain_increment
        self.min_gain = min_gain
        self.n_jobs = n_jobs
        self.verbose = verbose
        self._metadata = metadata

        conditional_P, self._betas = binary_search_perplexity(
            D,
            perplexity,
            tol=tol,
            max_tries=max_tries,
            n_jobs=n_jobs,
            verbose=verbose,
        )
        del D
        self._P = symmetrize_probabilities(conditional_P)

        self._random_state = check_random_state(random_state)
        if init is None:
            self.reinitialize()
        else:
            init = np.array(init, dtype=np.float64)
            if init.shape != (n_samples, n_components):
                raise ValueError(
                    f"init.shape={init.shape} but should be "
                    f"(n_samples, n_components)=({n_samples}, {n_components})"
                )
            self._reset_state(init)

    def _reset_state(self, embedding):
        self._embedding = embedding
        self._update = np.zeros_like(embedding)
        self._gains = np.ones_like(embedding)
        self._iteration = 0

    def reinitialize(self, random_state=None):
        """Restart from fresh random coordinates.

        Gains and momentum are reset and the iteration counter goes back
        to 0. The probability matrix is kept.

        Parameters
        ----------
        random_state : int, RandomState instance or None, default=None
            Generator for the new coordinates. When None, the generator given
            at construction keeps being used.
        """
        if random_state is not None:
            self._random_state = check_random_state(random_state)
        embedding = self._random_state.normal(
            0.0, INITIAL_STD, (self.n_samples, self.n_components)
        )
        self._reset_state(embedding)

    def step(self):
        """Run one optimization iteration.

        Returns
        -------
        error : float
            KL divergence cost evaluated during this iteration.
        """
        self._iteration += 1
        iteration = self._iteration

        if iteration < self.exaggeration_iter:
            exaggeration = self.early_exaggeration
        else:
            exaggeration = 1.0
        if iteration < self.momentum_switch_iter:
            momentum = self.momentum
        else:
            momentum = self.final_momentum

        error = gradient_descent_step(
            self._embedding,
            self._P,
            self._update,
            self._gains,
            momentum=momentum,
            learning_rate=self.learning_rate,
            exaggeration=exaggeration,
            gain_decay=self.gain_decay,
            gain_increment=self.gain_increment,
            min_gain=self.min_gain,
            n_jobs=self.n_jobs,
        )

        if self.verbose > 1 and iteration % 50 == 0:
            print(f"Iteration {iteration}: error = {error:.7f}")

        return error

    def optimize(self, n_iter, callback=None):
        """Run up to ``n_iter`` steps.

        Parameters
        ----------
        n_iter : int
            Number of steps to run.

        callback : callable, default=None
            Called as ``callback(iteration, error, embedding)`` after every
            step. Returning True stops the optimization.

        Returns
        -------
        errors : list of float
            Cost of every step that was run.
        """
        check_scalar(n_iter, "n_iter", Integral, min_val=0)
        errors = []
        for _ in range(n_iter):
            error = self.step()
            errors.append(error)
            if callback is not None and callback(
                self._iteration, error, self.embedding
            ):
                if self.verbose:
                    print(f"Optimization stopped by callback at {self._iteration}")
                break
        return errors

    def normalize(self):
        """Rescale the coordinates of every axis into [0, 1] in place."""
        normalize_embedding(self._embedding)
        return self

    @property
    def embedding(self):
        """Current coordinates, of shape (n_samples, n_components)."""
        return _read_only(self._embedding)

    @property
    def P(self):
        """Joint probability matrix, of shape (n_samples, n_samples)."""
        return _read_only(self._P)

    @property
    def betas(self):
        """Kernel precision found for every item."""
        return _read_only(self._betas)

    @property
    def gains(self):
        return _read_only(self._gains)

    @property
    def update(self):
        return _read_only(self._update)

    @property
    def iteration(self):
        """Number of steps run since the last (re)initialization."""
        return self._iteration

    @property
    def metadata(self):
        return self._metadata

    @property
    def n_samples(self):
        return self._P.shape[0]
