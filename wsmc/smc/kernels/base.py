import numpy as np

from wsmc.utils.math_utils import normalize


class ProposalKernel(object):
    """Abstract class representing an independent proposal fitted to a weighted particle population.

    Subclasses should implement the _fit, sample and log_p methods.
    """

    __slots__ = ("_rng", "dimension")

    def __init__(self, rng):
        self._rng = rng

        self.dimension = None

    @property
    def rng(self):
        return self._rng

    def fit(self, thetas, weights):
        """Fit the proposal to ``thetas`` weighted by ``weights``. Particles with zero weight are ignored."""
        thetas = np.asarray(thetas, dtype=float)

        if thetas.ndim == 1:
            thetas = thetas[:, np.newaxis]

        weights = np.asarray(weights, dtype=float)

        keep = weights > 0

        if not np.any(keep):
            raise ValueError("Cannot fit a proposal to a population with no positive weights.")

        thetas = thetas[keep]
        weights = normalize(weights[keep])

        self.dimension = thetas.shape[1]

        self._fit(thetas, weights)

        return self

    def _fit(self, thetas, weights):
        raise NotImplementedError

    def sample(self, size, rng=None):
        """Draw ``size`` parameter vectors as a ``size x dimension`` array."""
        raise NotImplementedError

    def log_p(self, theta):
        """Log density of one vector (scalar result) or of the rows of a matrix (vector result)."""
        raise NotImplementedError

    def _get_rng(self, rng):
        if rng is None:
            return self._rng
        return rng


def weighted_mean_and_covariance(thetas, weights, ridge=1e-10):
    """Weighted mean and (biased) weighted covariance, regularized to stay positive definite."""
    mean = weights @ thetas

    centred = thetas - mean

    cov = (weights[:, np.newaxis] * centred).T @ centred

    cov = regularize_covariance(cov, ridge)

    return mean, cov


def regularize_covariance(cov, ridge=1e-10):
    cov = np.atleast_2d(cov)

    cov = 0.5 * (cov + cov.T)

    scale = max(np.max(np.abs(np.diag(cov))), 1.0)

    return cov + ridge * scale * np.eye(len(cov))
