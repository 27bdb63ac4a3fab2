import numpy as np
from scipy.stats import multivariate_normal

from wsmc.smc.kernels.base import ProposalKernel, weighted_mean_and_covariance


class GaussianKernel(ProposalKernel):
    """Multivariate normal proposal matching the weighted mean and covariance of the population."""

    __slots__ = ("mean", "cov")

    def __init__(self, rng):
        super().__init__(rng)

        self.mean = None

        self.cov = None

    def _fit(self, thetas, weights):
        self.mean, self.cov = weighted_mean_and_covariance(thetas, weights)

    def sample(self, size, rng=None):
        rng = self._get_rng(rng)

        return rng.multivariate_normal(self.mean, self.cov, size=size)

    def log_p(self, theta):
        theta = np.asarray(theta, dtype=float)

        log_p = multivariate_normal.logpdf(
            theta.reshape(-1, self.dimension), mean=self.mean, cov=self.cov, allow_singular=True
        )

        if theta.ndim <= 1:
            return float(np.squeeze(log_p))
        return np.atleast_1d(log_p)
