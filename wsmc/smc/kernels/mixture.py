import numpy as np
from scipy.special import logsumexp
from scipy.stats import multivariate_normal

from wsmc.smc.kernels.base import ProposalKernel, regularize_covariance, weighted_mean_and_covariance
from wsmc.utils.math_utils import log_normalize

EM_MAX_ITER = 200

EM_TOL = 1e-6

MIN_COMPONENT_WEIGHT = 1e-6

# Component covariances are floored at this fraction of the population variance.
COVARIANCE_FLOOR = 1e-3


class GaussianMixtureKernel(ProposalKernel):
    """Gaussian mixture proposal fitted by weighted EM.

    The number of components is chosen by BIC among ``1..max_components``, using the number of live particles as
    the sample size.
    """

    __slots__ = ("max_components", "mix_weights", "means", "covs", "bic")

    def __init__(self, rng, max_components=5):
        super().__init__(rng)

        self.max_components = max_components

        self.mix_weights = None

        self.means = None

        self.covs = None

        self.bic = None

    @property
    def num_components(self):
        return len(self.mix_weights)

    def _fit(self, thetas, weights):
        num_distinct = len(np.unique(thetas, axis=0))

        max_components = max(1, min(self.max_components, num_distinct))

        best = None

        for num_components in range(1, max_components + 1):
            params = fit_weighted_mixture(thetas, weights, num_components, self._rng)

            bic = compute_bic(thetas, weights, *params)

            if best is None or bic < best[0]:
                best = (bic, params)

        self.bic, (self.mix_weights, self.means, self.covs) = best

    def sample(self, size, rng=None):
        rng = self._get_rng(rng)

        components = rng.choice(self.num_components, size=size, p=self.mix_weights)

        samples = np.empty((size, self.dimension))

        for k in range(self.num_components):
            idx = np.flatnonzero(components == k)
            if len(idx) > 0:
                samples[idx] = rng.multivariate_normal(self.means[k], self.covs[k], size=len(idx))

        return samples

    def log_p(self, theta):
        theta = np.asarray(theta, dtype=float)

        log_p = mixture_log_likelihoods(theta.reshape(-1, self.dimension), self.mix_weights, self.means, self.covs)

        if theta.ndim <= 1:
            return float(log_p[0])
        return log_p


def fit_weighted_mixture(thetas, weights, num_components, rng):
    """Weighted EM for a Gaussian mixture, returning ``(mix_weights, means, covs)``."""
    mean, cov = weighted_mean_and_covariance(thetas, weights)

    if num_components == 1:
        return np.ones(1), mean[np.newaxis, :], cov[np.newaxis, :, :]

    unique_thetas, inverse = np.unique(thetas, axis=0, return_inverse=True)

    unique_weights = np.bincount(inverse.reshape(-1), weights=weights)

    init_idx = rng.choice(len(unique_thetas), size=num_components, replace=False, p=unique_weights)

    means = unique_thetas[init_idx].copy()

    cov_floor = COVARIANCE_FLOOR * np.diag(np.diag(cov))

    covs = np.repeat(cov[np.newaxis, :, :], num_components, axis=0)

    mix_weights = np.full(num_components, 1.0 / num_components)

    prev_ll = -np.inf

    for _ in range(EM_MAX_ITER):
        log_resp = _component_log_densities(thetas, mix_weights, means, covs)

        ll = np.sum(weights * logsumexp(log_resp, axis=1))

        resp = np.exp(log_normalize(log_resp, axis=1)) * weights[:, np.newaxis]

        mass = resp.sum(axis=0)

        mix_weights = np.maximum(mass, MIN_COMPONENT_WEIGHT)
        mix_weights /= mix_weights.sum()

        for k in range(num_components):
            if mass[k] <= MIN_COMPONENT_WEIGHT:
                continue
            component_weights = resp[:, k] / mass[k]
            means[k], covs[k] = weighted_mean_and_covariance(thetas, component_weights)
            covs[k] += cov_floor

        if abs(ll - prev_ll) < EM_TOL * max(1.0, abs(ll)):
            break

        prev_ll = ll

    covs = np.array([regularize_covariance(c) for c in covs])

    return mix_weights, means, covs


def compute_bic(thetas, weights, mix_weights, means, covs):
    num_samples, dim = thetas.shape

    num_components = len(mix_weights)

    num_params = (num_components - 1) + num_components * dim + num_components * dim * (dim + 1) / 2

    ll = num_samples * np.sum(weights * mixture_log_likelihoods(thetas, mix_weights, means, covs))

    return -2 * ll + num_params * np.log(num_samples)


def mixture_log_likelihoods(thetas, mix_weights, means, covs):
    return logsumexp(_component_log_densities(thetas, mix_weights, means, covs), axis=1)


def _component_log_densities(thetas, mix_weights, means, covs):
    log_dens = np.empty((len(thetas), len(mix_weights)))

    for k in range(len(mix_weights)):
        log_dens[:, k] = np.log(mix_weights[k]) + multivariate_normal.logpdf(
            thetas, mean=means[k], cov=covs[k], allow_singular=True
        ).reshape(-1)

    return log_dens
