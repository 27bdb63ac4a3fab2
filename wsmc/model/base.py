import numpy as np


class Model(object):
    """Abstract class for a simulation model with a tractable prior.

    Subclasses set ``parameter_names`` and implement ``prior_sample``, ``prior_log_density`` and ``simulate``. Models
    are shipped to worker processes, so they must be picklable.
    """

    parameter_names = ()

    @property
    def dimension(self):
        return len(self.parameter_names)

    def prior_sample(self, n, rng):
        """Draw ``n`` parameter vectors from the prior as an ``n x dimension`` array."""
        raise NotImplementedError

    def prior_log_density(self, theta):
        """Log prior density of one parameter vector, ``-inf`` outside the support."""
        raise NotImplementedError

    def simulate(self, theta, rng):
        """Simulate one data set given parameters ``theta``."""
        raise NotImplementedError

    def sample_prior(self, n, rng):
        thetas = np.asarray(self.prior_sample(n, rng), dtype=float)
        thetas = thetas.reshape(n, self.dimension)
        return thetas
