from wsmc.smc.kernels.base import ProposalKernel
from wsmc.smc.kernels.gaussian import GaussianKernel
from wsmc.smc.kernels.mixture import GaussianMixtureKernel


def setup_kernel(config, rng):
    """Proposal kernel selected by ``config.proposal``."""
    if config.proposal == "gaussian":
        return GaussianKernel(rng)
    elif config.proposal == "mixture":
        return GaussianMixtureKernel(rng, max_components=config.max_components)
    raise ValueError("Unknown proposal: {}".format(config.proposal))
