import numpy as np
from scipy.special import logsumexp


def log_normalize(log_x, axis=None):
    return log_x - logsumexp(log_x, axis=axis, keepdims=axis is not None)


def normalize(x):
    x = np.asarray(x, dtype=float)
    total = x.sum()
    if total <= 0:
        raise ValueError("Cannot normalize weights summing to {}".format(total))
    return x / total


def effective_sample_size(weights):
    """Effective sample size 1 / sum(w_i^2) of normalized weights."""
    weights = np.asarray(weights, dtype=float)
    return 1.0 / np.sum(weights**2)
