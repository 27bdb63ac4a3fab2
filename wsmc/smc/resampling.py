"""Resampling schemes returning ancestor indices for a weighted population.

Particles with zero weight are never selected.
"""

import numpy as np


def systematic_resample(weights, rng, num_samples=None):
    """Low variance resampling from a single uniform offset."""
    weights = _check_weights(weights)
    num_samples = len(weights) if num_samples is None else num_samples

    cumsum = np.cumsum(weights)
    cumsum /= cumsum[-1]

    u = (rng.random() + np.arange(num_samples)) / num_samples

    indices = np.searchsorted(cumsum, u, side="right")

    return np.minimum(indices, len(weights) - 1)


def multinomial_resample(weights, rng, num_samples=None):
    weights = _check_weights(weights)
    num_samples = len(weights) if num_samples is None else num_samples

    multiplicities = rng.multinomial(num_samples, weights / weights.sum())

    return np.repeat(np.arange(len(weights)), multiplicities)


def residual_resample(weights, rng, num_samples=None):
    """Deterministic floor(N w_i) copies, remainder drawn multinomially from the residual weights."""
    weights = _check_weights(weights)
    num_samples = len(weights) if num_samples is None else num_samples

    scaled = num_samples * weights / weights.sum()

    multiplicities = np.floor(scaled).astype(int)

    num_remaining = num_samples - multiplicities.sum()

    if num_remaining > 0:
        residual = scaled - multiplicities
        multiplicities += rng.multinomial(num_remaining, residual / residual.sum())

    return np.repeat(np.arange(len(weights)), multiplicities)


RESAMPLERS = {
    "systematic": systematic_resample,
    "residual": residual_resample,
    "multinomial": multinomial_resample,
}


def resample(weights, rng, scheme="systematic", num_samples=None):
    return RESAMPLERS[scheme](weights, rng, num_samples=num_samples)


def _check_weights(weights):
    weights = np.asarray(weights, dtype=float)
    if weights.ndim != 1 or len(weights) == 0:
        raise ValueError("Weights must be a non-empty vector.")
    if np.any(weights < 0) or not np.isfinite(weights).all():
        raise ValueError("Weights must be finite and non-negative.")
    if weights.sum() <= 0:
        raise ValueError("At least one weight must be positive.")
    return weights
