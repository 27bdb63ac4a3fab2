from __future__ import annotations

import numpy as np

from wsmc.smc.threshold import within_threshold
from wsmc.utils.exceptions import DegenerateThresholdError, SimulationError
from wsmc.utils.math_utils import effective_sample_size
from wsmc.utils.utils import TaskError, draw_seeds, map_tasks


class ParticlePopulation(object):
    """Fixed size collection of parameter vectors with their weights and distances to the observed data.

    ``thetas`` is an ``N x d`` array, ``weights``, ``distances`` and ``needs_move`` have length ``N``. Unknown
    distances are stored as ``nan``.
    """

    __slots__ = ("thetas", "weights", "distances", "needs_move")

    def __init__(self, thetas, weights=None, distances=None, needs_move=None):
        thetas = np.array(thetas, dtype=float)

        if thetas.ndim == 1:
            thetas = thetas[:, np.newaxis]

        num_particles = len(thetas)

        if weights is None:
            weights = np.full(num_particles, 1.0 / num_particles)

        if distances is None:
            distances = np.full(num_particles, np.nan)

        if needs_move is None:
            needs_move = np.zeros(num_particles, dtype=bool)

        self.thetas = thetas

        self.weights = np.array(weights, dtype=float)

        self.distances = np.array(distances, dtype=float)

        self.needs_move = np.array(needs_move, dtype=bool)

        if not (len(self.weights) == len(self.distances) == len(self.needs_move) == num_particles):
            raise ValueError("Particle, weight, distance and move arrays must have the same length.")

    def __len__(self):
        return len(self.thetas)

    @classmethod
    def initialize(cls, num_particles, model, rng) -> ParticlePopulation:
        """Draw ``num_particles`` independent particles from the prior with uniform weights."""
        thetas = model.sample_prior(num_particles, rng)

        return cls(thetas)

    @property
    def num_particles(self):
        return len(self.thetas)

    @property
    def dimension(self):
        return self.thetas.shape[1]

    @property
    def missing_distances(self):
        return np.isnan(self.distances)

    def copy(self) -> ParticlePopulation:
        return ParticlePopulation(
            self.thetas.copy(), self.weights.copy(), self.distances.copy(), self.needs_move.copy()
        )

    def evaluate_distances(self, model, distance, observed, rng, executor=None):
        """Simulate a data set for every particle lacking a distance and store the distance to ``observed``.

        Returns the number of simulations performed.
        """
        indices = np.flatnonzero(self.missing_distances)

        if len(indices) == 0:
            return 0

        seeds = draw_seeds(rng, len(indices))

        thetas = [self.thetas[idx] for idx in indices]

        try:
            new_distances = map_tasks(
                executor,
                simulate_distance,
                [model] * len(indices),
                [distance] * len(indices),
                [observed] * len(indices),
                thetas,
                seeds,
            )
        except TaskError as err:
            particle_idx = indices[err.task_idx]
            raise SimulationError(particle_idx, self.thetas[particle_idx], repr(err.error)) from err.error

        for idx, value in zip(indices, new_distances):
            check_distance(value, idx, self.thetas[idx])
            self.distances[idx] = value

        return len(indices)

    def reweight(self, threshold, inclusive=True):
        """Zero the weight of particles outside ``threshold`` and renormalize the rest."""
        alive = within_threshold(self.distances, threshold, inclusive)

        weights = np.where(alive, self.weights, 0.0)

        total = weights.sum()

        if total <= 0:
            raise DegenerateThresholdError(threshold, np.nanmin(self.distances))

        self.weights = weights / total

    def effective_sample_size(self):
        return effective_sample_size(self.weights)

    def diversity(self):
        """Fraction of particles with non-zero weight."""
        return np.mean(self.weights > 0)

    def num_unique(self):
        return len(np.unique(self.thetas, axis=0))

    def resample(self, indices) -> ParticlePopulation:
        """Population made of the ancestors ``indices`` with uniform weights.

        Ancestor distances are kept. Every repeated ancestor after its first occurrence is flagged as needing a move.
        """
        indices = np.asarray(indices)

        if len(indices) != self.num_particles:
            raise ValueError("Resampling must preserve the population size.")

        needs_move = np.ones(len(indices), dtype=bool)

        _, first_occurrence = np.unique(indices, return_index=True)

        needs_move[first_occurrence] = False

        return ParticlePopulation(
            self.thetas[indices],
            distances=self.distances[indices],
            needs_move=needs_move,
        )


def simulate_distance(model, distance, observed, theta, seed):
    rng = np.random.default_rng(seed)

    simulated = model.simulate(theta, rng)

    return float(distance(simulated, observed))


def check_distance(value, particle_idx, theta):
    if not np.isfinite(value) or value < 0:
        reason = "distance must be a finite non-negative number, got {}".format(value)
        raise SimulationError(particle_idx, theta, reason)
