from dataclasses import dataclass

import numpy as np

from wsmc.smc.threshold import within_threshold
from wsmc.utils.exceptions import SimulationError
from wsmc.utils.utils import TaskError, draw_seeds, map_tasks


@dataclass(frozen=True)
class RHitResult:
    theta: np.ndarray
    distance: float
    num_trials: int
    num_hits: int
    success: bool


@dataclass(frozen=True)
class RejuvenationSummary:
    num_trials: int = 0
    num_attempts: int = 0
    num_failures: int = 0

    def __add__(self, other):
        return RejuvenationSummary(
            self.num_trials + other.num_trials,
            self.num_attempts + other.num_attempts,
            self.num_failures + other.num_failures,
        )


class RHitMCMCRejuvenator(object):
    """Moves particles with an r-hit Metropolis-Hastings kernel restricted to the ABC acceptance region.

    A single attempt proposes candidates from an independent proposal kernel until ``R`` of them have been accepted
    or ``maxtrials`` proposals have been made. A candidate is accepted when its simulated data set lies within the
    threshold and the Metropolis-Hastings test, corrected for the proposal density, passes. An attempt that runs out
    of trials leaves the particle exactly as it was.
    """

    __slots__ = ("model", "distance", "observed", "kernel", "R", "maxtrials", "inclusive")

    def __init__(self, model, distance, observed, kernel, R=2, maxtrials=1000, inclusive=True):
        self.model = model

        self.distance = distance

        self.observed = observed

        self.kernel = kernel

        self.R = R

        self.maxtrials = maxtrials

        self.inclusive = inclusive

    def move(self, theta, distance, threshold, rng, max_trials=None):
        """Run one r-hit attempt starting from ``theta`` whose current distance is ``distance``.

        Parameters
        ----------
        theta: np.ndarray
            Starting parameter vector. It is never modified in place.
        distance: float
            Distance of the data simulated at ``theta``.
        threshold: float
            Current ABC threshold.
        rng: np.random.Generator
            Random number generator used by this chain only.
        max_trials: int
            Trial cap for this attempt, at most ``self.maxtrials``.
        """
        if max_trials is None:
            max_trials = self.maxtrials
        else:
            max_trials = min(max_trials, self.maxtrials)

        current_theta = theta
        current_distance = distance
        current_log_prior = self.model.prior_log_density(theta)
        current_log_q = self.kernel.log_p(theta)

        num_hits = 0
        num_trials = 0

        while num_hits < self.R and num_trials < max_trials:
            num_trials += 1

            candidate = self.kernel.sample(1, rng)[0]

            candidate_log_prior = self.model.prior_log_density(candidate)

            if candidate_log_prior == -np.inf:
                continue

            simulated = self.model.simulate(candidate, rng)

            candidate_distance = float(self.distance(simulated, self.observed))

            if not np.isfinite(candidate_distance) or candidate_distance < 0:
                raise ValueError(
                    "distance must be a finite non-negative number, got {}".format(candidate_distance)
                )

            candidate_log_q = self.kernel.log_p(candidate)

            log_ratio = candidate_log_prior - current_log_prior + current_log_q - candidate_log_q

            u = rng.random()

            if within_threshold(candidate_distance, threshold, self.inclusive) and np.log(u) < log_ratio:
                current_theta = candidate
                current_distance = candidate_distance
                current_log_prior = candidate_log_prior
                current_log_q = candidate_log_q
                num_hits += 1

        if num_hits < self.R:
            return RHitResult(theta, distance, num_trials, num_hits, False)

        return RHitResult(current_theta, current_distance, num_trials, num_hits, True)

    def rejuvenate(self, population, threshold, rng, nmoves=1, executor=None, trial_allowance=np.inf):
        """Apply ``nmoves`` rounds of r-hit moves to every particle flagged in ``population.needs_move``.

        The population is updated in place. ``trial_allowance`` bounds the total number of trials of the whole call
        and is shared evenly between queued particles. A round is skipped once the share falls below the number of hits
        needed to move. Returns a RejuvenationSummary.
        """
        indices = np.flatnonzero(population.needs_move)

        summary = RejuvenationSummary()

        if len(indices) == 0:
            return summary

        remaining = trial_allowance

        for _ in range(nmoves):
            if np.isfinite(remaining):
                trial_cap = min(self.maxtrials, int(remaining // len(indices)))
            else:
                trial_cap = self.maxtrials

            # A cap below R imposed by the allowance cannot produce a successful move.
            if trial_cap < min(self.R, self.maxtrials):
                break

            seeds = draw_seeds(rng, len(indices))

            try:
                results = map_tasks(
                    executor,
                    _move_particle,
                    [self] * len(indices),
                    [population.thetas[idx] for idx in indices],
                    [population.distances[idx] for idx in indices],
                    [threshold] * len(indices),
                    seeds,
                    [trial_cap] * len(indices),
                )
            except TaskError as err:
                particle_idx = indices[err.task_idx]
                raise SimulationError(particle_idx, population.thetas[particle_idx], repr(err.error)) from err.error

            num_trials = 0
            num_failures = 0

            for idx, result in zip(indices, results):
                num_trials += result.num_trials
                if result.success:
                    population.thetas[idx] = result.theta
                    population.distances[idx] = result.distance
                else:
                    num_failures += 1

            remaining -= num_trials

            summary += RejuvenationSummary(num_trials, len(indices), num_failures)

        population.needs_move[:] = False

        return summary


def _move_particle(rejuvenator, theta, distance, threshold, seed, max_trials):
    rng = np.random.default_rng(seed)

    return rejuvenator.move(theta, distance, threshold, rng, max_trials=max_trials)
