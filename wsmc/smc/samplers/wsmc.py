import warnings

import numpy as np

from wsmc.mcmc.r_hit import RHitMCMCRejuvenator
from wsmc.smc.kernels import setup_kernel
from wsmc.smc.resampling import resample
from wsmc.smc.samplers.base import AbstractSMCSampler
from wsmc.smc.state import GenerationRecord
from wsmc.smc.swarm import ParticlePopulation
from wsmc.smc.threshold import ThresholdScheduler
from wsmc.utils.exceptions import RejuvenationBudgetExhaustedWarning
from wsmc.utils.save_hdf5 import save_run_state_to_h5df


class WSMCSampler(AbstractSMCSampler):
    """ABC-SMC sampler with an adaptive threshold and r-hit MCMC rejuvenation.

    Each generation adapts the threshold so that ``minimum_diversity`` of the particles stay alive, resamples the
    survivors, moves duplicated particles with the r-hit kernel and records a GenerationRecord.
    """

    __slots__ = (
        "model",
        "distance",
        "observed",
        "executor",
        "scheduler",
        "kernel",
        "rejuvenator",
        "checkpoint_file",
        "print_freq",
    )

    def __init__(
        self,
        model,
        distance,
        observed,
        config,
        rng,
        stop_criteria,
        timer,
        executor=None,
        checkpoint_file=None,
        print_freq=1,
    ):
        super().__init__(config, rng, stop_criteria, timer)

        self.model = model

        self.distance = distance

        self.observed = observed

        self.executor = executor

        self.checkpoint_file = checkpoint_file

        self.print_freq = print_freq

        self.scheduler = ThresholdScheduler(config.minimum_diversity, inclusive=config.inclusive)

        self.kernel = setup_kernel(config, rng)

        self.rejuvenator = RHitMCMCRejuvenator(
            model,
            distance,
            observed,
            self.kernel,
            R=config.R,
            maxtrials=config.maxtrials,
            inclusive=config.inclusive,
        )

    def _init_swarm(self, state):
        population = ParticlePopulation.initialize(self.config.nthetas, self.model, self._rng)

        state.population = population

        state.threshold = np.inf

        self._simulate(state)

        threshold = self.scheduler.first_threshold(population.distances)

        self._reweight_and_record(state, threshold)

    def _update_swarm(self, state):
        population = state.population

        previous_threshold = state.threshold

        # ADAPT_THRESHOLD
        threshold = self.scheduler.next_threshold(population.distances, previous_threshold)

        population.reweight(threshold, inclusive=self.config.inclusive)

        alive_fraction = population.diversity()

        self.kernel.fit(population.thetas, population.weights)

        # RESAMPLE
        ancestors = resample(population.weights, self._rng, scheme=self.config.resampling)

        population = population.resample(ancestors)

        state.population = population

        num_queued = int(np.sum(population.needs_move))

        # REJUVENATE
        allowance = self.stop_criteria.max_simulations + self.config.nthetas - state.num_simulations

        summary = self.rejuvenator.rejuvenate(
            population,
            threshold,
            self._rng,
            nmoves=self.config.nmoves,
            executor=self.executor,
            trial_allowance=allowance,
        )

        state.num_simulations += summary.num_trials

        if summary.num_attempts > 0 and summary.num_failures == summary.num_attempts:
            warnings.warn(
                "All {} rejuvenation attempts at step {} ran out of trials.".format(
                    summary.num_attempts, state.step + 1
                ),
                RejuvenationBudgetExhaustedWarning,
            )

        # SIMULATE
        self._simulate(state)

        # REWEIGHT
        self._reweight_and_record(state, threshold, summary, alive_fraction)

        # Queued particles left unmoved means the allowance no longer covers a move.
        if num_queued > 0:
            return summary.num_attempts > 0

        return threshold < previous_threshold

    def _simulate(self, state):
        num_simulations = state.population.evaluate_distances(
            self.model, self.distance, self.observed, self._rng, executor=self.executor
        )

        state.num_simulations += num_simulations

    def _reweight_and_record(self, state, threshold, summary=None, alive_fraction=1.0):
        state.population.reweight(threshold, inclusive=self.config.inclusive)

        state.threshold = threshold

        state.elapsed = self.timer.current

        record = GenerationRecord.from_population(
            state.step + 1,
            state.population,
            threshold,
            state.num_simulations,
            summary=summary,
            alive_fraction=alive_fraction,
            elapsed=state.elapsed,
        )

        state.append_generation(record)

        if (record.step - 1) % self.print_freq == 0:
            print_stats(record)

        if self.checkpoint_file is not None:
            save_run_state_to_h5df(self.checkpoint_file, state, self.config, self.model.parameter_names)


def print_stats(record):
    string_template = (
        "step: {} || threshold: {}, num_simulations: {}, alive: {}, unique: {}, rejuvenation failures: {}/{}, time: {}"
    )
    print(
        string_template.format(
            record.step,
            round(record.threshold, 6),
            record.num_simulations,
            round(record.alive_fraction, 3),
            record.num_unique,
            record.num_rejuvenation_failures,
            record.num_rejuvenation_attempts,
            round(record.elapsed, 2),
        ),
        flush=True,
    )
