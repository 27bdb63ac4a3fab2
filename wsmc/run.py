from concurrent.futures import ProcessPoolExecutor
from contextlib import nullcontext
from dataclasses import dataclass
from multiprocessing import get_context
from typing import List, Tuple

import numpy as np

from wsmc.config import AlgorithmConfig
from wsmc.process_trace import generations_to_dataframe, trace_to_dataframe, weighted_posterior_mean
from wsmc.smc.samplers import StopCriteria, WSMCSampler
from wsmc.smc.state import GenerationRecord, RunState
from wsmc.smc.swarm import ParticlePopulation
from wsmc.utils.load_h5df import load_run_state_from_h5df
from wsmc.utils.save_hdf5 import save_run_state_to_h5df
from wsmc.utils.utils import Timer


@dataclass
class RunResult:
    generations: List[GenerationRecord]
    population: ParticlePopulation
    num_simulations: int
    parameter_names: Tuple[str, ...]
    config: AlgorithmConfig
    elapsed: float = 0.0

    @property
    def thresholds(self):
        return np.array([record.threshold for record in self.generations])

    @property
    def num_steps(self):
        return len(self.generations)

    def posterior_mean(self):
        """Weighted mean of the particles of the last generation."""
        return weighted_posterior_mean(self.generations[-1])

    def to_dataframe(self):
        return generations_to_dataframe(self.generations, self.parameter_names)

    def trace_dataframe(self):
        return trace_to_dataframe(self.generations)


def run(
    model,
    distance,
    observed,
    config=None,
    max_simulations=float("inf"),
    max_time=float("inf"),
    max_steps=None,
    checkpoint_file=None,
    seed=None,
    num_workers=1,
    print_freq=1,
):
    """Run the sampler from the prior until one of the stop bounds is reached.

    Parameters
    ----------
    model: wsmc.model.Model
        Prior and simulator.
    distance: callable
        ``distance(simulated, observed)`` returning a non-negative float.
    observed:
        Observed data set passed as second argument to ``distance``.
    config: AlgorithmConfig
        Algorithm parameters, defaults to ``AlgorithmConfig()``.
    max_simulations: float
        Stop once this many simulations have been used. The last generation may overshoot by at most ``nthetas``.
    max_time: float
        Stop once this many seconds have elapsed.
    max_steps: int
        Stop once this many generations have been recorded.
    checkpoint_file: str
        HDF5 file rewritten after every generation, usable with ``resume``.
    seed: int
        Seed of the random number generator. By default, a random seed is chosen.
    num_workers: int
        Number of worker processes for simulations. With one worker everything runs in the calling process.
    """
    if config is None:
        config = AlgorithmConfig()

    stop_criteria = StopCriteria(max_simulations, max_time, max_steps)

    if not stop_criteria.bounded:
        raise ValueError("At least one of max_simulations, max_time or max_steps must be finite.")

    rng = instantiate_and_seed_RNG(seed)

    print_welcome_message(config, model, seed, rng, stop_criteria, num_workers)

    state = RunState(rng=rng)

    state = _run_sampler(
        model, distance, observed, config, state, stop_criteria, checkpoint_file, num_workers, print_freq
    )

    return _build_result(state, config, model.parameter_names)


def resume(
    checkpoint_file,
    model,
    distance,
    observed,
    extra_simulations=None,
    max_time=float("inf"),
    extra_steps=None,
    out_file=None,
    num_workers=1,
    print_freq=1,
):
    """Continue a run from a checkpoint written by ``run``.

    The extra bounds are added to the counters stored in the checkpoint, ``max_time`` is the additional wall time.
    An unset ``extra_simulations`` is unbounded when another bound is given. With no extra budget at all the stored
    history is returned unchanged. The checkpoint is updated in place unless ``out_file`` is given.
    """
    state, config, parameter_names = load_run_state_from_h5df(checkpoint_file)

    if extra_simulations is None:
        if extra_steps is None and max_time == float("inf"):
            extra_simulations = 0
        else:
            extra_simulations = float("inf")

    if extra_steps is None:
        max_steps = None
    else:
        max_steps = state.step + extra_steps

    stop_criteria = StopCriteria(state.num_simulations + extra_simulations, state.elapsed + max_time, max_steps)

    if out_file is None:
        out_file = checkpoint_file

    print_resume_message(checkpoint_file, state, stop_criteria)

    state = _run_sampler(model, distance, observed, config, state, stop_criteria, out_file, num_workers, print_freq)

    if out_file != checkpoint_file:
        save_run_state_to_h5df(out_file, state, config, parameter_names)

    return _build_result(state, config, parameter_names)


def _run_sampler(model, distance, observed, config, state, stop_criteria, checkpoint_file, num_workers, print_freq):
    timer = Timer(elapsed=state.elapsed)

    if num_workers > 1:
        pool = ProcessPoolExecutor(max_workers=num_workers, mp_context=get_context("spawn"))
    else:
        pool = nullcontext()

    with pool as executor:
        sampler = WSMCSampler(
            model,
            distance,
            observed,
            config,
            state.rng,
            stop_criteria,
            timer,
            executor=executor,
            checkpoint_file=checkpoint_file,
            print_freq=print_freq,
        )

        state = sampler.sample(state)

    print_final_message(state)

    return state


def _build_result(state, config, parameter_names):
    return RunResult(
        generations=list(state.generations),
        population=state.population,
        num_simulations=state.num_simulations,
        parameter_names=tuple(parameter_names),
        config=config,
        elapsed=state.elapsed,
    )


def instantiate_and_seed_RNG(seed):
    if seed is not None:
        rng = np.random.default_rng(seed)
    else:
        rng = np.random.default_rng()
    return rng


def print_welcome_message(config, model, seed, rng, stop_criteria, num_workers):
    print()
    print("#" * 100)
    print("WSMC - Analysis Run")
    print("#" * 100)
    print()
    print("Running with the following parameters:\n")
    print("Parameters: {}".format(", ".join(model.parameter_names)))
    print("Number of particles: {}".format(config.nthetas))
    print("Proposal distribution: {}".format(config.proposal))
    print("Minimum diversity: {}".format(config.minimum_diversity))
    print("Required hits (R): {}".format(config.R))
    print("Maximum trials per move: {}".format(config.maxtrials))
    print("Moves per step: {}".format(config.nmoves))
    print("Resampling: {}".format(config.resampling))
    print("Threshold boundary: {}".format(config.threshold_boundary))
    print("Simulation budget: {}".format(stop_criteria.max_simulations))
    print("Maximum time: {}".format(stop_criteria.max_time))
    print("Maximum steps: {}".format(stop_criteria.max_steps))
    print("Number of workers: {}".format(num_workers))
    if seed is not None:
        seed_msg = "(user-provided)"
    else:
        seed_msg = "(machine-entropy)"
        seed = rng.bit_generator.seed_seq.entropy
    print("Random seed: {} {}".format(seed, seed_msg))
    print()
    print("#" * 100)
    print(flush=True)


def print_resume_message(checkpoint_file, state, stop_criteria):
    print()
    print("#" * 100)
    print("WSMC - Resuming from {}".format(checkpoint_file))
    print("#" * 100)
    print()
    print("Step: {}, simulations: {}, threshold: {}".format(state.step, state.num_simulations, state.threshold))
    print(
        "Simulation budget: {}, maximum time: {}, maximum steps: {}".format(
            stop_criteria.max_simulations, stop_criteria.max_time, stop_criteria.max_steps
        )
    )
    print(flush=True)


def print_final_message(state):
    print(flush=True)
    print("#" * 100, flush=True)
    print(
        "Finished after {} steps, {} simulations, threshold {}".format(
            state.step, state.num_simulations, state.threshold
        ),
        flush=True,
    )
    print("#" * 100, flush=True)
    print(flush=True)
