import json
import os

import h5py
import numpy as np


def save_run_state_to_h5df(out_file, state, config, parameter_names):
    """Write a resumable snapshot of ``state`` to ``out_file``.

    The file is written next to the target and moved into place, so an interrupted write leaves the previous
    checkpoint intact.
    """
    tmp_file = "{}.tmp".format(out_file)

    with h5py.File(tmp_file, "w", track_order=True) as fh:
        store_config(fh, config)

        store_run_state(fh, state, parameter_names)

        store_population(fh, state.population)

        store_generations(fh, state.generations)

    os.replace(tmp_file, out_file)


def store_config(fh, config):
    config_grp = fh.create_group("config")
    for key, value in config.to_dict().items():
        config_grp.attrs[key] = value


def store_run_state(fh, state, parameter_names):
    run_state_grp = fh.create_group("run_state")
    run_state_grp.attrs["step"] = state.step
    run_state_grp.attrs["num_simulations"] = state.num_simulations
    run_state_grp.attrs["threshold"] = state.threshold
    run_state_grp.attrs["elapsed"] = state.elapsed
    run_state_grp.attrs["rng_state"] = json.dumps(state.rng_state)
    run_state_grp.create_dataset(
        "parameter_names",
        data=[str(name) for name in parameter_names],
        dtype=h5py.string_dtype(),
    )


def store_population(fh, population):
    population_grp = fh.create_group("population")
    population_grp.create_dataset("thetas", data=population.thetas, compression="gzip")
    population_grp.create_dataset("weights", data=population.weights, compression="gzip")
    population_grp.create_dataset("distances", data=population.distances, compression="gzip")
    population_grp.create_dataset("needs_move", data=population.needs_move, compression="gzip")


def store_generations(fh, generations):
    generations_grp = fh.create_group("generations")
    generations_grp.attrs["num_generations"] = len(generations)
    generation_template = "generation_{}"

    for record in generations:
        curr_grp = generations_grp.create_group(generation_template.format(record.step))
        for key in GENERATION_SCALAR_FIELDS:
            curr_grp.attrs[key] = getattr(record, key)
        curr_grp.create_dataset("thetas", data=record.thetas, compression="gzip")
        curr_grp.create_dataset("weights", data=record.weights, compression="gzip")
        curr_grp.create_dataset("distances", data=record.distances, compression="gzip")

    store_trace_data(fh, generations)


def store_trace_data(fh, generations):
    trace_data_grp = fh.create_group("trace_data")
    for key in GENERATION_SCALAR_FIELDS:
        values = np.array([getattr(record, key) for record in generations])
        trace_data_grp.create_dataset(key, data=values, compression="gzip")


GENERATION_SCALAR_FIELDS = (
    "step",
    "threshold",
    "num_simulations",
    "ess",
    "diversity",
    "num_unique",
    "alive_fraction",
    "num_rejuvenation_trials",
    "num_rejuvenation_attempts",
    "num_rejuvenation_failures",
    "elapsed",
)
