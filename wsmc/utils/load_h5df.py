import json

import h5py
import numpy as np
import pandas as pd

from wsmc.config import AlgorithmConfig
from wsmc.smc.state import GenerationRecord, RunState
from wsmc.smc.swarm import ParticlePopulation
from wsmc.utils.save_hdf5 import GENERATION_SCALAR_FIELDS

INT_FIELDS = (
    "step",
    "num_simulations",
    "num_unique",
    "num_rejuvenation_trials",
    "num_rejuvenation_attempts",
    "num_rejuvenation_failures",
)


def load_run_state_from_h5df(in_file):
    """Restore ``(state, config, parameter_names)`` from a checkpoint, including the random number stream."""
    with h5py.File(in_file, "r") as fh:
        config = AlgorithmConfig.from_dict(dict(fh["config"].attrs))

        run_state_grp = fh["run_state"]
        attrs = run_state_grp.attrs

        rng = np.random.default_rng()
        rng.bit_generator.state = json.loads(attrs["rng_state"])

        parameter_names = tuple(_load_strings(run_state_grp["parameter_names"]))

        population = _load_population(fh["population"])

        generations = load_generations(fh)

        state = RunState(
            rng=rng,
            population=population,
            threshold=float(attrs["threshold"]),
            num_simulations=int(attrs["num_simulations"]),
            step=int(attrs["step"]),
            elapsed=float(attrs["elapsed"]),
            generations=generations,
        )

    return state, config, parameter_names


def load_generations(fh):
    generations_grp = fh["generations"]
    num_generations = generations_grp.attrs["num_generations"]
    generation_template = "generation_{}"

    generations = []
    for step in range(1, num_generations + 1):
        curr_grp = generations_grp[generation_template.format(step)]
        kwargs = {key: _cast_field(key, curr_grp.attrs[key]) for key in GENERATION_SCALAR_FIELDS}
        kwargs["thetas"] = curr_grp["thetas"][()]
        kwargs["weights"] = curr_grp["weights"][()]
        kwargs["distances"] = curr_grp["distances"][()]
        generations.append(GenerationRecord(**kwargs))
    return generations


def load_generations_from_h5df(in_file):
    with h5py.File(in_file, "r") as fh:
        parameter_names = tuple(_load_strings(fh["run_state"]["parameter_names"]))
        generations = load_generations(fh)
    return generations, parameter_names


def load_trace_data_df(in_file):
    with h5py.File(in_file, "r") as fh:
        trace_data = fh["trace_data"]
        df_dict = {k: trace_data[k][()] for k in GENERATION_SCALAR_FIELDS}
    return pd.DataFrame(df_dict)


def _load_population(population_grp):
    return ParticlePopulation(
        population_grp["thetas"][()],
        weights=population_grp["weights"][()],
        distances=population_grp["distances"][()],
        needs_move=population_grp["needs_move"][()],
    )


def _load_strings(dset):
    return [x.decode() if isinstance(x, bytes) else str(x) for x in dset[()]]


def _cast_field(key, value):
    if key in INT_FIELDS:
        return int(value)
    return float(value)
