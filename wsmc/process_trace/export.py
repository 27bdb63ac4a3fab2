import numpy as np
import pandas as pd

from wsmc.utils.load_h5df import load_generations_from_h5df, load_trace_data_df


def generations_to_dataframe(generations, parameter_names=None):
    """Long format table with one row per particle per generation.

    Columns are ``step``, ``threshold``, ``num_simulations``, ``weight``, ``distance`` and one column per parameter.
    """
    frames = []

    for record in generations:
        dimension = record.thetas.shape[1]
        names = _get_parameter_names(parameter_names, dimension)

        df = pd.DataFrame(record.thetas, columns=names)
        df.insert(0, "step", record.step)
        df.insert(1, "threshold", record.threshold)
        df.insert(2, "num_simulations", record.num_simulations)
        df.insert(3, "weight", record.weights)
        df.insert(4, "distance", record.distances)
        frames.append(df)

    if len(frames) == 0:
        return pd.DataFrame(columns=["step", "threshold", "num_simulations", "weight", "distance"])

    return pd.concat(frames, ignore_index=True)


def trace_to_dataframe(generations):
    """One row per generation with the threshold, simulation count and diversity diagnostics."""
    rows = [
        {
            "step": record.step,
            "threshold": record.threshold,
            "num_simulations": record.num_simulations,
            "ess": record.ess,
            "diversity": record.diversity,
            "num_unique": record.num_unique,
            "alive_fraction": record.alive_fraction,
            "num_rejuvenation_trials": record.num_rejuvenation_trials,
            "num_rejuvenation_attempts": record.num_rejuvenation_attempts,
            "num_rejuvenation_failures": record.num_rejuvenation_failures,
            "elapsed": record.elapsed,
        }
        for record in generations
    ]
    return pd.DataFrame(rows)


def write_generations_table(in_file, out_file, trace_file=None, last_only=False):
    """Write the particle table of a checkpoint as TSV, and optionally its per-generation trace."""
    generations, parameter_names = load_generations_from_h5df(in_file)

    if last_only:
        generations = generations[-1:]

    df = generations_to_dataframe(generations, parameter_names)

    df.to_csv(out_file, index=False, sep="\t")

    if trace_file is not None:
        trace_df = load_trace_data_df(in_file)
        trace_df.to_csv(trace_file, index=False, sep="\t")


def weighted_posterior_mean(record):
    return np.average(record.thetas, axis=0, weights=record.weights)


def _get_parameter_names(parameter_names, dimension):
    if parameter_names is None or len(parameter_names) != dimension:
        return ["theta_{}".format(i + 1) for i in range(dimension)]
    return list(parameter_names)
