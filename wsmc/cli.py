from importlib import import_module

import click

from wsmc.config import PROPOSAL_CHOICES, RESAMPLING_CHOICES, THRESHOLD_BOUNDARY_CHOICES, AlgorithmConfig
from wsmc.process_trace import write_generations_table
from wsmc.run import resume as resume_prog
from wsmc.run import run as run_prog


def load_target(target):
    """Resolve ``module:attribute`` to a ``(model, distance, observed)`` triple.

    The attribute may be the triple itself or a zero-argument callable returning it.
    """
    module_name, sep, attr_name = target.partition(":")
    if not sep or not module_name or not attr_name:
        raise click.BadParameter("Expected the form 'module:attribute', got '{}'.".format(target))

    try:
        obj = getattr(import_module(module_name), attr_name)
    except (ImportError, AttributeError) as err:
        raise click.BadParameter("Could not load '{}': {}".format(target, err))

    if callable(obj):
        obj = obj()

    try:
        model, distance, observed = obj
    except (TypeError, ValueError):
        raise click.BadParameter("'{}' must provide a (model, distance, observed) triple.".format(target))

    return model, distance, observed


def _validate_target(ctx, param, value):
    return load_target(value)


def _validate_non_negative_value(ctx, param, value):
    if value is not None and value < 0:
        raise click.BadParameter("Value must be non-negative.")
    return value


target_option = click.option(
    "-t",
    "--target",
    required=True,
    callback=_validate_target,
    help="""Model to fit, given as 'module:attribute'. The attribute is a (model, distance, observed) triple or a
    function returning one.""",
)

num_workers_option = click.option(
    "--num-workers",
    default=1,
    type=click.IntRange(1, clamp=True),
    show_default=True,
    help="""Number of worker processes used for simulations.""",
)

print_freq_option = click.option(
    "--print-freq",
    default=1,
    type=click.IntRange(1, clamp=True),
    show_default=True,
    help="""How frequently (in generations) to print information about fitting.""",
)


# =========================================================================
# Analysis
# =========================================================================


@click.command(context_settings={"max_content_width": 120}, name="run")
@target_option
@click.option(
    "-o",
    "--out-file",
    required=True,
    type=click.Path(resolve_path=True, writable=True, file_okay=True, dir_okay=False),
    help="""Path to where the checkpoint will be written in HDF5 format. It is updated after every generation.""",
)
@click.option(
    "-n",
    "--nthetas",
    default=1024,
    type=click.IntRange(1, clamp=True),
    show_default=True,
    help="""Number of particles.""",
)
@click.option(
    "--nmoves",
    default=1,
    type=click.IntRange(1, clamp=True),
    show_default=True,
    help="""Number of r-hit moves applied to duplicated particles per generation.""",
)
@click.option(
    "-p",
    "--proposal",
    default="mixture",
    type=click.Choice(PROPOSAL_CHOICES),
    show_default=True,
    help="""Proposal distribution fitted to the weighted particles for the r-hit moves.""",
)
@click.option(
    "--max-components",
    default=5,
    type=click.IntRange(1, clamp=True),
    show_default=True,
    help="""Largest number of components of the mixture proposal.""",
)
@click.option(
    "-d",
    "--minimum-diversity",
    default=0.5,
    type=click.FloatRange(0.0, 1.0, min_open=True),
    show_default=True,
    help="""Fraction of particles kept alive each time the threshold is tightened.""",
)
@click.option(
    "-r",
    "--num-hits",
    "R",
    default=2,
    type=click.IntRange(1, clamp=True),
    show_default=True,
    help="""Number of hits required by the r-hit kernel.""",
)
@click.option(
    "--maxtrials",
    default=1000,
    type=click.IntRange(1, clamp=True),
    show_default=True,
    help="""Maximum number of proposals in one r-hit move.""",
)
@click.option(
    "--resampling",
    default="systematic",
    type=click.Choice(RESAMPLING_CHOICES),
    show_default=True,
    help="""Resampling scheme.""",
)
@click.option(
    "--threshold-boundary",
    default="inclusive",
    type=click.Choice(THRESHOLD_BOUNDARY_CHOICES),
    show_default=True,
    help="""Whether a distance equal to the threshold is accepted.""",
)
@click.option(
    "-s",
    "--max-simulations",
    default=float("inf"),
    type=float,
    show_default=True,
    callback=_validate_non_negative_value,
    help="""Simulation budget.""",
)
@click.option(
    "--max-time",
    default=float("inf"),
    type=float,
    show_default=True,
    callback=_validate_non_negative_value,
    help="""Maximum running time in seconds.""",
)
@click.option(
    "--max-steps",
    default=None,
    type=click.IntRange(1, clamp=True),
    help="""Maximum number of generations.""",
)
@click.option(
    "--seed",
    default=None,
    type=int,
    help="""Set random seed so results can be reproduced. By default, a random seed is chosen.""",
)
@num_workers_option
@print_freq_option
def run(
    target,
    out_file,
    nthetas,
    nmoves,
    proposal,
    max_components,
    minimum_diversity,
    R,
    maxtrials,
    resampling,
    threshold_boundary,
    max_simulations,
    max_time,
    max_steps,
    seed,
    num_workers,
    print_freq,
):
    """Run a new WSMC analysis."""
    if max_simulations == float("inf") and max_time == float("inf") and max_steps is None:
        raise click.UsageError("At least one of --max-simulations, --max-time or --max-steps is required.")

    config = AlgorithmConfig(
        nthetas=nthetas,
        nmoves=nmoves,
        proposal=proposal,
        minimum_diversity=minimum_diversity,
        R=R,
        maxtrials=maxtrials,
        max_components=max_components,
        resampling=resampling,
        threshold_boundary=threshold_boundary,
    )

    model, distance, observed = target

    run_prog(
        model,
        distance,
        observed,
        config=config,
        max_simulations=max_simulations,
        max_time=max_time,
        max_steps=max_steps,
        checkpoint_file=out_file,
        seed=seed,
        num_workers=num_workers,
        print_freq=print_freq,
    )


@click.command(context_settings={"max_content_width": 120}, name="resume")
@target_option
@click.option(
    "-i",
    "--in-file",
    required=True,
    type=click.Path(resolve_path=True, exists=True, file_okay=True, dir_okay=False),
    help="""Path to a checkpoint written by 'wsmc run'.""",
)
@click.option(
    "-o",
    "--out-file",
    default=None,
    type=click.Path(resolve_path=True, writable=True, file_okay=True, dir_okay=False),
    help="""Path to where the updated checkpoint will be written. Defaults to updating the input file.""",
)
@click.option(
    "-s",
    "--extra-simulations",
    default=None,
    type=float,
    callback=_validate_non_negative_value,
    help="""Additional simulation budget. Unbounded when another bound is given.""",
)
@click.option(
    "--max-time",
    default=float("inf"),
    type=float,
    show_default=True,
    callback=_validate_non_negative_value,
    help="""Additional running time in seconds.""",
)
@click.option(
    "--extra-steps",
    default=None,
    type=click.IntRange(0, clamp=True),
    help="""Additional number of generations.""",
)
@num_workers_option
@print_freq_option
def resume(target, in_file, out_file, extra_simulations, max_time, extra_steps, num_workers, print_freq):
    """Continue a WSMC analysis from a checkpoint."""
    model, distance, observed = target

    resume_prog(
        in_file,
        model,
        distance,
        observed,
        extra_simulations=extra_simulations,
        max_time=max_time,
        extra_steps=extra_steps,
        out_file=out_file,
        num_workers=num_workers,
        print_freq=print_freq,
    )


# =========================================================================
# Diagnostics Output
# =========================================================================


@click.command(context_settings={"max_content_width": 120})
@click.option(
    "-i",
    "--in-file",
    required=True,
    type=click.Path(resolve_path=True, exists=True, file_okay=True, dir_okay=False),
    help="""Path to a checkpoint file. Format is HDF5.""",
)
@click.option(
    "-o",
    "--out-file",
    required=True,
    type=click.Path(resolve_path=True, writable=True, file_okay=True, dir_okay=False),
    help="""Path to where the particle table will be written in .tsv format.""",
)
@click.option(
    "-g",
    "--trace-file",
    default=None,
    type=click.Path(resolve_path=True, writable=True, file_okay=True, dir_okay=False),
    help="""Path to where the per-generation thresholds and simulation counts will be written in .tsv format.""",
)
@click.option(
    "--last-only/--all-generations",
    default=False,
    show_default=True,
    help="""Whether to only export the particles of the final generation.""",
)
def export(**kwargs):
    """Export particles and per-generation diagnostics."""
    write_generations_table(**kwargs)


# =========================================================================
# Setup main interface
# =========================================================================
@click.group(name="wsmc")
@click.version_option(package_name="wsmc")
def main():
    pass


main.add_command(run)
main.add_command(resume)
main.add_command(export)
