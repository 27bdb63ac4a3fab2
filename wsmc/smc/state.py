from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from wsmc.smc.swarm import ParticlePopulation


@dataclass(frozen=True, eq=False)
class GenerationRecord:
    """Snapshot of the population at the end of one generation."""

    step: int
    thetas: np.ndarray
    weights: np.ndarray
    distances: np.ndarray
    threshold: float
    num_simulations: int
    ess: float
    diversity: float
    num_unique: int
    alive_fraction: float = 1.0
    num_rejuvenation_trials: int = 0
    num_rejuvenation_attempts: int = 0
    num_rejuvenation_failures: int = 0
    elapsed: float = 0.0

    def __post_init__(self):
        for name in ("thetas", "weights", "distances"):
            value = np.array(getattr(self, name), dtype=float)
            value.flags.writeable = False
            object.__setattr__(self, name, value)

    @classmethod
    def from_population(
        cls, step, population, threshold, num_simulations, summary=None, alive_fraction=1.0, elapsed=0.0
    ):
        """Snapshot ``population`` at the end of a generation.

        ``alive_fraction`` is the share of particles within ``threshold`` before resampling, 1 for the first generation.
        """
        if summary is None:
            num_trials = num_attempts = num_failures = 0
        else:
            num_trials = summary.num_trials
            num_attempts = summary.num_attempts
            num_failures = summary.num_failures

        return cls(
            step=step,
            thetas=population.thetas,
            weights=population.weights,
            distances=population.distances,
            threshold=float(threshold),
            num_simulations=int(num_simulations),
            ess=float(population.effective_sample_size()),
            diversity=float(population.diversity()),
            num_unique=int(population.num_unique()),
            alive_fraction=float(alive_fraction),
            num_rejuvenation_trials=int(num_trials),
            num_rejuvenation_attempts=int(num_attempts),
            num_rejuvenation_failures=int(num_failures),
            elapsed=float(elapsed),
        )

    def to_population(self) -> ParticlePopulation:
        return ParticlePopulation(self.thetas.copy(), self.weights.copy(), self.distances.copy())


@dataclass
class RunState:
    """Everything needed to continue a run: counters, current population, history and the random stream."""

    rng: np.random.Generator
    population: Optional[ParticlePopulation] = None
    threshold: float = np.inf
    num_simulations: int = 0
    step: int = 0
    elapsed: float = 0.0
    generations: List[GenerationRecord] = field(default_factory=list)

    @property
    def initialized(self):
        return self.population is not None

    @property
    def rng_state(self):
        return self.rng.bit_generator.state

    def append_generation(self, record):
        self.generations.append(record)
        self.step = record.step
