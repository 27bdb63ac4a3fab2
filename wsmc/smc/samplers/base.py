from dataclasses import dataclass
from typing import Optional

import numpy as np


@dataclass(frozen=True)
class StopCriteria:
    """Bounds checked between generations. A bound set to ``inf`` or ``None`` is ignored."""

    max_simulations: float = np.inf
    max_time: float = np.inf
    max_steps: Optional[int] = None

    @property
    def bounded(self):
        return np.isfinite(self.max_simulations) or np.isfinite(self.max_time) or self.max_steps is not None

    def reached(self, state, elapsed):
        if state.num_simulations >= self.max_simulations:
            return True

        if elapsed >= self.max_time:
            return True

        if self.max_steps is not None and state.step >= self.max_steps:
            return True

        return False


class AbstractSMCSampler(object):
    """Abstract class for a population SMC sampler driven by a RunState.

    ``sample`` initializes the population when the state is fresh, then alternates the stop check with full
    generations until a bound in ``stop_criteria`` is reached.
    """

    __slots__ = ("config", "stop_criteria", "timer", "_rng")

    def __init__(self, config, rng, stop_criteria, timer):
        self.config = config

        self.stop_criteria = stop_criteria

        self.timer = timer

        self._rng = rng

    @property
    def rng(self):
        return self._rng

    def sample(self, state):
        with self.timer:
            if not state.initialized:
                self._init_swarm(state)

            while not self.stop_criteria.reached(state, self.timer.current):
                if not self._update_swarm(state):
                    print("Stopping at step {}: no further progress is possible.".format(state.step), flush=True)
                    break

        state.elapsed = self.timer.elapsed

        return state

    def _init_swarm(self, state):
        """Initialize ``state.population`` and record the first generation."""
        raise NotImplementedError

    def _update_swarm(self, state):
        """Run one generation and record it. Returns False when no further progress is possible."""
        raise NotImplementedError
