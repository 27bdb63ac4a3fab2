import numpy as np

from wsmc.utils.exceptions import NoFeasibleThresholdError


def within_threshold(distances, threshold, inclusive=True):
    """Boolean mask of distances accepted by ``threshold``. Unknown (nan) distances are never accepted."""
    distances = np.asarray(distances, dtype=float)
    if inclusive:
        return distances <= threshold
    return distances < threshold


class ThresholdScheduler(object):
    """Adaptive threshold rule driven by the fraction of particles kept alive.

    The next threshold is the smallest value that keeps at least ``minimum_diversity`` of the population inside the
    acceptance region. Thresholds never increase over a run.
    """

    __slots__ = ("minimum_diversity", "inclusive")

    def __init__(self, minimum_diversity, inclusive=True):
        self.minimum_diversity = minimum_diversity

        self.inclusive = inclusive

    def first_threshold(self, distances):
        """Threshold accepting every particle of the initial population."""
        max_distance = np.max(distances)

        return self._boundary_value(max_distance)

    def next_threshold(self, distances, previous_threshold=np.inf):
        distances = np.asarray(distances, dtype=float)

        num_particles = len(distances)

        num_alive = self.num_alive_required(num_particles)

        sorted_distances = np.sort(distances)

        threshold = min(self._boundary_value(sorted_distances[num_alive - 1]), previous_threshold)

        diversity = self.diversity(distances, threshold)

        if not diversity >= self.minimum_diversity:
            raise NoFeasibleThresholdError(self.minimum_diversity, diversity)

        return threshold

    def num_alive_required(self, num_particles):
        # Rounding guards against products such as 0.3 * 10 = 3.0000000000000004.
        return max(1, int(np.ceil(round(self.minimum_diversity * num_particles, 9))))

    def diversity(self, distances, threshold):
        """Fraction of particles accepted by ``threshold``."""
        return np.mean(within_threshold(distances, threshold, self.inclusive))

    def _boundary_value(self, distance):
        if self.inclusive:
            return float(distance)
        return float(np.nextafter(distance, np.inf))
