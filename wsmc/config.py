from dataclasses import asdict, dataclass, fields
from numbers import Integral

from wsmc.utils.exceptions import InvalidConfigError

PROPOSAL_CHOICES = ("gaussian", "mixture")

RESAMPLING_CHOICES = ("systematic", "residual", "multinomial")

THRESHOLD_BOUNDARY_CHOICES = ("inclusive", "exclusive")


@dataclass(frozen=True)
class AlgorithmConfig:
    """Tuning parameters of the sampler, fixed for the whole run.

    Parameters
    ----------
    nthetas: int
        Number of particles in the population.
    nmoves: int
        Number of r-hit rejuvenation rounds applied per generation.
    proposal: str
        Proposal kernel fitted to the weighted population, one of ``PROPOSAL_CHOICES``.
    minimum_diversity: float
        Fraction of particles kept alive when the threshold is tightened. Must be in (0, 1].
    R: int
        Number of hits the r-hit kernel must observe before a move is accepted.
    maxtrials: int
        Maximum number of proposals in a single r-hit attempt.
    max_components: int
        Largest number of components considered by the mixture proposal.
    resampling: str
        Resampling scheme, one of ``RESAMPLING_CHOICES``.
    threshold_boundary: str
        Whether a particle at exactly the threshold distance is accepted (``inclusive``) or not (``exclusive``).
    """

    nthetas: int = 1024
    nmoves: int = 1
    proposal: str = "mixture"
    minimum_diversity: float = 0.5
    R: int = 2
    maxtrials: int = 1000
    max_components: int = 5
    resampling: str = "systematic"
    threshold_boundary: str = "inclusive"

    def __post_init__(self):
        errors = []

        for name in ("nthetas", "nmoves", "R", "maxtrials", "max_components"):
            value = getattr(self, name)
            if not _is_int(value) or value < 1:
                errors.append("{} must be a positive integer, got {!r}".format(name, value))

        if not 0 < self.minimum_diversity <= 1:
            errors.append("minimum_diversity must be in (0, 1], got {!r}".format(self.minimum_diversity))

        if self.proposal not in PROPOSAL_CHOICES:
            errors.append("proposal must be one of {}, got {!r}".format(PROPOSAL_CHOICES, self.proposal))

        if self.resampling not in RESAMPLING_CHOICES:
            errors.append("resampling must be one of {}, got {!r}".format(RESAMPLING_CHOICES, self.resampling))

        if self.threshold_boundary not in THRESHOLD_BOUNDARY_CHOICES:
            errors.append(
                "threshold_boundary must be one of {}, got {!r}".format(
                    THRESHOLD_BOUNDARY_CHOICES, self.threshold_boundary
                )
            )

        if errors:
            raise InvalidConfigError(errors)

    @property
    def inclusive(self):
        return self.threshold_boundary == "inclusive"

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, values):
        """Build a config from a mapping, e.g. HDF5 attributes holding numpy scalars."""
        kwargs = {}
        for field in fields(cls):
            if field.name not in values:
                continue
            value = values[field.name]
            if field.type is int or field.type == "int":
                value = int(value)
            elif field.type is float or field.type == "float":
                value = float(value)
            else:
                value = str(value)
            kwargs[field.name] = value
        return cls(**kwargs)


def _is_int(value):
    return isinstance(value, Integral) and not isinstance(value, bool)
