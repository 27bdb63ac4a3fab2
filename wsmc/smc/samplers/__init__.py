from wsmc.smc.samplers.base import StopCriteria
from wsmc.smc.samplers.wsmc import WSMCSampler
