from wsmc.config import AlgorithmConfig
from wsmc.model import Model
from wsmc.run import RunResult, resume, run
