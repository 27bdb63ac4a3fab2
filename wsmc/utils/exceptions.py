class InvalidConfigError(Exception):
    def __init__(self, errors_list):
        error_msg = "\n\nInvalidConfigError:\n"
        errors_list_string = "\n".join("-> {}".format(err) for err in errors_list)
        error_msg += errors_list_string
        super().__init__(error_msg)
        self.errors = list(errors_list)
        self.__suppress_context__ = True


class DegenerateThresholdError(Exception):
    def __init__(self, threshold, min_distance):
        error_msg = (
            "\nDegenerateThresholdError:\n"
            "Every particle lies outside the acceptance threshold."
            "\n-> Threshold: {thr}, Smallest distance: {dist}".format(thr=threshold, dist=min_distance)
        )
        super().__init__(error_msg)
        self.threshold = threshold
        self.__suppress_context__ = True


class NoFeasibleThresholdError(Exception):
    def __init__(self, minimum_diversity, achieved_diversity):
        error_msg = (
            "\nNoFeasibleThresholdError:\n"
            "No threshold keeps the requested fraction of particles alive."
            "\n-> Minimum diversity: {req}, Best achievable: {got}".format(
                req=minimum_diversity, got=achieved_diversity
            )
        )
        super().__init__(error_msg)
        self.__suppress_context__ = True


class SimulationError(Exception):
    def __init__(self, particle_idx, theta, reason):
        error_msg = (
            "\nSimulationError:\n"
            "Simulating or scoring a particle failed."
            "\n-> Particle: {idx}, Parameters: {theta}"
            "\n-> Reason: {reason}".format(idx=particle_idx, theta=list(theta), reason=reason)
        )
        super().__init__(error_msg)
        self.particle_idx = particle_idx
        self.theta = theta


class RejuvenationBudgetExhaustedWarning(UserWarning):
    pass
