class TSPError(Exception):
    """Base class for errors raised by the tsp_solvers package."""


class InvalidInputError(TSPError, ValueError):
    """The location set or the solver parameters cannot be used."""


class SamplingError(TSPError, RuntimeError):
    """
    The edge weights handed to the sampler do not form a distribution.

    Raised when the weights sum to zero or contain negative, NaN or infinite
    values. This points at a broken weight function, not at a state the
    colony can recover from.
    """
