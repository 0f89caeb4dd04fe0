# radar/errors.py


class SimulationError(Exception):
    """Base class for everything the simulation kernel raises."""


class InvalidParameterError(SimulationError, ValueError):
    """A simulation parameter is out of range or malformed."""


class SimulationTimeoutError(SimulationError):
    """Waiting for a simulation worker took longer than allowed."""
