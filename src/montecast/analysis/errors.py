"""Exceptions raised by the simulation core."""


class SimulationError(Exception):
    """Base class for failures reported by the simulation core."""


class InsufficientHistory(SimulationError, ValueError):
    """The requested window (or window + backtest) exceeds the available rows."""


class InvalidParameter(SimulationError, ValueError):
    """A caller-supplied parameter violates the simulation contract."""
