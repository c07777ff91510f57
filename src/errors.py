"""
Error taxonomy for the Monte Carlo engine.

Each error also derives from the closest built-in exception so callers that
only know the standard hierarchy can still catch it.
"""


class SimulationError(Exception):
    """Base class for every error raised inside the simulation engine."""


class ValidationError(SimulationError, ValueError):
    """Distribution parameters or simulation settings fail their constraints."""

    def __init__(self, message: str, errors=None) -> None:
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class NotRegisteredError(SimulationError, LookupError):
    """Distribution type is not present in the registry."""

    def __init__(self, distribution_type: str) -> None:
        super().__init__(f"Distribution type '{distribution_type}' is not registered")
        self.distribution_type = distribution_type


class NumericError(SimulationError, ArithmeticError):
    """Sampling produced non-finite values beyond the tolerated failure rate."""


class StateError(SimulationError, RuntimeError):
    """Worker used out of order (e.g. ``process()`` before ``initialize()``)."""


class SimulationTimeoutError(SimulationError, TimeoutError):
    """Simulation was cancelled or exceeded its time budget."""
