"""
Exceptions raised by the simulation core.

Missing rates indicate a configuration gap and are never retried; malformed
ensembles and out-of-range arguments fail fast instead of producing NaN results.
"""


class SimulationError(Exception):
    """Base exception for simulation-related errors."""


class RateNotFoundError(SimulationError):
    """Raised when no direct, reverse or one-hop rate exists for a pair."""

    def __init__(self, from_currency: str, to_currency: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(f"No exchange rate found for {from_currency}/{to_currency}")


class InvalidInputError(SimulationError, ValueError):
    """Raised when an operation receives an empty or out-of-range input."""
