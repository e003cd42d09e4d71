"""
Currency conversion for the simulation core.

Rates live in an immutable, versioned ``ExchangeRateTable`` holding one
direction per pair. Reverse rates and one-hop rates through a short priority
list of intermediary currencies are derived on lookup. Deeper paths are never
searched, which keeps seeded scenarios reproducible.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import InvalidInputError, RateNotFoundError
from .precision import multiply, truncate

logger = logging.getLogger(__name__)

DEFAULT_INTERMEDIARIES: Tuple[str, ...] = ("USD", "EUR")

DEFAULT_RATES: Dict[str, float] = {
    "USD/EUR": 0.92,
    "USD/GBP": 0.79,
    "USD/PKR": 278.5,
    "EUR/GBP": 0.86,
    "EUR/PKR": 302.7,
    "GBP/PKR": 351.2,
}


def pair_key(from_currency: str, to_currency: str) -> str:
    """Build the ``FROM/TO`` key for a currency pair."""
    return f"{from_currency}/{to_currency}"


class ExchangeRateTable(BaseModel):
    """Immutable snapshot of stored pair rates."""

    model_config = ConfigDict(frozen=True)

    rates: Dict[str, float] = Field(..., description="Stored FROM/TO pair rates")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the rates were set",
    )
    version: int = Field(default=0, ge=0, description="Monotonic table version")

    @field_validator("rates")
    @classmethod
    def validate_rates(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Validate pair keys and rate values."""
        for key, rate in v.items():
            parts = key.split("/")
            if len(parts) != 2 or not all(parts):
                raise ValueError(f"Invalid currency pair key: {key}")
            if rate <= 0:
                raise ValueError(f"Rate for {key} must be positive, got {rate}")
        return v

    def has_pair(self, from_currency: str, to_currency: str) -> bool:
        """Check whether a forward pair is stored."""
        return pair_key(from_currency, to_currency) in self.rates

    def currencies(self) -> List[str]:
        """All currency codes appearing in stored pairs."""
        codes = set()
        for key in self.rates:
            codes.update(key.split("/"))
        return sorted(codes)


def resolve_rate(
    table: ExchangeRateTable,
    from_currency: str,
    to_currency: str,
    intermediaries: Sequence[str] = DEFAULT_INTERMEDIARIES,
) -> float:
    """
    Resolve the rate for a pair from a rate table.

    Lookup order is direct pair, reciprocal of the reverse pair, then one hop
    through each intermediary in priority order, where both legs must be
    stored forward pairs. The first intermediary that works wins.

    Args:
        table: Rate table to resolve against
        from_currency: Source currency code
        to_currency: Target currency code
        intermediaries: Intermediary currencies in priority order

    Returns:
        Untruncated rate

    Raises:
        RateNotFoundError: If no direct, reverse or one-hop path exists
    """
    if from_currency == to_currency:
        return 1.0

    direct = pair_key(from_currency, to_currency)
    if direct in table.rates:
        return table.rates[direct]

    reverse = pair_key(to_currency, from_currency)
    if reverse in table.rates:
        return 1 / table.rates[reverse]

    for intermediary in intermediaries:
        if intermediary in (from_currency, to_currency):
            continue
        first_leg = pair_key(from_currency, intermediary)
        second_leg = pair_key(intermediary, to_currency)
        if first_leg in table.rates and second_leg in table.rates:
            logger.debug(f"Resolved {direct} via {intermediary}")
            return multiply(table.rates[first_leg], table.rates[second_leg])

    raise RateNotFoundError(from_currency, to_currency)


def convert_amount(
    table: ExchangeRateTable,
    amount: float,
    from_currency: str,
    to_currency: str,
    intermediaries: Sequence[str] = DEFAULT_INTERMEDIARIES,
) -> float:
    """Convert an amount using a rate table, truncated to 6 decimal places."""
    if from_currency == to_currency:
        return truncate(amount)
    rate = resolve_rate(table, from_currency, to_currency, intermediaries)
    return truncate(multiply(amount, rate))


def perturb_rates(
    table: ExchangeRateTable, volatility: float, seed: Optional[int] = None
) -> ExchangeRateTable:
    """
    Apply an independent symmetric shock to every stored pair rate.

    Each stored rate moves by a uniform shock in ``[-volatility/2, +volatility/2]``.
    Derived rates are not stored and so are never perturbed directly. The
    shocks come from a numpy generator, separate from the asset generator.

    Args:
        table: Current rate table
        volatility: Total width of the shock band
        seed: Optional seed for a reproducible shock stream

    Returns:
        New table with the next version number and a fresh timestamp
    """
    if volatility < 0:
        raise InvalidInputError(f"Rate volatility must be non-negative, got {volatility}")

    rng = np.random.default_rng(seed)
    shocks = rng.random(len(table.rates)) - 0.5
    updated = {
        key: truncate(rate * (1 + shock * volatility))
        for (key, rate), shock in zip(table.rates.items(), shocks)
    }
    return ExchangeRateTable(rates=updated, version=table.version + 1)


class CurrencyConverter:
    """Converts amounts between currencies against a replaceable rate table."""

    def __init__(
        self,
        table: Optional[ExchangeRateTable] = None,
        intermediaries: Sequence[str] = DEFAULT_INTERMEDIARIES,
    ):
        """Initialize the converter.

        Args:
            table: Initial rate table (defaults to the built-in base rates)
            intermediaries: Intermediary currencies for one-hop resolution, in priority order
        """
        if table is None:
            table = ExchangeRateTable(rates=dict(DEFAULT_RATES))
        self._table = table
        self.intermediaries: Tuple[str, ...] = tuple(intermediaries)

    @classmethod
    def default(
        cls, intermediaries: Sequence[str] = DEFAULT_INTERMEDIARIES
    ) -> "CurrencyConverter":
        """Create a converter seeded with the built-in base rates."""
        return cls(ExchangeRateTable(rates=dict(DEFAULT_RATES)), intermediaries)

    @classmethod
    def from_rates(
        cls,
        rates: Dict[str, float],
        intermediaries: Sequence[str] = DEFAULT_INTERMEDIARIES,
    ) -> "CurrencyConverter":
        """Create a converter from a plain ``{"FROM/TO": rate}`` mapping."""
        return cls(ExchangeRateTable(rates=dict(rates)), intermediaries)

    @property
    def table(self) -> ExchangeRateTable:
        """Current rate table."""
        return self._table

    def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        """Convert an amount, truncated to 6 decimal places."""
        return convert_amount(
            self._table, amount, from_currency, to_currency, self.intermediaries
        )

    def get_rate(self, from_currency: str, to_currency: str) -> float:
        """Get the resolved rate for a pair, truncated to 6 decimal places."""
        return truncate(
            resolve_rate(self._table, from_currency, to_currency, self.intermediaries)
        )

    def update_rates(
        self, volatility: float, seed: Optional[int] = None
    ) -> ExchangeRateTable:
        """Shock every stored rate and install the resulting table."""
        self._table = perturb_rates(self._table, volatility, seed)
        logger.info(f"Exchange rates refreshed to version {self._table.version}")
        return self._table

    def snapshot(self) -> ExchangeRateTable:
        """Return the current table for later replay."""
        return self._table

    def restore(self, table: ExchangeRateTable) -> None:
        """Replace the current table wholesale."""
        self._table = table

    def with_table(self, table: ExchangeRateTable) -> "CurrencyConverter":
        """Create a converter bound to another table, sharing intermediaries."""
        return CurrencyConverter(table, self.intermediaries)
