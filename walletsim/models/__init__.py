"""Data models and engines for the wallet simulation core."""

from .wallet import (
    LIQUIDITY_ORDER,
    Asset,
    DailyRecord,
    Ensemble,
    Liability,
    Trajectory,
    WalletState,
)
from .errors import InvalidInputError, RateNotFoundError, SimulationError
from .random_source import MultiplyWithCarry, RandomSource
from .currency import CurrencyConverter, ExchangeRateTable
from .assets import AssetEngine, LiquidationResult
from .risk import RiskEngine, RiskMetrics, RiskMetricsConfig, TrajectoryProfile
from .tiers import credit_tier, risk_level
from .statistics import (
    StatisticsEngine,
    StatisticsReport,
    generate_statistics_report,
)

__all__ = [
    "LIQUIDITY_ORDER",
    "Asset",
    "DailyRecord",
    "Ensemble",
    "Liability",
    "Trajectory",
    "WalletState",
    "InvalidInputError",
    "RateNotFoundError",
    "SimulationError",
    "MultiplyWithCarry",
    "RandomSource",
    "CurrencyConverter",
    "ExchangeRateTable",
    "AssetEngine",
    "LiquidationResult",
    "RiskEngine",
    "RiskMetrics",
    "RiskMetricsConfig",
    "TrajectoryProfile",
    "credit_tier",
    "risk_level",
    "StatisticsEngine",
    "StatisticsReport",
    "generate_statistics_report",
]
