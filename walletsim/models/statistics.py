"""
Ensemble statistics for wallet simulations.

This module reduces an ensemble of trajectories to the reporting packet handed
to presentation layers: final-balance distribution, credit-score distribution,
asset value and liquidity, and the risk packet from the risk engine.
"""

from typing import Dict, List, Optional, Sequence

import numpy as np
from pydantic import BaseModel, Field

from .assets import AssetEngine
from .errors import InvalidInputError
from .risk import (
    RiskEngine,
    RiskMetrics,
    TrajectoryProfile,
    percentile_index,
    validate_ensemble,
    validate_trajectory,
)
from .tiers import CREDIT_TIERS, CreditTier, RiskLevel, credit_tier, risk_level
from .wallet import Ensemble, Trajectory


class BalanceStatistics(BaseModel):
    """Distribution of final-day balances."""

    mean: float = Field(..., description="Mean final balance")
    median: float = Field(..., description="Median final balance")
    percentile_5: float = Field(..., description="5th percentile final balance")
    percentile_95: float = Field(..., description="95th percentile final balance")
    min: float = Field(..., description="Lowest final balance")
    max: float = Field(..., description="Highest final balance")
    std_dev: float = Field(..., ge=0, description="Population standard deviation")
    peak_balance: float = Field(..., description="Highest balance on any day")
    lowest_balance: float = Field(..., description="Lowest balance on any day")


class CreditStatistics(BaseModel):
    """Distribution of final-day credit scores."""

    mean: float = Field(..., description="Mean final credit score")
    evolution: List[float] = Field(
        ..., description="Credit score series of the first trajectory"
    )
    final_distribution: Dict[str, float] = Field(
        ..., description="Percentage of trajectories per credit tier"
    )


class AssetStatistics(BaseModel):
    """Asset value and liquidity averaged over final-day states."""

    nav: float = Field(..., description="Average net asset value")
    liquidity_ratio: float = Field(..., le=1, description="Average liquidity ratio")


class StatisticsReport(BaseModel):
    """Complete reporting packet for an ensemble."""

    final_balance: BalanceStatistics
    credit_score: CreditStatistics
    assets: AssetStatistics
    risk: RiskMetrics


class StatisticsEngine:
    """Aggregates an ensemble into descriptive statistics and risk."""

    def __init__(
        self,
        asset_engine: Optional[AssetEngine] = None,
        risk_engine: Optional[RiskEngine] = None,
    ):
        """Initialize the statistics engine.

        Args:
            asset_engine: Values holdings for NAV and liquidity ratio
            risk_engine: Computes the risk packet
        """
        self.asset_engine = asset_engine or AssetEngine()
        self.risk_engine = risk_engine or RiskEngine()

    def generate_statistics(
        self,
        ensemble: Ensemble,
        profiles: Optional[Sequence[TrajectoryProfile]] = None,
    ) -> StatisticsReport:
        """
        Generate the complete statistics packet for an ensemble.

        Args:
            ensemble: Trajectories to analyze
            profiles: Precomputed trajectory profiles, one per trajectory in order

        Returns:
            StatisticsReport with balance, credit, asset and risk statistics

        Raises:
            InvalidInputError: If the ensemble or any trajectory is empty
        """
        validate_ensemble(ensemble)

        if profiles is None:
            risk = self.risk_engine.calculate_collapse_probability(ensemble)
        else:
            if len(profiles) != len(ensemble):
                raise InvalidInputError(
                    f"Expected {len(ensemble)} profiles, got {len(profiles)}"
                )
            risk = self.risk_engine.summarize_profiles(profiles)

        return StatisticsReport(
            final_balance=self.calculate_balance_stats(ensemble),
            credit_score=self.calculate_credit_stats(ensemble),
            assets=self.calculate_asset_stats(ensemble),
            risk=risk,
        )

    def calculate_balance_stats(self, ensemble: Ensemble) -> BalanceStatistics:
        """Calculate final-balance statistics using floor(n*p) percentile indexing."""
        validate_ensemble(ensemble)
        balances = np.array([trajectory[-1].balance for trajectory in ensemble])
        sorted_balances = np.sort(balances)
        count = len(sorted_balances)

        all_balances = [state.balance for trajectory in ensemble for state in trajectory]

        return BalanceStatistics(
            mean=round(float(np.mean(balances)), 2),
            median=round(float(sorted_balances[percentile_index(count, 0.5)]), 2),
            percentile_5=round(float(sorted_balances[percentile_index(count, 0.05)]), 2),
            percentile_95=round(
                float(sorted_balances[percentile_index(count, 0.95)]), 2
            ),
            min=round(float(sorted_balances[0]), 2),
            max=round(float(sorted_balances[-1]), 2),
            std_dev=round(float(np.std(balances)), 2),
            peak_balance=round(float(max(all_balances)), 2),
            lowest_balance=round(float(min(all_balances)), 2),
        )

    def calculate_credit_stats(self, ensemble: Ensemble) -> CreditStatistics:
        """Calculate final credit-score mean and tier distribution."""
        validate_ensemble(ensemble)
        final_scores = [trajectory[-1].credit_score for trajectory in ensemble]

        counts = {tier: 0 for tier in CREDIT_TIERS}
        for score in final_scores:
            counts[credit_tier(score)] += 1

        total = len(final_scores)
        distribution = {
            tier: round(counts[tier] / total * 100, 2) for tier in CREDIT_TIERS
        }

        return CreditStatistics(
            mean=round(float(np.mean(final_scores)), 2),
            evolution=[state.credit_score for state in ensemble[0]],
            final_distribution=distribution,
        )

    def calculate_asset_stats(self, ensemble: Ensemble) -> AssetStatistics:
        """Average NAV and liquidity ratio over final-day states."""
        validate_ensemble(ensemble)
        final_states = [trajectory[-1] for trajectory in ensemble]

        navs = [self.asset_engine.calculate_nav(state.assets) for state in final_states]
        ratios = [self.asset_engine.liquidity_ratio(state) for state in final_states]

        return AssetStatistics(
            nav=round(float(np.mean(navs)), 2),
            liquidity_ratio=round(min(float(np.mean(ratios)), 1.0), 4),
        )

    def calculate_rsi(self, trajectory: Trajectory) -> float:
        """
        Calculate the Resilience Score Index (0-100) of one trajectory.

        Every crossing from a non-negative to a negative balance is a shock;
        the days until the balance is non-negative again are its recovery
        time. The score is ``100 - min(mean_recovery_days / 50, 100)`` and is
        100 when no shock ever recovered.
        """
        validate_trajectory(trajectory)
        recoveries = []

        for i in range(1, len(trajectory)):
            previous = trajectory[i - 1].balance
            current = trajectory[i].balance
            if previous >= 0 and current < 0:
                for j in range(i + 1, len(trajectory)):
                    if trajectory[j].balance >= 0:
                        recoveries.append(j - i)
                        break

        if not recoveries:
            return 100.0

        average_recovery_time = float(np.mean(recoveries))
        return round(100 - min(average_recovery_time / 50, 100), 2)

    def get_credit_tier(self, score: float) -> CreditTier:
        """Map a credit score to its tier."""
        return credit_tier(score)

    def get_risk_level(self, collapse_probability: float) -> RiskLevel:
        """Map a collapse probability to a risk level."""
        return risk_level(collapse_probability)


def generate_statistics_report(
    report: StatisticsReport, title: str = "Financial Forecast"
) -> str:
    """
    Generate a human-readable statistics report.

    Args:
        report: Statistics packet
        title: Report heading

    Returns:
        Formatted report string
    """
    balance = report.final_balance
    risk = report.risk

    text = f"""
=== {title} ===

Final Balance:
  Mean:   ${balance.mean:,.2f}
  Median: ${balance.median:,.2f}
  P5:     ${balance.percentile_5:,.2f}
  P95:    ${balance.percentile_95:,.2f}

Credit Score: {report.credit_score.mean:.0f} ({credit_tier(report.credit_score.mean)})

Risk Level: {risk.risk_level.upper()}
  Collapse Probability: {risk.collapse_probability:.1%}
  Recovery Rate: {risk.recovery_rate:.1%}
  Max Drawdown: {risk.max_drawdown:.2f}%
  VaR ({risk.var_percentile:.0%}): ${risk.value_at_risk:,.2f}
  CVaR ({risk.var_percentile:.0%}): ${risk.conditional_value_at_risk:,.2f}

Assets:
  NAV: ${report.assets.nav:,.2f}
  Liquidity Ratio: {report.assets.liquidity_ratio:.1%}
"""

    return text
