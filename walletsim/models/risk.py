"""
Trajectory risk metrics for ensemble simulation.

This module reduces simulated wallet trajectories to risk measures: collapse
probability and timing, recovery dynamics, maximum drawdown, Value-at-Risk
and Conditional Value-at-Risk of final balances, and shock clustering density.
Every function is pure; per-trajectory work is captured in a
``TrajectoryProfile`` so that profiles can be computed in parallel and
combined afterwards.
"""

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, Field

from .errors import InvalidInputError
from .precision import round_half_up
from .tiers import RiskLevel, risk_level
from .wallet import Ensemble, Trajectory


class RiskMetricsConfig(BaseModel):
    """Configuration for risk metrics calculation."""

    var_percentile: float = Field(
        default=0.05, ge=0, le=1, description="Percentile used for VaR and CVaR"
    )


class TrajectoryProfile(BaseModel):
    """Risk summary of a single trajectory."""

    collapse_day: int = Field(..., ge=-1, description="First negative day (-1 if none)")
    recovered: bool = Field(..., description="Positive balance seen after collapse")
    recovery_slope: int = Field(
        ..., ge=-1, description="Days from collapse to non-negative balance (-1 if none)"
    )
    shock_clustering_density: float = Field(
        ..., ge=0, le=1, description="Fraction of days touching a negative balance"
    )
    max_drawdown: float = Field(
        ..., ge=0, description="Worst peak-to-trough drawdown (fraction)"
    )
    final_balance: float = Field(..., description="Balance on the last day")

    @property
    def collapsed(self) -> bool:
        """Whether the trajectory ever went negative."""
        return self.collapse_day >= 0


class RiskMetrics(BaseModel):
    """Ensemble-level risk packet."""

    collapse_probability: float = Field(..., ge=0, le=1, description="Collapsed share")
    collapse_timings: List[int] = Field(
        ..., description="Collapse day of each collapsed trajectory"
    )
    average_collapse_day: int = Field(
        ..., ge=0, description="Mean collapse day (0 if none collapsed)"
    )
    recovery_rate: float = Field(
        ..., ge=0, le=1, description="Share of collapsed trajectories that recovered"
    )
    max_drawdown: float = Field(..., ge=0, description="Worst drawdown (percent)")
    var_percentile: float = Field(..., ge=0, le=1, description="VaR percentile")
    value_at_risk: float = Field(..., description="Final balance at the VaR percentile")
    conditional_value_at_risk: float = Field(
        ..., description="Mean final balance up to the VaR percentile"
    )
    average_recovery_slope: int = Field(
        ..., ge=0, description="Mean positive recovery slope in days"
    )
    shock_clustering_density: float = Field(
        ..., ge=0, le=1, description="Mean shock clustering density"
    )
    risk_level: RiskLevel = Field(..., description="Risk level of the collapse probability")


def validate_ensemble(ensemble: Ensemble) -> None:
    """Reject empty ensembles and empty trajectories."""
    if len(ensemble) == 0:
        raise InvalidInputError("Ensemble must contain at least one trajectory")
    for index, trajectory in enumerate(ensemble):
        if len(trajectory) == 0:
            raise InvalidInputError(f"Trajectory {index} has no days")


def validate_trajectory(trajectory: Trajectory) -> None:
    """Reject empty trajectories."""
    if len(trajectory) == 0:
        raise InvalidInputError("Trajectory must contain at least one day")


def validate_percentile(percentile: float) -> None:
    """Reject percentiles outside [0, 1]."""
    if not 0 <= percentile <= 1:
        raise InvalidInputError(f"Percentile must be in [0, 1], got {percentile}")


def percentile_index(count: int, percentile: float) -> int:
    """Index ``floor(count * percentile)`` into an ascending sort, kept in range."""
    return min(max(0, math.floor(count * percentile)), count - 1)


def sorted_final_balances(ensemble: Ensemble) -> NDArray[np.float64]:
    """Final-day balances of every trajectory, sorted ascending."""
    validate_ensemble(ensemble)
    return np.sort(np.array([trajectory[-1].balance for trajectory in ensemble]))


def value_at_risk(sorted_balances: NDArray[np.float64], percentile: float) -> float:
    """Value at the percentile index of ascending balances."""
    validate_percentile(percentile)
    return float(sorted_balances[percentile_index(len(sorted_balances), percentile)])


def conditional_value_at_risk(
    sorted_balances: NDArray[np.float64], percentile: float
) -> float:
    """Mean of ascending balances from index 0 through the percentile index."""
    validate_percentile(percentile)
    cutoff = percentile_index(len(sorted_balances), percentile)
    return float(np.mean(sorted_balances[: cutoff + 1]))


def detect_collapse(trajectory: Trajectory) -> Tuple[int, bool]:
    """
    Find the collapse day and whether the trajectory recovered.

    The collapse day is the first day with a negative balance; later dips are
    not new collapses. Recovery is any later day with a positive balance.

    Returns:
        Tuple of (collapse_day or -1, recovered)
    """
    collapse_day = -1
    recovered = False
    for day, state in enumerate(trajectory):
        if collapse_day == -1:
            if state.balance < 0:
                collapse_day = day
        elif state.balance > 0:
            recovered = True
            break
    return collapse_day, recovered


def trajectory_drawdown(trajectory: Trajectory) -> float:
    """
    Worst drawdown of one trajectory as a fraction.

    Peak and trough both extend over the whole trajectory and never reset.
    A day's drawdown is ``(peak - trough) / peak`` when the peak is positive.
    """
    peak = trajectory[0].balance
    trough = peak
    worst = 0.0
    for state in trajectory:
        if state.balance > peak:
            peak = state.balance
        if state.balance < trough:
            trough = state.balance
        drawdown = (peak - trough) / peak if peak > 0 else 0.0
        if drawdown > worst:
            worst = drawdown
    return worst


class RiskEngine:
    """Calculator for trajectory and ensemble risk metrics."""

    def __init__(self, config: Optional[RiskMetricsConfig] = None):
        """Initialize the risk engine.

        Args:
            config: Configuration for risk metrics calculation
        """
        self.config = config or RiskMetricsConfig()

    def profile_trajectory(self, trajectory: Trajectory) -> TrajectoryProfile:
        """Summarize the risk features of one trajectory."""
        validate_trajectory(trajectory)
        collapse_day, recovered = detect_collapse(trajectory)
        return TrajectoryProfile(
            collapse_day=collapse_day,
            recovered=recovered,
            recovery_slope=self.calculate_recovery_slope(trajectory),
            shock_clustering_density=self.calculate_shock_clustering_density(trajectory),
            max_drawdown=trajectory_drawdown(trajectory),
            final_balance=trajectory[-1].balance,
        )

    def calculate_collapse_probability(self, ensemble: Ensemble) -> RiskMetrics:
        """
        Calculate the full risk packet for an ensemble.

        Args:
            ensemble: Trajectories to analyze

        Returns:
            RiskMetrics for the ensemble

        Raises:
            InvalidInputError: If the ensemble or any trajectory is empty
        """
        validate_ensemble(ensemble)
        profiles = [self.profile_trajectory(trajectory) for trajectory in ensemble]
        return self.summarize_profiles(profiles)

    def summarize_profiles(self, profiles: Sequence[TrajectoryProfile]) -> RiskMetrics:
        """Combine per-trajectory profiles into the ensemble risk packet."""
        if len(profiles) == 0:
            raise InvalidInputError("Ensemble must contain at least one trajectory")

        collapse_timings = [p.collapse_day for p in profiles if p.collapsed]
        recovered_count = sum(1 for p in profiles if p.collapsed and p.recovered)

        collapse_probability = len(collapse_timings) / len(profiles)
        if collapse_timings:
            average_collapse_day = round_half_up(float(np.mean(collapse_timings)))
            recovery_rate = recovered_count / len(collapse_timings)
        else:
            average_collapse_day = 0
            recovery_rate = 1.0

        positive_slopes = [p.recovery_slope for p in profiles if p.recovery_slope > 0]
        average_recovery_slope = (
            round_half_up(float(np.mean(positive_slopes))) if positive_slopes else 0
        )

        worst_drawdown = max(p.max_drawdown for p in profiles)
        sorted_balances = np.sort(np.array([p.final_balance for p in profiles]))
        percentile = self.config.var_percentile
        rounded_probability = round(collapse_probability, 4)

        return RiskMetrics(
            collapse_probability=rounded_probability,
            collapse_timings=collapse_timings,
            average_collapse_day=average_collapse_day,
            recovery_rate=round(recovery_rate, 4),
            max_drawdown=round(worst_drawdown * 100, 2),
            var_percentile=percentile,
            value_at_risk=value_at_risk(sorted_balances, percentile),
            conditional_value_at_risk=conditional_value_at_risk(
                sorted_balances, percentile
            ),
            average_recovery_slope=average_recovery_slope,
            shock_clustering_density=round(
                float(np.mean([p.shock_clustering_density for p in profiles])), 4
            ),
            risk_level=risk_level(rounded_probability),
        )

    def calculate_max_drawdown(self, ensemble: Ensemble) -> float:
        """Worst drawdown on any day of any trajectory, in percent (2 dp)."""
        validate_ensemble(ensemble)
        worst = max(trajectory_drawdown(trajectory) for trajectory in ensemble)
        return round(worst * 100, 2)

    def calculate_var(self, ensemble: Ensemble, percentile: float) -> float:
        """
        Calculate Value at Risk of final balances.

        Final balances are sorted ascending and the value at index
        ``floor(n * percentile)`` is returned.
        """
        validate_percentile(percentile)
        return value_at_risk(sorted_final_balances(ensemble), percentile)

    def calculate_cvar(self, ensemble: Ensemble, percentile: float) -> float:
        """Calculate Conditional Value at Risk (mean of the worst tail incl. VaR)."""
        validate_percentile(percentile)
        return conditional_value_at_risk(sorted_final_balances(ensemble), percentile)

    def calculate_shock_clustering_density(self, trajectory: Trajectory) -> float:
        """
        Fraction of days touching a negative balance (4 dp).

        A day counts when its own balance is negative or the latest record in
        its history is negative.
        """
        validate_trajectory(trajectory)
        negative_days = 0
        for state in trajectory:
            last_record = state.last_record
            if state.balance < 0 or (last_record is not None and last_record.balance < 0):
                negative_days += 1
        return round(negative_days / len(trajectory), 4)

    def calculate_recovery_slope(self, trajectory: Trajectory) -> int:
        """Days from first collapse to the next non-negative day, or -1."""
        validate_trajectory(trajectory)
        collapse_day = -1
        for day, state in enumerate(trajectory):
            if collapse_day == -1:
                if state.balance < 0:
                    collapse_day = day
            elif state.balance >= 0:
                return day - collapse_day
        return -1

    def calculate_average_recovery_slope(self, ensemble: Ensemble) -> int:
        """Mean of positive recovery slopes, rounded; 0 when there are none."""
        validate_ensemble(ensemble)
        slopes = [self.calculate_recovery_slope(t) for t in ensemble]
        positive_slopes = [slope for slope in slopes if slope > 0]
        if not positive_slopes:
            return 0
        return round_half_up(float(np.mean(positive_slopes)))

    def get_risk_level(self, collapse_probability: float) -> RiskLevel:
        """Map a collapse probability to a risk level."""
        return risk_level(collapse_probability)
