"""
Pytest configuration and shared fixtures for the wallet simulation tests.
"""

from datetime import date
from typing import List, Optional, Sequence

import pytest

from walletsim.models.wallet import Asset, DailyRecord, Trajectory, WalletState


def build_asset(
    asset_id: str = "asset",
    amount: float = 1000.0,
    liquidity_class: str = "liquid",
    currency: str = "USD",
    volatility: float = 0.0,
    locked_until: Optional[date] = None,
) -> Asset:
    """Build an asset with sensible defaults."""
    return Asset(
        id=asset_id,
        name=asset_id.title(),
        amount=amount,
        currency=currency,
        volatility=volatility,
        liquidity_class=liquidity_class,
        locked_until=locked_until,
    )


def build_trajectory(
    balances: Sequence[float],
    credit_scores: Optional[Sequence[float]] = None,
    assets: Optional[List[Asset]] = None,
) -> Trajectory:
    """Build a trajectory whose histories hold one record per elapsed day."""
    scores = credit_scores or [700.0] * len(balances)
    records: List[DailyRecord] = []
    trajectory = []
    for day, balance in enumerate(balances):
        state = WalletState(
            balance=balance,
            assets=list(assets or []),
            credit_score=scores[day],
            day_number=day,
            history=list(records),
        )
        trajectory.append(state)
        records.append(DailyRecord.from_state(state))
    return trajectory


@pytest.fixture
def make_asset():
    """Factory fixture for assets."""
    return build_asset


@pytest.fixture
def make_trajectory():
    """Factory fixture for trajectories."""
    return build_trajectory
