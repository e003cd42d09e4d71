"""
Ensemble service for running the simulation core across many trajectories.

Trajectories share no mutable state, so per-trajectory work is fanned out to a
thread or process pool. When a day is settled for many trajectories at once,
the exchange-rate table is snapshotted once and the same immutable table is
broadcast to every worker, keeping the whole ensemble on one market path.
"""

import logging
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from datetime import date
from typing import Any, Callable, List, Literal, Optional, Sequence, Tuple

from walletsim.models.assets import AssetEngine
from walletsim.models.currency import ExchangeRateTable
from walletsim.models.errors import InvalidInputError
from walletsim.models.risk import RiskEngine, TrajectoryProfile, validate_ensemble
from walletsim.models.statistics import StatisticsEngine, StatisticsReport
from walletsim.models.wallet import Ensemble, Trajectory, WalletState

logger = logging.getLogger(__name__)

ExecutorMode = Literal["thread", "process"]


def _profile_trajectory(args: Tuple[RiskEngine, Trajectory]) -> TrajectoryProfile:
    """Pool adapter that profiles one trajectory."""
    risk_engine, trajectory = args
    return risk_engine.profile_trajectory(trajectory)


def _settle_state(
    args: Tuple[AssetEngine, WalletState, int, Optional[int], Optional[date]]
) -> WalletState:
    """Pool adapter that settles one wallet for one day."""
    asset_engine, state, seed, yield_seed, next_date = args
    return asset_engine.settle_day(state, seed, yield_seed, next_date)


class EnsembleService:
    """Service for analyzing ensembles and stepping them one day at a time."""

    def __init__(
        self,
        asset_engine: Optional[AssetEngine] = None,
        risk_engine: Optional[RiskEngine] = None,
        max_workers: Optional[int] = None,
        executor_mode: ExecutorMode = "thread",
        rate_volatility: float = 0.02,
    ) -> None:
        """Initialize the ensemble service.

        Args:
            asset_engine: Engine used for settlement and asset statistics
            risk_engine: Engine used for trajectory profiles and the risk packet
            max_workers: Pool size (``None`` uses the executor default, 1 runs inline)
            executor_mode: ``thread`` or ``process`` pool
            rate_volatility: Band width for daily exchange-rate shocks
        """
        self.asset_engine = asset_engine or AssetEngine()
        self.risk_engine = risk_engine or RiskEngine()
        self.statistics_engine = StatisticsEngine(self.asset_engine, self.risk_engine)
        self.max_workers = max_workers
        self.executor_mode = executor_mode
        self.rate_volatility = rate_volatility
        self.logger = logging.getLogger(__name__)

    def analyze(self, ensemble: Ensemble) -> StatisticsReport:
        """Build the statistics report for an ensemble.

        Args:
            ensemble: Trajectories to analyze

        Returns:
            StatisticsReport for the ensemble

        Raises:
            InvalidInputError: If the ensemble or any trajectory is empty
        """
        validate_ensemble(ensemble)
        self.logger.info(
            f"Analyzing ensemble of {len(ensemble)} trajectories "
            f"({self.executor_mode} mode)"
        )

        profiles = self.profile_ensemble(ensemble)
        report = self.statistics_engine.generate_statistics(ensemble, profiles)

        self.logger.info(
            f"Completed ensemble analysis: collapse probability "
            f"{report.risk.collapse_probability}, risk level {report.risk.risk_level}"
        )
        return report

    def profile_ensemble(self, ensemble: Ensemble) -> List[TrajectoryProfile]:
        """Profile every trajectory, in ensemble order."""
        validate_ensemble(ensemble)
        return self._map(
            _profile_trajectory,
            [(self.risk_engine, trajectory) for trajectory in ensemble],
        )

    def step_ensemble(
        self,
        states: Sequence[WalletState],
        seeds: Sequence[int],
        yield_seeds: Optional[Sequence[int]] = None,
        next_date: Optional[date] = None,
    ) -> List[WalletState]:
        """
        Settle one simulated day for many trajectories.

        The current rate table is captured once and shared read-only by every
        trajectory for this day.

        Args:
            states: Prior-day wallet of each trajectory
            seeds: Revaluation seed for each trajectory
            yield_seeds: Optional yield seed for each trajectory
            next_date: Calendar date of the new day

        Returns:
            Next-day wallets, in input order

        Raises:
            InvalidInputError: If the seed lists do not match the states
        """
        if len(seeds) != len(states):
            raise InvalidInputError(
                f"Expected {len(states)} seeds, got {len(seeds)}"
            )
        if yield_seeds is not None and len(yield_seeds) != len(states):
            raise InvalidInputError(
                f"Expected {len(states)} yield seeds, got {len(yield_seeds)}"
            )

        day_table = self.asset_engine.converter.snapshot()
        day_engine = AssetEngine(
            converter=self.asset_engine.converter.with_table(day_table),
            base_currency=self.asset_engine.base_currency,
            random_source_factory=self.asset_engine.random_source_factory,
        )

        return self._map(
            _settle_state,
            [
                (
                    day_engine,
                    state,
                    seed,
                    None if yield_seeds is None else yield_seeds[index],
                    next_date,
                )
                for index, (state, seed) in enumerate(zip(states, seeds))
            ],
        )

    def refresh_rates(self, seed: Optional[int] = None) -> ExchangeRateTable:
        """Shock the shared rate table ahead of the next simulated day."""
        return self.asset_engine.converter.update_rates(self.rate_volatility, seed)

    def _map(self, func: Callable[[Any], Any], items: List[Any]) -> List[Any]:
        """Apply a function across items, in order, on the configured pool."""
        if self.max_workers == 1 or len(items) <= 1:
            return [func(item) for item in items]

        executor_cls = (
            ProcessPoolExecutor if self.executor_mode == "process" else ThreadPoolExecutor
        )
        try:
            with executor_cls(max_workers=self.max_workers) as pool:
                return list(pool.map(func, items))
        except Exception as e:
            self.logger.error(f"Ensemble worker failed: {str(e)}")
            raise
