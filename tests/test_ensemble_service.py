"""
Tests for the ensemble service.
"""

import os
from datetime import date
from unittest.mock import patch

import pytest

from walletsim import create_ensemble_service
from walletsim.config import Settings
from walletsim.models.assets import AssetEngine
from walletsim.models.errors import InvalidInputError
from walletsim.models.random_source import draw_sequence
from walletsim.models.wallet import WalletState
from walletsim.services.ensemble_service import EnsembleService


@pytest.fixture
def random_ensemble(make_trajectory):
    """Twelve pseudo-random trajectories of 15 days."""
    ensemble = []
    for seed in range(12):
        balances = [(u - 0.3) * 500 for u in draw_sequence(seed, 15)]
        ensemble.append(make_trajectory(balances))
    return ensemble


@pytest.fixture
def wallets(make_asset):
    """Prior-day wallets with a mix of holdings, some in deficit."""
    assets = [
        make_asset("cash", amount=200.0),
        make_asset("bond", amount=500.0, liquidity_class="yield"),
        make_asset("coin", amount=300.0, volatility=0.3, liquidity_class="volatile"),
        make_asset("euros", amount=150.0, currency="EUR", volatility=0.05),
    ]
    return [
        WalletState(
            current_date=date(2025, 1, 1),
            balance=balance,
            assets=assets,
            credit_score=700,
        )
        for balance in [100.0, -150.0, -400.0, -2000.0, 0.0]
    ]


class TestAnalyze:
    """Test EnsembleService.analyze."""

    def test_threaded_matches_serial(self, random_ensemble):
        """Test pooled analysis equals single-worker analysis."""
        pooled = EnsembleService(max_workers=4).analyze(random_ensemble)
        serial = EnsembleService(max_workers=1).analyze(random_ensemble)

        assert pooled == serial

    def test_matches_statistics_engine(self, random_ensemble):
        """Test the service report equals a direct statistics run."""
        service = EnsembleService(max_workers=2)

        report = service.analyze(random_ensemble)

        assert report == service.statistics_engine.generate_statistics(random_ensemble)

    def test_profiles_in_ensemble_order(self, random_ensemble):
        """Test profiles line up with their trajectories."""
        service = EnsembleService(max_workers=3)

        profiles = service.profile_ensemble(random_ensemble)

        assert [p.final_balance for p in profiles] == [
            trajectory[-1].balance for trajectory in random_ensemble
        ]

    def test_empty_ensemble_rejected(self):
        """Test empty ensembles raise before any work is scheduled."""
        with pytest.raises(InvalidInputError):
            EnsembleService().analyze([])

    def test_worker_failure_propagates(self, make_trajectory):
        """Test errors raised inside workers reach the caller."""
        service = EnsembleService(max_workers=2)
        ensemble = [make_trajectory([1.0]), make_trajectory([2.0])]

        with patch.object(
            service.risk_engine, "profile_trajectory", side_effect=RuntimeError("boom")
        ):
            with pytest.raises(RuntimeError, match="boom"):
                service.profile_ensemble(ensemble)


class TestStepEnsemble:
    """Test EnsembleService.step_ensemble."""

    def test_matches_serial_settlement(self, wallets):
        """Test pooled stepping equals settling each wallet in turn."""
        engine = AssetEngine()
        service = EnsembleService(asset_engine=engine, max_workers=3)
        seeds = [11, 22, 33, 44, 55]

        stepped = service.step_ensemble(wallets, seeds, next_date=date(2025, 1, 2))

        expected = [
            engine.settle_day(state, seed, next_date=date(2025, 1, 2))
            for state, seed in zip(wallets, seeds)
        ]
        assert stepped == expected

    def test_separate_yield_seeds(self, wallets):
        """Test yield seeds are passed per wallet."""
        engine = AssetEngine()
        service = EnsembleService(asset_engine=engine, max_workers=1)
        seeds = [1, 2, 3, 4, 5]
        yield_seeds = [9, 8, 7, 6, 5]

        stepped = service.step_ensemble(wallets, seeds, yield_seeds)

        assert stepped[2] == engine.settle_day(wallets[2], 3, 7)

    def test_states_advance_one_day(self, wallets):
        """Test every wallet moves to day 1 with a history record."""
        stepped = EnsembleService().step_ensemble(wallets, list(range(5)))

        assert all(state.day_number == 1 for state in stepped)
        assert all(len(state.history) == 1 for state in stepped)
        assert stepped[3].balance < 0
        assert stepped[1].balance == 0.0

    def test_rate_table_snapshot_shared(self, wallets):
        """Test stepping does not change the service's rate table."""
        service = EnsembleService(max_workers=2)
        table = service.asset_engine.converter.table

        service.step_ensemble(wallets, [1, 2, 3, 4, 5])

        assert service.asset_engine.converter.table is table

    def test_seed_count_mismatch(self, wallets):
        """Test seed lists must match the wallets."""
        service = EnsembleService()

        with pytest.raises(InvalidInputError):
            service.step_ensemble(wallets, [1, 2])

        with pytest.raises(InvalidInputError):
            service.step_ensemble(wallets, [1, 2, 3, 4, 5], yield_seeds=[1])

    def test_refresh_rates_between_days(self):
        """Test a refresh installs the next table version for later days."""
        service = EnsembleService(max_workers=1, rate_volatility=0.1)
        before = service.asset_engine.converter.table

        refreshed = service.refresh_rates(seed=4)

        assert refreshed.version == before.version + 1
        assert service.asset_engine.converter.table is refreshed
        assert refreshed.rates != before.rates


class TestCreateEnsembleService:
    """Test the create_ensemble_service factory."""

    def test_settings_wired_through(self):
        """Test settings reach the engines and the pool."""
        with patch.dict(
            os.environ,
            {
                "BASE_CURRENCY": "eur",
                "INTERMEDIARY_CURRENCIES": '["GBP", "USD"]',
                "VAR_PERCENTILE": "0.1",
                "MAX_WORKERS": "2",
                "EXECUTOR_MODE": "thread",
                "RATE_VOLATILITY": "0.07",
            },
            clear=True,
        ):
            service = create_ensemble_service(Settings(_env_file=None))

        assert service.asset_engine.base_currency == "EUR"
        assert service.asset_engine.converter.intermediaries == ("GBP", "USD")
        assert service.risk_engine.config.var_percentile == 0.1
        assert service.max_workers == 2
        assert service.executor_mode == "thread"
        assert service.rate_volatility == 0.07

    def test_defaults(self):
        """Test the factory with default settings."""
        with patch.dict(os.environ, {}, clear=True):
            service = create_ensemble_service(Settings(_env_file=None))

        assert service.asset_engine.base_currency == "USD"
        assert service.max_workers is None
        assert service.risk_engine.config.var_percentile == 0.05
