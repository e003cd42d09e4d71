"""Wallet trajectory simulation core and ensemble risk analytics."""

import logging
from typing import Optional

from walletsim.config import Settings, get_global_settings


def create_ensemble_service(settings: Optional[Settings] = None):
    """Create and configure an ensemble service.

    Args:
        settings: Engine settings (defaults to the global settings)

    Returns:
        EnsembleService: Service wired with converter, asset and risk engines
    """
    from walletsim.models.assets import AssetEngine
    from walletsim.models.currency import CurrencyConverter
    from walletsim.models.risk import RiskEngine, RiskMetricsConfig
    from walletsim.services.ensemble_service import EnsembleService

    settings = settings or get_global_settings()
    logging.getLogger("walletsim").setLevel(settings.log_level)

    converter = CurrencyConverter(intermediaries=settings.intermediary_currencies)
    asset_engine = AssetEngine(converter, base_currency=settings.base_currency)
    risk_engine = RiskEngine(RiskMetricsConfig(var_percentile=settings.var_percentile))

    return EnsembleService(
        asset_engine=asset_engine,
        risk_engine=risk_engine,
        max_workers=settings.max_workers,
        executor_mode=settings.executor_mode,
        rate_volatility=settings.rate_volatility,
    )
