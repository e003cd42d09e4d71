"""
Asset revaluation and liquidation engine.

This module applies the daily stochastic processes to a wallet's holdings
(volatility shocks and yield accrual, both driven by seeded generators) and
covers cash deficits by selling assets through a fixed liquidity waterfall.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .currency import CurrencyConverter
from .errors import InvalidInputError
from .precision import truncate
from .random_source import MultiplyWithCarry, RandomSourceFactory
from .wallet import LIQUIDITY_ORDER, Asset, DailyRecord, WalletState

logger = logging.getLogger(__name__)

# Fraction of sale proceeds lost when liquidating each class
LIQUIDATION_PENALTIES: Dict[str, float] = {
    "liquid": 0.0,
    "yield": 0.02,
    "volatile": 0.05,
    "illiquid": 0.10,
}

# Annualized yield band for yield-class assets: [2%, 5%]
YIELD_RATE_FLOOR = 0.02
YIELD_RATE_SPAN = 0.03
DAYS_PER_YEAR = 365


class LiquidationResult(BaseModel):
    """Result of covering a deficit through the liquidation waterfall."""

    remaining_deficit: float = Field(
        ..., ge=0, description="Unmet deficit after all sellable assets"
    )
    assets: List[Asset] = Field(..., description="Independent copy of the holdings")
    proceeds: float = Field(
        default=0.0, ge=0, description="Net base-currency proceeds applied"
    )
    units_sold: Dict[str, float] = Field(
        default_factory=dict, description="Units sold per asset id"
    )

    @property
    def is_insolvent(self) -> bool:
        """Whether the holdings could not cover the deficit."""
        return self.remaining_deficit > 0


class AssetEngine:
    """Revalues, accrues yield on and liquidates a wallet's assets."""

    def __init__(
        self,
        converter: Optional[CurrencyConverter] = None,
        base_currency: str = "USD",
        random_source_factory: RandomSourceFactory = MultiplyWithCarry,
    ):
        """Initialize the asset engine.

        Args:
            converter: Currency converter used to value proceeds and holdings
            base_currency: Currency of the wallet's cash balance
            random_source_factory: Builds a deterministic generator from a seed
        """
        self.converter = converter or CurrencyConverter()
        self.base_currency = base_currency
        self.random_source_factory = random_source_factory

    def revalue_assets(self, assets: List[Asset], seed: int) -> List[Asset]:
        """
        Revalue assets under one seeded volatility shock each.

        One uniform draw is taken per asset in list order and mapped to a shock
        in ``[-volatility, +volatility]``.

        Args:
            assets: Assets to revalue (left untouched)
            seed: Seed for the draw sequence

        Returns:
            New asset list with shocked, non-negative, truncated amounts
        """
        rng = self.random_source_factory(seed)
        revalued = []
        for asset in assets:
            shock = rng.random() * asset.volatility * 2 - asset.volatility
            new_amount = max(0.0, asset.amount * (1 + shock))
            revalued.append(asset.model_copy(update={"amount": truncate(new_amount)}))
        return revalued

    def apply_yield(self, assets: List[Asset], seed: int) -> List[Asset]:
        """
        Accrue one day of yield on yield-class assets.

        Each yield asset draws an annual rate from the 2-5% band, in list order,
        and grows by ``amount * rate / 365``. Other assets pass through unchanged.

        Args:
            assets: Assets to accrue on (left untouched)
            seed: Seed for the draw sequence

        Returns:
            New asset list with accrued amounts
        """
        rng = self.random_source_factory(seed)
        accrued = []
        for asset in assets:
            if asset.liquidity_class != "yield":
                accrued.append(asset.model_copy())
                continue
            yield_rate = YIELD_RATE_FLOOR + rng.random() * YIELD_RATE_SPAN
            daily_yield = asset.amount * (yield_rate / DAYS_PER_YEAR)
            accrued.append(
                asset.model_copy(update={"amount": truncate(asset.amount + daily_yield)})
            )
        return accrued

    def is_asset_locked(self, asset: Asset, current_date: Optional[date]) -> bool:
        """Check whether an asset is locked on a given date.

        Without a known date, any asset carrying a lock date counts as locked.
        """
        if asset.locked_until is None:
            return False
        if current_date is None:
            return True
        return current_date < asset.locked_until

    def calculate_nav(
        self, assets: List[Asset], base_currency: Optional[str] = None
    ) -> float:
        """Calculate net asset value of holdings in the base currency."""
        target = base_currency or self.base_currency
        return float(sum(
            self.converter.convert(asset.amount, asset.currency, target)
            for asset in assets
        ))

    def liquid_funds(
        self,
        assets: List[Asset],
        current_date: Optional[date] = None,
        base_currency: Optional[str] = None,
    ) -> float:
        """Sum unlocked liquid-class holdings in the base currency."""
        target = base_currency or self.base_currency
        return float(sum(
            self.converter.convert(asset.amount, asset.currency, target)
            for asset in assets
            if asset.liquidity_class == "liquid"
            and not self.is_asset_locked(asset, current_date)
        ))

    def liquidity_ratio(self, state: WalletState) -> float:
        """
        Calculate the share of total wealth that is immediately usable.

        Total wealth is the cash balance plus net asset value. The ratio is
        capped at 1 and defined as 0 when total wealth is exactly zero.
        """
        nav = self.calculate_nav(state.assets)
        liquid = self.liquid_funds(state.assets, state.current_date)
        total_wealth = state.balance + nav

        if total_wealth == 0:
            return 0.0
        return min(liquid / total_wealth, 1.0)

    def liquidate_for_deficit(
        self,
        assets: List[Asset],
        deficit_amount: float,
        current_date: Optional[date] = None,
    ) -> LiquidationResult:
        """
        Cover a cash deficit by selling assets in liquidity order.

        Classes are sold ``liquid -> yield -> volatile -> illiquid`` and assets
        within a class in list order. Each sale takes up to the remaining
        deficit in units, converts the proceeds to the base currency and
        applies the class penalty. Locked assets are never sold. The caller's
        list is not modified; the returned assets are an independent copy.

        Args:
            assets: Current holdings
            deficit_amount: Base-currency cash needed (non-negative)
            current_date: Date used for lock checks

        Returns:
            LiquidationResult with the unmet deficit and the depleted holdings

        Raises:
            InvalidInputError: If the deficit is negative
        """
        if deficit_amount < 0:
            raise InvalidInputError(
                f"Deficit amount must be non-negative, got {deficit_amount}"
            )

        remaining_deficit = deficit_amount
        updated_assets = [asset.model_copy(deep=True) for asset in assets]
        total_proceeds = 0.0
        units_sold: Dict[str, float] = {}

        for liquidity_class in LIQUIDITY_ORDER:
            if remaining_deficit <= 0:
                break

            penalty = LIQUIDATION_PENALTIES[liquidity_class]
            for asset in updated_assets:
                if remaining_deficit <= 0:
                    break
                if asset.liquidity_class != liquidity_class:
                    continue
                if self.is_asset_locked(asset, current_date):
                    continue

                sell_amount = min(asset.amount, remaining_deficit)
                if sell_amount <= 0:
                    continue

                gross_proceeds = self.converter.convert(
                    sell_amount, asset.currency, self.base_currency
                )
                net_proceeds = gross_proceeds * (1 - penalty)

                asset.amount = asset.amount - sell_amount
                units_sold[asset.id] = units_sold.get(asset.id, 0.0) + sell_amount
                total_proceeds += net_proceeds
                remaining_deficit -= net_proceeds

        remaining_deficit = max(0.0, remaining_deficit)
        logger.debug(
            f"Liquidated {len(units_sold)} assets for {total_proceeds:.2f} "
            f"{self.base_currency}, remaining deficit {remaining_deficit:.2f}"
        )
        if remaining_deficit > 0:
            logger.warning(
                f"Liquidation left an unmet deficit of {remaining_deficit:.2f} "
                f"{self.base_currency}"
            )

        return LiquidationResult(
            remaining_deficit=remaining_deficit,
            assets=updated_assets,
            proceeds=total_proceeds,
            units_sold=units_sold,
        )

    def settle_day(
        self,
        state: WalletState,
        seed: int,
        yield_seed: Optional[int] = None,
        next_date: Optional[date] = None,
    ) -> WalletState:
        """
        Produce the next day's wallet from the prior one.

        Assets are revalued, then yield is accrued, then a negative cash
        balance is covered by liquidation. Any deficit the holdings cannot
        cover stays on the balance as a negative amount.

        Args:
            state: Prior day's wallet
            seed: Seed for revaluation shocks
            yield_seed: Seed for yield draws (defaults to ``seed``)
            next_date: Calendar date of the new day (defaults to the prior date)

        Returns:
            New WalletState one day later with the prior day appended to history
        """
        current_date = next_date if next_date is not None else state.current_date

        assets = self.revalue_assets(state.assets, seed)
        assets = self.apply_yield(assets, seed if yield_seed is None else yield_seed)

        balance = state.balance
        if balance < 0:
            result = self.liquidate_for_deficit(assets, -balance, current_date)
            assets = result.assets
            balance = -result.remaining_deficit if result.is_insolvent else 0.0

        history = list(state.history[: state.day_number])
        history.append(DailyRecord.from_state(state))

        return WalletState(
            current_date=current_date,
            balance=balance,
            assets=assets,
            liabilities=[liability.model_copy() for liability in state.liabilities],
            credit_score=state.credit_score,
            day_number=state.day_number + 1,
            history=history,
        )
