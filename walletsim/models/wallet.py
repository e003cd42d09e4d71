"""
Wallet data models for the simulation core.

This module defines the records exchanged between the day-stepper and the
analytics engines: assets, liabilities, compact daily history records and the
per-day wallet snapshot. Trajectories and ensembles are plain ordered lists of
snapshots.
"""

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

LiquidityClass = Literal["liquid", "yield", "volatile", "illiquid"]

# Order in which asset classes are sold to cover a deficit
LIQUIDITY_ORDER: List[str] = ["liquid", "yield", "volatile", "illiquid"]


class Asset(BaseModel):
    """A holding that is revalued, accrues yield and can be liquidated."""

    id: str = Field(..., description="Asset identifier")
    name: str = Field(..., description="Display name")
    amount: float = Field(..., ge=0, description="Quantity held")
    currency: str = Field(..., description="Denominating currency code")
    volatility: float = Field(
        ..., ge=0, le=1, description="Daily shock magnitude coefficient"
    )
    liquidity_class: LiquidityClass = Field(
        ..., description="Liquidation priority and penalty class"
    )
    locked_until: Optional[date] = Field(
        default=None, description="Asset cannot be sold before this date"
    )
    base_value: Optional[float] = Field(
        default=None, description="Cost basis used for gains tax"
    )


class Liability(BaseModel):
    """A debt owned by the credit collaborator; read-only to the core."""

    id: str = Field(..., description="Liability identifier")
    type: str = Field(..., description="Liability type tag")
    principal_balance: float = Field(..., ge=0, description="Outstanding principal")
    interest_rate: float = Field(..., description="Annualized interest rate")
    currency: str = Field(..., description="Denominating currency code")
    minimum_payment: Optional[float] = Field(
        default=None, ge=0, description="Minimum periodic payment"
    )
    created_at: date = Field(..., description="Creation date")


class DailyRecord(BaseModel):
    """Compact snapshot of a prior day kept in a wallet's history."""

    day: int = Field(..., ge=0, description="Day index of the record")
    balance: float = Field(..., description="Cash balance in base currency")
    credit_score: float = Field(..., description="Credit score on that day")
    assets: List[Asset] = Field(default_factory=list, description="Asset holdings")
    collapsed_flag: bool = Field(
        default=False, description="Whether the balance was negative that day"
    )

    @classmethod
    def from_state(cls, state: "WalletState") -> "DailyRecord":
        """Build a history record from a wallet snapshot."""
        return cls(
            day=state.day_number,
            balance=state.balance,
            credit_score=state.credit_score,
            assets=[asset.model_copy() for asset in state.assets],
            collapsed_flag=state.balance < 0,
        )


class WalletState(BaseModel):
    """A single day's wallet snapshot for one ensemble member."""

    current_date: Optional[date] = Field(
        default=None, description="Simulated calendar date for lock checks"
    )
    balance: float = Field(..., description="Signed cash balance in base currency")
    assets: List[Asset] = Field(default_factory=list, description="Asset holdings")
    liabilities: List[Liability] = Field(
        default_factory=list, description="Outstanding liabilities"
    )
    credit_score: float = Field(..., description="Credit score")
    day_number: int = Field(default=0, ge=0, description="Day index")
    history: List[DailyRecord] = Field(
        default_factory=list, description="Prior daily records for this run"
    )

    @model_validator(mode="after")
    def validate_history_length(self) -> "WalletState":
        """History holds exactly one record per elapsed day."""
        history_length = len(self.history)
        if self.day_number == 0:
            if history_length > 1:
                raise ValueError("Day 0 history must have at most one record")
        elif history_length != self.day_number:
            raise ValueError(
                f"History length {history_length} does not match day {self.day_number}"
            )
        return self

    @property
    def last_record(self) -> Optional[DailyRecord]:
        """Most recent history record, if any."""
        return self.history[-1] if self.history else None


# A single run's ordered daily snapshots, and a set of runs analyzed together
Trajectory = List[WalletState]
Ensemble = List[Trajectory]
