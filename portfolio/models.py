"""
Common data models for portfolio aggregation
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

UNKNOWN_SECTOR = 'Unknown'


@dataclass(frozen=True)
class Position:
    """Single brokerage holding"""
    symbol: str
    shares: float
    average_cost: float
    current_price: float
    annual_dividend_per_share: Optional[float] = None
    sector: Optional[str] = None
    currency: str = 'USD'
    previous_close: Optional[float] = None

    @property
    def total_value(self) -> float:
        return self.shares * self.current_price

    @property
    def total_cost(self) -> float:
        return self.shares * self.average_cost

    @property
    def gain_loss(self) -> float:
        return self.total_value - self.total_cost

    @property
    def gain_loss_percent(self) -> float:
        cost = self.total_cost
        return self.gain_loss / cost * 100 if cost > 0 else 0.0

    @property
    def sector_label(self) -> str:
        return self.sector or UNKNOWN_SECTOR

    @property
    def annual_dividend_income(self) -> float:
        return self.shares * (self.annual_dividend_per_share or 0.0)


@dataclass(frozen=True)
class GainLoss:
    """Absolute and percent gain/loss against cost basis"""
    absolute: float
    percent: float


@dataclass(frozen=True)
class SectorAllocationEntry:
    sector: str
    value: float
    percentage: float


@dataclass(frozen=True)
class RiskMetrics:
    """Simplistic concentration-based risk scores (0-100 scale)"""
    diversification_score: float
    concentration_risk: float
    sector_concentration: float
    risk_level: str


@dataclass(frozen=True)
class DividendProjection:
    monthly: float
    quarterly: float
    annual: float


@dataclass(frozen=True)
class PortfolioSummary:
    """Point-in-time snapshot derived from a set of positions"""
    total_value: float
    total_cost: float
    total_gain_loss: float
    total_gain_loss_percent: float
    daily_change: float
    daily_change_percent: float
    daily_change_estimated: bool
    annual_dividend_income: float
    dividend_yield: float
    yield_on_cost: float
    position_count: int
    top_performers: List[Position] = field(default_factory=list)
    worst_performers: List[Position] = field(default_factory=list)
    as_of: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class DripProjection:
    """Outcome of compounding a holding with dividends reinvested"""
    final_value: float
    total_dividends: float
    total_contributions: float
    total_growth: float


@dataclass(frozen=True)
class GoalProgress:
    progress_percent: float
    display_percent: float  # capped at 100
    remaining: float
    months_to_goal: Optional[int] = None
