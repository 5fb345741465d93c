"""
Core Portfolio Aggregation

Pure calculation logic with no I/O, API calls, or side effects.
Used by the report entry point and any caller holding a list of positions.
"""

import math
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple
import pandas as pd

from portfolio.config import PortfolioConfig
from portfolio.models import (
    DividendProjection,
    DripProjection,
    GainLoss,
    GoalProgress,
    PortfolioSummary,
    Position,
    RiskMetrics,
    SectorAllocationEntry,
)


def _safe_percent(numerator: float, denominator: float) -> float:
    """Percentage on a 0-100 scale, 0 when the denominator is not positive"""
    return numerator / denominator * 100 if denominator > 0 else 0.0


class PortfolioAggregator:
    """
    Stateless portfolio aggregator.
    All methods are pure functions that take positions and return new values.
    """

    @staticmethod
    def total_value(positions: Sequence[Position]) -> float:
        """Sum of shares x current price"""
        return float(sum(p.shares * p.current_price for p in positions))

    @staticmethod
    def total_cost(positions: Sequence[Position]) -> float:
        """Sum of shares x average cost"""
        return float(sum(p.shares * p.average_cost for p in positions))

    @staticmethod
    def gain_loss(positions: Sequence[Position]) -> GainLoss:
        total_value = PortfolioAggregator.total_value(positions)
        total_cost = PortfolioAggregator.total_cost(positions)
        absolute = total_value - total_cost
        return GainLoss(absolute=absolute, percent=_safe_percent(absolute, total_cost))

    @staticmethod
    def annual_dividend_income(positions: Sequence[Position]) -> float:
        """Sum of shares x annual dividend per share (missing dividend counts as 0)"""
        return float(sum(p.annual_dividend_income for p in positions))

    @staticmethod
    def dividend_yield(positions: Sequence[Position]) -> float:
        """Annual dividend income as a percentage of current value"""
        return _safe_percent(
            PortfolioAggregator.annual_dividend_income(positions),
            PortfolioAggregator.total_value(positions)
        )

    @staticmethod
    def yield_on_cost(positions: Sequence[Position]) -> float:
        """Annual dividend income as a percentage of cost basis"""
        return _safe_percent(
            PortfolioAggregator.annual_dividend_income(positions),
            PortfolioAggregator.total_cost(positions)
        )

    @staticmethod
    def position_metrics(position: Position) -> Dict[str, float]:
        """Derived values for a single position"""
        return {
            'total_value': position.total_value,
            'total_cost': position.total_cost,
            'gain_loss': position.gain_loss,
            'gain_loss_percent': position.gain_loss_percent,
            'annual_dividend_income': position.annual_dividend_income,
        }

    @staticmethod
    def rank_by_performance(positions: Sequence[Position]) -> List[Position]:
        """
        Copy of positions sorted descending by gain/loss percent.

        The sort is stable, so positions with equal percentages keep their
        input order.
        """
        if not positions:
            return []
        df = pd.DataFrame({'pct': [p.gain_loss_percent for p in positions]})
        order = df.sort_values('pct', ascending=False, kind='stable').index
        return [positions[i] for i in order]

    @staticmethod
    def top_performers(positions: Sequence[Position],
                       limit: int = PortfolioConfig.TOP_PERFORMERS_LIMIT) -> List[Position]:
        """First `limit` positions of the performance ranking"""
        return PortfolioAggregator.rank_by_performance(positions)[:limit]

    @staticmethod
    def worst_performers(positions: Sequence[Position],
                         limit: int = PortfolioConfig.TOP_PERFORMERS_LIMIT) -> List[Position]:
        """
        Last `limit` positions of the performance ranking, reversed.

        The result is ascending by gain/loss percent, so the biggest loser
        comes first. With fewer than `limit` positions this overlaps with
        top_performers.
        """
        if limit <= 0:
            return []
        ranked = PortfolioAggregator.rank_by_performance(positions)
        return list(reversed(ranked[-limit:]))

    @staticmethod
    def daily_change(positions: Sequence[Position],
                     placeholder_fraction: float = PortfolioConfig.DAILY_CHANGE_PLACEHOLDER_FRACTION
                     ) -> Tuple[float, float, bool]:
        """
        Same-day change of the portfolio.

        Positions with a previous close contribute their real change. The
        others contribute a fixed fraction of their current value, which is
        only an estimate.

        Returns:
            Tuple of (change, change_percent, estimated)
        """
        change = 0.0
        estimated = False
        for p in positions:
            if p.previous_close is not None:
                change += p.shares * (p.current_price - p.previous_close)
            else:
                change += p.shares * p.current_price * placeholder_fraction
                estimated = True

        total_value = PortfolioAggregator.total_value(positions)
        return change, _safe_percent(change, total_value), estimated

    @staticmethod
    def summarize(positions: Sequence[Position],
                  as_of: Optional[datetime] = None) -> PortfolioSummary:
        """Compose all portfolio-level metrics into a summary snapshot"""
        gain_loss = PortfolioAggregator.gain_loss(positions)
        daily_change, daily_change_percent, estimated = PortfolioAggregator.daily_change(positions)

        return PortfolioSummary(
            total_value=PortfolioAggregator.total_value(positions),
            total_cost=PortfolioAggregator.total_cost(positions),
            total_gain_loss=gain_loss.absolute,
            total_gain_loss_percent=gain_loss.percent,
            daily_change=daily_change,
            daily_change_percent=daily_change_percent,
            daily_change_estimated=estimated,
            annual_dividend_income=PortfolioAggregator.annual_dividend_income(positions),
            dividend_yield=PortfolioAggregator.dividend_yield(positions),
            yield_on_cost=PortfolioAggregator.yield_on_cost(positions),
            position_count=len(positions),
            top_performers=PortfolioAggregator.top_performers(positions),
            worst_performers=PortfolioAggregator.worst_performers(positions),
            as_of=as_of or datetime.now()
        )

    @staticmethod
    def sector_allocation(positions: Sequence[Position]) -> List[SectorAllocationEntry]:
        """
        Portfolio value grouped by sector.

        Positions without a sector are grouped under "Unknown". Entries are
        sorted descending by percentage; ties keep first-seen order.
        """
        if not positions:
            return []

        df = pd.DataFrame({
            'sector': [p.sector_label for p in positions],
            'value': [p.total_value for p in positions],
        })
        grouped = df.groupby('sector', sort=False)['value'].sum().reset_index()

        total_value = PortfolioAggregator.total_value(positions)
        grouped['percentage'] = [_safe_percent(v, total_value) for v in grouped['value']]
        grouped = grouped.sort_values('percentage', ascending=False, kind='stable')

        return [
            SectorAllocationEntry(
                sector=row.sector,
                value=float(row.value),
                percentage=float(row.percentage)
            )
            for row in grouped.itertuples(index=False)
        ]

    @staticmethod
    def risk_level(concentration: float) -> str:
        """Map a concentration percentage to Low/Medium/High"""
        for level, threshold in PortfolioConfig.RISK_LEVEL_THRESHOLDS:
            if concentration < threshold:
                return level
        return PortfolioConfig.RISK_LEVEL_THRESHOLDS[-1][0]

    @staticmethod
    def risk_metrics(positions: Sequence[Position]) -> RiskMetrics:
        """
        Simplistic risk scores.

        Strategy:
        1. Diversification ramps linearly with position count, capped at 100
        2. Concentration is the largest single position share of value
        3. Sector concentration is the largest sector share of value

        No volatility, beta or correlation is considered.
        """
        target = PortfolioConfig.DIVERSIFICATION_TARGET
        diversification_score = min(len(positions) / target, 1) * 100

        total_value = PortfolioAggregator.total_value(positions)
        concentration_risk = max(
            (_safe_percent(p.total_value, total_value) for p in positions),
            default=0.0
        )

        allocation = PortfolioAggregator.sector_allocation(positions)
        sector_concentration = max((s.percentage for s in allocation), default=0.0)

        return RiskMetrics(
            diversification_score=diversification_score,
            concentration_risk=concentration_risk,
            sector_concentration=sector_concentration,
            risk_level=PortfolioAggregator.risk_level(concentration_risk)
        )

    @staticmethod
    def annualize_dividend(amount: float, frequency: str) -> float:
        """
        Convert a per-payment dividend into an annual amount.

        Raises:
            ValueError: If the frequency is not recognised
        """
        multiplier = PortfolioConfig.DIVIDEND_FREQUENCIES.get(str(frequency).lower())
        if multiplier is None:
            raise ValueError(
                f"Unknown dividend frequency '{frequency}'. "
                f"Expected one of {sorted(PortfolioConfig.DIVIDEND_FREQUENCIES)}"
            )
        return amount * multiplier

    @staticmethod
    def dividend_projection(positions: Sequence[Position]) -> DividendProjection:
        annual = PortfolioAggregator.annual_dividend_income(positions)
        return DividendProjection(monthly=annual / 12, quarterly=annual / 4, annual=annual)

    @staticmethod
    def drip_projection(starting_amount: float, monthly_contribution: float,
                        dividend_yield: float, dividend_growth: float = 0.0,
                        price_growth: float = 0.0, years: int = 10) -> DripProjection:
        """
        Project a holding with dividends reinvested (DRIP).

        Compounds monthly. Each month pays dividend_yield / 12 of the balance,
        reinvests it, adds the contribution, then grows the balance by
        (dividend_growth + price_growth) / 12. Rates are percentages.

        Args:
            starting_amount: Initial balance
            monthly_contribution: Amount added every month
            dividend_yield: Annual dividend yield in percent
            dividend_growth: Annual dividend growth in percent
            price_growth: Annual price growth in percent
            years: Whole number of years to project

        Returns:
            DripProjection with final value, dividends, contributions and growth

        Raises:
            ValueError: If years is not a positive integer, any amount or rate
                is negative, or both starting amount and contribution are 0
        """
        if isinstance(years, bool) or not isinstance(years, int) or years <= 0:
            raise ValueError(f"Years must be a positive integer, got {years!r}")
        if min(starting_amount, monthly_contribution, dividend_yield,
               dividend_growth, price_growth) < 0:
            raise ValueError("Inputs must be non-negative")
        if starting_amount == 0 and monthly_contribution == 0:
            raise ValueError("Starting amount or monthly contribution is required")

        monthly_yield = dividend_yield / 100 / 12
        monthly_growth = (dividend_growth + price_growth) / 100 / 12

        balance = float(starting_amount)
        total_dividends = 0.0
        total_contributions = float(starting_amount)
        for _ in range(years * 12):
            dividend = balance * monthly_yield
            total_dividends += dividend
            balance += dividend + monthly_contribution
            total_contributions += monthly_contribution
            balance *= 1 + monthly_growth

        return DripProjection(
            final_value=balance,
            total_dividends=total_dividends,
            total_contributions=total_contributions,
            total_growth=balance - total_contributions
        )

    @staticmethod
    def months_until(target_date: date, as_of: date) -> int:
        """Whole 30-day months until target_date, rounded up; 0 once it has passed"""
        days = (target_date - as_of).days
        return max(math.ceil(days / 30), 0)

    @staticmethod
    def goal_progress(current_amount: float, target_amount: float,
                      target_date: Optional[date] = None,
                      as_of: Optional[date] = None) -> GoalProgress:
        """
        Progress toward a savings or income goal.

        progress_percent is uncapped; display_percent is capped at 100. A
        zero target reports 0 progress.

        Raises:
            ValueError: If either amount is negative
        """
        if current_amount < 0 or target_amount < 0:
            raise ValueError("Goal amounts must be non-negative")

        progress = _safe_percent(current_amount, target_amount)
        months = None
        if target_date is not None:
            months = PortfolioAggregator.months_until(target_date, as_of or date.today())

        return GoalProgress(
            progress_percent=progress,
            display_percent=min(progress, 100.0),
            remaining=max(target_amount - current_amount, 0.0),
            months_to_goal=months
        )

    @staticmethod
    def format_time_to_goal(months: int) -> str:
        """Human label such as '8 months', '2 years' or '2y 3m'"""
        if months < 12:
            return f"{months} months"
        years, rest = divmod(months, 12)
        return f"{years}y {rest}m" if rest > 0 else f"{years} years"
