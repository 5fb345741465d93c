"""
Position input validation

Normalises raw position records (dicts from storage or a brokerage sync)
into Position objects and rejects malformed input before any aggregation
runs, so a bad record never produces a partial result.
"""

import logging
import math
from typing import Any, List, Mapping, Optional

from portfolio.config import PortfolioConfig
from portfolio.core import PortfolioAggregator
from portfolio.models import Position

logger = logging.getLogger(__name__)

# Accepted spellings for each field, snake_case first
FIELD_ALIASES = {
    'symbol': ('symbol', 'ticker'),
    'shares': ('shares', 'quantity'),
    'average_cost': ('average_cost', 'averageCost', 'avgCost', 'avg_price', 'avgPrice'),
    'current_price': ('current_price', 'currentPrice', 'price'),
    'annual_dividend_per_share': ('annual_dividend_per_share', 'annualDividendPerShare'),
    'sector': ('sector',),
    'currency': ('currency',),
    'previous_close': ('previous_close', 'previousClose', 'prevClose'),
}


class InvalidPositionError(ValueError):
    """Raised when position input has the wrong shape or invalid values"""


def _lookup(record: Mapping[str, Any], field: str) -> Any:
    for key in FIELD_ALIASES[field]:
        if key in record and record[key] is not None:
            return record[key]
    return None


def _number(value: Any, field: str, index: int, default: Optional[float] = 0.0) -> Optional[float]:
    """Coerce a numeric field; None falls back to the default"""
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidPositionError(f"Position {index}: '{field}' must be numeric, got bool")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidPositionError(
            f"Position {index}: '{field}' must be numeric, got {value!r}"
        ) from e
    if not math.isfinite(number):
        raise InvalidPositionError(f"Position {index}: '{field}' must be finite, got {value!r}")
    if number < 0:
        raise InvalidPositionError(f"Position {index}: '{field}' must not be negative, got {number}")
    return number


def _check_symbol(symbol: Any, index: int) -> str:
    if not isinstance(symbol, str) or not symbol.strip():
        raise InvalidPositionError(f"Position {index}: 'symbol' is required")
    symbol = symbol.strip().upper()
    if len(symbol) > PortfolioConfig.MAX_SYMBOL_LENGTH:
        raise InvalidPositionError(
            f"Position {index}: symbol '{symbol}' is longer than "
            f"{PortfolioConfig.MAX_SYMBOL_LENGTH} characters"
        )
    return symbol


def parse_position(record: Mapping[str, Any], index: int = 0) -> Position:
    """
    Build a Position from a raw record.

    Missing numeric fields default to 0. A per-payment dividend given as
    `dividend_per_payment` plus `dividend_frequency` is annualised when no
    annual figure is present.

    Raises:
        InvalidPositionError: If a field is missing or invalid
    """
    if not isinstance(record, Mapping):
        raise InvalidPositionError(
            f"Position {index}: expected a mapping, got {type(record).__name__}"
        )

    annual_dividend = _number(
        _lookup(record, 'annual_dividend_per_share'), 'annual_dividend_per_share', index, default=None
    )
    if annual_dividend is None and record.get('dividend_per_payment') is not None:
        per_payment = _number(record['dividend_per_payment'], 'dividend_per_payment', index)
        frequency = record.get('dividend_frequency') or PortfolioConfig.DEFAULT_DIVIDEND_FREQUENCY
        try:
            annual_dividend = PortfolioAggregator.annualize_dividend(per_payment, frequency)
        except ValueError as e:
            raise InvalidPositionError(f"Position {index}: {e}") from e

    sector = _lookup(record, 'sector')
    if sector is not None:
        sector = str(sector).strip() or None
    currency = _lookup(record, 'currency') or PortfolioConfig.DEFAULT_CURRENCY

    return Position(
        symbol=_check_symbol(_lookup(record, 'symbol'), index),
        shares=_number(_lookup(record, 'shares'), 'shares', index),
        average_cost=_number(_lookup(record, 'average_cost'), 'average_cost', index),
        current_price=_number(_lookup(record, 'current_price'), 'current_price', index),
        annual_dividend_per_share=annual_dividend,
        sector=sector,
        currency=str(currency).upper(),
        previous_close=_number(_lookup(record, 'previous_close'), 'previous_close', index, default=None)
    )


def _check_position(position: Position, index: int) -> Position:
    """Re-validate an already constructed Position"""
    _check_symbol(position.symbol, index)
    for field in ('shares', 'average_cost', 'current_price'):
        _number(getattr(position, field), field, index)
    for field in ('annual_dividend_per_share', 'previous_close'):
        _number(getattr(position, field), field, index, default=None)
    return position


def validate_positions(positions: Any) -> List[Position]:
    """
    Validate a collection of positions before aggregation.

    Args:
        positions: List or tuple of Position objects or raw record mappings

    Returns:
        New list of Position objects

    Raises:
        InvalidPositionError: If the collection or any item is malformed
    """
    if not isinstance(positions, (list, tuple)):
        raise InvalidPositionError(
            f"Positions must be a list, got {type(positions).__name__}"
        )

    validated = []
    for i, item in enumerate(positions):
        if isinstance(item, Position):
            validated.append(_check_position(item, i))
        elif isinstance(item, Mapping):
            validated.append(parse_position(item, i))
        else:
            raise InvalidPositionError(
                f"Position {i}: expected Position or mapping, got {type(item).__name__}"
            )

    currencies = {p.currency for p in validated}
    if len(currencies) > 1:
        logger.warning(f"Positions span multiple currencies {sorted(currencies)}; "
                       f"values are summed without conversion")

    logger.debug(f"Validated {len(validated)} positions")
    return validated

