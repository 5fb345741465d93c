"""
Unified configuration for portfolio aggregation
Used by the aggregator, the quote refresher and the report entry point
"""

import os

from portfolio.models import UNKNOWN_SECTOR


class PortfolioConfig:
    """Unified configuration for portfolio aggregation and reporting"""

    # Ranking
    TOP_PERFORMERS_LIMIT = 5

    # Risk heuristics
    DIVERSIFICATION_TARGET = 20  # holdings counted as fully diversified
    RISK_LEVEL_THRESHOLDS = [
        ('Low', 15.0),
        ('Medium', 25.0),
        ('High', float('inf')),
    ]

    # Sectors
    UNKNOWN_SECTOR = UNKNOWN_SECTOR

    # Daily change estimate used when no previous close is known
    DAILY_CHANGE_PLACEHOLDER_FRACTION = 0.01

    # Payments per year
    DIVIDEND_FREQUENCIES = {
        'monthly': 12,
        'quarterly': 4,
        'semiannual': 2,
        'annual': 1,
        'special': 0,
    }
    DEFAULT_DIVIDEND_FREQUENCY = 'quarterly'

    # Validation
    DEFAULT_CURRENCY = 'USD'
    MAX_SYMBOL_LENGTH = 10

    # Market data
    QUOTE_MAX_WORKERS = int(os.getenv('PORTFOLIO_QUOTE_MAX_WORKERS', '5'))

    # Logging
    LOG_FILE = os.getenv('PORTFOLIO_LOG_FILE', '')
    LOG_LEVEL = os.getenv('PORTFOLIO_LOG_LEVEL', 'INFO')
