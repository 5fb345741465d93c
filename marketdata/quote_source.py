"""
Quote Source Abstraction

Provides an abstract interface and a yfinance implementation for fetching the
latest price and previous close of a symbol, plus a helper that refreshes a
list of positions with fresh quotes in parallel.
"""

import logging
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Set, Tuple

import pandas as pd
import yfinance as yf

from portfolio.config import PortfolioConfig
from portfolio.models import Position

logger = logging.getLogger(__name__)


class QuoteSource(ABC):
    """Abstract base class for quote sources"""

    @abstractmethod
    def get_quote(self, symbol: str) -> Dict[str, Optional[float]]:
        """
        Fetch the latest quote for a symbol.

        Args:
            symbol: Stock symbol

        Returns:
            Dictionary with:
                - price: latest close
                - previous_close: prior session close, or None if unavailable

        Raises:
            ValueError: If the quote cannot be fetched
        """
        pass


class YFinanceQuoteSource(QuoteSource):
    """yfinance implementation with retry on rate limiting"""

    def __init__(self, period: str = '5d', max_retries: int = 3):
        """
        Initialize yfinance quote source.

        Args:
            period: History window requested per quote (default: '5d')
            max_retries: Attempts per symbol on 429 errors (default: 3)
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {max_retries}")
        self.period = period
        self.max_retries = max_retries

    def get_quote(self, symbol: str) -> Dict[str, Optional[float]]:
        try:
            history = yf.Ticker(symbol).history(period=self.period, auto_adjust=False)

            if history.empty or 'Close' not in history.columns:
                raise ValueError(f"No price data returned for {symbol}")

            closes = history['Close'].dropna()
            if closes.empty:
                raise ValueError(f"No close prices returned for {symbol}")

            price = float(closes.iloc[-1])
            previous_close = float(closes.iloc[-2]) if len(closes) > 1 else None

            logger.debug(f"Quote {symbol}: price={price}, previous_close={previous_close}")
            return {'price': price, 'previous_close': previous_close}

        except Exception as e:
            error_msg = f"Failed to fetch quote for {symbol}: {str(e)}"
            logger.error(error_msg)
            raise ValueError(error_msg) from e

    def get_quote_with_retry(self, symbol: str) -> Dict[str, Optional[float]]:
        """Fetch a quote with exponential backoff on 429 errors"""
        for attempt in range(self.max_retries):
            try:
                return self.get_quote(symbol)
            except ValueError as e:
                if '429' in str(e) and attempt < self.max_retries - 1:
                    wait_time = (2 ** attempt) * 1.0
                    logger.warning(f"Rate limit hit for {symbol}, retrying in {wait_time}s "
                                   f"(attempt {attempt + 1}/{self.max_retries})")
                    time.sleep(wait_time)
                else:
                    raise
        raise ValueError(f"Failed to fetch quote for {symbol}: no attempts made")


def refresh_positions(positions: Sequence[Position], source: QuoteSource,
                      max_workers: int = PortfolioConfig.QUOTE_MAX_WORKERS
                      ) -> Tuple[List[Position], Set[str]]:
    """
    Return copies of positions with current price and previous close updated.

    Positions whose quote fails are returned unchanged.

    Args:
        positions: Positions to refresh
        source: Quote source to query
        max_workers: Maximum number of parallel requests

    Returns:
        Tuple of (refreshed_positions, failed_symbols)
    """
    symbols = list(dict.fromkeys(p.symbol for p in positions))
    if not symbols:
        return [], set()

    fetch = getattr(source, 'get_quote_with_retry', source.get_quote)
    quotes: Dict[str, Dict[str, Optional[float]]] = {}
    failed: Set[str] = set()

    logger.info(f"Refreshing quotes for {len(symbols)} symbols")
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(fetch, symbol): symbol for symbol in symbols}
        for future in as_completed(futures):
            symbol = futures[future]
            try:
                quotes[symbol] = future.result()
            except ValueError as e:
                logger.warning(f"Keeping stale price for {symbol}: {e}")
                failed.add(symbol)

    refreshed = []
    for p in positions:
        quote = quotes.get(p.symbol)
        if quote is None:
            refreshed.append(p)
            continue
        if quote.get('price') is None or pd.isna(quote['price']):
            logger.warning(f"Keeping stale price for {p.symbol}: quote has no price")
            failed.add(p.symbol)
            refreshed.append(p)
            continue
        refreshed.append(replace(
            p,
            current_price=quote['price'],
            previous_close=quote.get('previous_close')
        ))

    logger.info(f"Refreshed {len(symbols) - len(failed)}/{len(symbols)} symbols")
    return refreshed, failed
