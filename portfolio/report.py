#!/usr/bin/env python3
"""
Portfolio Report

Loads positions from a JSON file, optionally refreshes quotes, and logs the
portfolio summary, sector allocation and risk metrics.

Usage:
    python -m portfolio.report data/positions.json
    python -m portfolio.report data/positions.json --refresh-quotes --csv out/holdings.csv
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Union

from portfolio.config import PortfolioConfig
from portfolio.core import PortfolioAggregator
from portfolio.export import export_holdings_csv, export_summary_json
from portfolio.models import Position
from portfolio.validation import validate_positions

logger = logging.getLogger(__name__)


def setup_logging(level: str = PortfolioConfig.LOG_LEVEL,
                  log_file: str = PortfolioConfig.LOG_FILE) -> logging.Logger:
    """Setup logging configuration"""
    handlers = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
    return logging.getLogger(__name__)


def load_positions(path: Union[str, Path]) -> List[Position]:
    """
    Load and validate positions from a JSON file.

    The file holds either a list of position records or an object with a
    "positions" list.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the JSON or any record is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Positions file not found: {path}")

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get('positions')

    positions = validate_positions(data)
    logger.info(f"Loaded {len(positions)} positions from {path}")
    return positions


def log_report(positions: List[Position]) -> None:
    summary = PortfolioAggregator.summarize(positions)
    risk = PortfolioAggregator.risk_metrics(positions)

    logger.info("=" * 70)
    logger.info("PORTFOLIO SUMMARY")
    logger.info("=" * 70)
    logger.info(f"Positions: {summary.position_count}")
    logger.info(f"Total value: ${summary.total_value:,.2f}")
    logger.info(f"Total cost: ${summary.total_cost:,.2f}")
    logger.info(f"Gain/loss: ${summary.total_gain_loss:,.2f} ({summary.total_gain_loss_percent:.2f}%)")
    daily_note = " (estimated)" if summary.daily_change_estimated else ""
    logger.info(f"Daily change: ${summary.daily_change:,.2f} "
                f"({summary.daily_change_percent:.2f}%){daily_note}")
    logger.info(f"Annual dividend income: ${summary.annual_dividend_income:,.2f}")
    logger.info(f"Dividend yield: {summary.dividend_yield:.2f}% "
                f"(yield on cost {summary.yield_on_cost:.2f}%)")
    logger.info(f"Top performers: {[p.symbol for p in summary.top_performers]}")
    logger.info(f"Worst performers: {[p.symbol for p in summary.worst_performers]}")

    logger.info("-" * 70)
    for entry in PortfolioAggregator.sector_allocation(positions):
        logger.info(f"{entry.sector:<25} ${entry.value:>14,.2f}  {entry.percentage:6.2f}%")

    logger.info("-" * 70)
    logger.info(f"Diversification score: {risk.diversification_score:.0f}")
    logger.info(f"Concentration risk: {risk.concentration_risk:.2f}% ({risk.risk_level})")
    logger.info(f"Sector concentration: {risk.sector_concentration:.2f}%")
    logger.info("=" * 70)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Summarize a dividend portfolio from a positions JSON file'
    )
    parser.add_argument('positions_file', help='Path to positions JSON file')
    parser.add_argument(
        '--refresh-quotes',
        action='store_true',
        help='Fetch current prices and previous closes before summarizing'
    )
    parser.add_argument('--csv', help='Write the holdings table to this CSV path')
    parser.add_argument('--json', help='Write the full report to this JSON path')
    parser.add_argument(
        '--log-level',
        default=PortfolioConfig.LOG_LEVEL,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help=f'Logging level (default: {PortfolioConfig.LOG_LEVEL})'
    )

    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        positions = load_positions(args.positions_file)

        if args.refresh_quotes:
            from marketdata.quote_source import YFinanceQuoteSource, refresh_positions
            positions, failed = refresh_positions(positions, YFinanceQuoteSource())
            if failed:
                logger.warning(f"{len(failed)} symbols kept stale prices: {sorted(failed)}")

        log_report(positions)

        if args.csv:
            export_holdings_csv(positions, args.csv)
        if args.json:
            export_summary_json(positions, args.json)

        return 0

    except ValueError as e:
        logger.error(f"Validation error: {str(e)}")
        return 1

    except FileNotFoundError as e:
        logger.error(f"File not found: {str(e)}")
        return 1

    except OSError as e:
        logger.error(f"File error: {str(e)}")
        return 1

    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
