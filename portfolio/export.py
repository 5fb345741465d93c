"""
Holdings and summary export

Writes the holdings table as CSV and the portfolio summary, sector
allocation and risk metrics as JSON.
"""

import json
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Sequence, Union

import pandas as pd

from portfolio.core import PortfolioAggregator
from portfolio.models import PortfolioSummary, Position

logger = logging.getLogger(__name__)

HOLDINGS_COLUMNS = [
    'symbol',
    'sector',
    'shares',
    'average_cost',
    'current_price',
    'total_cost',
    'total_value',
    'gain_loss',
    'gain_loss_percent',
    'annual_dividend_per_share',
    'annual_income',
]


def positions_to_frame(positions: Sequence[Position]) -> pd.DataFrame:
    """One row per position with its derived values, in input order"""
    rows = [
        {
            'symbol': p.symbol,
            'sector': p.sector_label,
            'shares': p.shares,
            'average_cost': p.average_cost,
            'current_price': p.current_price,
            'total_cost': p.total_cost,
            'total_value': p.total_value,
            'gain_loss': p.gain_loss,
            'gain_loss_percent': p.gain_loss_percent,
            'annual_dividend_per_share': p.annual_dividend_per_share or 0.0,
            'annual_income': p.annual_dividend_income,
        }
        for p in positions
    ]
    return pd.DataFrame(rows, columns=HOLDINGS_COLUMNS)


def export_holdings_csv(positions: Sequence[Position], path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = positions_to_frame(positions)
    df.round(4).to_csv(path, index=False)
    logger.info(f"Wrote {len(df)} holdings to {path}")
    return path


def summary_to_dict(summary: PortfolioSummary) -> Dict:
    """JSON-ready dict of a summary (performers reduced to symbol and percent)"""
    data = asdict(summary)
    data['as_of'] = summary.as_of.isoformat(timespec='seconds')
    data['top_performers'] = [
        {'symbol': p.symbol, 'gain_loss_percent': p.gain_loss_percent}
        for p in summary.top_performers
    ]
    data['worst_performers'] = [
        {'symbol': p.symbol, 'gain_loss_percent': p.gain_loss_percent}
        for p in summary.worst_performers
    ]
    return data


def build_report(positions: Sequence[Position]) -> Dict:
    """Summary, sector allocation, risk metrics and dividend projection"""
    return {
        'summary': summary_to_dict(PortfolioAggregator.summarize(positions)),
        'sector_allocation': [asdict(s) for s in PortfolioAggregator.sector_allocation(positions)],
        'risk_metrics': asdict(PortfolioAggregator.risk_metrics(positions)),
        'dividend_projection': asdict(PortfolioAggregator.dividend_projection(positions)),
    }


def export_summary_json(positions: Sequence[Position], path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(build_report(positions), f, indent=2)
    logger.info(f"Wrote portfolio report to {path}")
    return path
