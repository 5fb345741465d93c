"""
Tests for export helpers and the portfolio report entry point
"""

import json
import logging
from datetime import datetime
from unittest.mock import patch

import pandas as pd
import pytest

from portfolio.core import PortfolioAggregator
from portfolio.export import (
    HOLDINGS_COLUMNS,
    build_report,
    export_holdings_csv,
    export_summary_json,
    positions_to_frame,
    summary_to_dict,
)
from portfolio.models import Position
from portfolio.report import load_positions, main

logging.basicConfig(
    level=logging.ERROR,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@pytest.fixture
def positions():
    return [
        Position('AAPL', 100, 150.0, 175.0, annual_dividend_per_share=0.96, sector='Technology'),
        Position('MSFT', 50, 280.0, 320.0, annual_dividend_per_share=3.0, sector='Technology'),
        Position('XYZ', 10, 20.0, 15.0),
    ]


@pytest.fixture
def positions_file(tmp_path):
    """Positions JSON in the camelCase layout used by the web client"""
    path = tmp_path / 'positions.json'
    path.write_text(json.dumps({
        'positions': [
            {'symbol': 'AAPL', 'shares': 100, 'avgCost': 150, 'currentPrice': 175,
             'annualDividendPerShare': 0.96, 'sector': 'Technology'},
            {'symbol': 'MSFT', 'shares': 50, 'avgCost': 280, 'currentPrice': 320,
             'annualDividendPerShare': 3.0, 'sector': 'Technology'},
        ]
    }))
    return path


class TestExport:
    """Test holdings table and report serialisation"""

    def test_positions_to_frame(self, positions):
        """Should produce one row per position with derived columns"""
        df = positions_to_frame(positions)

        assert list(df.columns) == HOLDINGS_COLUMNS
        assert df['symbol'].tolist() == ['AAPL', 'MSFT', 'XYZ']
        assert df.loc[2, 'sector'] == 'Unknown'
        assert df.loc[2, 'annual_dividend_per_share'] == 0
        assert df['total_value'].sum() == pytest.approx(PortfolioAggregator.total_value(positions))

    def test_positions_to_frame_empty(self):
        df = positions_to_frame([])
        assert df.empty
        assert list(df.columns) == HOLDINGS_COLUMNS

    def test_export_holdings_csv(self, positions, tmp_path):
        """Should write a readable CSV, creating parent directories"""
        path = export_holdings_csv(positions, tmp_path / 'out' / 'holdings.csv')

        df = pd.read_csv(path)
        assert len(df) == 3
        assert df.loc[0, 'gain_loss'] == pytest.approx(2500.0)

    def test_summary_to_dict(self, positions):
        """Should serialise the summary with performer symbols only"""
        summary = PortfolioAggregator.summarize(positions, as_of=datetime(2024, 3, 1, 9, 30))
        data = summary_to_dict(summary)

        assert data['as_of'] == '2024-03-01T09:30:00'
        assert data['position_count'] == 3
        assert data['top_performers'][0] == {
            'symbol': 'AAPL', 'gain_loss_percent': pytest.approx(16.6667, rel=1e-4)
        }
        assert data['worst_performers'][0]['symbol'] == 'XYZ'
        json.dumps(data)

    def test_build_report(self, positions):
        report = build_report(positions)

        assert set(report) == {'summary', 'sector_allocation', 'risk_metrics', 'dividend_projection'}
        assert report['sector_allocation'][0]['sector'] == 'Technology'
        assert report['risk_metrics']['diversification_score'] == pytest.approx(15.0)
        assert report['dividend_projection']['annual'] == pytest.approx(246.0)

    def test_export_summary_json(self, positions, tmp_path):
        path = export_summary_json(positions, tmp_path / 'report.json')

        with open(path) as f:
            data = json.load(f)
        assert data['summary']['total_value'] == pytest.approx(33650.0)


class TestLoadPositions:
    """Test loading positions files"""

    def test_load_wrapped_object(self, positions_file):
        positions = load_positions(positions_file)
        assert [p.symbol for p in positions] == ['AAPL', 'MSFT']
        assert PortfolioAggregator.total_value(positions) == pytest.approx(33500.0)

    def test_load_plain_list(self, tmp_path):
        path = tmp_path / 'list.json'
        path.write_text(json.dumps([{'symbol': 'KO', 'shares': 10, 'average_cost': 50,
                                     'current_price': 60}]))
        positions = load_positions(path)
        assert positions[0].total_value == pytest.approx(600.0)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Positions file not found"):
            load_positions(tmp_path / 'nope.json')

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_text('{not json')
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_positions(path)

    def test_object_without_positions(self, tmp_path):
        path = tmp_path / 'empty.json'
        path.write_text(json.dumps({'holdings': []}))
        with pytest.raises(ValueError, match="Positions must be a list"):
            load_positions(path)


class TestMain:
    """Test the command line entry point"""

    def test_main_success_writes_outputs(self, positions_file, tmp_path):
        csv_path = tmp_path / 'holdings.csv'
        json_path = tmp_path / 'report.json'

        exit_code = main([str(positions_file), '--csv', str(csv_path),
                          '--json', str(json_path), '--log-level', 'ERROR'])

        assert exit_code == 0
        assert csv_path.exists()
        assert json_path.exists()

    def test_main_missing_file(self, tmp_path):
        assert main([str(tmp_path / 'missing.json'), '--log-level', 'ERROR']) == 1

    def test_main_invalid_positions(self, tmp_path):
        path = tmp_path / 'bad.json'
        path.write_text(json.dumps([{'symbol': 'A', 'shares': -1}]))
        assert main([str(path), '--log-level', 'ERROR']) == 1

    @patch('marketdata.quote_source.yf.Ticker')
    def test_main_refresh_quotes(self, mock_ticker_class, positions_file, tmp_path):
        """Should refresh prices before writing the report"""
        mock_ticker_class.return_value.history.return_value = pd.DataFrame(
            {'Close': [199.0, 200.0]},
            index=pd.date_range('2024-01-01', periods=2, freq='D')
        )
        json_path = tmp_path / 'report.json'

        exit_code = main([str(positions_file), '--refresh-quotes',
                          '--json', str(json_path), '--log-level', 'ERROR'])

        assert exit_code == 0
        with open(json_path) as f:
            data = json.load(f)
        assert data['summary']['total_value'] == pytest.approx(150 * 200.0)
        assert data['summary']['daily_change_estimated'] is False

    def test_main_unwritable_output(self, positions_file, tmp_path):
        """Should return 1 when an export path cannot be created"""
        blocker = tmp_path / 'not_a_dir'
        blocker.write_text('')

        exit_code = main([str(positions_file), '--csv', str(blocker / 'holdings.csv'),
                          '--log-level', 'ERROR'])

        assert exit_code == 1

    def test_main_oversized_number(self, tmp_path):
        """Should return 1 for numbers too large to represent"""
        path = tmp_path / 'huge.json'
        path.write_text('[{"symbol": "AAPL", "shares": 1' + '0' * 400 + ', "current_price": 175}]')

        assert main([str(path), '--log-level', 'ERROR']) == 1
