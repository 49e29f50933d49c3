"""Tests for tradebot.ledger.export — CSV export of the trade log."""

from datetime import datetime, timezone

import pytest

from tradebot.ledger.export import (
    EXPORT_COLUMNS,
    export_filename,
    export_trades_csv,
    parse_trades_csv,
    write_trades_csv,
)
from tradebot.models import Trade, TradeMode, TradeSide

NOW = datetime(2025, 3, 4, 12, 30, tzinfo=timezone.utc)


def _trades() -> list[Trade]:
    return [
        Trade(
            side=TradeSide.SELL,
            instrument="bitcoin",
            price=52_345.6789,
            amount=0.0065,
            timestamp=NOW,
            reason="Take-profit at 5% gain",
            mode=TradeMode.LIVE,
            fees=0.340246,
            profit=12.3456,
            profit_percent=5.1234,
        ),
        Trade(
            side=TradeSide.BUY,
            instrument="bitcoin",
            price=49_800.0,
            amount=0.0065,
            timestamp=NOW,
            reason="Price at lower band, oversold",
            mode=TradeMode.LIVE,
        ),
    ]


class TestExport:
    def test_header(self):
        text = export_trades_csv([])
        assert text == ",".join(EXPORT_COLUMNS) + "\n"

    def test_precision(self):
        lines = export_trades_csv(_trades()).splitlines()
        assert lines[1] == (
            "SELL,bitcoin,52345.68,0.006500,2025-03-04T12:30:00+00:00,"
            "Take-profit at 5% gain,Live,12.35,5.12,0.3402"
        )

    def test_open_trade_has_empty_profit(self):
        lines = export_trades_csv(_trades()).splitlines()
        # Reason containing a comma is quoted
        assert lines[2].endswith('"Price at lower band, oversold",Live,,,0.0000')

    def test_parse_back(self):
        rows = parse_trades_csv(export_trades_csv(_trades()))
        assert len(rows) == 2
        assert rows[0]["side"] == "SELL"
        assert rows[0]["price"] == pytest.approx(52345.68)
        assert rows[0]["profit"] == pytest.approx(12.35)
        assert rows[1]["profit"] is None
        assert rows[1]["reason"] == "Price at lower band, oversold"

    def test_filename(self):
        assert export_filename(NOW) == "trading_history_2025-03-04.csv"

    def test_write_file(self, tmp_path):
        path = write_trades_csv(_trades(), tmp_path / "exports", today=NOW)
        assert path.name == "trading_history_2025-03-04.csv"
        assert path.read_text(encoding="utf-8").startswith("side,instrument,")
