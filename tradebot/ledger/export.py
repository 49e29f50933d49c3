"""Trade ledger export — CSV text with fixed decimal precision."""

import csv
import io
import pathlib
from datetime import datetime, timezone
from typing import Iterable, Optional

from tradebot.models import Trade

EXPORT_COLUMNS = [
    "side",
    "instrument",
    "price",
    "amount",
    "timestamp",
    "reason",
    "mode",
    "profit",
    "profit_percent",
    "fees",
]


def _fmt(value: Optional[float], places: int) -> str:
    return "" if value is None else f"{value:.{places}f}"


def trade_to_row(trade: Trade) -> list[str]:
    """Price/profit 2 places, amount 6, fees 4; empty cells for absent values."""
    return [
        trade.side.value,
        trade.instrument,
        _fmt(trade.price, 2),
        _fmt(trade.amount, 6),
        trade.timestamp.isoformat(),
        trade.reason,
        trade.mode.value,
        _fmt(trade.profit, 2),
        _fmt(trade.profit_percent, 2),
        _fmt(trade.fees, 4),
    ]


def export_trades_csv(trades: Iterable[Trade]) -> str:
    """Serialise *trades* (already in display order) to CSV text."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for trade in trades:
        writer.writerow(trade_to_row(trade))
    return buf.getvalue()


def parse_trades_csv(text: str) -> list[dict]:
    """Read CSV produced by ``export_trades_csv`` back into dicts.

    Numeric columns become ``float`` (``None`` when empty).
    """
    rows: list[dict] = []
    for raw in csv.DictReader(io.StringIO(text)):
        row: dict = dict(raw)
        for col in ("price", "amount", "profit", "profit_percent", "fees"):
            row[col] = float(raw[col]) if raw[col] else None
        rows.append(row)
    return rows


def export_filename(today: Optional[datetime] = None) -> str:
    if today is None:
        today = datetime.now(timezone.utc)
    return f"trading_history_{today.date().isoformat()}.csv"


def write_trades_csv(
    trades: Iterable[Trade],
    directory: str | pathlib.Path = ".",
    today: Optional[datetime] = None,
) -> pathlib.Path:
    """Write the export to ``trading_history_<date>.csv`` in *directory*."""
    path = pathlib.Path(directory) / export_filename(today)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_trades_csv(trades), encoding="utf-8")
    return path
