"""Internal API routers — /status, /signals, /trades, /positions, /metrics,
/trades/export, and /control endpoints.

No business logic. Delegates to the ``TradingEngine`` injected at startup.
"""

import dataclasses
import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse

from tradebot.engine import EngineHaltedError, TradingEngine
from tradebot.ledger.export import export_filename, export_trades_csv
from tradebot.models import HoldSignal, Signal, TradeSignal

logger = logging.getLogger("tradebot")
router = APIRouter()

_engine: Optional[TradingEngine] = None  # Set via configure_routers()


def configure_routers(engine: Optional[TradingEngine]) -> None:
    """Inject the engine from application startup (or a test)."""
    global _engine  # noqa: PLW0603
    _engine = engine


def _signal_dict(signal: Signal) -> dict:
    data = {
        "kind": signal.kind.value,
        "instrument": signal.instrument,
        "source": signal.source,
        "message": signal.message,
        "timestamp": signal.timestamp.isoformat(),
    }
    if isinstance(signal, TradeSignal):
        data["strength"] = signal.strength
        data["confidence"] = signal.confidence
    elif isinstance(signal, HoldSignal):
        data["confidence"] = signal.confidence
    return data


def _trade_dict(trade) -> dict:
    return {
        "side": trade.side.value,
        "instrument": trade.instrument,
        "price": trade.price,
        "amount": trade.amount,
        "timestamp": trade.timestamp.isoformat(),
        "reason": trade.reason,
        "mode": trade.mode.value,
        "profit": trade.profit,
        "profit_percent": trade.profit_percent,
        "fees": trade.fees,
    }


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/status")
async def get_status():
    """Return engine running state, mode, and risk counters."""
    if _engine is None:
        return {"running": False, "engine": None}
    risk = _engine.risk.state
    return {
        "running": _engine.running,
        "mode": _engine.config.mode_label,
        "cycle_count": _engine.cycle_count,
        "open_positions": len(_engine.positions),
        "daily_pnl": round(risk.daily_pnl, 2),
        "max_drawdown_observed": round(risk.max_drawdown_observed, 2),
        "emergency_halted": _engine.risk.emergency_active,
        "prices": {
            i.id: _engine.current_price(i.id) for i in _engine.instruments
        },
        "samples": {
            i.id: _engine.buffers.size(i.id) for i in _engine.instruments
        },
    }


@router.get("/signals")
async def get_signals(limit: int = Query(default=20, ge=1, le=50)):
    """Return recent signals, newest first."""
    if _engine is None:
        return {"signals": []}
    return {"signals": [_signal_dict(s) for s in _engine.signals[:limit]]}


@router.get("/trades")
async def get_trades(limit: int = Query(default=20, ge=1, le=500)):
    """Return the trade log, newest first."""
    if _engine is None:
        return {"trades": [], "total": 0}
    trades = _engine.trades
    return {
        "trades": [_trade_dict(t) for t in trades[:limit]],
        "total": len(trades),
    }


@router.get("/trades/export")
async def export_trades():
    """Download the full trade log as CSV."""
    trades = _engine.trades if _engine is not None else []
    return PlainTextResponse(
        export_trades_csv(trades),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={export_filename()}"},
    )


@router.get("/positions")
async def get_positions():
    """Return open positions with stop levels and unrealised P&L."""
    if _engine is None:
        return {"positions": []}
    result = []
    for instrument_id, pos in _engine.positions.items():
        price = _engine.current_price(instrument_id)
        result.append({
            "instrument": instrument_id,
            "side": pos.side,
            "entry_price": pos.entry_price,
            "amount": pos.amount,
            "entry_time": pos.entry_time.isoformat(),
            "stop_loss": pos.stop_loss,
            "take_profit": pos.take_profit,
            "trailing_stop": pos.trailing_stop,
            "current_price": price,
            "unrealized_pnl": (
                (price - pos.entry_price) * pos.amount if price is not None else None
            ),
        })
    return {"positions": result}


@router.get("/metrics")
async def get_metrics():
    """Return the latest performance snapshot."""
    if _engine is None:
        return {"metrics": None}
    return {"metrics": dataclasses.asdict(_engine.metrics)}


# ── Control actions ──────────────────────────────────────────────────────


@router.post("/control/start")
async def start_engine():
    """Start trading."""
    if _engine is None:
        return {"error": "No engine"}
    try:
        _engine.start()
    except EngineHaltedError as exc:
        return {"error": str(exc)}
    logger.info("Engine started via API.")
    return {"status": "running"}


@router.post("/control/stop")
async def stop_engine():
    """Stop trading after the current cycle."""
    if _engine is None:
        return {"error": "No engine"}
    _engine.stop()
    logger.info("Engine stopped via API.")
    return {"status": "stopped"}


@router.post("/control/emergency-stop")
async def emergency_stop():
    """Emergency stop — halt trading and close every position."""
    if _engine is None:
        return {"error": "No engine"}
    closed = _engine.emergency_stop()
    logger.warning("EMERGENCY STOP triggered via API.")
    return {"status": "emergency_stopped", "closed_positions": len(closed)}


@router.post("/control/reset-emergency")
async def reset_emergency():
    """Clear the emergency flag so the engine can be restarted."""
    if _engine is None:
        return {"error": "No engine"}
    _engine.reset_emergency()
    return {"status": "reset", "emergency_halted": _engine.risk.emergency_active}


@router.post("/control/reset-daily")
async def reset_daily():
    """Day-boundary reset of the daily P&L."""
    if _engine is None:
        return {"error": "No engine"}
    _engine.reset_daily_pnl()
    return {"status": "reset", "daily_pnl": _engine.risk.state.daily_pnl}
