"""tradebot — Trading engine (orchestration loop).

Connects the buffer store, signal generator, risk manager, and trade
ledger. Two independent loops drive it: price ingestion and signal
evaluation. Each evaluation cycle runs to completion (including the trades
it triggers) before the next one starts.
"""

import asyncio
import contextlib
import logging
import math
from collections import deque
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from tradebot.config import Config, validate_config
from tradebot.feed.models import PriceFeed, PriceTick
from tradebot.ledger.trade_ledger import TradeLedger
from tradebot.metrics.stats import calculate_metrics
from tradebot.models import (
    DEFAULT_INSTRUMENTS,
    SYSTEM,
    Instrument,
    PerformanceMetrics,
    Position,
    Signal,
    SignalKind,
    Trade,
    TradeSignal,
)
from tradebot.risk.manager import RiskManager
from tradebot.sink import LoggingSink, SignalSink
from tradebot.strategy.buffers import RollingBufferStore
from tradebot.strategy.signals import SignalEvaluation, SignalGenerator

logger = logging.getLogger("tradebot.engine")

SIGNAL_HISTORY_LIMIT = 50
EMERGENCY_REASON = "Emergency stop"


class EngineHaltedError(RuntimeError):
    """Raised when starting an engine whose emergency stop is still set."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TradingEngine:
    """Owns all mutable trading state and exposes the engine operations.

    Args:
        config: Immutable configuration; replace it with ``update_config``
                while the engine is stopped.
        feed: A ``PriceFeed`` (or compatible duck-type / mock). Optional
              when ticks are pushed through ``on_tick``.
        sink: Receives signals, trades, and metrics. Defaults to
              ``LoggingSink``.
        instruments: Fixed instrument set. Defaults to
                     ``DEFAULT_INSTRUMENTS``.
    """

    def __init__(
        self,
        config: Config,
        feed: Optional[PriceFeed] = None,
        sink: Optional[SignalSink] = None,
        instruments: Sequence[Instrument] = DEFAULT_INSTRUMENTS,
    ) -> None:
        self._config = config
        self._feed = feed
        self._sink: SignalSink = sink if sink is not None else LoggingSink()
        self._instruments: dict[str, Instrument] = {i.id: i for i in instruments}

        self.buffers = RollingBufferStore(self._instruments, config.buffer_size)
        self.ledger = TradeLedger(config)
        self.risk = RiskManager(config)
        self._generator = SignalGenerator(config)

        self._signals: deque[Signal] = deque(maxlen=SIGNAL_HISTORY_LIMIT)
        self._metrics = PerformanceMetrics()
        self._last_evaluations: dict[str, SignalEvaluation] = {}
        self._running: bool = False
        self._shutdown: bool = False
        self._cycle_count: int = 0
        self._cycle_lock = asyncio.Lock()

    # ── State accessors ──────────────────────────────────────────────────

    @property
    def config(self) -> Config:
        return self._config

    @property
    def running(self) -> bool:
        return self._running

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def instruments(self) -> list[Instrument]:
        return list(self._instruments.values())

    @property
    def signals(self) -> list[Signal]:
        """Most recent signals, newest first."""
        return list(self._signals)

    @property
    def metrics(self) -> PerformanceMetrics:
        return self._metrics

    @property
    def positions(self) -> dict[str, Position]:
        return self.ledger.positions

    @property
    def trades(self) -> list[Trade]:
        """Trade log, newest first."""
        return self.ledger.trades_newest_first()

    @property
    def last_evaluations(self) -> dict[str, SignalEvaluation]:
        """Latest indicator evaluation per instrument."""
        return dict(self._last_evaluations)

    def current_price(self, instrument_id: str) -> Optional[float]:
        return self.buffers.latest_price(instrument_id)

    # ── Lifecycle ────────────────────────────────────────────────────────

    def start(self) -> None:
        """Enable trading. Raises ``EngineHaltedError`` after an emergency stop."""
        if self.risk.emergency_active:
            raise EngineHaltedError(
                "Emergency stop is active — reset it before restarting."
            )
        if not self._running:
            self._running = True
            logger.info(
                "Engine started in %s mode on %d instrument(s).",
                self._config.mode_label, len(self._instruments),
            )

    def stop(self) -> None:
        """Disable trading; takes effect before the next cycle."""
        if self._running:
            self._running = False
            logger.info("Engine stopped.")

    def update_config(self, config: Config) -> None:
        """Replace the configuration. Refused while the engine is running."""
        if self._running:
            raise RuntimeError("Configuration cannot change while the engine is running.")
        validate_config(config)
        if config.buffer_size != self._config.buffer_size:
            resized = RollingBufferStore(self._instruments, config.buffer_size)
            for instrument_id in self._instruments:
                for sample in self.buffers.samples(instrument_id):
                    resized.append(instrument_id, sample.price, sample.timestamp, sample.volume)
            self.buffers = resized
        self._config = config
        self.ledger.reconfigure(config)
        self.risk.reconfigure(config)
        self._generator = SignalGenerator(config)
        logger.info("Configuration updated.")

    def reset_emergency(self) -> None:
        """Clear an operator-triggered emergency stop (engine stays stopped)."""
        self.risk.reset_emergency()
        logger.warning("Emergency stop reset by operator.")

    def reset_daily_pnl(self) -> None:
        """Day-boundary trigger: zero the daily P&L."""
        self.risk.reset_daily()
        logger.info("Daily P&L reset.")

    # ── Ingestion ────────────────────────────────────────────────────────

    def on_tick(
        self,
        instrument_id: str,
        price: float,
        volume: Optional[float] = None,
        timestamp: Optional[datetime] = None,
    ) -> bool:
        """Append one observation. Returns ``False`` when the tick is discarded."""
        if instrument_id not in self._instruments:
            logger.debug("Discarded tick for unknown instrument %s", instrument_id)
            return False
        if not isinstance(price, (int, float)) or not math.isfinite(price) or price <= 0:
            logger.debug("Discarded tick for %s: invalid price %r", instrument_id, price)
            return False
        if volume is not None and (
            not isinstance(volume, (int, float))
            or not math.isfinite(volume)
            or volume <= 0
        ):
            volume = None
        self.buffers.append(
            instrument_id, float(price), timestamp or _utc_now(), volume,
        )
        return True

    def ingest(self, ticks: Iterable[PriceTick]) -> int:
        """Append a batch of feed ticks; returns how many were accepted."""
        accepted = 0
        for tick in ticks:
            if self.on_tick(tick.instrument_id, tick.price, tick.volume, tick.timestamp):
                accepted += 1
        return accepted

    async def poll_feed(self) -> int:
        """Fetch one round of ticks from the feed.

        Feed failures become an ERROR signal; the engine keeps going on
        whatever data it already has.
        """
        if self._feed is None:
            return 0
        try:
            ticks = await self._feed.fetch_ticks(self.instruments)
        except Exception as exc:
            logger.error("Price fetch failed: %s", exc)
            self._emit(Signal(
                kind=SignalKind.ERROR,
                instrument=SYSTEM,
                source="Price Feed",
                message="Failed to fetch prices - check connection",
                timestamp=_utc_now(),
            ))
            return 0
        return self.ingest(ticks)

    # ── Single cycle ─────────────────────────────────────────────────────

    def run_cycle(self, timestamp: Optional[datetime] = None) -> dict:
        """Execute one evaluation cycle: gate, signals, then exit checks.

        Returns a dict describing what happened:

        - ``{"action": "halted", "reason": "...", ...}``
        - ``{"action": "evaluated", "signals": n, "trades": n, "exits": n}``

        Args:
            timestamp: Cycle time. Defaults to ``datetime.now(UTC)``;
                       accepting it keeps the engine testable.
        """
        if timestamp is None:
            timestamp = _utc_now()
        self._cycle_count += 1

        result: dict = {"action": "evaluated", "signals": 0, "trades": 0, "exits": 0}

        # 1 ── Gate
        halt = self.risk.check_gate(timestamp)
        if halt is not None:
            self._emit(halt)
            self._running = False
            result = {"action": "halted", "reason": halt.message, "exits": 0}
        else:
            # 2 ── Signal generation
            for instrument_id in self._instruments:
                signal = self._evaluate_instrument(instrument_id, timestamp)
                if signal is None:
                    continue
                result["signals"] += 1
                if (
                    self._running
                    and not self._config.confirmation_required
                    and isinstance(signal, TradeSignal)
                ):
                    if self._execute(instrument_id, signal, timestamp) is not None:
                        result["trades"] += 1

        # 3 ── Exit checks run even when the gate halted trading
        result["exits"] = self._check_exits(timestamp)
        return result

    async def evaluate(self, timestamp: Optional[datetime] = None) -> dict:
        """Run one cycle, never overlapping another."""
        async with self._cycle_lock:
            return self.run_cycle(timestamp)

    def emergency_stop(self, timestamp: Optional[datetime] = None) -> list[Trade]:
        """Halt trading permanently and close every open position at market."""
        if timestamp is None:
            timestamp = _utc_now()
        self.risk.trigger_emergency()
        self._running = False
        logger.warning("EMERGENCY STOP — closing %d position(s).", len(self.ledger.positions))

        closed: list[Trade] = []
        for instrument_id, position in self.ledger.positions.items():
            price = self.current_price(instrument_id)
            if price is None:
                price = position.entry_price
            trade = self._execute(
                instrument_id,
                TradeSignal(
                    kind=SignalKind.SELL,
                    instrument=instrument_id,
                    source="Emergency Stop",
                    message=EMERGENCY_REASON,
                    timestamp=timestamp,
                ),
                timestamp,
                price=price,
            )
            if trade is not None:
                closed.append(trade)

        self._emit(Signal(
            kind=SignalKind.ERROR,
            instrument=SYSTEM,
            source="Emergency Stop",
            message="Emergency stop activated - all trading halted and positions closed",
            timestamp=timestamp,
        ))
        return closed

    # ── Polling loops ────────────────────────────────────────────────────

    async def _ingest_loop(self) -> None:
        while not self._shutdown:
            await self.poll_feed()
            await asyncio.sleep(self._config.price_poll_seconds)

    async def _evaluate_loop(self, max_cycles: int) -> list[dict]:
        results: list[dict] = []
        cycles = 0
        while not self._shutdown:
            if self._running:
                cycles += 1
                try:
                    result = await self.evaluate()
                except Exception as exc:
                    logger.error("Cycle %d error: %s", cycles, exc)
                    result = {"action": "error", "reason": str(exc)}
                    self._emit(Signal(
                        kind=SignalKind.ERROR,
                        instrument=SYSTEM,
                        source="Engine",
                        message=f"Cycle error: {exc}",
                        timestamp=_utc_now(),
                    ))
                results.append(result)
                logger.debug("Cycle %d: %s", cycles, result.get("action", "unknown"))
                if max_cycles > 0 and cycles >= max_cycles:
                    break
            await asyncio.sleep(self._config.signal_interval_seconds)
        return results

    async def run(self, max_cycles: int = 0) -> list[dict]:
        """Run ingestion and evaluation until ``shutdown()``.

        Ingestion keeps polling while the engine is stopped; evaluation
        cycles only run while it is started.

        Args:
            max_cycles: Return after this many evaluation cycles
                        (0 = unlimited).

        Returns:
            List of per-cycle result dicts.
        """
        self._shutdown = False
        ingest_task = asyncio.create_task(self._ingest_loop())
        try:
            return await self._evaluate_loop(max_cycles)
        finally:
            ingest_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ingest_task

    def shutdown(self) -> None:
        """Stop both loops after their current iteration."""
        self._shutdown = True
        self._running = False

    # ── Internals ────────────────────────────────────────────────────────

    def _evaluate_instrument(
        self,
        instrument_id: str,
        timestamp: datetime,
    ) -> Optional[Signal]:
        prices, volumes = self.buffers.snapshot(instrument_id)
        evaluation = self._generator.evaluate(
            instrument_id, prices, volumes, timestamp,
        )
        if evaluation is None:
            return None
        self._last_evaluations[instrument_id] = evaluation
        if evaluation.signal is not None:
            self._emit(evaluation.signal)
        return evaluation.signal

    def _check_exits(self, timestamp: datetime) -> int:
        exits = 0
        for instrument_id, position in self.ledger.positions.items():
            price = self.current_price(instrument_id)
            if price is None:
                continue
            decision = self.risk.check_exit(position, price)
            self.ledger.raise_trailing_stop(decision.position)
            if not decision.should_close:
                continue
            sell = TradeSignal(
                kind=SignalKind.SELL,
                instrument=instrument_id,
                source="Risk Management",
                message=decision.reason,
                timestamp=timestamp,
            )
            self._emit(sell)
            if self._execute(instrument_id, sell, timestamp) is not None:
                exits += 1
        return exits

    def _execute(
        self,
        instrument_id: str,
        signal: TradeSignal,
        timestamp: datetime,
        price: Optional[float] = None,
    ) -> Optional[Trade]:
        if price is None:
            price = self.current_price(instrument_id)
        trade = self.ledger.execute_trade(instrument_id, signal, price, timestamp)
        if trade is None:
            return None
        if trade.profit is not None:
            self.risk.record_closed_trade(trade.profit)
        self._notify("on_trade", trade)
        metrics = calculate_metrics(
            self.ledger.trades, self.risk.state.max_drawdown_observed,
        )
        if metrics is not None:
            self._metrics = metrics
            self._notify("on_metrics_update", metrics)
        return trade

    def _emit(self, signal: Signal) -> None:
        self._signals.appendleft(signal)
        self._notify("on_signal", signal)

    def _notify(self, method: str, payload) -> None:
        try:
            getattr(self._sink, method)(payload)
        except Exception as exc:
            logger.warning("Sink %s failed: %s", method, exc)
