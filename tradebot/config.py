"""tradebot — application configuration.

Loads .env variables into a typed, immutable config object.
Validates values on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv


@dataclass(frozen=True)
class Config:
    """Typed configuration for indicators, risk limits, and runtime."""

    # Technical indicators
    bb_period: int = 20
    bb_std_dev: float = 2.0
    macd_fast: int = 12
    macd_slow: int = 26
    rsi_period: int = 14
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0
    stoch_k: int = 14
    stoch_d: int = 3
    volume_threshold: float = 1.5

    # Risk management
    trade_amount: float = 0.01
    max_position_size: float = 0.1
    stop_loss_pct: float = 2.0
    take_profit_pct: float = 5.0
    max_daily_loss: float = 100.0  # currency units
    max_drawdown_pct: float = 10.0
    paper_trading: bool = True

    # Advanced features
    multi_timeframe: bool = True  # carried for the dashboard, no effect on evaluation
    confirmation_required: bool = True
    emergency_stop: bool = False
    trailing_stop_pct: float = 1.0

    # Runtime
    initial_capital: float = 1_000.0
    buffer_size: int = 200
    price_poll_seconds: float = 5.0
    signal_interval_seconds: float = 3.0
    feed_base_url: str = "https://api.coingecko.com/api/v3"
    log_level: str = "INFO"
    api_port: int = 8080

    @property
    def mode_label(self) -> str:
        """``"Paper"`` or ``"Live"``."""
        return "Paper" if self.paper_trading else "Live"

    @property
    def min_history(self) -> int:
        """Samples required before an instrument is evaluated."""
        return max(self.macd_slow, self.rsi_period)


_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

# env var → (field, parser)
_ENV_FIELDS: dict[str, tuple[str, type]] = {
    "BB_PERIOD": ("bb_period", int),
    "BB_STD_DEV": ("bb_std_dev", float),
    "MACD_FAST": ("macd_fast", int),
    "MACD_SLOW": ("macd_slow", int),
    "RSI_PERIOD": ("rsi_period", int),
    "RSI_OVERBOUGHT": ("rsi_overbought", float),
    "RSI_OVERSOLD": ("rsi_oversold", float),
    "STOCH_K": ("stoch_k", int),
    "STOCH_D": ("stoch_d", int),
    "VOLUME_THRESHOLD": ("volume_threshold", float),
    "TRADE_AMOUNT": ("trade_amount", float),
    "MAX_POSITION_SIZE": ("max_position_size", float),
    "STOP_LOSS_PCT": ("stop_loss_pct", float),
    "TAKE_PROFIT_PCT": ("take_profit_pct", float),
    "MAX_DAILY_LOSS": ("max_daily_loss", float),
    "MAX_DRAWDOWN_PCT": ("max_drawdown_pct", float),
    "PAPER_TRADING": ("paper_trading", bool),
    "MULTI_TIMEFRAME": ("multi_timeframe", bool),
    "CONFIRMATION_REQUIRED": ("confirmation_required", bool),
    "EMERGENCY_STOP": ("emergency_stop", bool),
    "TRAILING_STOP_PCT": ("trailing_stop_pct", float),
    "INITIAL_CAPITAL": ("initial_capital", float),
    "BUFFER_SIZE": ("buffer_size", int),
    "PRICE_POLL_SECONDS": ("price_poll_seconds", float),
    "SIGNAL_INTERVAL_SECONDS": ("signal_interval_seconds", float),
    "FEED_BASE_URL": ("feed_base_url", str),
    "LOG_LEVEL": ("log_level", str),
    "API_PORT": ("api_port", int),
}


def _parse(var: str, raw: str, parser: type):
    if parser is bool:
        value = raw.strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        raise ValueError(f"{var} must be a boolean, got {raw!r}")
    try:
        return parser(raw)
    except ValueError:
        raise ValueError(
            f"{var} must be {parser.__name__}, got {raw!r}"
        ) from None


def validate_config(config: Config) -> Config:
    """Check cross-field constraints.

    Raises ``ValueError`` naming the first offending field.
    """
    for name in ("bb_period", "macd_fast", "macd_slow", "rsi_period",
                 "stoch_k", "stoch_d", "buffer_size"):
        if getattr(config, name) <= 0:
            raise ValueError(f"{name} must be positive, got {getattr(config, name)}")
    if config.macd_fast >= config.macd_slow:
        raise ValueError(
            f"macd_fast ({config.macd_fast}) must be below macd_slow ({config.macd_slow})"
        )
    if not 0 <= config.rsi_oversold < config.rsi_overbought <= 100:
        raise ValueError(
            "rsi_oversold/rsi_overbought must satisfy 0 <= oversold < overbought <= 100"
        )
    for name in ("trade_amount", "max_position_size", "initial_capital"):
        if getattr(config, name) <= 0:
            raise ValueError(f"{name} must be positive, got {getattr(config, name)}")
    for name in ("stop_loss_pct", "take_profit_pct", "max_daily_loss",
                 "max_drawdown_pct", "trailing_stop_pct", "bb_std_dev"):
        if getattr(config, name) < 0:
            raise ValueError(f"{name} must not be negative, got {getattr(config, name)}")
    if config.buffer_size < config.min_history:
        raise ValueError(
            f"buffer_size ({config.buffer_size}) must hold at least "
            f"{config.min_history} samples"
        )
    return config


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Every variable is optional; unset ones take the ``Config`` default.
    Raises ``ValueError`` with a message naming the variable when a value
    cannot be parsed or violates a constraint.
    """
    load_dotenv(dotenv_path=env_path)

    overrides = {}
    for var, (field_name, parser) in _ENV_FIELDS.items():
        raw = os.environ.get(var)
        if raw is None or raw == "":
            continue
        overrides[field_name] = _parse(var, raw, parser)

    return validate_config(Config(**overrides))
