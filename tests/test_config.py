"""Tests for tradebot.config — environment variable loading and validation."""

import dataclasses
import os

import pytest

from tradebot.config import _ENV_FIELDS, Config, load_config, validate_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Ensure tradebot env vars are cleared between tests."""
    for var in _ENV_FIELDS:
        monkeypatch.delenv(var, raising=False)


def _missing_env(tmp_path) -> str:
    # A path that does not exist keeps load_dotenv from reading a real .env
    return str(tmp_path / "missing.env")


class TestLoadConfig:
    def test_defaults(self, tmp_path):
        cfg = load_config(_missing_env(tmp_path))
        assert cfg == Config()
        assert cfg.bb_period == 20
        assert cfg.bb_std_dev == 2.0
        assert cfg.macd_fast == 12
        assert cfg.macd_slow == 26
        assert cfg.rsi_period == 14
        assert cfg.trade_amount == 0.01
        assert cfg.max_position_size == 0.1
        assert cfg.stop_loss_pct == 2.0
        assert cfg.take_profit_pct == 5.0
        assert cfg.max_daily_loss == 100.0
        assert cfg.max_drawdown_pct == 10.0
        assert cfg.paper_trading is True
        assert cfg.confirmation_required is True
        assert cfg.emergency_stop is False
        assert cfg.trailing_stop_pct == 1.0

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BB_PERIOD", "10")
        monkeypatch.setenv("RSI_OVERSOLD", "25.5")
        monkeypatch.setenv("PAPER_TRADING", "false")
        monkeypatch.setenv("CONFIRMATION_REQUIRED", "no")
        monkeypatch.setenv("FEED_BASE_URL", "http://localhost:9999")
        cfg = load_config(_missing_env(tmp_path))
        assert cfg.bb_period == 10
        assert cfg.rsi_oversold == 25.5
        assert cfg.paper_trading is False
        assert cfg.confirmation_required is False
        assert cfg.feed_base_url == "http://localhost:9999"

    def test_empty_value_uses_default(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MACD_SLOW", "")
        cfg = load_config(_missing_env(tmp_path))
        assert cfg.macd_slow == 26

    def test_reads_dotenv_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("TRADE_AMOUNT=0.05\nEMERGENCY_STOP=on\n")
        try:
            cfg = load_config(str(env_file))
        finally:
            # load_dotenv writes straight into os.environ
            os.environ.pop("TRADE_AMOUNT", None)
            os.environ.pop("EMERGENCY_STOP", None)
        assert cfg.trade_amount == 0.05
        assert cfg.emergency_stop is True

    def test_bad_integer_names_variable(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BB_PERIOD", "twenty")
        with pytest.raises(ValueError, match="BB_PERIOD"):
            load_config(_missing_env(tmp_path))

    def test_bad_boolean_names_variable(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PAPER_TRADING", "maybe")
        with pytest.raises(ValueError, match="PAPER_TRADING"):
            load_config(_missing_env(tmp_path))

    def test_invalid_combination_rejected(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MACD_FAST", "30")
        with pytest.raises(ValueError, match="macd_fast"):
            load_config(_missing_env(tmp_path))


class TestValidateConfig:
    def test_default_config_is_valid(self):
        cfg = Config()
        assert validate_config(cfg) is cfg

    @pytest.mark.parametrize("field", ["bb_period", "rsi_period", "stoch_k", "buffer_size"])
    def test_non_positive_period_rejected(self, field):
        with pytest.raises(ValueError, match=field):
            validate_config(dataclasses.replace(Config(), **{field: 0}))

    def test_rsi_bounds_rejected(self):
        with pytest.raises(ValueError, match="rsi_oversold"):
            validate_config(Config(rsi_oversold=80.0, rsi_overbought=70.0))

    def test_negative_percentage_rejected(self):
        with pytest.raises(ValueError, match="stop_loss_pct"):
            validate_config(Config(stop_loss_pct=-1.0))

    def test_buffer_must_hold_min_history(self):
        with pytest.raises(ValueError, match="buffer_size"):
            validate_config(Config(buffer_size=20))

    def test_min_history_and_mode_label(self):
        assert Config().min_history == 26
        assert Config(rsi_period=40, buffer_size=200).min_history == 40
        assert Config().mode_label == "Paper"
        assert Config(paper_trading=False).mode_label == "Live"
