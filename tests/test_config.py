"""Configuration loading and formatting helpers."""

import json
import sys
from datetime import datetime, timedelta

from loguru import logger

from conftest import NZ
from ritualbot.config.loader import camel_to_snake, load_config, save_config, snake_to_camel
from ritualbot.config.schema import Config
from ritualbot.utils.helpers import format_timestamp, format_uptime
from ritualbot.utils.logging_config import configure_logging, reset_trace_id, set_trace_id


def test_defaults_when_file_missing(tmp_path):
    config = load_config(tmp_path / "missing.json")
    assert config.schedule.timezone == "Pacific/Auckland"
    assert config.retry.max_retries == 3
    assert config.retry.base_delay_s == 60.0
    assert config.connection.max_reconnect_attempts == 5
    assert config.connection.reconnect_delay_s == 30.0
    assert config.connection.health_check_interval_s == 300.0
    assert config.commands.prefix == "!bot"


def test_save_writes_camel_case_and_loads_back(tmp_path):
    path = tmp_path / "config.json"
    config = Config()
    config.schedule.timezone = "Europe/Lisbon"
    config.retry.base_delay_s = 5.0
    save_config(config, path)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["retry"]["baseDelayS"] == 5.0
    assert raw["channels"]["whatsapp"]["bridgeUrl"] == "ws://localhost:3001"

    loaded = load_config(path)
    assert loaded.schedule.timezone == "Europe/Lisbon"
    assert loaded.retry.base_delay_s == 5.0


def test_invalid_json_falls_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_config(path).retry.max_retries == 3


def test_invalid_values_fall_back_to_defaults(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"retry": {"maxRetries": 0}}), encoding="utf-8")
    assert load_config(path).retry.max_retries == 3


def test_bridge_url_env_override(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    save_config(Config(), path)
    monkeypatch.setenv("RITUALBOT_CHANNELS__WHATSAPP__BRIDGE_URL", "ws://bridge:3001")
    assert load_config(path).channels.whatsapp.bridge_url == "ws://bridge:3001"


def test_key_conversion():
    assert camel_to_snake("healthCheckIntervalS") == "health_check_interval_s"
    assert snake_to_camel("max_reconnect_attempts") == "maxReconnectAttempts"


def test_format_timestamp():
    assert format_timestamp(datetime(2023, 1, 2, 9, 0, tzinfo=NZ), "Pacific/Auckland") == "2 Jan 2023, 9:00:00 am"
    assert format_timestamp(datetime(2023, 1, 6, 15, 30, tzinfo=NZ), "Pacific/Auckland") == "6 Jan 2023, 3:30:00 pm"
    assert format_timestamp(datetime(2023, 1, 6, 0, 5, tzinfo=NZ), "Pacific/Auckland") == "6 Jan 2023, 12:05:00 am"
    # Rendered in the requested zone
    assert format_timestamp(datetime(2023, 1, 2, 9, 0, tzinfo=NZ), "UTC") == "1 Jan 2023, 8:00:00 pm"


def test_format_uptime():
    start = datetime(2023, 1, 1, tzinfo=NZ)
    assert format_uptime(None) == "0 days, 0 hours, 0 minutes"
    assert format_uptime(start, start + timedelta(days=1, hours=2, minutes=3, seconds=59)) == "1 days, 2 hours, 3 minutes"
    assert format_uptime(start, start) == "0 days, 0 hours, 0 minutes"


def test_json_logging_carries_trace_id(capsys, monkeypatch):
    monkeypatch.delenv("RITUALBOT_LOG_FILE", raising=False)
    configure_logging(json_logs=True, level="INFO")
    token = set_trace_id("fire-abc123")
    try:
        logger.info("Executing 'monday' task")
    finally:
        reset_trace_id(token)
        logger.remove()
        logger.add(sys.stderr)
    payload = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert payload["msg"] == "Executing 'monday' task"
    assert payload["level"] == "INFO"
    assert payload["trace_id"] == "fire-abc123"
