"""Structured logging: trace_id correlation, optional JSON output, file rotation.

- RITUALBOT_LOG_LEVEL=DEBUG: log level (default INFO)
- RITUALBOT_LOG_JSON=1: JSON logs (stderr)
- RITUALBOT_LOG_FILE=/path/to/bot.log: also write to a rotating file (10 MB, 7 days)
"""

import contextvars
import json
import os
import sys
from pathlib import Path

# Set per dispatched event and per job fire
_trace_id_ctx: contextvars.ContextVar[str] = contextvars.ContextVar("trace_id", default="")


def set_trace_id(trace_id: str | None) -> contextvars.Token[str]:
    """Set trace_id for the current context. Return token for reset."""
    return _trace_id_ctx.set(trace_id or "")


def reset_trace_id(token: contextvars.Token[str]) -> None:
    _trace_id_ctx.reset(token)


def _sink_json(message) -> None:
    """Loguru sink: write one JSON object per line."""
    record = message.record
    payload = {
        "ts": record["time"].strftime("%Y-%m-%dT%H:%M:%S.%f%z"),
        "level": record["level"].name,
        "msg": record["message"],
        "trace_id": _trace_id_ctx.get() or "-",
    }
    for k, v in record["extra"].items():
        if v is not None and v != "":
            payload[k] = v
    print(json.dumps(payload, ensure_ascii=False, default=str), file=sys.stderr, flush=True)


def _trace_id_filter(record: dict) -> bool:
    """Inject current trace_id into every log record."""
    record["extra"].setdefault("trace_id", _trace_id_ctx.get() or "-")
    return True


def configure_logging(json_logs: bool | None = None, level: str | None = None) -> None:
    """
    Configure loguru once at startup: trace_id column, optional JSON sink,
    optional rotating file. Arguments default to the RITUALBOT_LOG_* env vars.
    """
    from loguru import logger

    if json_logs is None:
        json_logs = os.environ.get("RITUALBOT_LOG_JSON", "").strip() in ("1", "true", "yes")
    level = level or os.environ.get("RITUALBOT_LOG_LEVEL", "INFO")
    logger.remove()

    if json_logs:
        logger.add(_sink_json, format="{message}", level=level, filter=_trace_id_filter)
    else:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[trace_id]}</cyan> | {name}:{function}:{line} - <level>{message}</level>\n",
            level=level,
            filter=_trace_id_filter,
        )

    log_file = os.environ.get("RITUALBOT_LOG_FILE", "").strip()
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(path),
            rotation="10 MB",
            retention="7 days",
            compression="gz",
            level=level,
            filter=_trace_id_filter,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[trace_id]} | {name}:{function}:{line} - {message}\n",
        )
