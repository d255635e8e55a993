"""Loguru logging for the API and sync runs, with Slack alerts on ERROR."""

import logging
import sys
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from shipsync.core.config import settings

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra[name]}:{function}:{line} | {message}"

# Track if logging is already configured to prevent duplicates
_logging_configured = False


class InterceptHandler(logging.Handler):
    """Redirect stdlib logs to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_name == "emit":
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _slack_sink(message: Any) -> None:
    """Post ERROR records (failed syncs, aborted runs) to the ops channel."""
    if not settings.SLACK_WEBHOOK_URL:
        return

    record = message.record
    source = record["extra"].get("name", "shipsync")
    text = (
        f":rotating_light: shipsync ({settings.ENV}) {record['level'].name} in {source}\n"
        f"{record['message']}"
    )
    try:
        httpx.post(settings.SLACK_WEBHOOK_URL, json={"text": text}, timeout=5.0)
    except httpx.HTTPError:
        # Logging the failure here would feed back into this sink
        pass


def _normalize_level(raw: str | None) -> str:
    level = (raw or "INFO").strip().upper()
    level = {
        "WARN": "WARNING",
        "FATAL": "CRITICAL",
    }.get(level, level)
    if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
        level = "INFO"
    return level


# Third-party loggers routed through Loguru, with the floor each one gets
_LIBRARY_LEVELS = {
    "httpx": logging.WARNING,  # one INFO line per request; the client logs per page
    "sqlalchemy.engine": logging.WARNING,
    "alembic": logging.INFO,
}


def configure_logging() -> None:
    global _logging_configured

    if _logging_configured:
        return
    _logging_configured = True

    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    level = _normalize_level(settings.effective_log_level)

    logger.remove()
    logger.configure(extra={"name": "shipsync"})
    logger.add(sys.stdout, level=level, format=LOG_FORMAT, backtrace=False, diagnose=False)
    logger.add(
        log_dir / "shipsync.log",
        level=level,
        format=LOG_FORMAT,
        rotation="10 MB",
        retention="30 days",
        enqueue=True,
        backtrace=False,
        diagnose=False,
    )

    if settings.SLACK_WEBHOOK_URL:
        logger.add(_slack_sink, level="ERROR", enqueue=True)

    # uvicorn, alembic and httpx all use stdlib logging
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name, floor in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(floor)


def get_logger(name: str) -> logger.__class__:
    return logger.bind(name=name)


configure_logging()
