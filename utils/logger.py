"""
Logger Configuration
Unified logging setup plus structured job event helpers
"""
from datetime import datetime, timezone
import hashlib
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from rich.logging import RichHandler
from rich.console import Console


# Global Console instance
console = Console()

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_FORMAT_SIMPLE = "%(message)s"

LOG_DIR = Path(__file__).parent.parent / "logs"

ROOT_LOGGER_NAME = "deep_dive"


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    use_rich: bool = True,
) -> logging.Logger:
    """
    Configure a logger once.

    Args:
        name: logger name
        level: log level
        log_file: optional file name under ``logs/``
        use_rich: use Rich console output

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid stacking handlers on repeated calls
    if logger.handlers:
        return logger

    if use_rich:
        console_handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=False,
        )
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE))
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_path = LOG_DIR / log_file

        file_handler = logging.FileHandler(file_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    return logger


def hash_user_id(user_id: str) -> str:
    """Stable short digest so user ids never reach the logs in clear."""
    return hashlib.sha256(str(user_id or "").encode("utf-8")).hexdigest()[:8]


def _emit(logger: logging.Logger, level: int, payload: dict) -> None:
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


_job_logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.jobs")
_tick_logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.tick")


def log_deep_dive(
    *,
    job_id: str,
    user_id: str,
    stage: Optional[str] = None,
    status: Optional[str] = None,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Emit one structured job event line."""
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        "svc": "deep-dive",
        "job_id": job_id,
        "user_id": hash_user_id(user_id),
        "stage": stage,
        "status": status,
    }
    payload.update({key: value for key, value in fields.items() if value is not None})
    _emit(_job_logger, level, payload)


def log_daily_tick(phase: str, level: int = logging.INFO, **fields: Any) -> None:
    """Emit one structured scheduler event line."""
    payload = {
        "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        "svc": "daily-tick",
        "phase": phase,
    }
    payload.update(fields)
    _emit(_tick_logger, level, payload)
