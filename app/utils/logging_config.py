"""
Logging for the ATS Match Service.

Everything logs under the `ats_match.` namespace. Records carrying request or
error context (passed through `extra=` by the middleware and the store) get
that context appended as `key=value` pairs, so a single request can be
followed across the proxy, the scorer and the store.
"""
import json
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER = "ats_match"

# Extras worth surfacing; anything else passed via `extra=` stays on the record only
CONTEXT_FIELDS = (
    "request_id",
    "status_code",
    "error_code",
    "exception_type",
    "candidate_id",
    "job_id",
    "match_id",
)

# ENVIRONMENT -> (level, format, write files)
PRESETS = {
    "production": ("INFO", "json", True),
    "development": ("DEBUG", "text", True),
    "testing": ("WARNING", "text", False),
}

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _context(record: logging.LogRecord) -> Dict[str, Any]:
    return {k: getattr(record, k) for k in CONTEXT_FIELDS if getattr(record, k, None) is not None}


class ContextFormatter(logging.Formatter):
    """Plain text lines with request/error context appended"""

    def format(self, record):
        line = super().format(record)
        ctx = _context(record)
        if ctx:
            line += " [" + " ".join(f"{k}={v}" for k, v in ctx.items()) + "]"
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line; context fields become top-level keys"""

    def format(self, record):
        payload = {
            "timestamp": datetime.utcfromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: str = "INFO", fmt: str = "text", to_files: bool = True, log_dir: Optional[str] = None) -> None:
    """
    Install handlers for the service loggers.

    Console output always; with `to_files`, a daily rotating log plus an
    errors-only log under `log_dir` (LOG_DIR, default `logs`).
    """
    formatter = "json" if fmt == "json" else "text"
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": formatter,
            "stream": "ext://sys.stdout",
        }
    }

    if to_files:
        directory = Path(log_dir or os.getenv("LOG_DIR", "logs"))
        directory.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d")
        rotating = {"class": "logging.handlers.RotatingFileHandler", "maxBytes": 10 * 1024 * 1024,
                    "backupCount": 5, "encoding": "utf8"}
        handlers["file"] = {**rotating, "formatter": formatter,
                            "filename": str(directory / f"ats_match_{stamp}.log")}
        handlers["errors"] = {**rotating, "formatter": formatter, "level": "ERROR",
                              "filename": str(directory / f"ats_match_errors_{stamp}.log")}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "text": {"()": ContextFormatter, "fmt": TEXT_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
            "json": {"()": JsonFormatter},
        },
        "handlers": handlers,
        "loggers": {
            ROOT_LOGGER: {"level": level, "handlers": list(handlers), "propagate": False},
            "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
            # every gateway connection is logged at DEBUG otherwise
            "urllib3": {"level": "WARNING"},
        },
    })


def configure_for_environment() -> None:
    """Pick a preset from ENVIRONMENT; LOG_LEVEL and LOG_FORMAT override it"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    level, fmt, to_files = PRESETS.get(environment, ("INFO", "text", True))
    setup_logging(
        level=os.getenv("LOG_LEVEL", level).upper(),
        fmt=os.getenv("LOG_FORMAT", fmt).lower(),
        to_files=to_files,
    )
    get_logger("logging").info(f"Logging configured for {environment}")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class PerformanceMonitor:
    """Times a block; slow or failed blocks are logged louder"""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.elapsed_ms = None

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
        took = f"{self.operation_name} took {self.elapsed_ms:.0f}ms"
        if exc_type is not None:
            self.logger.warning(f"{took} and raised {exc_type.__name__}: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(f"{took} (threshold {self.threshold_ms:.0f}ms)")
        else:
            self.logger.debug(took)
        return False
