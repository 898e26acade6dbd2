#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
Logging System for NSP Patcher

- Level-specific console formats with optional colours on a TTY
- Optional structured JSON output (NSP_PATCHER_LOG_JSON=1)
- Optional rotating log file
- Lightweight per-stage timing
"""

import logging
import logging.handlers
import os
import sys
import time
import threading
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Dict, Any, Union
from collections import defaultdict

# =====================================================================================================
# Constants
# =====================================================================================================

DEFAULT_MAX_LOG_BYTES = 5 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 3
SLOW_OPERATION_SECONDS = 1.0
ROOT_LOGGER_NAME = "nsp_patcher"

# =====================================================================================================
# Formatters
# =====================================================================================================

class FastFormatter(logging.Formatter):
    """Formatter with one pre-built format per level."""

    _FORMATS = {
        logging.ERROR: "[{asctime}] ERROR   [{name}] {message}",
        logging.WARNING: "[{asctime}] WARNING [{name}] {message}",
        logging.INFO: "[{asctime}] INFO    {message}",
        logging.DEBUG: "[{asctime}] DEBUG   {name}:{lineno} - {message}"
    }

    _COLORS = {
        'ERROR': '\033[91m',
        'WARNING': '\033[93m',
        'INFO': '\033[92m',
        'DEBUG': '\033[94m',
    }
    _RESET = '\033[0m'

    def __init__(self, enable_colors: bool = False):
        super().__init__()
        self.enable_colors = enable_colors
        self._formatters = {
            level: logging.Formatter(fmt, style='{', datefmt='%H:%M:%S')
            for level, fmt in self._FORMATS.items()
        }

    def format(self, record):
        level = record.levelno if record.levelno in self._formatters else logging.INFO
        if record.levelno >= logging.ERROR:
            level = logging.ERROR
        text = self._formatters[level].format(record)
        color = self._COLORS.get(record.levelname) if self.enable_colors else None
        if color:
            return f"{color}{text}{self._RESET}"
        return text


class JsonFormatter(logging.Formatter):
    """Structured JSON formatter (optional)."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "pathname": record.pathname,
            "lineno": record.lineno,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)

# =====================================================================================================
# Performance logger
# =====================================================================================================

class SimplePerformanceLogger:
    """Accumulates per-operation timings."""

    def __init__(self, name: str = f"{ROOT_LOGGER_NAME}.performance"):
        self.logger = logging.getLogger(name)
        self.metrics = defaultdict(float)
        self.counts = defaultdict(int)
        self._lock = threading.Lock()

    def log_timing(self, operation: str, duration: float):
        with self._lock:
            self.metrics[operation] += duration
            self.counts[operation] += 1

        if duration > SLOW_OPERATION_SECONDS:
            self.logger.info("%s took %.2fs", operation, duration)
        else:
            self.logger.debug("%s took %.3fs", operation, duration)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            stats = {}
            for operation in self.metrics:
                count = self.counts[operation]
                total = self.metrics[operation]
                stats[operation] = {
                    'count': count,
                    'total_time': total,
                    'avg_time': total / count if count > 0 else 0
                }
            return stats

    def reset(self):
        with self._lock:
            self.metrics.clear()
            self.counts.clear()

# =====================================================================================================
# Setup
# =====================================================================================================

def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[Union[str, Path]] = None,
    enable_file_logging: bool = False,
    structured_json: Optional[bool] = None,
    max_log_bytes: int = DEFAULT_MAX_LOG_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> Dict[str, Any]:
    """Configure the root logger for console (and optionally file) output."""
    numeric_level = getattr(logging, str(log_level).upper(), logging.INFO)
    use_json = structured_json if structured_json is not None else _env_bool("NSP_PATCHER_LOG_JSON")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    handlers = {}

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    enable_colors = (hasattr(sys.stderr, 'isatty') and
                     sys.stderr.isatty() and
                     os.environ.get('TERM') != 'dumb')
    console_handler.setFormatter(JsonFormatter() if use_json else FastFormatter(enable_colors=enable_colors))
    root_logger.addHandler(console_handler)
    handlers['console'] = console_handler

    log_dir_path = None
    if enable_file_logging:
        log_dir_path = Path(log_dir) if log_dir is not None else Path("logs")
        log_dir_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            str(log_dir_path / "nsp_patcher.log"),
            maxBytes=max_log_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(JsonFormatter() if use_json else FastFormatter())
        root_logger.addHandler(file_handler)
        handlers['file'] = file_handler

    logging.getLogger(ROOT_LOGGER_NAME).debug(
        "Logging initialized (level=%s, file=%s, json=%s)", log_level, enable_file_logging, use_json
    )

    return {
        'handlers': handlers,
        'log_dir': log_dir_path,
    }


# =====================================================================================================
# Performance monitoring
# =====================================================================================================

_performance_logger = SimplePerformanceLogger()


def get_performance_logger() -> SimplePerformanceLogger:
    return _performance_logger


def log_performance(operation: str, duration: float):
    _performance_logger.log_timing(operation, duration)


def get_performance_stats() -> Dict[str, Any]:
    return _performance_logger.get_stats()


class LoggingTimer:
    """Simple timing context manager."""

    def __init__(self, operation_name: str):
        self.operation_name = operation_name
        self.start_time = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            duration = time.perf_counter() - self.start_time
            log_performance(self.operation_name, duration)
