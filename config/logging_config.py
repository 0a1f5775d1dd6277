"""
Logging Configuration Module for Options Trading Bot.

``setup_logging`` installs a console handler (plain, detailed or JSON)
and, when a path is configured, a size-rotated file handler on the root
logger. Trade lifecycle events go through ``TradeLogger``, which writes
a human-readable line and attaches the same facts as ``extra_data`` so
the JSON formatter can emit them as structured fields.
"""

import json
import logging
import logging.handlers
import sys
import threading
import traceback
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class LogFormat(str, Enum):
    """Console and file log layouts."""

    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


class LoggingConfig(BaseModel):
    """Resolved logging options, built from ``Settings.to_logging_config``."""

    level: str = Field(default="INFO", description="Root logger level")
    format: LogFormat = Field(default=LogFormat.SIMPLE, description="Console layout")
    log_file: Optional[Path] = Field(default=None, description="Rotating log file, disabled when unset")
    max_bytes: int = Field(default=10_485_760, description="Rotate after this many bytes")
    backup_count: int = Field(default=5, description="Rotated files to keep")
    include_stack_trace: bool = Field(default=True, description="Emit tracebacks in JSON output")
    colorize_console: bool = Field(default=True, description="ANSI colors on the console")


TRADE_LOGGER_NAME = "options_bot.trades"

_PLAIN_LAYOUT = "%(asctime)s - %(levelname)s - %(message)s"
_DETAILED_LAYOUT = (
    "%(asctime)s | %(levelname)-8s | %(name)-25s | "
    "%(filename)s:%(lineno)d | %(funcName)s | %(message)s"
)

_ANSI_RESET = "\033[0m"
_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}

_QUIET_LIBRARIES = ("httpx", "httpcore")


class ColorizedFormatter(logging.Formatter):
    """Wraps each formatted line in the ANSI color of its level."""

    def __init__(self, fmt: Optional[str] = None, colorize: bool = True) -> None:
        super().__init__(fmt)
        self.colorize = colorize

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        color = _LEVEL_COLORS.get(record.levelname) if self.colorize else None
        return f"{color}{line}{_ANSI_RESET}" if color else line


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``extra_data`` lands under ``extra``."""

    def __init__(self, include_stack_trace: bool = True) -> None:
        super().__init__()
        self.include_stack_trace = include_stack_trace

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        extra = getattr(record, "extra_data", None)
        if extra is not None:
            payload["extra"] = extra
        if self.include_stack_trace and record.exc_info:
            payload["exception"] = self._describe_exception(record.exc_info)
        return json.dumps(payload, default=str)

    @staticmethod
    def _describe_exception(exc_info) -> Dict[str, Any]:
        exc_type, exc, _ = exc_info
        return {
            "type": getattr(exc_type, "__name__", None),
            "message": None if exc is None else str(exc),
            "traceback": traceback.format_exception(*exc_info),
        }


class TradeLogger:
    """Writes trade, decision and lifecycle events for one bot."""

    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger

    def _emit(self, level: int, text: str, event: str, **facts: Any) -> None:
        self.logger.log(level, text, extra={"extra_data": {"event": event, **facts}})

    def trade_executed(
        self,
        symbol: str,
        side: str,
        quantity: float,
        price: Optional[float],
        order_id: Optional[str] = None,
        dry_run: bool = False
    ) -> None:
        """A market order was submitted, or would have been in dry-run mode."""
        label = "DRY RUN TRADE" if dry_run else "TRADE EXECUTED"
        at = "market" if price is None else f"${price:.2f}"
        self._emit(
            logging.INFO,
            f"{label}: {side.upper()} {quantity:g} {symbol} @ {at}",
            "trade_executed",
            symbol=symbol, side=side, quantity=quantity,
            price=price, order_id=order_id, dry_run=dry_run,
        )

    def trade_failed(self, symbol: str, side: str, error: str) -> None:
        self._emit(
            logging.WARNING,
            f"TRADE FAILED: {side.upper()} {symbol} - {error}",
            "trade_failed",
            symbol=symbol, side=side, error=error,
        )

    def decision_made(
        self,
        symbol: str,
        action: str,
        confidence: float,
        strategy: Optional[str],
        reason: str
    ) -> None:
        self._emit(
            logging.INFO,
            f"DECISION: {action.upper()} {symbol} (confidence: {confidence:.2f}) - {reason}",
            "decision_made",
            symbol=symbol, action=action, confidence=confidence,
            strategy=strategy, reason=reason,
        )

    def cycle_completed(self, symbols_processed: int, total_trades: int) -> None:
        self._emit(
            logging.INFO,
            f"CYCLE COMPLETED: {symbols_processed} symbols, {total_trades} total trades",
            "cycle_completed",
            symbols_processed=symbols_processed, total_trades=total_trades,
        )

    def bot_status(self, message: str, **data: Any) -> None:
        self._emit(logging.INFO, f"BOT: {message}", "bot_status", **data)


class LoggingManager:
    """
    Process-wide owner of the root handlers.

    There is a single instance; calling ``setup`` again replaces the
    handlers it installed last time.
    """

    _instance: Optional["LoggingManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "LoggingManager":
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance.config = None
                instance.handlers = {}
                instance._trade_logger = TradeLogger(logging.getLogger(TRADE_LOGGER_NAME))
                cls._instance = instance
        return cls._instance

    def setup(self, config: Optional[LoggingConfig] = None) -> None:
        self.config = config or LoggingConfig()
        root = logging.getLogger()
        root.setLevel(self.config.level.upper())
        for handler in self.handlers.values():
            root.removeHandler(handler)
            handler.close()
        root.handlers.clear()
        self.handlers = {"console": self._build_console_handler()}
        if self.config.log_file is not None:
            self.handlers["file"] = self._build_file_handler(self.config.log_file)
        for handler in self.handlers.values():
            root.addHandler(handler)

        for name in _QUIET_LIBRARIES:
            logging.getLogger(name).setLevel(logging.WARNING)

    def _build_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        fmt = self.config.format
        if fmt == LogFormat.JSON:
            handler.setFormatter(JSONFormatter(self.config.include_stack_trace))
        else:
            layout = _DETAILED_LAYOUT if fmt == LogFormat.DETAILED else _PLAIN_LAYOUT
            handler.setFormatter(ColorizedFormatter(layout, colorize=self.config.colorize_console))
        return handler

    def _build_file_handler(self, path: Path) -> logging.Handler:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            path,
            maxBytes=self.config.max_bytes,
            backupCount=self.config.backup_count,
            encoding="utf-8",
        )
        # Files never get ANSI colors.
        if self.config.format == LogFormat.JSON:
            handler.setFormatter(JSONFormatter(self.config.include_stack_trace))
        else:
            handler.setFormatter(logging.Formatter(_DETAILED_LAYOUT))
        return handler

    def get_trade_logger(self) -> TradeLogger:
        return self._trade_logger


def setup_logging(config: Optional[LoggingConfig] = None) -> LoggingManager:
    """Configure the root logger and return the shared manager."""
    manager = LoggingManager()
    manager.setup(config)
    return manager


def get_trade_logger() -> TradeLogger:
    return LoggingManager().get_trade_logger()
