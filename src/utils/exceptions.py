"""
Exceptions Module for Options Trading Bot.

This module defines the error hierarchy. Every error carries a numeric
code from ``ErrorCode`` and renders as ``[NAME:code] message``,
optionally followed by its details. Codes are grouped by the thousands
digit: 1xxx setup and input problems, 3xxx trade rejections, 4xxx
brokerage transport failures, 10xxx scheduler lifecycle misuse.
"""

from enum import IntEnum
from typing import Any, Dict, Optional


class ErrorCode(IntEnum):
    """Numeric error codes, grouped by the thousands digit."""

    UNKNOWN = 1000
    CONFIGURATION = 1001
    VALIDATION = 1003

    INSUFFICIENT_SHARES = 3011
    POSITION_EXISTS = 3022
    NO_SUITABLE_CONTRACT = 3050

    API_CONNECTION = 4000
    API_AUTHENTICATION = 4001
    API_RATE_LIMIT = 4003
    API_RESPONSE = 4005

    SCHEDULER_STATE = 10000


class TradingBotException(Exception):
    """
    Root of every error the bot raises on purpose.

    Subclasses only override ``error_code`` and ``default_message``; the
    constructor fills in the rest so callers can write ``raise
    PositionExistsError()`` and still get a readable message.
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "Unexpected trading bot failure"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ) -> None:
        self.message = message if message else self.default_message
        if error_code is not None:
            self.error_code = error_code
        self.details = dict(details) if details else {}
        self.cause = cause
        super().__init__(self._render())

    def _render(self) -> str:
        code = self.error_code
        text = f"[{code.name}:{int(code)}] {self.message}"
        if not self.details:
            return text
        return f"{text} | Details: {self.details}"

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view, used when a failure is reported in a trade outcome."""
        return {
            "error_type": type(self).__name__,
            "error_code": int(self.error_code),
            "error_name": self.error_code.name,
            "message": self.message,
            "details": dict(self.details),
            "cause": None if self.cause is None else str(self.cause),
        }


class ConfigurationError(TradingBotException):
    """Missing credentials, broker or strategy wiring."""
    error_code = ErrorCode.CONFIGURATION
    default_message = "Bot is not configured correctly"


class SchedulerStateError(TradingBotException):
    """start() on a running scheduler or stop() on an idle one."""
    error_code = ErrorCode.SCHEDULER_STATE
    default_message = "Invalid scheduler state transition"


class ValidationError(TradingBotException):
    error_code = ErrorCode.VALIDATION
    default_message = "Invalid quantity"


class InsufficientSharesError(ValidationError):
    error_code = ErrorCode.INSUFFICIENT_SHARES
    default_message = "Insufficient shares to sell"


class PositionExistsError(ValidationError):
    error_code = ErrorCode.POSITION_EXISTS
    default_message = "Position already exists"


class NoSuitableContractError(TradingBotException):
    """No contract in the chain survived the strike and liquidity filters."""
    error_code = ErrorCode.NO_SUITABLE_CONTRACT
    default_message = "No suitable option contract found"


class ExternalServiceError(TradingBotException):
    """Anything that went wrong talking to the brokerage."""
    error_code = ErrorCode.API_CONNECTION
    default_message = "Brokerage request failed"


class APIConnectionError(ExternalServiceError):
    """Network failure or timeout; safe to retry."""
    default_message = "Could not reach the brokerage"


class APIAuthenticationError(ExternalServiceError):
    error_code = ErrorCode.API_AUTHENTICATION
    default_message = "Brokerage rejected the credentials"


class APIRateLimitError(ExternalServiceError):
    """HTTP 429. ``retry_after`` mirrors the Retry-After header when present."""
    error_code = ErrorCode.API_RATE_LIMIT
    default_message = "Brokerage rate limit hit"

    def __init__(
        self,
        message: Optional[str] = None,
        retry_after: Optional[float] = None,
        **kwargs: Any
    ) -> None:
        self.retry_after = retry_after
        extra = dict(kwargs.pop("details", None) or {})
        extra["retry_after"] = retry_after
        super().__init__(message, details=extra, **kwargs)


class APIResponseError(ExternalServiceError):
    """Non-success status or an unreadable body."""
    error_code = ErrorCode.API_RESPONSE
    default_message = "Unexpected brokerage response"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs: Any
    ) -> None:
        self.status_code = status_code
        extra = dict(kwargs.pop("details", None) or {})
        if status_code is not None:
            extra["status_code"] = status_code
        super().__init__(message, details=extra, **kwargs)
