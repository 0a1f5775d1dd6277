"""
Utilities Package for Options Trading Bot.

This package provides the exception hierarchy, helper functions and
decorators shared by the rest of the bot.
"""

from src.utils.exceptions import (
    ErrorCode,
    TradingBotException,
    ConfigurationError,
    SchedulerStateError,
    ValidationError,
    InsufficientSharesError,
    PositionExistsError,
    NoSuitableContractError,
    ExternalServiceError,
    APIConnectionError,
    APIAuthenticationError,
    APIRateLimitError,
    APIResponseError,
)
from src.utils.decorators import async_retry


__all__ = [
    "ErrorCode",
    "TradingBotException",
    "ConfigurationError",
    "SchedulerStateError",
    "ValidationError",
    "InsufficientSharesError",
    "PositionExistsError",
    "NoSuitableContractError",
    "ExternalServiceError",
    "APIConnectionError",
    "APIAuthenticationError",
    "APIRateLimitError",
    "APIResponseError",
    "async_retry",
]
