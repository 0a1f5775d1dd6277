"""
Helper Functions Module for Options Trading Bot.

This module provides general utility functions used throughout the trading bot.
"""

from typing import Any, Dict
import logging


logger = logging.getLogger(__name__)


def round_price(price: float, decimals: int = 2) -> float:
    """
    Round a price to specified decimal places.

    Args:
        price: Price to round
        decimals: Number of decimal places

    Returns:
        Rounded price
    """
    multiplier = 10 ** decimals
    return round(price * multiplier) / multiplier


def merge_one_level(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two dictionaries, descending exactly one level into dict values.

    Keys of ``override`` replace keys of ``base``; when both values are
    dictionaries their keys are combined instead, without recursing further.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = {**result[key], **value}
        else:
            result[key] = value
    return result


def to_int(value: Any, default: int = 0) -> int:
    """
    Convert a value to integer.

    Args:
        value: Value to convert
        default: Default value on error

    Returns:
        Integer value
    """
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def to_float(value: Any, default: float = 0.0) -> float:
    """
    Convert a value to float.

    Args:
        value: Value to convert
        default: Default value on error

    Returns:
        Float value
    """
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
