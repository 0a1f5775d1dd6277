"""
Option Chain Module for Options Trading Bot.

This module defines the option contract model and the filtering and
ranking helpers applied to option chains by both the options strategies
and the execution pipeline.
"""

import logging
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


class OptionType(str, Enum):
    """Option contract type enumeration."""

    CALL = "call"
    PUT = "put"


class OptionContract(BaseModel):
    """Single option contract from an underlying's chain."""

    symbol: str
    underlying_symbol: str
    type: OptionType
    strike_price: float
    expiration_date: Optional[date] = None
    tradable: bool = Field(default=True)
    status: str = Field(default="active")
    open_interest: int = Field(default=0)
    close_price: Optional[float] = None

    @property
    def is_active(self) -> bool:
        """Whether the contract is tradable and active."""
        return self.tradable and self.status == "active"


def liquid_contracts(
    chain: Iterable[OptionContract],
    min_open_interest: int,
    option_type: Optional[OptionType] = None,
) -> list[OptionContract]:
    """
    Keep tradable, active contracts with enough open interest.

    Args:
        chain: Option chain
        min_open_interest: Minimum open interest (inclusive)
        option_type: Optional call/put filter

    Returns:
        Filtered contracts in chain order
    """
    return [
        contract for contract in chain
        if contract.is_active
        and contract.open_interest >= min_open_interest
        and (option_type is None or contract.type == option_type)
    ]


def strike_between(
    contracts: Iterable[OptionContract],
    lower: float,
    upper: float,
) -> list[OptionContract]:
    """Contracts whose strike lies strictly between two bounds."""
    return [c for c in contracts if lower < c.strike_price < upper]


def most_open_interest(contracts: list[OptionContract]) -> Optional[OptionContract]:
    """Contract with the highest open interest, first one on ties."""
    best: Optional[OptionContract] = None
    for contract in contracts:
        if best is None or contract.open_interest > best.open_interest:
            best = contract
    return best


def select_best_contract(
    chain: list[OptionContract],
    option_type: OptionType,
    max_strike: Optional[float] = None,
    min_open_interest: int = 10,
    expires_before: Optional[date] = None,
) -> Optional[OptionContract]:
    """
    Select the contract to trade from a chain.

    Contracts are filtered by type, tradable/active status, open interest,
    optional strike ceiling and optional expiry horizon, then ranked by open
    interest descending. Ties prefer the lowest strike for calls and the
    highest strike for puts.

    Args:
        chain: Option chain
        option_type: Call or put
        max_strike: Optional strike ceiling (inclusive)
        min_open_interest: Minimum open interest (inclusive)
        expires_before: Latest acceptable expiration date (inclusive)

    Returns:
        Best contract or None when nothing qualifies
    """
    candidates = [
        contract for contract in liquid_contracts(chain, min_open_interest, option_type)
        if (max_strike is None or contract.strike_price <= max_strike)
        and (
            expires_before is None
            or contract.expiration_date is None
            or contract.expiration_date <= expires_before
        )
    ]

    if not candidates:
        logger.warning(
            f"No suitable {option_type.value} options found "
            f"(total={len(chain)}, min_open_interest={min_open_interest}, "
            f"max_strike={max_strike})"
        )
        return None

    strike_sign = 1 if option_type == OptionType.CALL else -1
    candidates.sort(key=lambda c: (-c.open_interest, strike_sign * c.strike_price))

    best = candidates[0]
    logger.info(
        f"Selected {option_type.value} contract {best.symbol} "
        f"strike={best.strike_price} expires={best.expiration_date} "
        f"open_interest={best.open_interest}"
    )
    return best
