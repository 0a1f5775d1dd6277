"""
Broker Port Module for Options Trading Bot.

This module defines the brokerage data models and the abstract interface
the bot uses for accounts, positions, quotes, option chains and orders.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from src.data.option_chain import OptionContract, OptionType, select_best_contract


logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class OrderSide(str, Enum):
    """Order side enumeration."""

    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    """Order type enumeration."""

    MARKET = "market"
    LIMIT = "limit"


class TimeInForce(str, Enum):
    """Time in force enumeration."""

    DAY = "day"
    GTC = "gtc"


class Quote(BaseModel):
    """Latest quote for a symbol."""

    symbol: str
    bid_price: float = Field(default=0.0)
    bid_size: int = Field(default=0)
    ask_price: float = Field(default=0.0)
    ask_size: int = Field(default=0)
    timestamp: datetime = Field(default_factory=_now_utc)

    @property
    def mid_price(self) -> float:
        """Calculate mid price."""
        return (self.bid_price + self.ask_price) / 2

    @property
    def quoted_size(self) -> int:
        """Combined bid and ask size, used as a volume approximation."""
        return self.bid_size + self.ask_size


class Position(BaseModel):
    """Open position in a symbol."""

    symbol: str
    qty: float = Field(default=0.0)
    side: str = Field(default="long")
    avg_entry_price: float = Field(default=0.0)
    market_value: float = Field(default=0.0)
    unrealized_pl: float = Field(default=0.0)

    @property
    def is_open(self) -> bool:
        """Whether the position holds a non-zero quantity."""
        return self.qty > 0


class Account(BaseModel):
    """Brokerage account summary."""

    id: str
    status: str = Field(default="ACTIVE")
    currency: str = Field(default="USD")
    cash: float = Field(default=0.0)
    buying_power: float = Field(default=0.0)
    portfolio_value: float = Field(default=0.0)
    trading_blocked: bool = Field(default=False)


class OrderRequest(BaseModel):
    """Order submission request."""

    symbol: str
    qty: float = Field(gt=0)
    side: OrderSide
    type: OrderType = Field(default=OrderType.MARKET)
    time_in_force: TimeInForce = Field(default=TimeInForce.DAY)


class Order(BaseModel):
    """Order acknowledged by the brokerage."""

    id: str
    symbol: str
    qty: float = Field(default=0.0)
    side: OrderSide
    type: OrderType = Field(default=OrderType.MARKET)
    time_in_force: TimeInForce = Field(default=TimeInForce.DAY)
    status: str = Field(default="new")
    created_at: datetime = Field(default_factory=_now_utc)


class BrokerPort(ABC):
    """
    Abstract brokerage interface.

    Every call may raise an ``ExternalServiceError`` subclass; callers are
    expected to handle transport and authentication failures.
    """

    @abstractmethod
    async def get_account(self) -> Account:
        """Get the account summary."""

    @abstractmethod
    async def get_positions(self) -> list[Position]:
        """Get all open positions."""

    @abstractmethod
    async def get_position(self, symbol: str) -> Optional[Position]:
        """
        Get the position for a symbol.

        Args:
            symbol: Trading symbol

        Returns:
            Position or None if nothing is held
        """

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        """Get the latest quote for a symbol."""

    @abstractmethod
    async def create_order(self, request: OrderRequest) -> Order:
        """Submit a stock order."""

    @abstractmethod
    async def get_option_chain(self, symbol: str) -> list[OptionContract]:
        """Get the option contracts listed on an underlying symbol."""

    @abstractmethod
    async def create_option_order(
        self,
        contract_symbol: str,
        side: OrderSide,
        qty: int = 1,
    ) -> Order:
        """Submit a market day order for an option contract."""

    @abstractmethod
    async def is_market_open(self) -> bool:
        """Whether the market is open right now."""

    @abstractmethod
    async def get_price_history(self, symbol: str, limit: int = 50) -> list[float]:
        """
        Get recent daily closing prices, oldest first.

        Args:
            symbol: Trading symbol
            limit: Maximum number of bars

        Returns:
            List of closing prices
        """

    def find_best_contract(
        self,
        chain: list[OptionContract],
        option_type: OptionType,
        max_strike: Optional[float] = None,
        min_open_interest: int = 10,
        expires_before: Optional[date] = None,
    ) -> Optional[OptionContract]:
        """
        Pick the most liquid contract from a chain.

        Args:
            chain: Option chain
            option_type: Call or put
            max_strike: Optional strike ceiling
            min_open_interest: Minimum open interest
            expires_before: Optional latest expiration date

        Returns:
            Best contract or None
        """
        return select_best_contract(
            chain,
            option_type,
            max_strike=max_strike,
            min_open_interest=min_open_interest,
            expires_before=expires_before,
        )
