"""
Metrics Module for Options Trading Bot.

This module tracks cumulative trade results for the running bot.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from src.core.models import TradeOutcome
from src.utils.helpers import round_price


logger = logging.getLogger(__name__)


class RunMetrics:
    """
    Cumulative trade counters.

    Traded symbols and contributing strategies are kept as sets; only
    their sizes and membership are exposed.
    """

    def __init__(self) -> None:
        self._clear()

    def _clear(self) -> None:
        self.total_trades = 0
        self.successful_trades = 0
        self.failed_trades = 0
        self.last_trade_time: Optional[datetime] = None
        self._symbols_traded: set[str] = set()
        self._strategies_used: set[str] = set()

    def record(self, outcome: TradeOutcome, strategy_names: Iterable[str] = ()) -> None:
        """
        Record one trade outcome.

        Args:
            outcome: Pipeline outcome
            strategy_names: Rules credited with the decision
        """
        self.total_trades += 1
        self.last_trade_time = outcome.timestamp

        if outcome.success:
            self.successful_trades += 1
            self._symbols_traded.add(outcome.symbol)
            self._strategies_used.update(name for name in strategy_names if name)
        else:
            self.failed_trades += 1

    def reset(self) -> None:
        """Zero every counter and clear both sets."""
        self._clear()
        logger.info("Bot metrics reset")

    @property
    def success_rate(self) -> float:
        """Successful trades as a percentage, rounded to two decimals."""
        if self.total_trades == 0:
            return 0.0
        return round_price(self.successful_trades / self.total_trades * 100, 2)

    @property
    def symbols_traded(self) -> int:
        return len(self._symbols_traded)

    @property
    def strategies_used(self) -> int:
        return len(self._strategies_used)

    def has_traded(self, symbol: str) -> bool:
        """Whether a successful trade was recorded for a symbol."""
        return symbol in self._symbols_traded

    def has_used(self, strategy_name: str) -> bool:
        """Whether a strategy contributed to a successful trade."""
        return strategy_name in self._strategies_used

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "total_trades": self.total_trades,
            "successful_trades": self.successful_trades,
            "failed_trades": self.failed_trades,
            "symbols_traded": sorted(self._symbols_traded),
            "strategies_used": sorted(self._strategies_used),
            "last_trade_time": self.last_trade_time.isoformat() if self.last_trade_time else None,
        }

    def get_performance_summary(self) -> dict:
        """Success rate with counts of trades, symbols and strategies."""
        return {
            "success_rate": self.success_rate,
            "total_trades": self.total_trades,
            "symbols_traded": self.symbols_traded,
            "strategies_used": self.strategies_used,
            "last_trade_time": self.last_trade_time,
        }

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"RunMetrics(total={self.total_trades}, ok={self.successful_trades}, "
            f"failed={self.failed_trades})"
        )
