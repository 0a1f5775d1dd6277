"""
Market Data Module for Options Trading Bot.

This module assembles the per-symbol market snapshot evaluated by the
strategies: latest quote, current position, recent closing prices and,
when options trading is enabled, the option chain.
"""

import logging
from typing import Optional

from src.core.clock import Clock, SystemClock
from src.core.models import BotConfig, MarketSnapshot
from src.data.broker import BrokerPort, OptionContract, Position


logger = logging.getLogger(__name__)


class MarketDataAssembler:
    """
    Builds immutable market snapshots from the brokerage.

    A quote failure propagates so the caller can skip the symbol. Option
    chain and price history failures are downgraded to an empty chain and
    to no history respectively.
    """

    def __init__(self, broker: BrokerPort, clock: Optional[Clock] = None) -> None:
        """
        Initialize MarketDataAssembler.

        Args:
            broker: Brokerage port
            clock: Time source for snapshot timestamps
        """
        self._broker = broker
        self._clock = clock or SystemClock()

    async def build_snapshot(
        self,
        symbol: str,
        position: Optional[Position],
        config: BotConfig,
    ) -> MarketSnapshot:
        """
        Build the snapshot for one symbol.

        Args:
            symbol: Trading symbol
            position: Current position, if any
            config: Bot configuration

        Returns:
            Market snapshot

        Raises:
            ExternalServiceError: If the quote cannot be fetched
        """
        quote = await self._broker.get_quote(symbol)

        chain: Optional[tuple[OptionContract, ...]] = None
        if config.use_options:
            chain = await self._fetch_chain(symbol)

        history = await self._fetch_history(symbol, config.history_limit)

        return MarketSnapshot(
            symbol=symbol,
            current_price=quote.mid_price,
            volume=quote.quoted_size,
            timestamp=self._clock.now(),
            quote=quote,
            position=position,
            price_history=history,
            option_chain=chain,
        )

    async def _fetch_chain(self, symbol: str) -> tuple[OptionContract, ...]:
        """Option chain, or an empty chain on any failure."""
        try:
            chain = await self._broker.get_option_chain(symbol)
        except Exception as e:
            logger.warning(f"Failed to get options chain for {symbol}: {e}")
            return ()

        if not isinstance(chain, (list, tuple)) or not all(
            isinstance(contract, OptionContract) for contract in chain
        ):
            logger.warning(f"Invalid options chain response for {symbol}: {type(chain).__name__}")
            return ()

        logger.debug(f"Retrieved options chain for {symbol}: count={len(chain)}")
        return tuple(chain)

    async def _fetch_history(self, symbol: str, limit: int) -> Optional[tuple[float, ...]]:
        """Recent closing prices, or None when unavailable."""
        if limit <= 0:
            return None

        try:
            prices = await self._broker.get_price_history(symbol, limit)
        except Exception as e:
            logger.warning(f"Failed to get price history for {symbol}: {e}")
            return None

        return tuple(float(p) for p in prices) if prices else None
