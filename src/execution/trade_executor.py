"""
Trade Executor Module for Options Trading Bot.

This module turns a buy or sell decision into a brokerage order. Buys are
routed to a single option contract when options trading is enabled; stock
orders are validated first; dry-run mode simulates without submitting.
Every path returns a TradeOutcome and no brokerage failure escapes.
"""

import logging
from datetime import timedelta
from typing import Optional

from config.logging_config import TradeLogger, get_trade_logger
from src.core.clock import Clock, SystemClock
from src.core.models import BotConfig, TradeOutcome
from src.data.broker import (
    BrokerPort,
    OptionContract,
    OrderRequest,
    OrderSide,
    OrderType,
    Position,
    TimeInForce,
)
from src.strategies.base_strategy import SignalAction, StrategySignal
from src.utils.exceptions import (
    ExternalServiceError,
    InsufficientSharesError,
    NoSuitableContractError,
    PositionExistsError,
    TradingBotException,
    ValidationError,
)


logger = logging.getLogger(__name__)

OPTION_CONTRACTS_PER_ORDER = 1


def validate_trade(
    symbol: str,
    side: OrderSide,
    quantity: Optional[float],
    position: Optional[Position],
) -> None:
    """
    Check a stock order before submission.

    Args:
        symbol: Trading symbol
        side: Buy or sell
        quantity: Requested quantity
        position: Current position, if any

    Raises:
        ValidationError: For a missing or non-positive quantity
        InsufficientSharesError: When selling more than is held
        PositionExistsError: When buying a symbol already held
    """
    if not quantity or quantity <= 0:
        raise ValidationError("Invalid quantity", details={"quantity": quantity})

    if side == OrderSide.SELL:
        if position is None or position.qty < quantity:
            raise InsufficientSharesError(
                "Insufficient shares to sell",
                details={"requested": quantity, "held": position.qty if position else 0},
            )

    if side == OrderSide.BUY and position is not None and position.is_open:
        raise PositionExistsError(
            f"Already have position in {symbol} ({position.qty:g} shares)"
        )


class TradeExecutor:
    """
    Trade execution pipeline.

    Failures are reported as unsuccessful outcomes whose ``reason`` is the
    human-readable rejection and whose ``error`` carries the error text.
    """

    def __init__(
        self,
        broker: BrokerPort,
        clock: Optional[Clock] = None,
        trade_logger: Optional[TradeLogger] = None,
    ) -> None:
        """
        Initialize TradeExecutor.

        Args:
            broker: Brokerage port
            clock: Time source for the option expiry horizon
            trade_logger: Trade event logger
        """
        self._broker = broker
        self._clock = clock or SystemClock()
        self._trade_logger = trade_logger or get_trade_logger()

    async def execute(
        self,
        symbol: str,
        decision: StrategySignal,
        position: Optional[Position],
        config: BotConfig,
    ) -> TradeOutcome:
        """
        Execute a buy or sell decision.

        Args:
            symbol: Underlying symbol
            decision: Non-hold decision
            position: Current position in the symbol, if any
            config: Bot configuration

        Returns:
            Trade outcome

        Raises:
            ValueError: If called with a hold decision
        """
        if decision.action == SignalAction.HOLD:
            raise ValueError("Hold decisions are not executable")

        side = OrderSide(decision.action.value)

        try:
            if config.use_options and side == OrderSide.BUY:
                return await self._execute_option_trade(symbol, decision, position, config)

            if config.dry_run:
                return self._simulate_stock_trade(symbol, side, decision)

            validate_trade(symbol, side, decision.quantity, position)

            order = await self._broker.create_order(
                OrderRequest(
                    symbol=symbol,
                    qty=decision.quantity,
                    side=side,
                    type=OrderType.MARKET,
                    time_in_force=TimeInForce.DAY,
                )
            )

            self._trade_logger.trade_executed(symbol, side.value, decision.quantity, None, order.id)

            return TradeOutcome(
                success=True,
                order_id=order.id,
                symbol=symbol,
                action=side,
                quantity=decision.quantity,
                price=None,
                price_pending=True,
                reason=decision.reason,
                strategy_name=decision.strategy_name,
                timestamp=self._clock.now(),
            )

        except (ValidationError, NoSuitableContractError) as e:
            self._trade_logger.trade_failed(symbol, side.value, e.message)
            return self._failure(symbol, side, decision, reason=e.message, error=str(e))

        except TradingBotException as e:
            self._trade_logger.trade_failed(symbol, side.value, e.message)
            return self._failure(symbol, side, decision, reason=decision.reason, error=e.message)

        except Exception as e:
            logger.error(f"Unexpected error executing {side.value} {symbol}: {e}")
            self._trade_logger.trade_failed(symbol, side.value, str(e))
            return self._failure(symbol, side, decision, reason=decision.reason, error=str(e))

    def _simulate_stock_trade(
        self,
        symbol: str,
        side: OrderSide,
        decision: StrategySignal,
    ) -> TradeOutcome:
        """Dry-run stock trade; nothing is submitted."""
        quantity = decision.quantity or 1
        logger.info(
            f"DRY RUN: Would {side.value} {quantity:g} shares of {symbol} "
            f"(strategy={decision.strategy_name}, reason={decision.reason})"
        )
        self._trade_logger.trade_executed(symbol, side.value, quantity, 0.0, dry_run=True)

        return TradeOutcome(
            success=True,
            symbol=symbol,
            action=side,
            quantity=quantity,
            price=0.0,
            reason=decision.reason,
            strategy_name=decision.strategy_name,
            timestamp=self._clock.now(),
        )

    async def _execute_option_trade(
        self,
        symbol: str,
        decision: StrategySignal,
        position: Optional[Position],
        config: BotConfig,
    ) -> TradeOutcome:
        """
        Buy one option contract on ``symbol``.

        The known position is checked before any network call, and the
        underlying position is checked again right before submission.
        """
        if position is not None and position.is_open:
            raise PositionExistsError(
                f"Already have position in {symbol} ({position.qty:g} shares)"
            )

        chain = await self._broker.get_option_chain(symbol)
        if not chain or not isinstance(chain, list):
            raise NoSuitableContractError("No options available for this symbol")

        expires_before = self._clock.now().date() + timedelta(days=config.expiration_days)
        contract = self._broker.find_best_contract(
            chain,
            config.option_type,
            max_strike=config.max_strike_price,
            min_open_interest=config.min_volume,
            expires_before=expires_before,
        )
        if contract is None:
            raise NoSuitableContractError(f"No suitable {config.option_type.value} options found")

        await self._ensure_no_underlying_position(symbol)

        if config.dry_run:
            return self._simulate_option_trade(symbol, contract, decision, config)

        price = contract.close_price or 0.0

        order = await self._broker.create_option_order(
            contract.symbol, OrderSide.BUY, OPTION_CONTRACTS_PER_ORDER
        )
        self._trade_logger.trade_executed(
            contract.symbol, OrderSide.BUY.value, OPTION_CONTRACTS_PER_ORDER, price, order.id
        )

        return TradeOutcome(
            success=True,
            order_id=order.id,
            symbol=symbol,
            contract_symbol=contract.symbol,
            action=OrderSide.BUY,
            quantity=OPTION_CONTRACTS_PER_ORDER,
            price=price,
            reason=decision.reason,
            strategy_name=decision.strategy_name,
            timestamp=self._clock.now(),
        )

    async def _ensure_no_underlying_position(self, symbol: str) -> None:
        """Reject when the underlying stock is held; lookup failures count as not held."""
        try:
            existing = await self._broker.get_position(symbol)
        except ExternalServiceError as e:
            logger.debug(f"No existing position found for underlying stock {symbol}: {e}")
            return

        if existing is not None and existing.is_open:
            raise PositionExistsError(
                f"Already have position in underlying stock {symbol} "
                f"({existing.qty:g} shares) - skipping options trade"
            )

    def _simulate_option_trade(
        self,
        symbol: str,
        contract: OptionContract,
        decision: StrategySignal,
        config: BotConfig,
    ) -> TradeOutcome:
        """Dry-run option trade priced at the contract's last close."""
        price = contract.close_price or 0.0
        logger.info(
            f"DRY RUN: Would buy {OPTION_CONTRACTS_PER_ORDER} {config.option_type.value} "
            f"option contract of {symbol}: {contract.symbol} strike={contract.strike_price} "
            f"expires={contract.expiration_date} close={price}"
        )
        self._trade_logger.trade_executed(
            contract.symbol, OrderSide.BUY.value, OPTION_CONTRACTS_PER_ORDER, price, dry_run=True
        )

        return TradeOutcome(
            success=True,
            symbol=symbol,
            contract_symbol=contract.symbol,
            action=OrderSide.BUY,
            quantity=OPTION_CONTRACTS_PER_ORDER,
            price=price,
            reason=decision.reason,
            strategy_name=decision.strategy_name,
            timestamp=self._clock.now(),
        )

    def _failure(
        self,
        symbol: str,
        side: OrderSide,
        decision: StrategySignal,
        reason: str,
        error: str,
    ) -> TradeOutcome:
        return TradeOutcome(
            success=False,
            symbol=symbol,
            action=side,
            quantity=decision.quantity or 0,
            reason=reason,
            strategy_name=decision.strategy_name,
            timestamp=self._clock.now(),
            error=error,
        )
