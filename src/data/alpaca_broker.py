"""
Alpaca Broker Module for Options Trading Bot.

This module implements the brokerage port over the Alpaca trading and
market data REST APIs using httpx.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from src.data.broker import (
    Account,
    BrokerPort,
    OptionContract,
    Order,
    OrderRequest,
    OrderSide,
    OrderType,
    Position,
    Quote,
    TimeInForce,
)
from src.utils.decorators import async_retry
from src.utils.exceptions import (
    APIAuthenticationError,
    APIConnectionError,
    APIRateLimitError,
    APIResponseError,
    ConfigurationError,
)
from src.utils.helpers import to_float, to_int


logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (APIConnectionError, APIRateLimitError)


class AlpacaConfig(BaseModel):
    """Configuration for the Alpaca broker."""

    api_key: str = Field(default="", description="Alpaca API key")
    api_secret: str = Field(default="", description="Alpaca API secret")
    base_url: str = Field(
        default="https://paper-api.alpaca.markets",
        description="Alpaca trading API URL"
    )
    data_url: str = Field(
        default="https://data.alpaca.markets",
        description="Alpaca data API URL"
    )
    max_retries: int = Field(default=3, ge=1, description="Maximum attempts per request")
    retry_delay: float = Field(default=1.0, ge=0.0, description="Initial retry delay seconds")
    timeout_seconds: float = Field(default=30.0, description="Request timeout")
    chain_page_limit: int = Field(default=1000, ge=1, le=10000, description="Contracts per page")
    max_chain_pages: int = Field(default=5, ge=1, description="Maximum chain pages to follow")


class AlpacaBroker(BrokerPort):
    """
    Brokerage port backed by Alpaca.

    Connection failures and rate limits are retried; authentication and
    other HTTP errors are raised immediately.
    """

    def __init__(
        self,
        config: AlpacaConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize AlpacaBroker.

        Args:
            config: Alpaca configuration
            transport: Optional httpx transport, used by tests

        Raises:
            ConfigurationError: If credentials are missing
        """
        if not config.api_key or not config.api_secret:
            raise ConfigurationError("Alpaca API credentials not found in environment variables")

        self._config = config
        self.retry_attempts = config.max_retries
        self.retry_delay = config.retry_delay

        headers = {
            "APCA-API-KEY-ID": config.api_key,
            "APCA-API-SECRET-KEY": config.api_secret,
            "Content-Type": "application/json",
        }

        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            timeout=config.timeout_seconds,
            transport=transport,
        )
        self._data_client = httpx.AsyncClient(
            base_url=config.data_url,
            headers=headers,
            timeout=config.timeout_seconds,
            transport=transport,
        )

        self._request_count = 0
        self._error_count = 0

        logger.info(f"Alpaca broker initialized: base_url={config.base_url}")

    async def aclose(self) -> None:
        """Close the HTTP clients."""
        await self._client.aclose()
        await self._data_client.aclose()
        logger.info("Disconnected from Alpaca API")

    async def __aenter__(self) -> "AlpacaBroker":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    @async_retry(max_attempts=3, delay=1.0, exceptions=RETRYABLE_ERRORS)
    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> Any:
        """
        Send a request and decode the JSON body.

        Args:
            client: Trading or data client
            method: HTTP method
            path: Request path
            **kwargs: Passed to ``httpx.AsyncClient.request``

        Returns:
            Decoded JSON body

        Raises:
            APIConnectionError: On timeouts and transport failures
            APIAuthenticationError: On 401 and 403
            APIRateLimitError: On 429
            APIResponseError: On any other error status or an undecodable body
        """
        self._request_count += 1
        logger.debug(f"Alpaca API Request: {method} {path}")

        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            self._error_count += 1
            raise APIConnectionError(f"Alpaca API timeout: {method} {path}", cause=e) from e
        except httpx.RequestError as e:
            self._error_count += 1
            raise APIConnectionError(f"Alpaca API connection error: {e}", cause=e) from e

        logger.debug(f"Alpaca API Response: {response.status_code} {path}")

        if response.status_code in (401, 403):
            self._error_count += 1
            raise APIAuthenticationError(
                f"Alpaca rejected credentials ({response.status_code}) for {path}"
            )

        if response.status_code == 429:
            self._error_count += 1
            retry_after = response.headers.get("Retry-After")
            raise APIRateLimitError(
                "Alpaca API rate limit exceeded",
                retry_after=to_float(retry_after) if retry_after else None,
            )

        if response.status_code >= 400:
            self._error_count += 1
            raise APIResponseError(
                f"Alpaca API error on {method} {path}: {self._error_message(response)}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            self._error_count += 1
            raise APIResponseError(f"Invalid JSON from Alpaca for {path}", cause=e) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return str(body)[:200]

    # =========================================================================
    # ACCOUNT AND POSITIONS
    # =========================================================================

    async def get_account(self) -> Account:
        data = await self._request(self._client, "GET", "/v2/account")
        logger.info("Account information retrieved successfully")
        return Account(
            id=str(data.get("id", "")),
            status=str(data.get("status", "")),
            currency=str(data.get("currency", "USD")),
            cash=to_float(data.get("cash")),
            buying_power=to_float(data.get("buying_power")),
            portfolio_value=to_float(data.get("portfolio_value")),
            trading_blocked=bool(data.get("trading_blocked", False)),
        )

    async def get_positions(self) -> list[Position]:
        data = await self._request(self._client, "GET", "/v2/positions")
        if not isinstance(data, list):
            raise APIResponseError("Unexpected positions response from Alpaca")
        positions = [self._parse_position(item) for item in data]
        logger.info(f"Retrieved {len(positions)} positions")
        return positions

    async def get_position(self, symbol: str) -> Optional[Position]:
        try:
            data = await self._request(self._client, "GET", f"/v2/positions/{symbol}")
        except APIResponseError as e:
            if e.status_code == 404:
                logger.debug(f"No position found for {symbol}")
                return None
            raise
        return self._parse_position(data)

    @staticmethod
    def _parse_position(data: dict) -> Position:
        return Position(
            symbol=str(data.get("symbol", "")),
            qty=to_float(data.get("qty")),
            side=str(data.get("side", "long")),
            avg_entry_price=to_float(data.get("avg_entry_price")),
            market_value=to_float(data.get("market_value")),
            unrealized_pl=to_float(data.get("unrealized_pl")),
        )

    # =========================================================================
    # MARKET DATA
    # =========================================================================

    async def get_quote(self, symbol: str) -> Quote:
        data = await self._request(
            self._data_client, "GET", f"/v2/stocks/{symbol}/quotes/latest"
        )
        quote = data.get("quote") if isinstance(data, dict) else None
        if not isinstance(quote, dict):
            raise APIResponseError(f"No quote in Alpaca response for {symbol}")

        return Quote(
            symbol=symbol,
            bid_price=to_float(quote.get("bp")),
            bid_size=to_int(quote.get("bs")),
            ask_price=to_float(quote.get("ap")),
            ask_size=to_int(quote.get("as")),
        )

    async def get_price_history(self, symbol: str, limit: int = 50) -> list[float]:
        # Calendar days back far enough to cover ``limit`` sessions.
        start = datetime.now(timezone.utc) - timedelta(days=limit * 2 + 10)
        data = await self._request(
            self._data_client,
            "GET",
            f"/v2/stocks/{symbol}/bars",
            params={
                "timeframe": "1Day",
                "start": start.date().isoformat(),
                "limit": min(limit * 2 + 10, 10000),
                "adjustment": "all",
            },
        )
        bars = (data.get("bars") or []) if isinstance(data, dict) else []
        closes = [to_float(bar.get("c")) for bar in bars if isinstance(bar, dict)]
        return [c for c in closes if c > 0][-limit:]

    async def get_option_chain(self, symbol: str) -> list[OptionContract]:
        contracts: list[OptionContract] = []
        page_token: Optional[str] = None

        for _ in range(self._config.max_chain_pages):
            params: dict[str, Any] = {
                "underlying_symbols": symbol,
                "limit": self._config.chain_page_limit,
            }
            if page_token:
                params["page_token"] = page_token

            data = await self._request(self._client, "GET", "/v2/options/contracts", params=params)
            if not isinstance(data, dict) or not isinstance(data.get("option_contracts"), list):
                raise APIResponseError(f"Invalid options chain response for {symbol}")

            for item in data["option_contracts"]:
                contract = self._parse_contract(item)
                if contract is not None:
                    contracts.append(contract)

            page_token = data.get("next_page_token")
            if not page_token:
                break

        logger.info(f"Retrieved options chain for {symbol}: count={len(contracts)}")
        return contracts

    @staticmethod
    def _parse_contract(item: Any) -> Optional[OptionContract]:
        """Parse one chain entry, skipping malformed ones."""
        if not isinstance(item, dict):
            return None
        try:
            close_price = item.get("close_price")
            return OptionContract(
                symbol=item["symbol"],
                underlying_symbol=item.get("underlying_symbol", ""),
                type=item["type"],
                strike_price=to_float(item["strike_price"]),
                expiration_date=item.get("expiration_date") or None,
                tradable=bool(item.get("tradable", False)),
                status=str(item.get("status", "")),
                open_interest=to_int(item.get("open_interest")),
                close_price=to_float(close_price) if close_price is not None else None,
            )
        except (KeyError, PydanticValidationError) as e:
            logger.debug(f"Skipping malformed option contract {item.get('symbol')}: {e}")
            return None

    async def is_market_open(self) -> bool:
        data = await self._request(self._client, "GET", "/v2/clock")
        if not isinstance(data, dict) or "is_open" not in data:
            raise APIResponseError("Invalid clock response from Alpaca")
        return bool(data["is_open"])

    # =========================================================================
    # ORDERS
    # =========================================================================

    async def create_order(self, request: OrderRequest) -> Order:
        payload = {
            "symbol": request.symbol,
            "qty": f"{request.qty:g}",
            "side": request.side.value,
            "type": request.type.value,
            "time_in_force": request.time_in_force.value,
        }
        data = await self._request(self._client, "POST", "/v2/orders", json=payload)
        order = self._parse_order(data, request.symbol, request.side)
        logger.info(
            f"Order created successfully: id={order.id} symbol={request.symbol} "
            f"side={request.side.value} type={request.type.value}"
        )
        return order

    async def create_option_order(
        self,
        contract_symbol: str,
        side: OrderSide,
        qty: int = 1,
    ) -> Order:
        payload = {
            "symbol": contract_symbol,
            "qty": str(qty),
            "side": side.value,
            "type": OrderType.MARKET.value,
            "time_in_force": TimeInForce.DAY.value,
        }
        data = await self._request(self._client, "POST", "/v2/orders", json=payload)
        order = self._parse_order(data, contract_symbol, side)
        logger.info(
            f"Options order created successfully: id={order.id} symbol={contract_symbol} "
            f"side={side.value} qty={qty}"
        )
        return order

    @staticmethod
    def _parse_order(data: Any, symbol: str, side: OrderSide) -> Order:
        if not isinstance(data, dict) or not data.get("id"):
            raise APIResponseError(f"Order response for {symbol} has no id")
        return Order(
            id=str(data["id"]),
            symbol=str(data.get("symbol", symbol)),
            qty=to_float(data.get("qty")),
            side=data.get("side", side.value),
            type=data.get("type", OrderType.MARKET.value),
            time_in_force=data.get("time_in_force", TimeInForce.DAY.value),
            status=str(data.get("status", "new")),
        )

    def get_statistics(self) -> dict:
        """Get request statistics."""
        return {
            "request_count": self._request_count,
            "error_count": self._error_count,
            "base_url": self._config.base_url,
        }

    def __repr__(self) -> str:
        """String representation."""
        return f"AlpacaBroker(base_url={self._config.base_url})"
