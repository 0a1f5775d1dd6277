from datetime import datetime, timezone

import pytest

from src.core.clock import FixedClock
from src.core.models import MarketSnapshot
from src.data.broker import (
    Account,
    BrokerPort,
    OptionContract,
    Order,
    Position,
    Quote,
)

# Wednesday 2024-01-03 10:00 in New York.
WEDNESDAY_OPEN = datetime(2024, 1, 3, 15, 0, tzinfo=timezone.utc)


class FakeBroker(BrokerPort):
    """In-memory brokerage recording every call."""

    def __init__(self):
        self.positions = {}
        self.quotes = {}
        self.chains = {}
        self.histories = {}
        self.market_open = True
        self.errors = {}
        self.calls = []
        self.orders = []

    def _call(self, name, *args):
        self.calls.append((name, args))
        if name in self.errors:
            raise self.errors[name]

    def called(self, name):
        return [args for call, args in self.calls if call == name]

    async def get_account(self):
        self._call('get_account')
        return Account(id='acct-1', status='ACTIVE', cash=10000.0, buying_power=20000.0)

    async def get_positions(self):
        self._call('get_positions')
        return list(self.positions.values())

    async def get_position(self, symbol):
        self._call('get_position', symbol)
        return self.positions.get(symbol)

    async def get_quote(self, symbol):
        self._call('get_quote', symbol)
        return self.quotes.get(symbol) or Quote(
            symbol=symbol, bid_price=99.9, ask_price=100.1, bid_size=3, ask_size=2
        )

    async def create_order(self, request):
        self._call('create_order', request)
        order = Order(
            id=f'order-{len(self.orders) + 1}',
            symbol=request.symbol,
            qty=request.qty,
            side=request.side,
        )
        self.orders.append(order)
        return order

    async def get_option_chain(self, symbol):
        self._call('get_option_chain', symbol)
        return list(self.chains.get(symbol, []))

    async def create_option_order(self, contract_symbol, side, qty=1):
        self._call('create_option_order', contract_symbol, side, qty)
        order = Order(id=f'order-{len(self.orders) + 1}', symbol=contract_symbol, qty=qty, side=side)
        self.orders.append(order)
        return order

    async def is_market_open(self):
        self._call('is_market_open')
        return self.market_open

    async def get_price_history(self, symbol, limit=50):
        self._call('get_price_history', symbol, limit)
        return list(self.histories.get(symbol, []))[-limit:]


def make_contract(
    symbol='AAPL240119C00100000',
    strike=100.0,
    open_interest=500,
    option_type='call',
    underlying='AAPL',
    expiration=None,
    close_price=2.5,
    **kwargs
):
    return OptionContract(
        symbol=symbol,
        underlying_symbol=underlying,
        type=option_type,
        strike_price=strike,
        expiration_date=expiration,
        open_interest=open_interest,
        close_price=close_price,
        **kwargs
    )


def make_snapshot(symbol='AAPL', price=100.0, history=None, chain=None, position=None):
    return MarketSnapshot(
        symbol=symbol,
        current_price=price,
        quote=Quote(symbol=symbol, bid_price=price, ask_price=price),
        position=position,
        price_history=tuple(history) if history is not None else None,
        option_chain=tuple(chain) if chain is not None else None,
    )


def make_position(symbol='AAPL', qty=5.0):
    return Position(symbol=symbol, qty=qty, avg_entry_price=100.0)


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def clock():
    return FixedClock(WEDNESDAY_OPEN)
