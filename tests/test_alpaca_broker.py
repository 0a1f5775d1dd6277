import asyncio
import json

import httpx
import pytest

from src.data.alpaca_broker import AlpacaBroker, AlpacaConfig
from src.data.broker import OptionType, OrderRequest, OrderSide
from src.utils.exceptions import (
    APIAuthenticationError,
    APIConnectionError,
    APIResponseError,
    ConfigurationError,
)

CONFIG = AlpacaConfig(api_key='key-id', api_secret='secret', retry_delay=0.0)


def run_with(handler, scenario, config=CONFIG):
    """Run ``scenario(broker)`` against a mock transport; returns (result, requests)."""
    requests = []

    def recording(request):
        requests.append(request)
        return handler(request)

    async def main():
        async with AlpacaBroker(config, transport=httpx.MockTransport(recording)) as broker:
            return await scenario(broker)

    return asyncio.run(main()), requests


def test_missing_credentials():
    with pytest.raises(ConfigurationError):
        AlpacaBroker(AlpacaConfig())


def test_account_parsed_and_headers_sent():
    def handler(request):
        return httpx.Response(200, json={
            'id': 'acct-1', 'status': 'ACTIVE', 'currency': 'USD',
            'cash': '1500.25', 'buying_power': '3000.5', 'portfolio_value': '1500.25',
            'trading_blocked': False,
        })

    account, requests = run_with(handler, lambda b: b.get_account())
    assert account.cash == 1500.25
    assert account.buying_power == 3000.5
    assert requests[0].url.path == '/v2/account'
    assert requests[0].headers['APCA-API-KEY-ID'] == 'key-id'
    assert requests[0].headers['APCA-API-SECRET-KEY'] == 'secret'


def test_quote_from_data_api():
    def handler(request):
        assert request.url.host == 'data.alpaca.markets'
        return httpx.Response(200, json={
            'symbol': 'AAPL',
            'quote': {'bp': 99.5, 'ap': 100.5, 'bs': 3, 'as': 4, 't': '2024-01-03T15:00:00.123456789Z'},
        })

    quote, requests = run_with(handler, lambda b: b.get_quote('AAPL'))
    assert quote.mid_price == 100.0
    assert quote.quoted_size == 7
    assert requests[0].url.path == '/v2/stocks/AAPL/quotes/latest'


def test_missing_position_is_none():
    def handler(request):
        return httpx.Response(404, json={'code': 40410000, 'message': 'position does not exist'})

    position, _ = run_with(handler, lambda b: b.get_position('AAPL'))
    assert position is None


def test_positions_parsed():
    def handler(request):
        return httpx.Response(200, json=[{'symbol': 'AAPL', 'qty': '5', 'side': 'long',
                                          'avg_entry_price': '101.2', 'market_value': '510',
                                          'unrealized_pl': '4'}])

    positions, _ = run_with(handler, lambda b: b.get_positions())
    assert positions[0].qty == 5.0
    assert positions[0].is_open


def test_authentication_failure_not_retried():
    result, requests = run_with(
        lambda request: httpx.Response(401, json={'message': 'unauthorized'}),
        lambda b: _expect(b.get_account(), APIAuthenticationError),
    )
    assert result
    assert len(requests) == 1


def test_server_error_not_retried():
    async def scenario(broker):
        with pytest.raises(APIResponseError) as info:
            await broker.get_account()
        return info.value

    error, requests = run_with(lambda r: httpx.Response(500, json={'message': 'boom'}), scenario)
    assert error.status_code == 500
    assert 'boom' in error.message
    assert len(requests) == 1


def test_connection_error_retried_then_raised():
    def handler(request):
        raise httpx.ConnectError('connection refused', request=request)

    result, requests = run_with(handler, lambda b: _expect(b.is_market_open(), APIConnectionError))
    assert result
    assert len(requests) == CONFIG.max_retries


def test_rate_limit_retried():
    responses = [httpx.Response(429, headers={'Retry-After': '0'}), httpx.Response(200, json={'is_open': True})]

    is_open, requests = run_with(lambda request: responses.pop(0), lambda b: b.is_market_open())
    assert is_open is True
    assert len(requests) == 2


def test_option_chain_pages_and_skips_malformed():
    pages = {
        None: {
            'option_contracts': [
                {'symbol': 'AAPL240119C00100000', 'underlying_symbol': 'AAPL', 'type': 'call',
                 'strike_price': '100', 'expiration_date': '2024-01-19', 'tradable': True,
                 'status': 'active', 'open_interest': '1234', 'close_price': '2.5'},
                {'symbol': 'BROKEN', 'type': 'straddle', 'strike_price': '1'},
            ],
            'next_page_token': 'page-2',
        },
        'page-2': {
            'option_contracts': [
                {'symbol': 'AAPL240119P00095000', 'underlying_symbol': 'AAPL', 'type': 'put',
                 'strike_price': '95', 'expiration_date': '2024-01-19', 'tradable': True,
                 'status': 'active', 'open_interest': None, 'close_price': None},
            ],
            'next_page_token': None,
        },
    }

    def handler(request):
        assert request.url.params['underlying_symbols'] == 'AAPL'
        return httpx.Response(200, json=pages[request.url.params.get('page_token')])

    chain, requests = run_with(handler, lambda b: b.get_option_chain('AAPL'))
    assert [c.symbol for c in chain] == ['AAPL240119C00100000', 'AAPL240119P00095000']
    assert chain[0].open_interest == 1234
    assert chain[0].close_price == 2.5
    assert chain[1].type == OptionType.PUT
    assert chain[1].open_interest == 0
    assert chain[1].close_price is None
    assert len(requests) == 2


def test_stock_order_payload():
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(200, json={'id': 'ord-1', **body, 'status': 'accepted'})

    request = OrderRequest(symbol='AAPL', qty=3, side=OrderSide.BUY)
    order, requests = run_with(handler, lambda b: b.create_order(request))
    assert order.id == 'ord-1'
    assert order.qty == 3
    assert json.loads(requests[0].content) == {
        'symbol': 'AAPL', 'qty': '3', 'side': 'buy', 'type': 'market', 'time_in_force': 'day',
    }


def test_option_order_payload():
    def handler(request):
        return httpx.Response(200, json={'id': 'ord-2', 'symbol': 'AAPL240119C00100000', 'qty': '1',
                                         'side': 'buy', 'type': 'market', 'time_in_force': 'day'})

    order, requests = run_with(handler, lambda b: b.create_option_order('AAPL240119C00100000', OrderSide.BUY))
    assert order.symbol == 'AAPL240119C00100000'
    assert json.loads(requests[0].content)['qty'] == '1'


def test_price_history_closes():
    def handler(request):
        assert request.url.params['timeframe'] == '1Day'
        return httpx.Response(200, json={'bars': [{'c': 100.0}, {'c': 101.5}, {'c': 102.0}]})

    closes, _ = run_with(handler, lambda b: b.get_price_history('AAPL', limit=2))
    assert closes == [101.5, 102.0]


def test_statistics_count_requests():
    async def scenario(broker):
        await broker.is_market_open()
        return broker.get_statistics()

    stats, _ = run_with(lambda r: httpx.Response(200, json={'is_open': False}), scenario)
    assert stats['request_count'] == 1
    assert stats['error_count'] == 0


async def _expect(awaitable, error_type):
    with pytest.raises(error_type):
        await awaitable
    return True
