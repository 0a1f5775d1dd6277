import asyncio

import pytest

from src.utils.decorators import async_retry
from src.utils.exceptions import (
    APIRateLimitError,
    APIResponseError,
    ErrorCode,
    InsufficientSharesError,
    ValidationError,
)
from src.utils.helpers import merge_one_level, to_float, to_int


def test_exception_formatting():
    error = InsufficientSharesError(details={'requested': 10})
    assert isinstance(error, ValidationError)
    assert error.message == 'Insufficient shares to sell'
    assert str(error).startswith('[INSUFFICIENT_SHARES:3011] Insufficient shares to sell')
    assert error.to_dict()['error_code'] == ErrorCode.INSUFFICIENT_SHARES.value


def test_api_error_details():
    assert APIResponseError('bad', status_code=502).details == {'status_code': 502}
    assert APIRateLimitError(retry_after=2.0).retry_after == 2.0


def test_merge_one_level():
    base = {'enabled': True, 'parameters': {'period': 14, 'nested': {'a': 1}}}
    merged = merge_one_level(base, {'parameters': {'period': 7, 'nested': {'b': 2}}})
    assert merged == {'enabled': True, 'parameters': {'period': 7, 'nested': {'b': 2}}}
    assert base['parameters']['period'] == 14


def test_conversions():
    assert to_float('1.5') == 1.5
    assert to_float(None) == 0.0
    assert to_int('12.0') == 12
    assert to_int('abc', default=-1) == -1


def test_async_retry_until_success():
    attempts = []

    @async_retry(max_attempts=3, delay=0, exceptions=(ConnectionError,))
    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError('again')
        return 'ok'

    assert asyncio.run(flaky()) == 'ok'
    assert len(attempts) == 3


def test_async_retry_reraises_last_error():
    retried = []

    @async_retry(max_attempts=2, delay=0, exceptions=(ConnectionError,), on_retry=lambda e, n: retried.append(n))
    async def down():
        raise ConnectionError('still down')

    with pytest.raises(ConnectionError):
        asyncio.run(down())
    assert retried == [1]


def test_async_retry_ignores_other_errors():
    attempts = []

    @async_retry(max_attempts=3, delay=0, exceptions=(ConnectionError,))
    async def broken():
        attempts.append(1)
        raise ValueError('no retry')

    with pytest.raises(ValueError):
        asyncio.run(broken())
    assert attempts == [1]


def test_async_retry_reads_instance_overrides():
    class Client:
        retry_attempts = 5
        retry_delay = 0.0

        def __init__(self):
            self.calls = 0

        @async_retry(max_attempts=2, delay=10, exceptions=(ConnectionError,))
        async def fetch(self):
            self.calls += 1
            raise ConnectionError('down')

    client = Client()
    with pytest.raises(ConnectionError):
        asyncio.run(client.fetch())
    assert client.calls == 5
