import asyncio
import logging

import pytest

from conftest import WEDNESDAY_OPEN, FakeBroker, make_position
from src.core.models import BotConfig, ScheduleConfig
from src.core.trading_bot import TradingBot
from src.strategies.base_strategy import SignalAction, StrategyConfig, StrategySignal
from src.strategies.strategy_manager import StrategyManager
from src.utils.exceptions import APIAuthenticationError, APIConnectionError, ConfigurationError


def fixed(action, confidence=0.9, quantity=3):
    def rule(snapshot, config):
        return StrategySignal(action=action, confidence=confidence, reason='fixed', quantity=quantity)
    return rule


def make_bot(broker, clock, action=SignalAction.BUY, **config):
    manager = StrategyManager(register_defaults=False)
    manager.add_strategy('rule', fixed(action), StrategyConfig(name='rule'))
    settings = {'symbols': ['AAPL', 'MSFT'], 'use_options': False, **config}
    return TradingBot(
        broker,
        clock,
        bot_config=BotConfig(**settings),
        schedule_config=ScheduleConfig(interval_ms=3_600_000),
        strategy_manager=manager,
    )


def initialized(bot):
    asyncio.run(bot.initialize())
    return bot


def test_cycle_requires_initialization(broker, clock):
    bot = make_bot(broker, clock)
    assert asyncio.run(bot.run_cycle_once()) is None
    assert broker.calls == []


def test_initialize_verifies_account(broker, clock):
    bot = initialized(make_bot(broker, clock))
    assert bot.is_initialized
    assert len(broker.called('get_account')) == 1

    asyncio.run(bot.initialize())
    assert len(broker.called('get_account')) == 1


def test_rejected_credentials_are_configuration_error(broker, clock):
    broker.errors['get_account'] = APIAuthenticationError('bad key')
    bot = make_bot(broker, clock)
    with pytest.raises(ConfigurationError):
        asyncio.run(bot.initialize())
    assert not bot.is_initialized


def test_cycle_trades_every_symbol(broker, clock):
    bot = initialized(make_bot(broker, clock))
    outcomes = asyncio.run(bot.run_cycle_once())

    assert [o.symbol for o in outcomes] == ['AAPL', 'MSFT']
    assert all(o.success for o in outcomes)
    assert [r.symbol for (r,) in broker.called('create_order')] == ['AAPL', 'MSFT']
    assert len(broker.called('get_positions')) == 1
    assert bot.metrics.total_trades == 2
    assert bot.metrics.has_used('rule')


def test_cycle_passes_held_position(broker, clock):
    broker.positions['AAPL'] = make_position('AAPL', qty=5)
    bot = initialized(make_bot(broker, clock, symbols=['AAPL']))
    (outcome,) = asyncio.run(bot.run_cycle_once())
    assert not outcome.success
    assert outcome.reason == 'Already have position in AAPL (5 shares)'
    assert bot.metrics.failed_trades == 1


def test_hold_decision_not_executed(broker, clock):
    bot = initialized(make_bot(broker, clock, action=SignalAction.HOLD))
    assert asyncio.run(bot.run_cycle_once()) == []
    assert broker.called('create_order') == []
    assert bot.metrics.total_trades == 0


def test_failing_symbol_is_skipped(clock):
    class FlakyBroker(FakeBroker):
        async def get_quote(self, symbol):
            if symbol == 'AAPL':
                raise APIConnectionError('quote timeout')
            return await super().get_quote(symbol)

    broker = FlakyBroker()
    bot = initialized(make_bot(broker, clock))
    outcomes = asyncio.run(bot.run_cycle_once())
    assert [o.symbol for o in outcomes] == ['MSFT']


def test_positions_failure_propagates(broker, clock):
    broker.errors['get_positions'] = APIConnectionError('positions down')
    bot = initialized(make_bot(broker, clock))
    with pytest.raises(APIConnectionError):
        asyncio.run(bot.run_cycle_once())

    del broker.errors['get_positions']
    assert asyncio.run(bot.run_cycle_once()) is not None


def test_overlapping_cycle_is_skipped(broker, clock):
    async def slow_rule(snapshot, config):
        await asyncio.sleep(0.01)
        return StrategySignal(action=SignalAction.HOLD, confidence=0.9)

    manager = StrategyManager(register_defaults=False)
    manager.add_strategy('slow', slow_rule)
    bot = TradingBot(broker, clock, bot_config=BotConfig(use_options=False), strategy_manager=manager)
    asyncio.run(bot.initialize())

    async def overlap():
        return await asyncio.gather(bot.run_cycle_once(), bot.run_cycle_once())

    first, second = asyncio.run(overlap())
    assert first == []
    assert second is None


def test_decision_logging_follows_config(broker, clock, caplog):
    caplog.set_level(logging.INFO)
    bot = initialized(make_bot(broker, clock, action=SignalAction.HOLD, symbols=['AAPL']))
    asyncio.run(bot.run_cycle_once())
    assert 'DECISION: HOLD AAPL' in caplog.text

    caplog.clear()
    bot.update_config({'enable_logging': False})
    asyncio.run(bot.run_cycle_once())
    assert 'DECISION:' not in caplog.text


def test_manual_buy_and_sell(broker, clock):
    bot = make_bot(broker, clock)
    outcome = asyncio.run(bot.buy('aapl', 2))
    assert outcome.success
    assert outcome.symbol == 'AAPL'
    assert outcome.strategy_name == 'manual'
    assert not bot.metrics.has_used('manual')
    assert bot.metrics.strategies_used == 0
    assert bot.metrics.has_traded('AAPL')
    assert bot.metrics.last_trade_time == WEDNESDAY_OPEN

    outcome = asyncio.run(bot.sell('AAPL', 10))
    assert not outcome.success
    assert outcome.reason == 'Insufficient shares to sell'
    assert bot.get_performance_summary()['success_rate'] == 50.0


def test_manual_trade_position_lookup_failure_propagates(broker, clock):
    broker.errors['get_position'] = APIConnectionError('down')
    with pytest.raises(APIConnectionError):
        asyncio.run(make_bot(broker, clock).buy('AAPL', 1))


def test_config_updates(broker, clock):
    bot = make_bot(broker, clock)
    updated = bot.update_config({'dry_run': True})
    assert updated.dry_run
    assert updated.symbols == ['AAPL', 'MSFT']
    assert bot.get_config().dry_run

    assert bot.update_schedule_config({'start_time': '10:00'}).start_time == '10:00'
    assert bot.update_strategy_config('rule', {'min_confidence': 0.95}).min_confidence == 0.95
    assert bot.list_strategies()[0]['name'] == 'rule'


def test_start_runs_first_cycle_and_stop(broker, clock):
    bot = make_bot(broker, clock)

    async def lifecycle():
        await bot.start()
        assert bot.is_running
        await bot.stop()

    asyncio.run(lifecycle())
    assert not bot.is_running
    assert len(broker.called('create_order')) == 2

    status = bot.get_status()
    assert status['total_runs'] == 1
    assert status['errors'] == 0
    assert status['metrics']['total_trades'] == 2
    assert status['schedule']['interval_ms'] == 3_600_000


def test_reset_metrics(broker, clock):
    bot = initialized(make_bot(broker, clock))
    asyncio.run(bot.run_cycle_once())
    bot.reset_metrics()
    assert bot.metrics.total_trades == 0
    assert bot.metrics.strategies_used == 0
