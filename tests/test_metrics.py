from src.core.models import TradeOutcome
from src.data.broker import OrderSide
from src.monitoring.metrics import RunMetrics


def outcome(success=True, symbol='AAPL'):
    return TradeOutcome(
        success=success,
        symbol=symbol,
        action=OrderSide.BUY,
        price=1.0 if success else None,
    )


def test_record_counts_and_sets():
    metrics = RunMetrics()
    metrics.record(outcome(), ['RSI Strategy'])
    metrics.record(outcome(symbol='MSFT'), ['RSI Strategy', 'SMA Strategy'])
    metrics.record(outcome(success=False, symbol='TSLA'), ['Random Strategy'])

    assert metrics.total_trades == 3
    assert metrics.successful_trades == 2
    assert metrics.failed_trades == 1
    assert metrics.symbols_traded == 2
    assert metrics.strategies_used == 2
    assert not metrics.has_traded('TSLA')
    assert not metrics.has_used('Random Strategy')
    assert metrics.success_rate == 66.67
    assert metrics.last_trade_time is not None


def test_success_rate_without_trades():
    assert RunMetrics().success_rate == 0.0


def test_reset_zeroes_everything():
    metrics = RunMetrics()
    metrics.record(outcome(), ['RSI Strategy'])
    metrics.reset()

    assert metrics.get_performance_summary() == {
        'success_rate': 0.0,
        'total_trades': 0,
        'symbols_traded': 0,
        'strategies_used': 0,
        'last_trade_time': None,
    }
    assert metrics.to_dict()['symbols_traded'] == []
