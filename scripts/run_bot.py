import argparse
import asyncio
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from config.settings import get_settings
from config.logging_config import get_trade_logger, setup_logging
from src.core.trading_bot import TradingBot
from src.data.alpaca_broker import AlpacaBroker
from src.utils.exceptions import ConfigurationError, TradingBotException


logger = logging.getLogger("options_bot")


def build_parser():
    parser = argparse.ArgumentParser(description='Options Trading Bot')
    parser.add_argument('--once', action='store_true', help='run a single cycle and exit')
    parser.add_argument('--dry-run', action='store_true', help='never submit orders')
    parser.add_argument('--symbols', default=None, help='comma separated symbols')
    parser.add_argument(
        '--log-level',
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
    )
    return parser


def config_overrides(args):
    overrides = {}
    if args.dry_run:
        overrides['dry_run'] = True
    if args.symbols:
        overrides['symbols'] = [s.strip() for s in args.symbols.split(',') if s.strip()]
    return overrides


async def run(args, settings):
    bot_config = settings.to_bot_config().merged(config_overrides(args))
    broker = AlpacaBroker(settings.to_alpaca_config())
    bot = TradingBot(
        broker,
        bot_config=bot_config,
        schedule_config=settings.to_schedule_config(),
        trade_logger=get_trade_logger(),
    )
    try:
        if args.once:
            await bot.initialize()
            outcomes = await bot.run_cycle_once() or []
            succeeded = sum(1 for o in outcomes if o.success)
            print(f'trades: {len(outcomes)} succeeded: {succeeded}')
            return
        await bot.start()
        await asyncio.Event().wait()
    finally:
        if bot.is_running:
            await bot.stop()
        await broker.aclose()


def main(argv=None):
    args, _ = build_parser().parse_known_args(argv)
    settings = get_settings()
    logging_config = settings.to_logging_config()
    if args.log_level:
        logging_config = logging_config.model_copy(update={'level': args.log_level})
    setup_logging(logging_config)
    try:
        asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        logger.info('Interrupted, bot stopped')
    except ConfigurationError as e:
        logger.error(f'Configuration error: {e}')
        return 1
    except TradingBotException as e:
        logger.error(f'Bot failed: {e}')
        return 1
    return 0

if __name__ == '__main__':
    sys.exit(main())
