"""
Core Package for Options Trading Bot.

This package provides the core functionality for the trading bot including:
- Configuration and result models
- Clock abstraction
- Market hours and session calculations
- Interval scheduler
- Trading bot orchestration

Submodules are imported directly (``from src.core.scheduler import Scheduler``)
since the trading bot depends on the strategy and execution packages.
"""
