"""
Options Trading Bot.

Scheduled, strategy-driven stock and options trading against a
brokerage port.
"""
