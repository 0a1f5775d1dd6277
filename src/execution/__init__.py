"""
Execution Package for Options Trading Bot.

This package validates and submits stock and option orders.
"""
