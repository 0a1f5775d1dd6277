"""
Data Package for Options Trading Bot.

This package provides the brokerage port and its data types, option chain
selection, market snapshot assembly and the Alpaca adapter.
"""
