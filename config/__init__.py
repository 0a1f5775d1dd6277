"""
Configuration Package for Options Trading Bot.

Settings are loaded from the environment by ``config.settings``; logging is
installed by ``config.logging_config``.
"""
