"""Monitoring Package for Options Trading Bot."""
