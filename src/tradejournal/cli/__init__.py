"""Tradejournal command line interface."""
