"""
tradejournal - Personal Trading Journal

Public API for recording trades, tracking lots and computing P&L.
"""

from importlib.metadata import version

try:
    __version__ = version("tradejournal")
except Exception:
    __version__ = "0.0.0.dev"  # Fallback for development


__all__ = [
    "__version__",
]
