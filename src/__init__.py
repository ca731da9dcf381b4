"""
Earnings Calendar Spread Bot - Modular Architecture
===================================================

Gatekeeper filters decide which earnings tickers to trade and how large;
the order lifecycle monitor manages the resulting multi-leg orders.
"""

__version__ = "1.0.0"
__description__ = "Earnings calendar spread options bot"
