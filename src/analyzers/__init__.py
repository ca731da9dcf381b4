"""
Analyzers Module - Option chain, statistics and earnings analysis

This module contains:
- OptionChainSelector: expiration and strike matching for calendar legs
- StatisticsEngine: historical volatility, earnings moves, straddle pricing
- EarningsScanner: AMC/BMO earnings ticker selection
"""

from .option_chain_selector import OptionChainSelector
from .statistics_engine import StatisticsEngine
from .earnings_scanner import EarningsScanner

__all__ = [
    'OptionChainSelector',
    'StatisticsEngine',
    'EarningsScanner',
]
