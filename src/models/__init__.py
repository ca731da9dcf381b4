"""
Models Module - Typed records shared across the bot

This module contains:
- Option contracts, quotes and OCC symbol parsing
- Historical bars and earnings records
- Gatekeeper results and trade decisions
- Open multi-leg order snapshots
"""

from .options import OptionContract, OptionQuote, OptionChain, parse_option_symbol, build_occ_symbol
from .market_data import HistoricalBar, EarningsRecord, EarningsEvent
from .decisions import FilterResult, TradeDecision
from .orders import OpenOrder, OrderLeg, TradeType

__all__ = [
    'OptionContract',
    'OptionQuote',
    'OptionChain',
    'parse_option_symbol',
    'build_occ_symbol',
    'HistoricalBar',
    'EarningsRecord',
    'EarningsEvent',
    'FilterResult',
    'TradeDecision',
    'OpenOrder',
    'OrderLeg',
    'TradeType',
]
