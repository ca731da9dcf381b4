"""
Risk Management Module - Capital checks

This module contains:
- Buying power / equity guard applied before any order resubmission
"""

from .equity_validator import PortfolioEquityValidator, has_sufficient_equity

__all__ = [
    'PortfolioEquityValidator',
    'has_sufficient_equity',
]
