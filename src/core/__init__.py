"""
Core Module - Calendar, persistence and job responses

This module contains:
- MarketCalendar: Eastern-time dates, holidays, next trading day
- DecisionStore: SQLite persistence for scans and decisions
- Structured success / skipped / error responses
"""

from .market_calendar import MarketCalendar
from .decision_store import DecisionStore
from .responses import success_response, skipped_response, error_response, handle_error

__all__ = [
    'MarketCalendar',
    'DecisionStore',
    'success_response',
    'skipped_response',
    'error_response',
    'handle_error',
]
