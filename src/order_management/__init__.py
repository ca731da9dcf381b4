"""
Order Management Module - Multi-leg order construction and lifecycle

This module contains:
- Multi-leg order request building
- OrderLifecycleMonitor: time-phased re-pricing, cancellation and market conversion
"""

from .order_builder import build_mleg_order_request, parent_quantity
from .order_lifecycle_monitor import OrderLifecycleMonitor, OrderAction, classify_order_phase

__all__ = [
    'build_mleg_order_request',
    'parent_quantity',
    'OrderLifecycleMonitor',
    'OrderAction',
    'classify_order_phase',
]
