"""
Filters Module - Gatekeeper filters and the evaluation pipeline

This module contains:
- Mandatory gatekeepers: liquidity, IV ratio, term structure, execution spread
- Optional scoring filters: volatility crush, earnings stability
- GatekeeperPipeline: per-ticker evaluation, batch concurrency and sizing
"""

from .base_filter import BaseFilter
from .liquidity_filter import LiquidityFilter
from .iv_ratio_filter import IVRatioFilter
from .term_structure_filter import TermStructureFilter
from .execution_spread_filter import ExecutionSpreadFilter
from .volatility_crush_filter import VolatilityCrushFilter
from .earnings_stability_filter import EarningsStabilityFilter
from .gatekeeper_pipeline import GatekeeperPipeline

__all__ = [
    'BaseFilter',
    'LiquidityFilter',
    'IVRatioFilter',
    'TermStructureFilter',
    'ExecutionSpreadFilter',
    'VolatilityCrushFilter',
    'EarningsStabilityFilter',
    'GatekeeperPipeline',
]
