"""
Gatekeeper outcomes and per-ticker trade decisions.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass(frozen=True)
class FilterResult:
    name: str
    passed: bool
    score: Optional[int] = None


@dataclass
class TradeDecision:
    """
    Outcome of running one ticker through the gatekeepers.

    Only position_size_percentage changes after creation, when the batch is
    scaled down to the daily allocation cap.
    """

    ticker: str
    approved: bool
    reason: str
    position_size_percentage: float = 0.0
    filter_results: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'ticker': self.ticker,
            'approved': self.approved,
            'reason': self.reason,
            'position_size_percentage': self.position_size_percentage,
            'filter_results': dict(self.filter_results),
        }
