"""
Open multi-leg order snapshot as read from the trading API.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from src.models.options import parse_option_symbol
from src.utils.errors import InvalidSymbolError


class TradeType(Enum):
    """Calendar spread order direction"""
    ENTRY = "entry"  # buying the far leg opens the spread
    EXIT = "exit"    # selling the far leg closes it


def _enum_value(value) -> Optional[str]:
    """Alpaca enums and plain strings both normalise to the lower-case value"""
    if value is None:
        return None
    return str(getattr(value, 'value', value)).lower()


def _to_float(value, default: float = 0.0) -> float:
    if value is None or value == '':
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


@dataclass
class OrderLeg:
    symbol: str
    side: str
    qty: float = 0.0
    ratio_qty: float = 1.0
    position_intent: Optional[str] = None

    @property
    def expiration(self):
        return parse_option_symbol(self.symbol)[1]

    @classmethod
    def from_alpaca(cls, leg) -> 'OrderLeg':
        return cls(
            symbol=leg.symbol,
            side=_enum_value(leg.side),
            qty=_to_float(getattr(leg, 'qty', None)),
            ratio_qty=_to_float(getattr(leg, 'ratio_qty', None), 1.0),
            position_intent=_enum_value(getattr(leg, 'position_intent', None)),
        )


@dataclass
class OpenOrder:
    """
    Open order with its legs. Read fresh on every monitor run, never cached.
    """

    order_id: str
    symbol: Optional[str]
    order_class: Optional[str]
    submitted_at: Optional[datetime]
    limit_price: Optional[float]
    qty: float
    legs: List[OrderLeg] = field(default_factory=list)
    status: Optional[str] = None

    @property
    def is_multi_leg(self) -> bool:
        return self.order_class == 'mleg'

    def _legs_by_expiration(self) -> List[OrderLeg]:
        """Legs sorted near to far; raises InvalidSymbolError on a bad leg symbol"""
        return sorted(self.legs, key=lambda leg: (leg.expiration, leg.symbol))

    @property
    def near_leg(self) -> Optional[OrderLeg]:
        if len(self.legs) < 2:
            return None
        return self._legs_by_expiration()[0]

    @property
    def far_leg(self) -> Optional[OrderLeg]:
        if len(self.legs) < 2:
            return None
        return self._legs_by_expiration()[-1]

    def trade_type(self) -> Optional[TradeType]:
        """Entry when the far leg is bought, exit when it is sold, None if unknown"""
        try:
            far = self.far_leg
        except InvalidSymbolError:
            return None
        if far is None:
            return None
        if far.side == 'buy':
            return TradeType.ENTRY
        if far.side == 'sell':
            return TradeType.EXIT
        return None

    @classmethod
    def from_alpaca(cls, order) -> 'OpenOrder':
        limit_price = getattr(order, 'limit_price', None)
        return cls(
            order_id=str(order.id),
            symbol=getattr(order, 'symbol', None),
            order_class=_enum_value(getattr(order, 'order_class', None)),
            submitted_at=getattr(order, 'submitted_at', None),
            limit_price=_to_float(limit_price) if limit_price is not None else None,
            qty=_to_float(getattr(order, 'qty', None)),
            legs=[OrderLeg.from_alpaca(leg) for leg in (getattr(order, 'legs', None) or [])],
            status=_enum_value(getattr(order, 'status', None)),
        )
