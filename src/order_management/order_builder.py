"""
Multi-leg order request construction for alpaca-py.
"""

from typing import Iterable, List, Optional

from alpaca.trading.enums import OrderClass, OrderSide, PositionIntent, TimeInForce
from alpaca.trading.requests import LimitOrderRequest, MarketOrderRequest, OptionLegRequest

from src.models.orders import OrderLeg


def parent_quantity(leg_quantities: Iterable[float]) -> int:
    """
    Parent quantity of a 1:1 calendar spread: the smallest leg quantity.

    Raises:
        ValueError: no legs, or the smallest quantity is not positive
    """
    quantities = [abs(float(q)) for q in leg_quantities]
    if not quantities:
        raise ValueError("Cannot size a multi-leg order without legs")
    qty = int(min(quantities))
    if qty <= 0:
        raise ValueError(f"Invalid parent quantity {qty} from legs {quantities}")
    return qty


def build_option_legs(legs: List[OrderLeg]) -> List[OptionLegRequest]:
    """Legs are carried over as-is: symbol, side, ratio and position intent"""
    option_legs = []
    for leg in legs:
        option_legs.append(OptionLegRequest(
            symbol=leg.symbol,
            ratio_qty=leg.ratio_qty or 1,
            side=OrderSide(leg.side),
            position_intent=PositionIntent(leg.position_intent) if leg.position_intent else None,
        ))
    return option_legs


def build_mleg_order_request(legs: List[OrderLeg], qty: int, limit_price: Optional[float] = None):
    """Limit order when a price is given, otherwise a market order; always DAY"""
    option_legs = build_option_legs(legs)

    if limit_price is None:
        return MarketOrderRequest(
            qty=qty,
            order_class=OrderClass.MLEG,
            time_in_force=TimeInForce.DAY,
            legs=option_legs,
        )

    return LimitOrderRequest(
        qty=qty,
        order_class=OrderClass.MLEG,
        time_in_force=TimeInForce.DAY,
        legs=option_legs,
        limit_price=round(limit_price, 2),
    )
