"""
Option contract models and OCC symbol helpers.

Alpaca option symbols look like ``AAPL250117C00150000``: underlying, expiration
as YYMMDD, C or P, then the strike times 1000 zero-padded to 8 digits.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Optional, Tuple

from src.utils.errors import InvalidSymbolError

OPTION_SYMBOL_PATTERN = re.compile(r'^(.+?)(\d{6})([CP])(\d+(?:\.\d+)?)$')


def parse_option_symbol(symbol: str) -> Tuple[str, date, str, float]:
    """
    Parse an option symbol into (underlying, expiration, option_type, strike).

    Raises:
        InvalidSymbolError: symbol does not match the format, the date is not a
            real calendar date, or the strike is not positive
    """
    if not symbol:
        raise InvalidSymbolError("Empty option symbol")

    match = OPTION_SYMBOL_PATTERN.match(symbol.strip())
    if not match:
        raise InvalidSymbolError(f"Unrecognized option symbol: {symbol}")

    underlying, date_part, option_type, strike_part = match.groups()

    try:
        expiration = datetime.strptime(date_part, '%y%m%d').date()
    except ValueError:
        raise InvalidSymbolError(f"Invalid expiration in option symbol: {symbol}")

    # Standard 8-digit tail is strike * 1000; anything else is a plain decimal
    if len(strike_part) == 8 and strike_part.isdigit():
        strike = int(strike_part) / 1000.0
    else:
        strike = float(strike_part)

    if strike <= 0:
        raise InvalidSymbolError(f"Non-positive strike in option symbol: {symbol}")

    return underlying, expiration, option_type, strike


def build_occ_symbol(underlying: str, expiration: date, option_type: str, strike: float) -> str:
    """Build an OCC option symbol from its parts"""
    return f"{underlying}{expiration:%y%m%d}{option_type}{int(round(strike * 1000)):08d}"


@dataclass
class OptionContract:
    """One option contract with its latest quote and greeks"""

    symbol: str
    underlying: str
    expiration: date
    option_type: str
    strike: float
    bid: float = 0.0
    ask: float = 0.0
    bid_size: int = 0
    ask_size: int = 0
    implied_volatility: Optional[float] = None
    delta: Optional[float] = None
    theta: Optional[float] = None
    gamma: Optional[float] = None
    vega: Optional[float] = None

    @property
    def mid(self) -> float:
        return (self.bid + self.ask) / 2

    @property
    def spread_pct(self) -> Optional[float]:
        """Bid/ask spread as a fraction of mid, None when mid is not positive"""
        mid = self.mid
        if mid <= 0:
            return None
        return (self.ask - self.bid) / mid

    @property
    def quote_depth(self) -> int:
        return self.bid_size + self.ask_size

    @classmethod
    def from_snapshot(cls, symbol: str, snapshot: Dict) -> 'OptionContract':
        """
        Build a contract from an Alpaca option snapshot entry.

        Raises:
            InvalidSymbolError: symbol cannot be parsed
        """
        underlying, expiration, option_type, strike = parse_option_symbol(symbol)

        quote = snapshot.get('latestQuote') or {}
        greeks = snapshot.get('greeks') or {}

        return cls(
            symbol=symbol,
            underlying=underlying,
            expiration=expiration,
            option_type=option_type,
            strike=strike,
            bid=float(quote.get('bp') or 0.0),
            ask=float(quote.get('ap') or 0.0),
            bid_size=int(quote.get('bs') or 0),
            ask_size=int(quote.get('as') or 0),
            implied_volatility=_optional_float(snapshot.get('impliedVolatility')),
            delta=_optional_float(greeks.get('delta')),
            theta=_optional_float(greeks.get('theta')),
            gamma=_optional_float(greeks.get('gamma')),
            vega=_optional_float(greeks.get('vega')),
        )


@dataclass
class OptionQuote:
    """Latest quote for one option symbol"""

    symbol: str
    bid: float = 0.0
    ask: float = 0.0
    bid_size: int = 0
    ask_size: int = 0

    @classmethod
    def from_alpaca(cls, symbol: str, quote: Dict) -> 'OptionQuote':
        return cls(
            symbol=symbol,
            bid=float(quote.get('bp') or 0.0),
            ask=float(quote.get('ap') or 0.0),
            bid_size=int(quote.get('bs') or 0),
            ask_size=int(quote.get('as') or 0),
        )


# symbol -> contract, for one underlying / expiration window / option type
OptionChain = Dict[str, OptionContract]


def _optional_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
