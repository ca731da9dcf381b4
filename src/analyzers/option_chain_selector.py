"""
Option Chain Selector - expiration and strike matching for calendar spreads

Picks the short-leg expiration (nearest after a reference date), the long-leg
expiration (closest to a target day offset) and the strike both legs share.
All choices are deterministic: on ties the earlier expiration wins, then the
lower strike. Strikes are compared with a one-cent tolerance.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Set, Tuple, Union

from src.models.options import OptionChain, OptionContract

STRIKE_TOLERANCE = 0.01

STRICT = 'strict'
UNION = 'union'


def _to_date(value: Union[str, date]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except (TypeError, ValueError):
        return None


def clean_expirations(expirations: Iterable[Union[str, date]]) -> List[date]:
    """Parse, de-duplicate and sort expirations; unparsable entries are dropped"""
    parsed = set()
    for value in expirations:
        exp = _to_date(value)
        if exp is None:
            logging.debug(f"[SELECTOR] Dropping unparsable expiration: {value!r}")
            continue
        parsed.add(exp)
    return sorted(parsed)


def _strike_set(chain: OptionChain) -> Set[float]:
    return {round(contract.strike, 2) for contract in chain.values()}


def _ordered(chain: OptionChain) -> List[OptionContract]:
    return sorted(chain.values(), key=lambda c: (c.expiration, c.strike, c.symbol))


class OptionChainSelector:
    """Expiration / strike selection over option chains"""

    def __init__(self, strike_fallback_mode: str = STRICT, atm_threshold: float = 0.02):
        if strike_fallback_mode not in (STRICT, UNION):
            raise ValueError(f"Unknown strike fallback mode: {strike_fallback_mode}")
        self.strike_fallback_mode = strike_fallback_mode
        self.atm_threshold = atm_threshold

    # =========================================================================
    # EXPIRATIONS
    # =========================================================================

    @staticmethod
    def expirations(chain: OptionChain) -> List[date]:
        return sorted({contract.expiration for contract in chain.values()})

    @staticmethod
    def find_short_leg_expiration(expirations: Iterable[Union[str, date]], today: date) -> Optional[date]:
        """Earliest expiration strictly after today"""
        for exp in clean_expirations(expirations):
            if exp > today:
                return exp
        return None

    @staticmethod
    def find_long_leg_expiration(expirations: Iterable[Union[str, date]], today: date,
                                 short_expiration: date, target_days: int) -> Optional[date]:
        """Expiration after the short leg closest to today + target_days (earlier on ties)"""
        target = today + timedelta(days=target_days)
        candidates = [exp for exp in clean_expirations(expirations) if exp > short_expiration]
        if not candidates:
            return None
        # sorted ascending, so min() keeps the earlier date on equal distance
        return min(candidates, key=lambda exp: abs((exp - target).days))

    # =========================================================================
    # STRIKES
    # =========================================================================

    def find_best_common_strike(self, chain_a: OptionChain, chain_b: OptionChain,
                                current_price: float, mode: Optional[str] = None) -> float:
        """
        Strike present in both chains closest to current_price (lower on ties).

        With no common strike, strict mode returns -1 and union mode picks from
        every strike in either chain.
        """
        mode = mode or self.strike_fallback_mode
        strikes_a = _strike_set(chain_a)
        strikes_b = _strike_set(chain_b)

        candidates = strikes_a & strikes_b
        if not candidates:
            if mode != UNION:
                return -1.0
            candidates = strikes_a | strikes_b
            if candidates:
                logging.debug(f"[SELECTOR] No common strike, falling back to union of {len(candidates)} strikes")

        if not candidates:
            return -1.0

        return min(candidates, key=lambda strike: (abs(strike - current_price), strike))

    @staticmethod
    def find_option_for_strike(chain: OptionChain, strike: float,
                               tolerance: float = STRIKE_TOLERANCE) -> Optional[OptionContract]:
        for contract in _ordered(chain):
            if abs(contract.strike - strike) < tolerance:
                return contract
        return None

    @staticmethod
    def find_atm_option(chain: OptionChain, current_price: float) -> Optional[OptionContract]:
        """Closest strike to price; earlier expiration, then lower strike on ties"""
        if not chain:
            return None
        return min(_ordered(chain), key=lambda c: (abs(c.strike - current_price), c.expiration, c.strike))

    @staticmethod
    def find_shortest_expiration_atm_option(chain: OptionChain, current_price: float) -> Optional[OptionContract]:
        """Earliest expiration first, then the closest strike within it"""
        if not chain:
            return None
        return min(_ordered(chain), key=lambda c: (c.expiration, abs(c.strike - current_price), c.strike))

    def find_atm_within_threshold(self, chain: OptionChain, current_price: float,
                                  threshold: Optional[float] = None) -> Optional[OptionContract]:
        """ATM option only if its strike is within threshold * price of the underlying"""
        threshold = self.atm_threshold if threshold is None else threshold
        contract = self.find_atm_option(chain, current_price)
        if contract is None or current_price <= 0:
            return None
        if abs(contract.strike - current_price) / current_price > threshold:
            return None
        return contract

    # =========================================================================
    # CALENDAR LEGS
    # =========================================================================

    def select_calendar_legs(self, short_chain: OptionChain, long_chain: OptionChain, reference_date: date,
                             target_days: int, current_price: float
                             ) -> Optional[Tuple[OptionContract, OptionContract]]:
        """
        Pick (short, long) contracts for a calendar spread.

        Short leg: nearest expiration after reference_date in short_chain.
        Long leg: expiration in long_chain closest to reference_date + target_days.
        Both at the best strike common to those two expirations.
        """
        short_exp = self.find_short_leg_expiration(self.expirations(short_chain), reference_date)
        if short_exp is None:
            return None

        long_exp = self.find_long_leg_expiration(self.expirations(long_chain), reference_date,
                                                 short_exp, target_days)
        if long_exp is None:
            return None

        short_at_exp = {s: c for s, c in short_chain.items() if c.expiration == short_exp}
        long_at_exp = {s: c for s, c in long_chain.items() if c.expiration == long_exp}

        strike = self.find_best_common_strike(short_at_exp, long_at_exp, current_price)
        if strike < 0:
            return None

        short_leg = self.find_option_for_strike(short_at_exp, strike)
        long_leg = self.find_option_for_strike(long_at_exp, strike)
        if short_leg is None or long_leg is None:
            # union fallback can pick a strike only one side lists
            return None

        return short_leg, long_leg
