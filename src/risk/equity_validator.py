"""
Equity guard for order resubmission.

A resubmitted spread may not cost more than current buying power, nor more
than a fixed fraction of account equity.
"""

import logging

from src.utils.errors import InsufficientCapitalError


def has_sufficient_equity(trade_value: float, buying_power: float, equity: float,
                          max_equity_pct: float = 0.08) -> bool:
    return trade_value <= buying_power and trade_value <= equity * max_equity_pct


class PortfolioEquityValidator:
    """Reads the account and applies has_sufficient_equity"""

    def __init__(self, gateway, max_equity_pct: float = 0.08):
        self.gateway = gateway
        self.max_equity_pct = max_equity_pct

    def check(self, trade_value: float) -> bool:
        """True when the trade fits; False on shortfall or when the account cannot be read"""
        try:
            account = self.gateway.get_account()
        except Exception as e:
            logging.error(f"[EQUITY] Could not read account, refusing trade of ${trade_value:,.2f}: {e}")
            return False

        buying_power = account.get('buying_power', 0.0)
        equity = account.get('equity', 0.0)
        ok = has_sufficient_equity(trade_value, buying_power, equity, self.max_equity_pct)
        if not ok:
            logging.warning(f"[EQUITY] Trade ${trade_value:,.2f} exceeds limits: buying power "
                            f"${buying_power:,.2f}, {self.max_equity_pct:.0%} of equity "
                            f"${equity * self.max_equity_pct:,.2f}")
        return ok

    def require(self, trade_value: float):
        """Raise InsufficientCapitalError unless check() passes"""
        if not self.check(trade_value):
            raise InsufficientCapitalError(f"Insufficient equity for trade value ${trade_value:,.2f}")
