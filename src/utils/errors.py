"""
Error taxonomy for market data, order handling and capital checks.

Filters catch these and fail closed; the order monitor catches them per order;
the job runner turns anything left into an error response.
"""


class TradingError(Exception):
    """Base error carrying a short machine-readable type"""

    error_type = 'trading_error'

    def __init__(self, message: str, error_type: str = None):
        super().__init__(message)
        self.message = message
        if error_type:
            self.error_type = error_type

    def __str__(self):
        return f"[{self.error_type}] {self.message}"


class DataUnavailableError(TradingError):
    """Quote, chain, bar or earnings data missing, or a non-retryable HTTP error"""

    error_type = 'data_unavailable'


class RateLimitedError(TradingError):
    """HTTP 429 persisted after the retry budget was spent"""

    error_type = 'rate_limited'


class InvalidSymbolError(TradingError):
    """Option symbol could not be parsed"""

    error_type = 'invalid_symbol'


class InsufficientCapitalError(TradingError):
    """Buying power or equity check failed before a resubmission"""

    error_type = 'insufficient_capital'
