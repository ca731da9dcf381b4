"""
Centralized Configuration Management
=====================================

All configurable parameters in one place with validation and type hints.
Gatekeeper thresholds, sizing, order monitor timing and fallback strategies
are read from the environment (or a .env file) once at startup.
"""

import os
from typing import Dict, Any, List
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

IV_RATIO_FALLBACK_STRATEGIES = ('none', 'historical_volatility_proxy')
TERM_STRUCTURE_FALLBACK_STRATEGIES = ('none', 'historical_volatility')
STRIKE_FALLBACK_MODES = ('strict', 'union')
MARKET_WINDOW_ENTRY_POLICIES = ('none', 'cancel')

# =============================================================================
# ENVIRONMENT VARIABLES CONFIG
# =============================================================================

class Config:
    """Centralized configuration with validation and environment variable loading"""

    def __init__(self):
        # =====================================================================
        # API CONFIGURATION
        # =====================================================================
        self.ALPACA_API_KEY = os.getenv('ALPACA_API_KEY')
        self.ALPACA_SECRET_KEY = os.getenv('ALPACA_SECRET_KEY')
        self.ALPACA_MODE = os.getenv('ALPACA_MODE', 'paper').lower()
        self.ALPACA_DATA_URL = os.getenv('ALPACA_DATA_URL', 'https://data.alpaca.markets')
        self.ALPACA_STOCK_FEED = os.getenv('ALPACA_STOCK_FEED', 'iex')
        self.ALPACA_OPTIONS_FEED = os.getenv('ALPACA_OPTIONS_FEED', 'opra')

        self.FINNHUB_API_KEY = os.getenv('FINNHUB_API_KEY')
        self.FINNHUB_API_URL = os.getenv('FINNHUB_API_URL', 'https://finnhub.io/api/v1')

        self.HTTP_TIMEOUT = int(os.getenv('HTTP_TIMEOUT', '30'))  # seconds

        # =====================================================================
        # LIQUIDITY GATEKEEPER
        # =====================================================================
        self.VOLUME_THRESHOLD = float(os.getenv('VOLUME_THRESHOLD', '1500000'))  # avg daily shares
        self.MIN_STOCK_PRICE = float(os.getenv('MIN_STOCK_PRICE', '30.00'))
        self.MAX_STOCK_PRICE = float(os.getenv('MAX_STOCK_PRICE', '400.00'))
        self.BID_ASK_THRESHOLD = float(os.getenv('BID_ASK_THRESHOLD', '0.05'))  # 5% of mid
        self.QUOTE_DEPTH_THRESHOLD = int(os.getenv('QUOTE_DEPTH_THRESHOLD', '200'))  # bid size + ask size
        self.MIN_DAILY_OPTION_TRADES = int(os.getenv('MIN_DAILY_OPTION_TRADES', '300'))

        # =====================================================================
        # VOLATILITY GATEKEEPERS (IV RATIO / TERM STRUCTURE)
        # =====================================================================
        self.IV_RATIO_THRESHOLD = float(os.getenv('IV_RATIO_THRESHOLD', '1.20'))
        self.ATM_THRESHOLD = float(os.getenv('ATM_THRESHOLD', '0.02'))  # strike within 2% of price
        self.SLOPE_THRESHOLD = float(os.getenv('SLOPE_THRESHOLD', '0.01'))
        self.HV_SLOPE_THRESHOLD = float(os.getenv('HV_SLOPE_THRESHOLD', '-0.00406'))  # vol60 - vol30

        # =====================================================================
        # EXECUTION SPREAD GATEKEEPER
        # =====================================================================
        self.MAX_DEBIT_TO_PRICE_RATIO = float(os.getenv('MAX_DEBIT_TO_PRICE_RATIO', '0.04'))
        self.EXECUTION_MAX_SPREAD_PCT = float(os.getenv('EXECUTION_MAX_SPREAD_PCT', '0.20'))
        self.EXECUTION_MIN_MID_PRICE = float(os.getenv('EXECUTION_MIN_MID_PRICE', '0.10'))

        # =====================================================================
        # OPTIONAL SCORING FILTERS (STABILITY / CRUSH)
        # =====================================================================
        self.STABILITY_THRESHOLD = float(os.getenv('STABILITY_THRESHOLD', '0.70'))
        self.EARNINGS_MOVE_THRESHOLD = float(os.getenv('EARNINGS_MOVE_THRESHOLD', '0.05'))
        self.STRADDLE_HISTORICAL_MULTIPLIER = float(os.getenv('STRADDLE_HISTORICAL_MULTIPLIER', '1.5'))
        self.STRADDLE_MAX_SPREAD_PCT = float(os.getenv('STRADDLE_MAX_SPREAD_PCT', '0.50'))
        self.VOLATILITY_CRUSH_THRESHOLD = float(os.getenv('VOLATILITY_CRUSH_THRESHOLD', '0.80'))  # post/pre vol
        self.CRUSH_PERCENTAGE = float(os.getenv('CRUSH_PERCENTAGE', '0.70'))
        self.VOLATILITY_LOOKBACK_DAYS = int(os.getenv('VOLATILITY_LOOKBACK_DAYS', '365'))

        # =====================================================================
        # POSITION SIZING
        # =====================================================================
        self.BASE_POSITION_SIZE = float(os.getenv('BASE_POSITION_SIZE', '0.05'))  # 5%
        self.OPTIONAL_FILTER_BONUS = float(os.getenv('OPTIONAL_FILTER_BONUS', '0.01'))  # +1% per optional pass
        self.MAX_DAILY_PORTFOLIO_ALLOCATION = float(os.getenv('MAX_DAILY_PORTFOLIO_ALLOCATION', '0.30'))
        self.MAX_TRADE_EQUITY_PCT = float(os.getenv('MAX_TRADE_EQUITY_PCT', '0.08'))
        self.CONTRACT_MULTIPLIER = int(os.getenv('CONTRACT_MULTIPLIER', '100'))

        # =====================================================================
        # FALLBACK STRATEGIES
        # =====================================================================
        self.IV_RATIO_FALLBACK_STRATEGY = os.getenv('IV_RATIO_FALLBACK_STRATEGY', 'none').lower()
        self.TERM_STRUCTURE_FALLBACK_STRATEGY = os.getenv(
            'TERM_STRUCTURE_FALLBACK_STRATEGY', 'historical_volatility').lower()
        self.STRIKE_FALLBACK_MODE = os.getenv('STRIKE_FALLBACK_MODE', 'strict').lower()
        self.MARKET_WINDOW_ENTRY_POLICY = os.getenv('MARKET_WINDOW_ENTRY_POLICY', 'none').lower()

        # =====================================================================
        # ORDER LIFECYCLE MONITOR
        # =====================================================================
        self.REPRICE_WINDOW_MINUTES = float(os.getenv('REPRICE_WINDOW_MINUTES', '10'))
        self.FORCE_WINDOW_MINUTES = float(os.getenv('FORCE_WINDOW_MINUTES', '13'))
        self.PRICE_CHANGE_THRESHOLD = float(os.getenv('PRICE_CHANGE_THRESHOLD', '0.0005'))  # 0.05%
        self.EXIT_DISCOUNT = float(os.getenv('EXIT_DISCOUNT', '0.97'))  # 3% below fair
        self.CANCEL_CONFIRM_ATTEMPTS = int(os.getenv('CANCEL_CONFIRM_ATTEMPTS', '10'))
        self.CANCEL_POLL_INTERVAL = float(os.getenv('CANCEL_POLL_INTERVAL', '0'))  # seconds

        # =====================================================================
        # SCANNING AND CACHING
        # =====================================================================
        self.SCAN_WORKERS = int(os.getenv('SCAN_WORKERS', '10'))
        self.CACHE_TTL_SECONDS = int(os.getenv('CACHE_TTL_SECONDS', '300'))  # 5 min
        self.CACHE_MAX_SIZE = int(os.getenv('CACHE_MAX_SIZE', '200'))

        # =====================================================================
        # PERSISTENCE AND LOGGING
        # =====================================================================
        self.DB_PATH = os.getenv('DB_PATH', 'calendar_spreads.db')
        self.LOG_LEVELS: Dict[str, str] = {
            'file': os.getenv('FILE_LOG_LEVEL', 'DEBUG'),
            'console': os.getenv('CONSOLE_LOG_LEVEL', 'WARNING'),
        }

        self.LOG_FILES: Dict[str, str] = {
            'main': os.getenv('MAIN_LOG_FILE', 'logs/calendar_spread_bot.log'),
        }

        # =====================================================================
        # EMERGENCY AND SAFETY PARAMETERS
        # =====================================================================
        self.CIRCUIT_BREAKER: Dict[str, int] = {
            'max_failures': int(os.getenv('CIRCUIT_BREAKER_MAX_FAILURES', '10')),
            'timeout': int(os.getenv('CIRCUIT_BREAKER_TIMEOUT', '600'))  # 10 min
        }

        self.RETRY_CONFIG: Dict[str, Any] = {
            'max_attempts': int(os.getenv('MAX_RETRY_ATTEMPTS', '3')),
            'base_delay': float(os.getenv('RETRY_BASE_DELAY', '1.0')),
            'backoff_factor': float(os.getenv('RETRY_BACKOFF_FACTOR', '2.0'))
        }

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues"""
        issues = []

        # Required environment variables
        required_vars = ['ALPACA_API_KEY', 'ALPACA_SECRET_KEY', 'FINNHUB_API_KEY']
        for var in required_vars:
            if not getattr(self, var):
                issues.append(f"Missing required environment variable: {var}")

        # Validate ALPACA_MODE
        if self.ALPACA_MODE not in ['paper', 'live']:
            issues.append(f"ALPACA_MODE must be 'paper' or 'live', got: {self.ALPACA_MODE}")

        # Validate fallback strategy selectors
        choices = {
            'IV_RATIO_FALLBACK_STRATEGY': IV_RATIO_FALLBACK_STRATEGIES,
            'TERM_STRUCTURE_FALLBACK_STRATEGY': TERM_STRUCTURE_FALLBACK_STRATEGIES,
            'STRIKE_FALLBACK_MODE': STRIKE_FALLBACK_MODES,
            'MARKET_WINDOW_ENTRY_POLICY': MARKET_WINDOW_ENTRY_POLICIES,
        }
        for name, allowed in choices.items():
            value = getattr(self, name)
            if value not in allowed:
                issues.append(f"{name} must be one of {', '.join(allowed)}, got: {value}")

        # Validate numeric ranges
        for name in ['BASE_POSITION_SIZE', 'MAX_DAILY_PORTFOLIO_ALLOCATION', 'MAX_TRADE_EQUITY_PCT']:
            value = getattr(self, name)
            if not 0 < value <= 1:
                issues.append(f"{name} must be between 0 and 1, got: {value}")

        if self.MIN_STOCK_PRICE >= self.MAX_STOCK_PRICE:
            issues.append(f"MIN_STOCK_PRICE must be below MAX_STOCK_PRICE, got: "
                          f"{self.MIN_STOCK_PRICE} >= {self.MAX_STOCK_PRICE}")

        if self.REPRICE_WINDOW_MINUTES >= self.FORCE_WINDOW_MINUTES:
            issues.append(f"REPRICE_WINDOW_MINUTES must be below FORCE_WINDOW_MINUTES, got: "
                          f"{self.REPRICE_WINDOW_MINUTES} >= {self.FORCE_WINDOW_MINUTES}")

        if self.SCAN_WORKERS < 1:
            issues.append(f"SCAN_WORKERS must be >= 1, got: {self.SCAN_WORKERS}")

        if self.RETRY_CONFIG['max_attempts'] < 1:
            issues.append(f"MAX_RETRY_ATTEMPTS must be >= 1, got: {self.RETRY_CONFIG['max_attempts']}")

        return issues

    def is_paper_mode(self) -> bool:
        """Check if running in paper trading mode"""
        return self.ALPACA_MODE == 'paper'


# Global config instance
config = Config()
