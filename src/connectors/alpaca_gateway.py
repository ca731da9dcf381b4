"""
Alpaca Gateway - market data and trading access

Market data (stock trades/bars, option snapshots/trades/quotes) goes through
the REST data API with retry; account, clock and order CRUD go through
alpaca-py's TradingClient. Raw JSON is parsed into typed models here so the
rest of the bot never sees untyped maps.
"""

import functools
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from alpaca.trading.client import TradingClient
from alpaca.trading.enums import QueryOrderStatus
from alpaca.trading.requests import GetOrdersRequest

from src.connectors.http_client import RestClient, RetryPolicy
from src.models.market_data import HistoricalBar
from src.models.options import OptionChain, OptionContract, OptionQuote
from src.models.orders import OpenOrder, OrderLeg
from src.order_management.order_builder import build_mleg_order_request
from src.utils.circuit_breaker import CircuitBreaker
from src.utils.errors import DataUnavailableError, InvalidSymbolError

MAX_PAGES = 50


def apply_session_timeout(trading_client, timeout: float):
    """Give every request on the TradingClient session a default timeout (alpaca-py sends none)"""
    session = getattr(trading_client, '_session', None)
    if session is None or not hasattr(session, 'request'):
        logging.warning("[ALPACA] Trading client has no HTTP session - requests will not time out")
        return
    session.request = functools.partial(session.request, timeout=timeout)


class AlpacaGateway:
    """Alpaca market data + trading gateway"""

    def __init__(self, api_key: str, secret_key: str, paper: bool = True,
                 data_url: str = 'https://data.alpaca.markets', stock_feed: str = 'iex',
                 options_feed: str = 'opra', timeout: int = 30,
                 retry_policy: Optional[RetryPolicy] = None,
                 circuit_breaker: Optional[CircuitBreaker] = None,
                 trading_client=None, data_client: Optional[RestClient] = None):
        self.stock_feed = stock_feed
        self.options_feed = options_feed
        self.data_client = data_client or RestClient(
            base_url=data_url,
            headers={
                'APCA-API-KEY-ID': api_key or '',
                'APCA-API-SECRET-KEY': secret_key or '',
                'Accept': 'application/json',
            },
            timeout=timeout,
            retry_policy=retry_policy,
            circuit_breaker=circuit_breaker,
            name='alpaca',
        )
        self.trading_client = trading_client or TradingClient(api_key, secret_key, paper=paper)
        apply_session_timeout(self.trading_client, timeout)

    @classmethod
    def from_config(cls, config, retry_policy: Optional[RetryPolicy] = None) -> 'AlpacaGateway':
        return cls(
            api_key=config.ALPACA_API_KEY,
            secret_key=config.ALPACA_SECRET_KEY,
            paper=config.is_paper_mode(),
            data_url=config.ALPACA_DATA_URL,
            stock_feed=config.ALPACA_STOCK_FEED,
            options_feed=config.ALPACA_OPTIONS_FEED,
            timeout=config.HTTP_TIMEOUT,
            retry_policy=retry_policy or RetryPolicy.from_config(config.RETRY_CONFIG),
            circuit_breaker=CircuitBreaker.from_config('alpaca', config.CIRCUIT_BREAKER),
        )

    # =========================================================================
    # STOCK DATA
    # =========================================================================

    def get_latest_trade_price(self, ticker: str) -> float:
        """Last trade price; raises DataUnavailableError if missing"""
        data = self.data_client.get(f"/v2/stocks/{ticker}/trades/latest", params={'feed': self.stock_feed})
        trade = (data or {}).get('trade') or {}
        price = float(trade.get('p') or 0.0)
        if price <= 0:
            raise DataUnavailableError(f"No latest trade price for {ticker}")
        return price

    def get_historical_bars(self, ticker: str, start: date, end: date) -> List[HistoricalBar]:
        """Daily bars between start and end, sorted ascending by timestamp"""
        params = {
            'symbols': ticker,
            'start': start.isoformat(),
            'end': end.isoformat(),
            'timeframe': '1Day',
            'limit': 1000,
            'adjustment': 'all',
            'feed': self.stock_feed,
        }
        bars = []
        for page in self._paginate('/v2/stocks/bars', params):
            for raw in (page.get('bars') or {}).get(ticker) or []:
                bars.append(HistoricalBar.from_alpaca(raw))

        bars.sort(key=lambda bar: bar.timestamp)
        logging.debug(f"[ALPACA] {ticker}: {len(bars)} daily bars {start} -> {end}")
        return bars

    # =========================================================================
    # OPTION DATA
    # =========================================================================

    def get_option_chain(self, underlying: str, expiration_gte: date, expiration_lte: date,
                         option_type: str = 'call') -> OptionChain:
        """Option snapshots for an expiration window; unparsable symbols are skipped"""
        params = {
            'expiration_date_gte': expiration_gte.isoformat(),
            'expiration_date_lte': expiration_lte.isoformat(),
            'type': option_type,
            'feed': self.options_feed,
            'limit': 1000,
        }
        chain: OptionChain = {}
        for page in self._paginate(f"/v1beta1/options/snapshots/{underlying}", params):
            for symbol, snapshot in (page.get('snapshots') or {}).items():
                try:
                    chain[symbol] = OptionContract.from_snapshot(symbol, snapshot or {})
                except InvalidSymbolError as e:
                    logging.debug(f"[ALPACA] Skipping contract: {e}")

        logging.debug(f"[ALPACA] {underlying}: {len(chain)} {option_type} contracts "
                      f"{expiration_gte} -> {expiration_lte}")
        return chain

    def get_option_trade_volume(self, symbols: Iterable[str], start: date, end: date) -> Dict[str, int]:
        """Sum of trade sizes per option symbol over [start, end]"""
        symbols = [s for s in symbols if s]
        volumes = {symbol: 0 for symbol in symbols}
        if not symbols:
            return volumes

        params = {
            'symbols': ','.join(symbols),
            'start': start.isoformat(),
            'end': end.isoformat(),
            'limit': 10000,
            'sort': 'asc',
        }
        for page in self._paginate('/v1beta1/options/trades', params):
            for symbol, trades in (page.get('trades') or {}).items():
                volumes[symbol] = volumes.get(symbol, 0) + sum(int(t.get('s') or 0) for t in trades or [])
        return volumes

    def get_latest_option_quotes(self, symbols: Iterable[str]) -> Dict[str, OptionQuote]:
        symbols = [s for s in symbols if s]
        if not symbols:
            return {}
        data = self.data_client.get('/v1beta1/options/quotes/latest',
                                    params={'symbols': ','.join(symbols), 'feed': self.options_feed})
        quotes = {}
        for symbol, raw in ((data or {}).get('quotes') or {}).items():
            quotes[symbol] = OptionQuote.from_alpaca(symbol, raw or {})
        return quotes

    def _paginate(self, path: str, params: Dict):
        """Yield each page, following next_page_token"""
        params = dict(params)
        for _ in range(MAX_PAGES):
            page = self.data_client.get(path, params=params) or {}
            yield page
            token = page.get('next_page_token')
            if not token:
                return
            params['page_token'] = token
        logging.warning(f"[ALPACA] Stopped paginating {path} after {MAX_PAGES} pages")

    # =========================================================================
    # TRADING
    # =========================================================================

    def is_market_open(self) -> bool:
        try:
            return bool(self.trading_client.get_clock().is_open)
        except Exception as e:
            logging.error(f"[ALPACA] Could not read market clock: {e}")
            return False

    def get_account(self) -> Dict[str, float]:
        account = self.trading_client.get_account()
        return {
            'buying_power': float(account.buying_power or 0),
            'equity': float(account.equity or 0),
            'cash': float(account.cash or 0),
        }

    def get_open_orders(self) -> List[OpenOrder]:
        request = GetOrdersRequest(status=QueryOrderStatus.OPEN, limit=500, nested=True)
        orders = self.trading_client.get_orders(filter=request)
        return [OpenOrder.from_alpaca(order) for order in orders]

    def get_order_status(self, order_id: str) -> Optional[str]:
        order = self.trading_client.get_order_by_id(order_id)
        status = getattr(order, 'status', None)
        return str(getattr(status, 'value', status)).lower() if status is not None else None

    def cancel_order(self, order_id: str):
        self.trading_client.cancel_order_by_id(order_id)
        logging.info(f"[ALPACA] Cancel requested for order {order_id}")

    def submit_mleg_order(self, legs: List[OrderLeg], qty: int, limit_price: Optional[float] = None) -> str:
        """Submit a multi-leg order; market when limit_price is None. Returns the new order id."""
        request = build_mleg_order_request(legs, qty, limit_price)
        order = self.trading_client.submit_order(request)
        order_id = str(getattr(order, 'id', 'UNKNOWN'))
        price_text = f"@ ${limit_price:.2f}" if limit_price is not None else "@ market"
        logging.info(f"[ALPACA] Submitted mleg order {order_id}: {qty} spreads {price_text}")
        return order_id
