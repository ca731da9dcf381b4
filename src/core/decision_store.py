"""
Decision store - SQLite persistence for the earnings scan and gatekeeper decisions.
One row per (ticker, scan date) in each table; re-running a scan overwrites it.
"""
import json
import logging
import sqlite3
import threading
import datetime
from typing import Dict, Iterable, List, Optional

from src.models.decisions import TradeDecision
from src.models.market_data import EarningsEvent

MIN_TRADEABLE_SIZE = 0.01
MAX_TRADEABLE_SIZE = 0.20


class DecisionStore:
    """SQLite key-value store keyed by (ticker, scan_date)"""

    def __init__(self, db_path='calendar_spreads.db'):
        self.db_path = db_path
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.db_lock = threading.Lock()
        self.create_tables()

    def create_tables(self):
        """Create database tables if they don't exist"""
        with self.db_lock:
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS earnings_calendar (
                    ticker TEXT NOT NULL,
                    scan_date TEXT NOT NULL,
                    earnings_date TEXT NOT NULL,
                    earnings_hour TEXT,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (ticker, scan_date)
                )
            """)

            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS filtered_tickers (
                    ticker TEXT NOT NULL,
                    scan_date TEXT NOT NULL,
                    approved INTEGER NOT NULL,
                    reason TEXT,
                    position_size_percentage REAL DEFAULT 0,
                    filter_results TEXT,
                    earnings_date TEXT,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (ticker, scan_date)
                )
            """)
            self.conn.commit()

    # =========================================================================
    # EARNINGS CALENDAR
    # =========================================================================

    def save_earnings(self, events: Iterable[EarningsEvent], scan_date: datetime.date) -> int:
        now = datetime.datetime.now().isoformat()
        rows = [(e.ticker, scan_date.isoformat(), e.earnings_date.isoformat(), e.hour, now) for e in events]
        with self.db_lock:
            self.conn.executemany("""
                INSERT OR REPLACE INTO earnings_calendar
                (ticker, scan_date, earnings_date, earnings_hour, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, rows)
            self.conn.commit()
        logging.info(f"[STORE] Saved {len(rows)} earnings rows for scan {scan_date}")
        return len(rows)

    def get_earnings_tickers(self, scan_date: datetime.date) -> Dict[str, datetime.date]:
        """ticker -> earnings date for one scan"""
        cursor = self.conn.execute(
            "SELECT ticker, earnings_date FROM earnings_calendar WHERE scan_date = ? ORDER BY ticker",
            (scan_date.isoformat(),))
        return {row['ticker']: datetime.date.fromisoformat(row['earnings_date']) for row in cursor.fetchall()}

    # =========================================================================
    # GATEKEEPER DECISIONS
    # =========================================================================

    def save_decisions(self, decisions: Iterable[TradeDecision], scan_date: datetime.date,
                       earnings_dates: Optional[Dict[str, datetime.date]] = None) -> int:
        earnings_dates = earnings_dates or {}
        now = datetime.datetime.now().isoformat()
        rows = []
        for d in decisions:
            earnings_date = earnings_dates.get(d.ticker)
            rows.append((
                d.ticker,
                scan_date.isoformat(),
                1 if d.approved else 0,
                d.reason,
                d.position_size_percentage,
                json.dumps(d.filter_results, sort_keys=True),
                earnings_date.isoformat() if earnings_date else None,
                now,
            ))

        with self.db_lock:
            self.conn.executemany("""
                INSERT OR REPLACE INTO filtered_tickers
                (ticker, scan_date, approved, reason, position_size_percentage,
                 filter_results, earnings_date, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, rows)
            self.conn.commit()
        logging.info(f"[STORE] Saved {len(rows)} decisions for scan {scan_date}")
        return len(rows)

    def get_decisions(self, scan_date: datetime.date) -> List[TradeDecision]:
        cursor = self.conn.execute("""
            SELECT ticker, approved, reason, position_size_percentage, filter_results
            FROM filtered_tickers WHERE scan_date = ? ORDER BY ticker
        """, (scan_date.isoformat(),))

        decisions = []
        for row in cursor.fetchall():
            decisions.append(TradeDecision(
                ticker=row['ticker'],
                approved=bool(row['approved']),
                reason=row['reason'] or '',
                position_size_percentage=row['position_size_percentage'] or 0.0,
                filter_results=json.loads(row['filter_results'] or '{}'),
            ))
        return decisions

    def get_tradeable_position_sizes(self, scan_date: datetime.date) -> Dict[str, float]:
        """Approved tickers whose size falls within the tradeable 1%-20% band"""
        sizes = {}
        for decision in self.get_decisions(scan_date):
            if not decision.approved:
                continue
            size = decision.position_size_percentage
            if MIN_TRADEABLE_SIZE <= size <= MAX_TRADEABLE_SIZE:
                sizes[decision.ticker] = size
            else:
                logging.warning(f"[STORE] {decision.ticker}: position size {size:.2%} outside tradeable band")
        return sizes

    def close(self):
        self.conn.close()
