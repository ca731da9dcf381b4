#!/usr/bin/env python3
"""
Earnings Calendar Spread Bot
============================

Entry point for the scheduled jobs:
- scan-earnings   find AMC-today / BMO-next-trading-day earnings tickers
- filter          run the gatekeepers over a scan and persist sized decisions
- monitor         re-price / cancel / convert open calendar spread orders
- cancel-entries, convert-exits, update-exits, update-entries  bulk order actions
"""

import sys
import os
from pathlib import Path

# Add the project root to the path to ensure imports work correctly
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

import argparse
import json
import logging
from datetime import datetime
from dotenv import load_dotenv
from colorama import Fore, Style, init

# Initialize colorama for Windows
init(autoreset=True)

# Load environment variables
load_dotenv()

from config import config
from src.bot_core import CalendarSpreadBot

JOBS = {
    'scan-earnings': 'Scan the earnings calendar',
    'filter': 'Run gatekeeper filters over a scan',
    'monitor': 'Monitor open calendar spread orders',
    'cancel-entries': 'Cancel all open entry orders',
    'convert-exits': 'Convert all open exit orders to market',
    'update-exits': 'Re-price all open exit orders at fair value',
    'update-entries': 'Re-price all open entry orders at fair value',
}


def setup_logging():
    """File handler at the configured file level, console at the console level"""
    log_path = config.LOG_FILES['main']
    log_dir = os.path.dirname(log_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(config.LOG_LEVELS['file'])
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(config.LOG_LEVELS['console'])
    console_handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.addHandler(file_handler)
    root.addHandler(console_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Earnings Calendar Spread Bot')
    parser.add_argument('job', nargs='?', choices=sorted(JOBS), help='Job to run')
    parser.add_argument('--validate-config', action='store_true',
                        help='Validate configuration and exit')
    parser.add_argument('--scan-date', type=lambda s: datetime.strptime(s, '%Y-%m-%d').date(),
                        help='Scan date (YYYY-MM-DD) for the filter job, defaults to today ET')
    parser.add_argument('--force', action='store_true',
                        help='Run the earnings scan even when the market is closed')
    return parser


def run_job(bot: CalendarSpreadBot, job: str, args) -> dict:
    if job == 'scan-earnings':
        return bot.scan_earnings(force=args.force)
    if job == 'filter':
        return bot.filter_stocks(args.scan_date)
    if job == 'monitor':
        return bot.monitor_trades()
    if job == 'cancel-entries':
        return bot.cancel_entry_orders()
    if job == 'convert-exits':
        return bot.convert_exit_orders()
    if job == 'update-exits':
        return bot.update_exit_orders()
    return bot.update_entry_orders()


def print_response(response: dict):
    color = {'success': Fore.GREEN, 'skipped': Fore.YELLOW}.get(response.get('status'), Fore.RED)
    headline = response.get('message') or response.get('reason', '')
    print(f"{color}[{response.get('status', 'unknown').upper()}] {headline}{Style.RESET_ALL}")
    if response.get('data'):
        print(json.dumps(response['data'], indent=2, default=str))


def main():
    """Main entry point for the calendar spread bot"""
    parser = build_parser()
    args = parser.parse_args()

    # Validate configuration if requested
    if args.validate_config:
        print(f"{Fore.BLUE}[*] Validating configuration...{Style.RESET_ALL}")
        issues = config.validate_config()
        if issues:
            print(f"{Fore.RED}[-] Configuration issues found:{Style.RESET_ALL}")
            for issue in issues:
                print(f"  * {issue}")
            return 1
        print(f"{Fore.GREEN}[+] Configuration is valid{Style.RESET_ALL}")
        return 0

    if not args.job:
        parser.print_help()
        return 2

    setup_logging()

    issues = config.validate_config()
    if issues:
        print(f"{Fore.RED}[!] Configuration validation issues:{Style.RESET_ALL}")
        for issue in issues:
            print(f"  {Fore.YELLOW}* {issue}{Style.RESET_ALL}")

    try:
        print(f"{Fore.BLUE}[*] {JOBS[args.job]}...{Style.RESET_ALL}")
        bot = CalendarSpreadBot()
        response = run_job(bot, args.job, args)
        print_response(response)
        return 1 if response.get('status') == 'error' else 0

    except KeyboardInterrupt:
        print(f"\n{Fore.YELLOW}[!] Stopped by user{Style.RESET_ALL}")
        logging.info("Calendar spread bot stopped by user")
        return 0
    except Exception as e:
        print(f"\n{Fore.RED}[!] Critical error: {e}{Style.RESET_ALL}")
        logging.error(f"Critical error in calendar spread bot: {e}", exc_info=True)
        return 1


if __name__ == '__main__':
    sys.exit(main())
