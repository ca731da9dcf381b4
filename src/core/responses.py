"""
Structured job responses: success, skipped and error, timestamped in US/Eastern.
"""

import logging
from typing import Any, Dict, Optional

from src.core.market_calendar import eastern_now


def _timestamp() -> str:
    return eastern_now().strftime('%Y-%m-%d %H:%M:%S %Z')


def success_response(message: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    response = {'status': 'success', 'message': message, 'timestamp': _timestamp()}
    if data is not None:
        response['data'] = data
    return response


def skipped_response(reason: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    response = {'status': 'skipped', 'reason': reason, 'timestamp': _timestamp()}
    if data is not None:
        response['data'] = data
    return response


def error_response(message: str, status_code: int = 500) -> Dict[str, Any]:
    return {'status': 'error', 'message': message, 'statusCode': status_code, 'timestamp': _timestamp()}


def handle_error(operation: str, error: Exception) -> Dict[str, Any]:
    """Log an unexpected job failure and turn it into an error response"""
    logging.error(f"{operation} failed: {error}", exc_info=True)
    return error_response(f"{operation} failed: {error}")
