"""
Audit logging for balance-affecting and game events.

Every ledger write is mirrored to the application log as a single JSON line so the
credit trail can be reconstructed from logs as well as from the ledger table.
"""

import json
import logging
from datetime import datetime, timezone
from flask import current_app, g, has_request_context, request


def _request_context_info():
    if not has_request_context():
        return 'N/A', None
    return g.get('request_id', 'N/A'), request.remote_addr


class AuditLogger:
    """Centralized audit event logging"""

    @staticmethod
    def log_financial_event(event_type: str, user_id: int, amount: int = None,
                            balance_before: int = None, balance_after: int = None,
                            ledger_entry_id: int = None, ref_id: str = None, details: dict = None):
        """Log a ledger movement (bet, payout, bonus payout, deposit credit)"""
        request_id, ip_address = _request_context_info()

        event_data = {
            'event_type': 'financial',
            'sub_type': event_type,
            'user_id': user_id,
            'amount_credits': amount,
            'balance_before_credits': balance_before,
            'balance_after_credits': balance_after,
            'ledger_entry_id': ledger_entry_id,
            'ref_id': ref_id,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'details': details or {}
        }

        current_app.logger.info(f"FINANCIAL_EVENT: {json.dumps(event_data, default=str)}")

    @staticmethod
    def log_game_event(event_type: str, user_id: int, bet_amount: int = None,
                       win_amount: int = None, spin_id: str = None, details: dict = None,
                       level: int = logging.INFO):
        """Log game-related events"""
        request_id, _ = _request_context_info()

        event_data = {
            'event_type': 'game',
            'sub_type': event_type,
            'user_id': user_id,
            'bet_amount_credits': bet_amount,
            'win_amount_credits': win_amount,
            'spin_id': spin_id,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'details': details or {}
        }

        current_app.logger.log(level, f"GAME_EVENT: {json.dumps(event_data, default=str)}")
