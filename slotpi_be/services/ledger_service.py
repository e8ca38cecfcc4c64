"""
Append-only credit ledger.

A user's balance is always the sum of their ledger entries. Every operation that
reads the balance and then writes entries runs inside ``ledger_transaction`` so
the check and the writes are serialized per user and committed together.
"""
import threading
import time
import uuid
import weakref
from contextlib import contextmanager

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from slotpi_be.models import (
    db, User, LedgerEntry,
    ENTRY_BET, ENTRY_PAYOUT, ENTRY_BONUS_PAYOUT, ENTRY_DEPOSIT_CREDIT,
    REF_SPIN, REF_BONUS_PICK, REF_PI_PAYMENT,
)
from slotpi_be.exceptions import InvalidBetException, BetTooLargeException, InsufficientBalanceException
from slotpi_be.schemas import LedgerEntrySchema
from slotpi_be.utils.audit_logger import AuditLogger

DEPOSIT_CREDITED = 'OK'
DEPOSIT_ALREADY_CREDITED = 'ALREADY_CREDITED'
DEPOSIT_NON_POSITIVE_AMOUNT = 'NON_POSITIVE_AMOUNT'

# Entries disappear once no transaction holds the lock.
_user_locks = weakref.WeakValueDictionary()
_user_locks_guard = threading.Lock()


def _get_user_lock(user_id):
    with _user_locks_guard:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = threading.Lock()
            _user_locks[user_id] = lock
        return lock


@contextmanager
def ledger_transaction(user_id):
    """
    Serializes balance-affecting work for one user and commits it as a unit.

    Holds a process-local lock keyed on the user id and takes a row lock on the user
    (``SELECT ... FOR UPDATE``; ignored by SQLite) for the life of the transaction.
    Commits on normal exit, rolls back and re-raises on any exception.
    """
    with _get_user_lock(user_id):
        try:
            db.session.execute(select(User.id).where(User.id == user_id).with_for_update())
            yield
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


def new_spin_id():
    return f"spin_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def bonus_ref_id(spin_id):
    return f"{spin_id}_bonus"


def get_balance(user_id):
    """Sum of all ledger entries for the user; 0 when there are none."""
    total = db.session.scalar(
        select(func.coalesce(func.sum(LedgerEntry.amount_credits), 0)).where(LedgerEntry.user_id == user_id)
    )
    return int(total or 0)


def validate_bet(bet_credits, max_bet_credits=None):
    """
    Rejects bets that are not positive integers or exceed the configured maximum.

    Raises:
        InvalidBetException: If the bet is not a positive integer.
        BetTooLargeException: If the bet exceeds max_bet_credits.
    """
    if max_bet_credits is None:
        max_bet_credits = current_app.config['MAX_BET_CREDITS']
    if isinstance(bet_credits, bool) or not isinstance(bet_credits, int) or bet_credits <= 0:
        raise InvalidBetException(details={'bet_credits': bet_credits})
    if bet_credits > max_bet_credits:
        raise BetTooLargeException(
            status_message=f"Maximum bet is {max_bet_credits} credits.",
            details={'bet_credits': bet_credits, 'max_bet_credits': max_bet_credits}
        )


def _add_entry(user_id, entry_type, amount_credits, ref_type, ref_id, meta):
    entry = LedgerEntry(
        user_id=user_id, entry_type=entry_type, amount_credits=amount_credits,
        ref_type=ref_type, ref_id=ref_id, meta=meta or {}
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def record_spin(user_id, bet_credits, spin_id=None, meta=None, current_balance=None):
    """
    Writes the BET debit for a spin after validating the bet and the balance.

    Must run inside ``ledger_transaction(user_id)`` together with the matching payout.

    Args:
        user_id (int): The betting user.
        bet_credits (int): Positive bet, at most MAX_BET_CREDITS.
        spin_id (str | None): Spin identifier; a new one is minted when omitted.
        meta (dict | None): Extra metadata stored on the entry.
        current_balance (int | None): Balance already read in this transaction, if any.

    Returns:
        LedgerEntry: The flushed BET entry; its ref_id is the spin id.

    Raises:
        InvalidBetException, BetTooLargeException, InsufficientBalanceException
    """
    validate_bet(bet_credits)
    balance = get_balance(user_id) if current_balance is None else current_balance
    if balance < bet_credits:
        raise InsufficientBalanceException(details={'balance_credits': balance, 'bet_credits': bet_credits})

    spin_id = spin_id or new_spin_id()
    entry_meta = {'bet_credits': bet_credits}
    entry_meta.update(meta or {})
    entry = _add_entry(user_id, ENTRY_BET, -bet_credits, REF_SPIN, spin_id, entry_meta)
    AuditLogger.log_financial_event(
        event_type='bet', user_id=user_id, amount=-bet_credits,
        balance_before=balance, balance_after=balance - bet_credits,
        ledger_entry_id=entry.id, ref_id=spin_id
    )
    return entry


def record_payout(user_id, spin_id, win_credits, meta=None):
    """Writes the PAYOUT credit for a spin. Zero or negative wins write nothing."""
    if win_credits <= 0:
        return None
    entry = _add_entry(user_id, ENTRY_PAYOUT, win_credits, REF_SPIN, spin_id, meta)
    AuditLogger.log_financial_event(
        event_type='payout', user_id=user_id, amount=win_credits,
        ledger_entry_id=entry.id, ref_id=spin_id
    )
    return entry


def record_bonus_payout(user_id, spin_id, win_credits, meta=None):
    """
    Writes the single BONUS_PAYOUT entry for a spin's bonus round.

    The entry is written even for a zero win so the round is marked as played.
    """
    entry_meta = {'spin_id': spin_id}
    entry_meta.update(meta or {})
    entry = _add_entry(user_id, ENTRY_BONUS_PAYOUT, win_credits, REF_BONUS_PICK, bonus_ref_id(spin_id), entry_meta)
    AuditLogger.log_financial_event(
        event_type='bonus_payout', user_id=user_id, amount=win_credits,
        ledger_entry_id=entry.id, ref_id=spin_id
    )
    return entry


def get_spin_entries(user_id, spin_id):
    """BET and PAYOUT entries of a spin, newest first."""
    return db.session.scalars(
        select(LedgerEntry)
        .where(
            LedgerEntry.user_id == user_id,
            LedgerEntry.ref_type == REF_SPIN,
            LedgerEntry.ref_id == spin_id,
            LedgerEntry.entry_type.in_([ENTRY_BET, ENTRY_PAYOUT]),
        )
        .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
    ).all()


def get_bonus_pick_entry(user_id, spin_id):
    return LedgerEntry.query.filter_by(
        user_id=user_id, entry_type=ENTRY_BONUS_PAYOUT,
        ref_type=REF_BONUS_PICK, ref_id=bonus_ref_id(spin_id)
    ).first()


def _find_deposit_credit(payment_id):
    return LedgerEntry.query.filter_by(
        entry_type=ENTRY_DEPOSIT_CREDIT,
        ref_type=REF_PI_PAYMENT, ref_id=payment_id
    ).first()


def _already_credited(user_id, existing):
    # Another user's entry is never handed back to the caller.
    entry = existing if existing is not None and existing.user_id == user_id else None
    return {'credited': False, 'reason': DEPOSIT_ALREADY_CREDITED, 'entry': entry}


def credit_external_deposit(user_id, payment_id, amount_credits, meta=None, payment=None):
    """
    Credits an external payment exactly once.

    The existence check and the insert run in one ledger transaction; a repeated call
    for the same payment id, from any user, reports ALREADY_CREDITED instead of failing.
    A caller other than the credited user gets the reason but not the entry. When a
    Payment record is passed, it is linked to the new ledger entry in the same transaction.

    Args:
        user_id (int): The credited user.
        payment_id (str): External payment identifier (idempotency key).
        amount_credits (int): Credits to add.
        meta (dict | None): Extra metadata stored on the entry.
        payment (Payment | None): Payment record to link to the entry.

    Returns:
        dict: ``{'credited': bool, 'reason': str, 'entry': LedgerEntry | None}``
    """
    if amount_credits <= 0:
        return {'credited': False, 'reason': DEPOSIT_NON_POSITIVE_AMOUNT, 'entry': None}

    try:
        with ledger_transaction(user_id):
            existing = _find_deposit_credit(payment_id)
            if existing is not None:
                current_app.logger.info(f"Deposit {payment_id} already credited by ledger entry {existing.id} (user {existing.user_id}).")
                return _already_credited(user_id, existing)

            balance_before = get_balance(user_id)
            entry = _add_entry(user_id, ENTRY_DEPOSIT_CREDIT, amount_credits, REF_PI_PAYMENT, payment_id, meta)
            if payment is not None:
                payment.credited_ledger_entry_id = entry.id
            AuditLogger.log_financial_event(
                event_type='deposit_credit', user_id=user_id, amount=amount_credits,
                balance_before=balance_before, balance_after=balance_before + amount_credits,
                ledger_entry_id=entry.id, ref_id=payment_id
            )
    except IntegrityError:
        # Another worker inserted the same credit between our check and our commit.
        current_app.logger.warning(f"Concurrent duplicate credit for deposit {payment_id}, user {user_id}; keeping the first.")
        return _already_credited(user_id, _find_deposit_credit(payment_id))

    return {'credited': True, 'reason': DEPOSIT_CREDITED, 'entry': entry}


def get_ledger_history(user_id, limit=50, offset=0):
    """
    Most recent entries first, serialized with their metadata as dicts.

    Args:
        user_id (int): Owner of the entries.
        limit (int): Maximum entries to return.
        offset (int): Entries to skip (pagination).

    Returns:
        list[dict]
    """
    entries = db.session.scalars(
        select(LedgerEntry)
        .where(LedgerEntry.user_id == user_id)
        .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
        .limit(limit)
        .offset(offset)
    ).all()
    return LedgerEntrySchema(many=True).dump(entries)
