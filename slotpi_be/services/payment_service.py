"""
Pi deposit handling: approves provider payments, mirrors them locally and credits
completed deposits.

Only the provider's view of a payment is trusted; client-supplied amounts are never used.
"""
from decimal import Decimal, ROUND_FLOOR

from flask import current_app
from sqlalchemy import select

from slotpi_be.models import db, User, Payment
from slotpi_be.exceptions import NotFoundException
from slotpi_be.error_codes import ErrorCodes
from slotpi_be.services.ledger_service import (
    credit_external_deposit, DEPOSIT_ALREADY_CREDITED, DEPOSIT_NON_POSITIVE_AMOUNT,
)
from slotpi_be.services.pi_platform import PiPlatformClient

DIRECTION_USER_TO_APP = 'user_to_app'

REASON_NOT_U2A = 'NOT_U2A'
REASON_TX_NOT_VERIFIED = 'TX_NOT_VERIFIED'
REASON_NOT_COMPLETED = 'NOT_COMPLETED'
REASON_CANCELLED = 'CANCELLED'
REASON_USER_MISMATCH = 'USER_MISMATCH'

APPROVED = 'OK'


def pi_to_credits(amount_pi, credits_per_pi):
    """Pi amount to whole credits, rounded down so fractional credits are never granted."""
    credits = (Decimal(str(amount_pi)) * credits_per_pi).to_integral_value(rounding=ROUND_FLOOR)
    return int(credits)


def upsert_user_from_profile(uid, username=None):
    """Creates the user for a provider uid, or refreshes the stored username."""
    user = db.session.scalar(select(User).filter_by(pi_uid=uid))
    if user is None:
        user = User(pi_uid=uid, username=username)
        db.session.add(user)
        current_app.logger.info(f"Created user for Pi uid {uid}.")
    elif username is not None:
        user.username = username
    db.session.commit()
    return user


def record_payment_from_dto(user_id, dto):
    """
    Upserts the local Payment mirror from the provider's payment DTO.

    Args:
        user_id (int): Local user owning the payment.
        dto (dict): Payment object as returned by ``GET /payments/{id}``.

    Returns:
        Payment: The flushed payment record (not committed).
    """
    status = dto.get('status') or {}
    transaction = dto.get('transaction') or {}

    payment = db.session.scalar(select(Payment).filter_by(pi_payment_id=dto['identifier']))
    if payment is None:
        payment = Payment(pi_payment_id=dto['identifier'], user_id=user_id)
        db.session.add(payment)

    payment.direction = dto.get('direction')
    payment.network = dto.get('network')
    payment.amount_pi = Decimal(str(dto.get('amount') or 0))
    payment.memo = dto.get('memo') or ''
    payment.meta = dto.get('metadata') or {}
    payment.txid = transaction.get('txid')
    payment.status_developer_approved = bool(status.get('developer_approved'))
    payment.status_transaction_verified = bool(status.get('transaction_verified'))
    payment.status_developer_completed = bool(status.get('developer_completed'))
    payment.status_cancelled = bool(status.get('cancelled'))
    payment.status_user_cancelled = bool(status.get('user_cancelled'))
    db.session.flush()
    return payment


def _require_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundException(status_message="User not found.", details={'user_id': user_id},
                                error_code=ErrorCodes.USER_NOT_FOUND)
    return user


def _ownership_reason(user, dto):
    """USER_MISMATCH when the provider payment, or its local mirror, belongs to someone else."""
    if dto.get('user_uid') != user.pi_uid:
        return REASON_USER_MISMATCH
    mirrored = db.session.scalar(select(Payment).filter_by(pi_payment_id=dto.get('identifier')))
    if mirrored is not None and mirrored.user_id != user.id:
        return REASON_USER_MISMATCH
    return None


def _mirror(user_id, dto):
    try:
        payment = record_payment_from_dto(user_id, dto)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return payment


def _rejection_reason(payment):
    if payment.direction != DIRECTION_USER_TO_APP:
        return REASON_NOT_U2A
    if not payment.status_transaction_verified:
        return REASON_TX_NOT_VERIFIED
    if not payment.status_developer_completed:
        return REASON_NOT_COMPLETED
    if payment.status_cancelled or payment.status_user_cancelled:
        return REASON_CANCELLED
    return None


def approve_deposit(user_id, pi_payment_id, client=None):
    """
    Approves a user-to-app payment with the provider and binds its mirror to the user.

    Returns:
        dict: ``{'approved': bool, 'reason': str, 'payment': Payment | None}``
    """
    client = client or PiPlatformClient.from_config(current_app.config)
    user = _require_user(user_id)
    dto = client.get_payment(pi_payment_id)

    reason = _ownership_reason(user, dto)
    if reason is not None:
        current_app.logger.warning(f"User {user_id} tried to approve payment {pi_payment_id} owned by another user.")
        return {'approved': False, 'reason': reason, 'payment': None}

    payment = _mirror(user_id, dto)
    if payment.direction != DIRECTION_USER_TO_APP:
        return {'approved': False, 'reason': REASON_NOT_U2A, 'payment': payment}
    if payment.status_cancelled or payment.status_user_cancelled:
        return {'approved': False, 'reason': REASON_CANCELLED, 'payment': payment}

    if not payment.status_developer_approved:
        approved_dto = client.approve_payment(pi_payment_id)
        if approved_dto:
            payment = _mirror(user_id, approved_dto)
        current_app.logger.info(f"Approved payment {pi_payment_id} for user {user_id}.")
    return {'approved': True, 'reason': APPROVED, 'payment': payment}


def credit_deposit_if_complete(user_id, pi_payment_id, client=None, txid=None):
    """
    Fetches the authoritative payment, mirrors it and credits it once it is complete.

    Checks run in order: ownership, an existing credit, direction, transaction verified,
    developer completed, cancellation, positive credit amount. A payment owned by another
    user is neither mirrored nor returned; any other payment is mirrored even when it is
    not credited. The reason is returned rather than raised.

    When a txid is given for a payment the provider has not marked complete yet, the
    payment is completed with the provider first.

    Returns:
        dict: ``{'credited': bool, 'reason': str, 'payment': Payment | None, 'entry': LedgerEntry | None}``
    """
    client = client or PiPlatformClient.from_config(current_app.config)
    user = _require_user(user_id)
    dto = client.get_payment(pi_payment_id)

    reason = _ownership_reason(user, dto)
    if reason is not None:
        current_app.logger.warning(f"User {user_id} tried to claim payment {pi_payment_id} owned by another user.")
        return {'credited': False, 'reason': reason, 'payment': None, 'entry': None}

    payment = _mirror(user_id, dto)
    if txid and payment.direction == DIRECTION_USER_TO_APP and not payment.status_developer_completed:
        completed_dto = client.complete_payment(pi_payment_id, txid)
        if completed_dto:
            payment = _mirror(user_id, completed_dto)

    if payment.credited_ledger_entry_id is not None:
        return {'credited': False, 'reason': DEPOSIT_ALREADY_CREDITED, 'payment': payment,
                'entry': payment.credited_ledger_entry}

    reason = _rejection_reason(payment)
    if reason is not None:
        current_app.logger.info(f"Payment {pi_payment_id} for user {user_id} not credited: {reason}")
        return {'credited': False, 'reason': reason, 'payment': payment, 'entry': None}

    credits_per_pi = current_app.config['CREDITS_PER_PI']
    credits = pi_to_credits(payment.amount_pi, credits_per_pi)
    if credits <= 0:
        return {'credited': False, 'reason': DEPOSIT_NON_POSITIVE_AMOUNT, 'payment': payment, 'entry': None}

    result = credit_external_deposit(
        user_id,
        payment.pi_payment_id,
        credits,
        meta={'amount_pi': str(payment.amount_pi), 'credits_per_pi': credits_per_pi},
        payment=payment,
    )
    result['payment'] = payment
    return result
