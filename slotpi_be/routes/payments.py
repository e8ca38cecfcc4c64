from flask import Blueprint, request, jsonify, current_app

from slotpi_be.models import db, User
from slotpi_be.schemas import DepositApproveSchema, DepositCompleteSchema, LedgerEntrySchema, PaymentSchema
from slotpi_be.services.payment_service import approve_deposit, credit_deposit_if_complete
from slotpi_be.services.pi_platform import PiPlatformClient
from slotpi_be.services.ledger_service import get_balance
from slotpi_be.exceptions import NotFoundException, ValidationException
from slotpi_be.error_codes import ErrorCodes

payments_bp = Blueprint('payments', __name__, url_prefix='/api/payments')


def _load(schema):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationException("Invalid request format: expected a JSON object.")
    data = schema.load(data)
    if db.session.get(User, data['user_id']) is None:
        raise NotFoundException("User not found.", details={'user_id': data['user_id']}, error_code=ErrorCodes.USER_NOT_FOUND)
    return data


def _dump_payment(payment):
    return PaymentSchema().dump(payment) if payment is not None else None


@payments_bp.route('/approve', methods=['POST'])
def approve():
    """Approves a user-to-app Pi payment before the player signs the transaction."""
    data = _load(DepositApproveSchema())
    client = PiPlatformClient.from_config(current_app.config)
    result = approve_deposit(data['user_id'], data['payment_id'], client=client)
    return jsonify({
        'status': True,
        'approved': result['approved'],
        'reason': result['reason'],
        'payment': _dump_payment(result['payment']),
    }), 200


@payments_bp.route('/complete', methods=['POST'])
def complete_deposit():
    """
    Completes a user-to-app Pi payment and credits it.

    When a txid is supplied the payment is first completed with the Pi platform;
    crediting always uses the platform's own view of the payment.
    """
    data = _load(DepositCompleteSchema())
    user_id = data['user_id']
    client = PiPlatformClient.from_config(current_app.config)
    result = credit_deposit_if_complete(user_id, data['payment_id'], client=client, txid=data['txid'])
    entry = result.get('entry')
    return jsonify({
        'status': True,
        'credited': result['credited'],
        'reason': result['reason'],
        'payment': _dump_payment(result.get('payment')),
        'entry': LedgerEntrySchema().dump(entry) if entry is not None else None,
        'balance_credits': get_balance(user_id),
    }), 200
