from flask import Blueprint, request, jsonify, current_app

from slotpi_be.models import db, User
from slotpi_be.schemas import HistoryQuerySchema
from slotpi_be.services.ledger_service import get_balance, get_ledger_history
from slotpi_be.exceptions import NotFoundException
from slotpi_be.error_codes import ErrorCodes

balance_bp = Blueprint('balance', __name__, url_prefix='/api/balance')


def _get_user_or_404(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundException("User not found.", details={'user_id': user_id}, error_code=ErrorCodes.USER_NOT_FOUND)
    return user


@balance_bp.route('/<int:user_id>', methods=['GET'])
def balance(user_id):
    _get_user_or_404(user_id)
    return jsonify({'status': True, 'user_id': user_id, 'balance_credits': get_balance(user_id)}), 200


@balance_bp.route('/<int:user_id>/history', methods=['GET'])
def history(user_id):
    _get_user_or_404(user_id)
    args = HistoryQuerySchema().load(request.args)
    limit = min(args['limit'], current_app.config['LEDGER_HISTORY_MAX_LIMIT'])
    entries = get_ledger_history(user_id, limit=limit, offset=args['offset'])
    return jsonify({
        'status': True,
        'user_id': user_id,
        'limit': limit,
        'offset': args['offset'],
        'entries': entries,
    }), 200
