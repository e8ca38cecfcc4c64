from flask import Blueprint, request, jsonify

from slotpi_be.schemas import SpinRequestSchema, BonusPickRequestSchema
from slotpi_be.utils.spin_handler import handle_spin, handle_bonus_pick
from slotpi_be.exceptions import ValidationException

game_bp = Blueprint('game', __name__, url_prefix='/api/game')


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationException("Invalid request format: expected a JSON object.")
    return data


@game_bp.route('/spin', methods=['POST'])
def spin():
    # Marshmallow errors are rendered by the global handler
    data = SpinRequestSchema().load(_json_body())
    result = handle_spin(data['user_id'], data['bet_credits'])
    return jsonify({'status': True, **result}), 200


@game_bp.route('/bonus-pick', methods=['POST'])
def bonus_pick():
    data = BonusPickRequestSchema().load(_json_body())
    result = handle_bonus_pick(data['user_id'], data['spin_id'], data['picks'])
    return jsonify({'status': True, **result}), 200
