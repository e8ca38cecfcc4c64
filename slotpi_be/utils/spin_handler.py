from flask import current_app
from sqlalchemy.exc import IntegrityError

from slotpi_be.models import db, User, ENTRY_BET
from slotpi_be.exceptions import (
    NotFoundException, InsufficientBalanceException, InvalidPicksException,
    SpinNotFoundException, NoBonusBoardException, BonusAlreadyClaimedException,
)
from slotpi_be.error_codes import ErrorCodes
from slotpi_be.services import ledger_service
from slotpi_be.utils.audit_logger import AuditLogger
from slotpi_be.utils.bonus_helper import validate_picks, process_bonus_pick
from slotpi_be.utils.cluster_engine import play_game
from slotpi_be.utils.rng import RandomSource


def _require_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundException(status_message="User not found.", details={'user_id': user_id},
                                error_code=ErrorCodes.USER_NOT_FOUND)
    return user


def _game_summary(result):
    """Client-facing subset of a play_game result."""
    return {
        'initial_grid': result['initial_grid'],
        'clusters': result['clusters'],
        'cascade_steps': result['cascade_steps'],
        'multipliers': result['multipliers'],
        'bonus_triggered': result['bonus_triggered'],
        'bonus_board': result['bonus_board'],
        'cascade_capped': result['cascade_capped'],
    }


def handle_spin(user_id, bet_credits, rng=None):
    """
    Plays one spin for a user and settles it on the ledger.

    The bet is validated before anything is read or written. The balance check, the
    BET debit and the optional PAYOUT credit then run in one ledger transaction, so
    two concurrent spins for the same user cannot both spend the same credits.

    Args:
        user_id (int): The playing user.
        bet_credits (int): Bet for this spin.
        rng (RandomSource | None): Randomness for the grid; system randomness when omitted.

    Returns:
        dict: spin_id, bet_credits, win_credits, balance_credits and game_result.

    Raises:
        InvalidBetException, BetTooLargeException: Bad bet (nothing written).
        NotFoundException: Unknown user.
        InsufficientBalanceException: Balance lower than the bet (nothing written).
    """
    ledger_service.validate_bet(bet_credits)
    _require_user(user_id)
    rng = rng or RandomSource()

    with ledger_service.ledger_transaction(user_id):
        balance_before = ledger_service.get_balance(user_id)
        if balance_before < bet_credits:
            raise InsufficientBalanceException(details={'balance_credits': balance_before, 'bet_credits': bet_credits})

        result = play_game(bet_credits, rng)
        win_credits = result['total_win']
        spin_id = ledger_service.new_spin_id()

        bet_meta = {'bonus_triggered': result['bonus_triggered']}
        if result['bonus_triggered']:
            bet_meta['bonus_board'] = result['bonus_board']
        ledger_service.record_spin(user_id, bet_credits, spin_id=spin_id, meta=bet_meta,
                                   current_balance=balance_before)

        ledger_service.record_payout(user_id, spin_id, win_credits, meta={
            'bet_credits': bet_credits,
            'win_credits': win_credits,
            'clusters': len(result['clusters']),
            'cascades': len(result['cascade_steps']),
            'multipliers': result['multipliers'],
            'bonus_triggered': result['bonus_triggered'],
            'bonus_board': result['bonus_board'],
        })

        balance_after = ledger_service.get_balance(user_id)

    AuditLogger.log_game_event(
        event_type='spin', user_id=user_id, bet_amount=bet_credits, win_amount=win_credits,
        spin_id=spin_id,
        details={'cascades': len(result['cascade_steps']), 'bonus_triggered': result['bonus_triggered'],
                 'cascade_capped': result['cascade_capped']}
    )
    if result['cascade_capped']:
        current_app.logger.warning(f"Spin {spin_id} stopped at the cascade cap with clusters remaining.")

    return {
        'spin_id': spin_id,
        'bet_credits': bet_credits,
        'win_credits': win_credits,
        'balance_credits': balance_after,
        'game_result': _game_summary(result),
    }


def _stored_bonus_board(entries):
    for entry in entries:
        board = (entry.meta or {}).get('bonus_board')
        if board:
            return board
    return None


def handle_bonus_pick(user_id, spin_id, picks):
    """
    Resolves the bonus round of a previous spin, at most once per spin.

    The board is reloaded from the spin's ledger metadata; a missing spin or board fails
    closed without writing anything. The resolution and its BONUS_PAYOUT entry (written
    even for a zero win, to mark the round as played) commit together.

    Returns:
        dict: ``{'bonus_win': int, 'matched': list[str], 'balance_credits': int}``

    Raises:
        InvalidPicksException, NotFoundException, SpinNotFoundException, NoBonusBoardException,
        BonusAlreadyClaimedException
    """
    reason = validate_picks(picks)
    if reason is not None:
        raise InvalidPicksException(status_message=reason, details={'picks': picks})
    _require_user(user_id)

    try:
        with ledger_service.ledger_transaction(user_id):
            entries = ledger_service.get_spin_entries(user_id, spin_id)
            if not any(entry.entry_type == ENTRY_BET for entry in entries):
                raise SpinNotFoundException(details={'spin_id': spin_id})

            board = _stored_bonus_board(entries)
            if board is None:
                raise NoBonusBoardException(details={'spin_id': spin_id})

            if ledger_service.get_bonus_pick_entry(user_id, spin_id) is not None:
                raise BonusAlreadyClaimedException(details={'spin_id': spin_id})

            outcome = process_bonus_pick(board, picks)
            ledger_service.record_bonus_payout(user_id, spin_id, outcome['win'],
                                               meta={'picks': list(picks), 'matched': outcome['matched'],
                                                     'won': outcome['win'] > 0})
            balance_after = ledger_service.get_balance(user_id)
    except IntegrityError:
        raise BonusAlreadyClaimedException(details={'spin_id': spin_id})

    AuditLogger.log_game_event(
        event_type='bonus_pick', user_id=user_id, win_amount=outcome['win'], spin_id=spin_id,
        details={'picks': list(picks), 'matched': outcome['matched']}
    )

    return {
        'bonus_win': outcome['win'],
        'matched': outcome['matched'],
        'balance_credits': balance_after,
    }
