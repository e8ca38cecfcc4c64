import threading
import unittest
from unittest.mock import patch

from slotpi_be.models import db, LedgerEntry, ENTRY_BET, ENTRY_PAYOUT, ENTRY_BONUS_PAYOUT
from slotpi_be.services import ledger_service
from slotpi_be.services.ledger_service import get_balance, ledger_transaction, record_spin
from slotpi_be.utils.spin_handler import handle_spin, handle_bonus_pick
from slotpi_be.utils.rng import RandomSource
from slotpi_be.exceptions import (
    InvalidBetException, BetTooLargeException, InsufficientBalanceException, NotFoundException,
    InvalidPicksException, SpinNotFoundException, NoBonusBoardException, BonusAlreadyClaimedException,
)
from slotpi_be.error_codes import ErrorCodes
from slotpi_be.tests.base import BaseTestCase, BONUS_BOARD, fixed_game_result


class TestHandleSpin(BaseTestCase):

    def test_losing_spin_debits_exactly_the_bet(self):
        user = self._create_user(balance=1000)
        with patch('slotpi_be.utils.spin_handler.play_game', return_value=fixed_game_result(0)):
            result = handle_spin(user.id, 100)

        self.assertEqual(result['win_credits'], 0)
        self.assertEqual(result['balance_credits'], 900)
        self.assertEqual(get_balance(user.id), 900)
        entries = LedgerEntry.query.filter_by(ref_id=result['spin_id']).all()
        self.assertEqual([(e.entry_type, e.amount_credits) for e in entries], [(ENTRY_BET, -100)])

    def test_winning_spin_writes_bet_and_payout_with_same_spin_id(self):
        user = self._create_user(balance=1000)
        with patch('slotpi_be.utils.spin_handler.play_game', return_value=fixed_game_result(250)):
            result = handle_spin(user.id, 100)

        self.assertEqual(result['win_credits'], 250)
        self.assertEqual(result['balance_credits'], 1150)
        entries = LedgerEntry.query.filter_by(ref_type='spin', ref_id=result['spin_id']).order_by(LedgerEntry.id).all()
        self.assertEqual([(e.entry_type, e.amount_credits) for e in entries],
                         [(ENTRY_BET, -100), (ENTRY_PAYOUT, 250)])
        self.assertEqual(entries[1].meta['win_credits'], 250)
        self.assertEqual(entries[1].meta['bet_credits'], 100)

    def test_result_shape(self):
        user = self._create_user(balance=1000)
        result = handle_spin(user.id, 10, rng=RandomSource.seeded(5))
        self.assertTrue(result['spin_id'].startswith('spin_'))
        self.assertEqual(result['bet_credits'], 10)
        self.assertEqual(set(result['game_result']),
                         {'initial_grid', 'clusters', 'cascade_steps', 'multipliers',
                          'bonus_triggered', 'bonus_board', 'cascade_capped'})
        self.assertEqual(result['balance_credits'], 1000 - 10 + result['win_credits'])

    def test_bonus_board_stored_even_without_win(self):
        user = self._create_user(balance=1000)
        with patch('slotpi_be.utils.spin_handler.play_game',
                   return_value=fixed_game_result(0, bonus_board=BONUS_BOARD)):
            result = handle_spin(user.id, 100)
        bet_entry = LedgerEntry.query.filter_by(ref_id=result['spin_id'], entry_type=ENTRY_BET).one()
        self.assertEqual(bet_entry.meta['bonus_board'], BONUS_BOARD)
        self.assertTrue(result['game_result']['bonus_triggered'])

    def test_invalid_bets_write_nothing(self):
        user = self._create_user(balance=1000)
        for bet, exc in ((0, InvalidBetException), (-1, InvalidBetException), (2.5, InvalidBetException),
                         ("100", InvalidBetException), (10_001, BetTooLargeException)):
            with self.assertRaises(exc, msg=repr(bet)):
                handle_spin(user.id, bet)
        self.assertEqual(LedgerEntry.query.filter_by(entry_type=ENTRY_BET).count(), 0)

    def test_insufficient_balance(self):
        user = self._create_user(balance=99)
        with patch('slotpi_be.utils.spin_handler.play_game') as mock_play:
            with self.assertRaises(InsufficientBalanceException) as ctx:
                handle_spin(user.id, 100)
        mock_play.assert_not_called()
        self.assertEqual(ctx.exception.error_code, ErrorCodes.INSUFFICIENT_BALANCE)
        self.assertEqual(get_balance(user.id), 99)

    def test_unknown_user(self):
        with self.assertRaises(NotFoundException) as ctx:
            handle_spin(12345, 10)
        self.assertEqual(ctx.exception.error_code, ErrorCodes.USER_NOT_FOUND)

    def test_concurrent_spins_exactly_one_succeeds(self):
        user = self._create_user(balance=100)
        user_id = user.id
        barrier = threading.Barrier(2)
        outcomes = []

        def spin():
            with self.app.app_context():
                barrier.wait()
                try:
                    handle_spin(user_id, 100)
                    outcomes.append('ok')
                except InsufficientBalanceException:
                    outcomes.append('insufficient')
                finally:
                    db.session.remove()

        with patch('slotpi_be.utils.spin_handler.play_game', return_value=fixed_game_result(0)):
            threads = [threading.Thread(target=spin) for _ in range(2)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=30)

        self.assertEqual(sorted(outcomes), ['insufficient', 'ok'])
        self.assertEqual(get_balance(user_id), 0)


class TestHandleBonusPick(BaseTestCase):

    def _bonus_spin(self, user):
        with patch('slotpi_be.utils.spin_handler.play_game',
                   return_value=fixed_game_result(0, bonus_board=BONUS_BOARD)):
            return handle_spin(user.id, 100)['spin_id']

    def test_three_of_a_kind(self):
        user = self._create_user(balance=1000)
        spin_id = self._bonus_spin(user)
        result = handle_bonus_pick(user.id, spin_id, [0, 1, 2])
        self.assertEqual(result['bonus_win'], 10)
        self.assertEqual(result['matched'], ["10", "10", "10"])
        self.assertEqual(result['balance_credits'], 910)

        entry = LedgerEntry.query.filter_by(entry_type=ENTRY_BONUS_PAYOUT).one()
        self.assertEqual(entry.ref_type, 'bonus_pick')
        self.assertEqual(entry.ref_id, f"{spin_id}_bonus")
        self.assertEqual(entry.amount_credits, 10)

    def test_joker_match(self):
        user = self._create_user(balance=1000)
        spin_id = self._bonus_spin(user)
        result = handle_bonus_pick(user.id, spin_id, [3, 4, 5])
        self.assertEqual(result['bonus_win'], 50)
        self.assertEqual(result['matched'], ["50", "50", "JOKER"])

    def test_losing_pick_still_consumes_round(self):
        user = self._create_user(balance=1000)
        spin_id = self._bonus_spin(user)
        result = handle_bonus_pick(user.id, spin_id, [6, 7, 8])
        self.assertEqual(result['bonus_win'], 0)
        self.assertEqual(result['balance_credits'], 900)
        with self.assertRaises(BonusAlreadyClaimedException):
            handle_bonus_pick(user.id, spin_id, [0, 1, 2])
        self.assertEqual(get_balance(user.id), 900)

    def test_second_pick_rejected(self):
        user = self._create_user(balance=1000)
        spin_id = self._bonus_spin(user)
        handle_bonus_pick(user.id, spin_id, [0, 1, 2])
        with self.assertRaises(BonusAlreadyClaimedException) as ctx:
            handle_bonus_pick(user.id, spin_id, [0, 1, 2])
        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual(get_balance(user.id), 910)

    def test_unknown_spin(self):
        user = self._create_user(balance=1000)
        with self.assertRaises(SpinNotFoundException):
            handle_bonus_pick(user.id, "spin_missing", [0, 1, 2])

    def test_spin_of_another_user_is_not_found(self):
        owner = self._create_user(pi_uid="owner", balance=1000)
        other = self._create_user(pi_uid="other", balance=1000)
        spin_id = self._bonus_spin(owner)
        with self.assertRaises(SpinNotFoundException):
            handle_bonus_pick(other.id, spin_id, [0, 1, 2])

    def test_spin_without_bonus_board(self):
        user = self._create_user(balance=1000)
        with patch('slotpi_be.utils.spin_handler.play_game', return_value=fixed_game_result(30)):
            spin_id = handle_spin(user.id, 100)['spin_id']
        with self.assertRaises(NoBonusBoardException):
            handle_bonus_pick(user.id, spin_id, [0, 1, 2])
        self.assertEqual(LedgerEntry.query.filter_by(entry_type=ENTRY_BONUS_PAYOUT).count(), 0)

    def test_board_recovered_from_payout_meta(self):
        user = self._create_user(balance=1000)
        with ledger_transaction(user.id):
            record_spin(user.id, 100, spin_id="spin_legacy")
            db.session.add(LedgerEntry(user_id=user.id, entry_type=ENTRY_PAYOUT, amount_credits=5,
                                       ref_type='spin', ref_id="spin_legacy", meta={'bonus_board': BONUS_BOARD}))
        result = handle_bonus_pick(user.id, "spin_legacy", [0, 1, 2])
        self.assertEqual(result['bonus_win'], 10)

    def test_unknown_user_is_rejected_before_locking(self):
        with self.assertRaises(NotFoundException) as ctx:
            handle_bonus_pick(100123, "spin_missing", [0, 1, 2])
        self.assertEqual(ctx.exception.error_code, ErrorCodes.USER_NOT_FOUND)
        self.assertNotIn(100123, ledger_service._user_locks)

    def test_bonus_entry_marks_whether_round_was_won(self):
        user = self._create_user(balance=1000)
        losing_spin = self._bonus_spin(user)
        winning_spin = self._bonus_spin(user)
        handle_bonus_pick(user.id, losing_spin, [6, 7, 8])
        handle_bonus_pick(user.id, winning_spin, [0, 1, 2])

        entries = {e.meta['spin_id']: e for e in LedgerEntry.query.filter_by(entry_type=ENTRY_BONUS_PAYOUT)}
        self.assertEqual(entries[losing_spin].amount_credits, 0)
        self.assertFalse(entries[losing_spin].meta['won'])
        self.assertTrue(entries[winning_spin].meta['won'])

    def test_malformed_picks_rejected_before_lookup(self):
        user = self._create_user(balance=1000)
        spin_id = self._bonus_spin(user)
        for picks in ([0, 1], [0, 0, 1], [0, 1, 12], "abc"):
            with self.assertRaises(InvalidPicksException, msg=repr(picks)):
                handle_bonus_pick(user.id, spin_id, picks)
        self.assertEqual(LedgerEntry.query.filter_by(entry_type=ENTRY_BONUS_PAYOUT).count(), 0)


if __name__ == '__main__':
    unittest.main()
