import pytest

from slotpi_be.utils.bonus_helper import (
    generate_bonus_round,
    process_bonus_pick,
    validate_picks,
    BONUS_BOARD_SIZE,
    BONUS_PRIZES,
    JOKER,
)
from slotpi_be.utils.rng import RandomSource

FILLER = ["500"] * 9


def test_three_identical_prizes_win_that_prize():
    result = process_bonus_pick(["10", "10", "10"] + FILLER, [0, 1, 2])
    assert result == {"win": 10, "matched": ["10", "10", "10"]}


def test_joker_with_two_prizes_pays_first_prize():
    result = process_bonus_pick([JOKER, "50", "50"] + FILLER, [0, 1, 2])
    assert result == {"win": 50, "matched": ["50", "50", JOKER]}


def test_joker_pays_first_non_joker_not_the_best():
    result = process_bonus_pick(["25", JOKER, "1000"] + FILLER, [0, 1, 2])
    assert result == {"win": 25, "matched": ["25", "25", JOKER]}


def test_two_jokers_and_one_prize_do_not_win():
    board = [JOKER, JOKER, "10"] + FILLER
    result = process_bonus_pick(board, [0, 1, 2])
    assert result["win"] == 0
    assert result["matched"] == [JOKER, JOKER, "10"]


def test_three_jokers_do_not_win():
    result = process_bonus_pick([JOKER, JOKER, JOKER] + FILLER, [0, 1, 2])
    assert result["win"] == 0


def test_mismatched_prizes_return_raw_selection():
    board = ["10", "25", "50", "100"] + ["200"] * 8
    result = process_bonus_pick(board, [3, 0, 1])
    assert result == {"win": 0, "matched": ["100", "10", "25"]}


def test_picks_order_follows_selection():
    board = ["10"] * 11 + [JOKER]
    result = process_bonus_pick(board, [11, 4, 5])
    assert result == {"win": 10, "matched": ["10", "10", JOKER]}


def test_generate_bonus_round_uses_catalog():
    board = generate_bonus_round(RandomSource.seeded(1))
    assert len(board) == BONUS_BOARD_SIZE
    assert all(prize in BONUS_PRIZES for prize in board)


@pytest.mark.parametrize("picks", [[0, 1, 2], (9, 10, 11), [11, 0, 5]])
def test_validate_picks_accepts_distinct_indices(picks):
    assert validate_picks(picks) is None


@pytest.mark.parametrize("picks", [
    None,
    "012",
    [0, 1],
    [0, 1, 2, 3],
    [0, 0, 1],
    [0, 1, 12],
    [-1, 0, 1],
    [0, 1, "2"],
    [0, 1, 2.0],
    [True, 0, 1],
])
def test_validate_picks_rejects_malformed(picks):
    assert validate_picks(picks) is not None
