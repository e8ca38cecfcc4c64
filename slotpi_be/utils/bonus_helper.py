from collections import Counter

BONUS_BOARD_SIZE = 12
BONUS_PICK_COUNT = 3
JOKER = "JOKER"
BONUS_PRIZES = ["10", "25", "50", "100", "200", "500", "1000", JOKER]


def generate_bonus_round(rng):
    """Draws a bonus board of BONUS_BOARD_SIZE prize labels, uniformly and independently."""
    return [BONUS_PRIZES[rng.randrange(len(BONUS_PRIZES))] for _ in range(BONUS_BOARD_SIZE)]


def validate_picks(picks, board_size=BONUS_BOARD_SIZE):
    """
    Checks that picks are BONUS_PICK_COUNT distinct integer indices into the board.

    Returns:
        str | None: A reason string when invalid, None when the picks are usable.
    """
    if not isinstance(picks, (list, tuple)):
        return "Picks must be a list of board indices."
    if len(picks) != BONUS_PICK_COUNT:
        return f"Exactly {BONUS_PICK_COUNT} picks are required."
    for pick in picks:
        if isinstance(pick, bool) or not isinstance(pick, int):
            return "Picks must be integers."
        if not 0 <= pick < board_size:
            return f"Pick {pick} is outside the board (0-{board_size - 1})."
    if len(set(picks)) != len(picks):
        return "Picks must be distinct."
    return None


def process_bonus_pick(bonus_board, picks):
    """
    Resolves a bonus pick against a stored board.

    Rules, in order:
      1. A JOKER among the selection with at least two non-JOKER prizes pays the first
         non-JOKER prize (not a combination of them).
      2. Otherwise three identical prizes pay that prize.
      3. Otherwise nothing is won and the raw selection is returned.

    Two JOKERs with a single prize fall through to rule 2/3 and do not win.

    Args:
        bonus_board (list[str]): Board previously generated by generate_bonus_round.
        picks (list[int]): Indices into the board (validated by the caller).

    Returns:
        dict: ``{"win": int, "matched": list[str]}``
    """
    selected = [bonus_board[i] for i in picks]

    if JOKER in selected:
        non_joker = [prize for prize in selected if prize != JOKER]
        if len(non_joker) >= 2:
            prize = non_joker[0]
            return {"win": int(prize), "matched": [prize, prize, JOKER]}

    for prize, count in Counter(selected).items():
        if count >= 3 and prize != JOKER:
            return {"win": int(prize), "matched": [prize, prize, prize]}

    return {"win": 0, "matched": selected}
