import copy

from .symbols import SYMBOL_WEIGHTS, get_symbol
from .bonus_helper import generate_bonus_round

GRID_ROWS = 5
GRID_COLS = 6
MIN_CLUSTER_SIZE = 3
MAX_CASCADES = 10
BONUS_TRIGGER_COUNT = 3

# Cluster size => multiple of the bet. Sizes above the largest key pay the largest key.
PAYTABLE = {
    3: 1,
    4: 2,
    5: 6,
    6: 10,
}
MAX_PAYTABLE_SIZE = max(PAYTABLE)


# --- Grid Generation ---

def weighted_random_symbol(rng, weights=SYMBOL_WEIGHTS):
    """
    Draws one symbol id using cumulative relative weights.

    A uniform draw in [0, total_weight) selects the first symbol whose cumulative
    weight meets or exceeds it, so earlier symbols win floating-point ties.

    Args:
        rng (RandomSource): Source of uniform draws.
        weights (list[tuple[str, float]]): Ordered (symbol_id, weight) pairs.

    Returns:
        str: The selected symbol id.
    """
    total_weight = sum(weight for _, weight in weights)
    draw = rng.uniform(total_weight)
    cumulative = 0
    for symbol_id, weight in weights:
        cumulative += weight
        if cumulative >= draw:
            return symbol_id
    return weights[0][0]


def generate_grid(rng, rows=GRID_ROWS, columns=GRID_COLS):
    """Generates a rows x columns grid of independently drawn symbol ids."""
    return [[weighted_random_symbol(rng) for _ in range(columns)] for _ in range(rows)]


# --- Cluster Resolution ---

def _flood_fill(grid, start_row, start_col, symbol_id, visited):
    rows = len(grid)
    cols = len(grid[0])
    cells = []
    stack = [(start_row, start_col)]
    while stack:
        row, col = stack.pop()
        if (row, col) in visited:
            continue
        if not (0 <= row < rows and 0 <= col < cols):
            continue
        if grid[row][col] != symbol_id:
            continue
        visited.add((row, col))
        cells.append({"row": row, "col": col})
        # Pushed in reverse so up, down, left, right are explored in that order.
        stack.append((row, col + 1))
        stack.append((row, col - 1))
        stack.append((row + 1, col))
        stack.append((row - 1, col))
    return cells


def find_clusters(grid):
    """
    Finds all 4-directionally connected groups of at least MIN_CLUSTER_SIZE identical,
    cluster-eligible symbols.

    Cells are visited in row-major order and each cell is claimed by at most one cluster,
    so the returned clusters never overlap.

    Args:
        grid (list[list[str]]): Grid of symbol ids.

    Returns:
        list[dict]: ``{"symbol": str, "cells": [{"row": int, "col": int}, ...]}`` per cluster.
    """
    clusters = []
    visited = set()
    for row_idx, row in enumerate(grid):
        for col_idx, symbol_id in enumerate(row):
            if (row_idx, col_idx) in visited:
                continue
            if not get_symbol(symbol_id).is_clusterable:
                continue
            cells = _flood_fill(grid, row_idx, col_idx, symbol_id, visited)
            if len(cells) >= MIN_CLUSTER_SIZE:
                clusters.append({"symbol": symbol_id, "cells": cells})
    return clusters


def apply_cascade(grid, matched_cells, rng):
    """
    Removes matched cells in place, drops the survivors of each affected column to the
    bottom (keeping their order) and refills the vacated top cells with fresh symbols.

    Columns without matched cells are left untouched.

    Args:
        grid (list[list[str]]): Working grid, mutated in place.
        matched_cells (list[dict]): Cells (``{"row", "col"}``) to clear.
        rng (RandomSource): Source for the refill symbols.

    Returns:
        list[list[str]]: The same grid object, for convenience.
    """
    rows = len(grid)
    cleared_rows_by_col = {}
    for cell in matched_cells:
        cleared_rows_by_col.setdefault(cell["col"], set()).add(cell["row"])

    for col in sorted(cleared_rows_by_col):
        cleared_rows = cleared_rows_by_col[col]
        survivors = [grid[row][col] for row in range(rows) if row not in cleared_rows]
        refill = [weighted_random_symbol(rng) for _ in range(rows - len(survivors))]
        new_column = refill + survivors
        for row in range(rows):
            grid[row][col] = new_column[row]
    return grid


def get_cluster_payout(cluster_size):
    """Bet multiple for a cluster of the given size (0 below the minimum size)."""
    if cluster_size < MIN_CLUSTER_SIZE:
        return 0
    return PAYTABLE[min(cluster_size, MAX_PAYTABLE_SIZE)]


def calculate_cluster_win(clusters, bet_credits):
    """Total coins paid by a set of clusters for one resolution step."""
    return sum(bet_credits * get_cluster_payout(len(cluster["cells"])) for cluster in clusters)


# --- Multipliers and Bonus Trigger (evaluated on the initial grid) ---

def find_multipliers(grid):
    multipliers = []
    for row in grid:
        for symbol_id in row:
            factor = get_symbol(symbol_id).multiplier
            if factor is not None:
                multipliers.append(factor)
    return multipliers


def apply_multipliers(total_win, multipliers):
    """Multiplier tiles add together: a x2 and a x3 tile scale the win by 5."""
    if not multipliers:
        return total_win
    return int(total_win * sum(multipliers))


def check_bonus_trigger(grid):
    trigger_count = sum(1 for row in grid for symbol_id in row if get_symbol(symbol_id).is_bonus_trigger)
    return trigger_count >= BONUS_TRIGGER_COUNT


# --- Main Game Resolution ---

def play_game(bet_credits, rng):
    """
    Resolves one spin: generates the initial grid, cascades until no clusters remain
    (or MAX_CASCADES steps were taken), then applies multipliers and checks the bonus
    trigger against the initial grid.

    Args:
        bet_credits (int): Bet used as the payout base.
        rng (RandomSource): Source of all randomness for this spin.

    Returns:
        dict: initial_grid, final_grid, base_win, total_win, clusters, cascade_steps,
              multipliers, bonus_triggered, bonus_board and cascade_capped.
    """
    initial_grid = generate_grid(rng)
    working_grid = copy.deepcopy(initial_grid)

    base_win = 0
    all_clusters = []
    cascade_steps = []

    clusters = find_clusters(working_grid)
    while clusters and len(cascade_steps) < MAX_CASCADES:
        step_win = calculate_cluster_win(clusters, bet_credits)
        cascade_steps.append({
            "grid": copy.deepcopy(working_grid),
            "clusters": copy.deepcopy(clusters),
            "win": step_win,
        })
        base_win += step_win
        all_clusters.extend(clusters)

        matched_cells = [cell for cluster in clusters for cell in cluster["cells"]]
        apply_cascade(working_grid, matched_cells, rng)
        clusters = find_clusters(working_grid)

    multipliers = find_multipliers(initial_grid)
    total_win = apply_multipliers(base_win, multipliers)

    bonus_triggered = check_bonus_trigger(initial_grid)
    bonus_board = generate_bonus_round(rng) if bonus_triggered else None

    return {
        "initial_grid": initial_grid,
        "final_grid": working_grid,
        "base_win": base_win,
        "total_win": total_win,
        "clusters": all_clusters,
        "cascade_steps": cascade_steps,
        "multipliers": multipliers,
        "bonus_triggered": bonus_triggered,
        "bonus_board": bonus_board,
        # True only when the cap stopped resolution with clusters still on the board.
        "cascade_capped": bool(clusters),
    }
