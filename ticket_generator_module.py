# ticket_generator_module.py
import logging
import math
import random
from collections import Counter
from itertools import combinations
from typing import Iterable, List, Optional, Set, Tuple

from track_pool import (
    COLS,
    ITEMS_PER_ROW,
    ITEMS_PER_TICKET,
    ROWS,
    Ticket,
    Track,
    column_of,
    ticket_id_for,
    tracks_for_column,
)

logger = logging.getLogger(__name__)

MAX_TICKET_ATTEMPTS = 100
MAX_SWAPS_PER_TICKET = 5

Grid = List[List[Optional[Track]]]

# Hand-checked per-column counts: each sums to 15, no column empty,
# at most one column with 3. Shuffled across columns before use.
COLUMN_TEMPLATES: List[List[int]] = [
    [2, 2, 2, 1, 2, 2, 2, 1, 1],
    [2, 2, 1, 2, 2, 1, 2, 2, 1],
    [1, 2, 2, 2, 1, 2, 2, 2, 1],
    [2, 1, 2, 2, 2, 1, 2, 2, 1],
    [2, 2, 2, 2, 1, 1, 2, 2, 1],
    [1, 2, 2, 2, 2, 1, 2, 2, 1],
    [2, 1, 2, 2, 2, 2, 1, 2, 1],
    [2, 2, 1, 2, 2, 2, 1, 2, 1],
    [1, 2, 2, 1, 2, 2, 2, 2, 1],
    [2, 2, 2, 1, 2, 1, 2, 2, 1],
    [2, 1, 2, 2, 1, 2, 2, 2, 1],
    [1, 2, 2, 2, 2, 2, 1, 2, 1],
    [2, 2, 1, 2, 1, 2, 2, 2, 1],
    [2, 2, 2, 2, 2, 1, 1, 2, 1],
    [1, 2, 1, 2, 2, 2, 2, 2, 1],
    [2, 1, 2, 1, 2, 2, 2, 2, 1],
    [3, 2, 1, 2, 1, 2, 2, 1, 1],  # one full column
    [2, 3, 1, 2, 1, 2, 1, 2, 1],
    [1, 2, 3, 1, 2, 2, 2, 1, 1],
    [2, 1, 2, 3, 1, 2, 1, 2, 1],
]

# Greedy least-filled-row placement always lands on 5/5/5 for this one.
FALLBACK_COLUMN_COUNTS: List[int] = [2, 2, 2, 1, 2, 2, 2, 1, 1]


# ========================= COLUMN DISTRIBUTION =========================

def column_distribution() -> List[int]:
    """Pick a template at random and shuffle its counts across columns."""
    counts = list(random.choice(COLUMN_TEMPLATES))
    random.shuffle(counts)
    return counts


def row_mask(column_counts: List[int]) -> Optional[List[List[int]]]:
    """
    Given per-column counts (each 0..3) for one ticket, find a 3x9 0/1 mask
    where each row sums to 5 and each column sums to the given count.

    Returns None when no such mask exists. Exhaustive; used to check
    templates, never on the generation path.
    """
    if len(column_counts) != COLS:
        raise ValueError("column_counts must have length 9")
    if sum(column_counts) != ITEMS_PER_TICKET:
        return None

    rows_left = [ITEMS_PER_ROW] * ROWS
    mask = [[0] * COLS for _ in range(ROWS)]

    def backtrack(c: int) -> bool:
        if c == COLS:
            return rows_left == [0] * ROWS

        k = column_counts[c]
        valid_rows = [r for r in range(ROWS) if rows_left[r] > 0]
        if len(valid_rows) < k:
            return False

        remaining_cols = COLS - c - 1
        for comb in combinations(valid_rows, k):
            for r in comb:
                rows_left[r] -= 1
                mask[r][c] = 1

            if all(left <= remaining_cols for left in rows_left) and backtrack(c + 1):
                return True

            for r in comb:
                rows_left[r] += 1
                mask[r][c] = 0

        return False

    return mask if backtrack(0) else None


# ========================= GRID PLACEMENT =========================

def _empty_grid() -> Grid:
    return [[None] * COLS for _ in range(ROWS)]


def _full_columns(grid: Grid) -> int:
    return sum(1 for c in range(COLS) if all(grid[r][c] is not None for r in range(ROWS)))


def place_strict(tracks_per_column: List[List[Track]]) -> Optional[Grid]:
    """
    Seat the selected tracks into a 3x9 grid:
      - every row ends with exactly 5 tracks
      - at most one column is full
    Fuller columns go first; each track takes a random row among the
    least-filled rows still open in its column.

    Returns None when this attempt cannot be completed; nothing is kept.
    """
    placements: List[Tuple[Track, int]] = [
        (track, c) for c in range(COLS) for track in tracks_per_column[c]
    ]
    if len(placements) != ITEMS_PER_TICKET:
        return None

    random.shuffle(placements)
    col_sizes = [len(col) for col in tracks_per_column]
    placements.sort(key=lambda p: col_sizes[p[1]], reverse=True)

    grid = _empty_grid()
    row_counts = [0] * ROWS

    for track, c in placements:
        open_rows = [
            r for r in range(ROWS) if grid[r][c] is None and row_counts[r] < ITEMS_PER_ROW
        ]
        if not open_rows:
            return None

        least = min(row_counts[r] for r in open_rows)
        r = random.choice([r for r in open_rows if row_counts[r] == least])
        grid[r][c] = track
        row_counts[r] += 1

    if any(n != ITEMS_PER_ROW for n in row_counts):
        return None
    if _full_columns(grid) > 1:
        return None

    return grid


# ========================= SINGLE TICKET =========================

def _order_column(
    column_tracks: List[Track], priority_ids: Set[int], prefer_priority: bool
) -> List[Track]:
    """Shuffle a column's tracks, optionally with priority tracks first."""
    if prefer_priority and priority_ids:
        first = [t for t in column_tracks if t.id in priority_ids]
        rest = [t for t in column_tracks if t.id not in priority_ids]
        random.shuffle(first)
        random.shuffle(rest)
        return first + rest
    ordered = list(column_tracks)
    random.shuffle(ordered)
    return ordered


def _passes_fast_check(grid: Grid) -> bool:
    if any(sum(1 for x in row if x is not None) != ITEMS_PER_ROW for row in grid):
        return False
    ids = [x.id for row in grid for x in row if x is not None]
    if len(ids) != len(set(ids)):
        return False
    return _full_columns(grid) <= 1


def _fallback_ticket(
    tracks: List[Track], sequence_number: int, priority_ids: Set[int]
) -> Ticket:
    """
    Deterministic escape hatch: fixed column counts, columns placed by
    descending count, each track into the least-filled open row of its column
    (first such row wins). No retries and no failure path.
    """
    counts = FALLBACK_COLUMN_COUNTS
    tracks_per_column = [
        _order_column(tracks_for_column(tracks, c), priority_ids, True)[:counts[c]]
        for c in range(COLS)
    ]

    grid = _empty_grid()
    row_counts = [0] * ROWS
    col_order = sorted(range(COLS), key=lambda c: len(tracks_per_column[c]), reverse=True)

    for c in col_order:
        for track in tracks_per_column[c]:
            best_row = -1
            for r in range(ROWS):
                if grid[r][c] is None and row_counts[r] < ITEMS_PER_ROW:
                    if best_row == -1 or row_counts[r] < row_counts[best_row]:
                        best_row = r
            if best_row != -1:
                grid[best_row][c] = track
                row_counts[best_row] += 1

    return Ticket.from_grid(ticket_id_for(sequence_number), grid)


def generate_ticket(
    tracks: List[Track],
    sequence_number: int,
    priority_track_ids: Optional[Iterable[int]] = None,
    priority_weight: float = 0.3,
) -> Ticket:
    """
    Generate one ticket.

    With probability `priority_weight`, each column lists tracks from
    `priority_track_ids` before the rest (both groups shuffled), so
    higher weights make not-yet-used tracks more likely to be picked.

    Retries up to MAX_TICKET_ATTEMPTS times with fresh randomness, then
    falls back to the fixed-template ticket. Always returns a ticket.
    """
    if sequence_number < 1:
        raise ValueError("sequence_number must be >= 1")
    if not 0.0 <= priority_weight <= 1.0:
        raise ValueError("priority_weight must be within [0, 1]")

    priority_ids: Set[int] = set(priority_track_ids or ())
    columns = [tracks_for_column(tracks, c) for c in range(COLS)]

    for attempt in range(MAX_TICKET_ATTEMPTS):
        ordered = [
            _order_column(columns[c], priority_ids, random.random() < priority_weight)
            for c in range(COLS)
        ]
        counts = column_distribution()
        tracks_per_column = [ordered[c][:counts[c]] for c in range(COLS)]

        grid = place_strict(tracks_per_column)
        if grid is None:
            logger.debug("ticket %d: placement attempt %d failed", sequence_number, attempt + 1)
            continue

        if _passes_fast_check(grid):
            return Ticket.from_grid(ticket_id_for(sequence_number), grid)

    logger.warning(
        "ticket %d: no placement after %d attempts, using fallback template",
        sequence_number,
        MAX_TICKET_ATTEMPTS,
    )
    return _fallback_ticket(tracks, sequence_number, priority_ids)


# ========================= BATCH =========================

def priority_weight_for(unused_count: int, tickets_left: int) -> float:
    """
    How strongly the next ticket should favour unused tracks, based on
    unused tracks vs. the cells the remaining tickets can still offer.
    """
    if unused_count <= 0:
        return 0.1
    urgency = unused_count / max(tickets_left * ITEMS_PER_TICKET, 1)
    if urgency > 0.5:
        return 0.9
    if urgency > 0.3:
        return 0.6
    if urgency > 0.15:
        return 0.3
    return 0.1


def repair_coverage(tracks: List[Track], tickets: List[Ticket]) -> List[Ticket]:
    """
    Swap never-used tracks into the most recent tickets.

    Rules:
      - a swap keeps the column: the new track shares the old one's column range
      - a track is only swapped out if it also appears elsewhere in the batch
      - up to 5 swaps per ticket, tickets taken from the end of the batch
    Returns a new list; untouched tickets are the same objects. Tracks
    with no usable slot stay uncovered.
    """
    usage = Counter(tid for ticket in tickets for tid in ticket.track_ids())
    still_unused = [t for t in tracks if usage[t.id] == 0]
    if not still_unused:
        return list(tickets)

    wanted = math.ceil(len(still_unused) / MAX_SWAPS_PER_TICKET)
    repaired = list(tickets)
    touched = 0

    for idx in range(len(repaired) - 1, -1, -1):
        if not still_unused:
            break

        ticket = repaired[idx]
        positions = ticket.filled_cells()
        random.shuffle(positions)

        swaps = {}
        for cell in positions:
            if len(swaps) == MAX_SWAPS_PER_TICKET:
                break
            old = cell.track
            if usage[old.id] < 2:
                continue
            incoming = next((t for t in still_unused if column_of(t.id) == cell.col), None)
            if incoming is None:
                continue
            still_unused.remove(incoming)
            usage[old.id] -= 1
            usage[incoming.id] += 1
            swaps[(cell.row, cell.col)] = incoming

        if swaps:
            repaired[idx] = ticket.with_tracks(swaps)
            touched += 1

    if touched > wanted:
        logger.info("coverage repair needed %d tickets instead of %d", touched, wanted)
    if still_unused:
        logger.info(
            "coverage repair left %d track(s) uncovered: %s",
            len(still_unused),
            [t.id for t in still_unused],
        )
    return repaired


def generate_tickets(tracks: List[Track], count: int) -> List[Ticket]:
    """
    Generate `count` tickets (TICKET-0001 ... ) aiming to use every track.

    Pass 1 biases each ticket toward tracks not used yet, harder as the
    remaining tickets run short. Pass 2 swaps leftovers into the last tickets.
    """
    if count < 0:
        raise ValueError("count must be >= 0")

    all_ids = [t.id for t in tracks]
    used: Set[int] = set()
    tickets: List[Ticket] = []

    for i in range(count):
        unused = {tid for tid in all_ids if tid not in used}
        weight = priority_weight_for(len(unused), count - i)
        ticket = generate_ticket(tracks, i + 1, unused, weight)
        tickets.append(ticket)
        used.update(ticket.track_ids())

    logger.info(
        "generated %d tickets, %d/%d tracks used before repair", count, len(used), len(all_ids)
    )
    return repair_coverage(tracks, tickets)


def get_missed_tracks(tracks: List[Track], tickets: List[Ticket]) -> List[Track]:
    """Tracks that appear on none of the tickets, in pool order."""
    seen = {tid for ticket in tickets for tid in ticket.track_ids()}
    return [t for t in tracks if t.id not in seen]
