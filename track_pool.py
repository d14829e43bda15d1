# track_pool.py
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Tuple

# Column ranges (inclusive) for 9 columns:
# 0: 1–9, 1: 10–19, ..., 8: 80–90
COL_RANGES: List[Tuple[int, int]] = [
    (1, 9),    # col 0
    (10, 19),  # col 1
    (20, 29),  # col 2
    (30, 39),  # col 3
    (40, 49),  # col 4
    (50, 59),  # col 5
    (60, 69),  # col 6
    (70, 79),  # col 7
    (80, 90),  # col 8
]

ROWS = 3
COLS = 9
ITEMS_PER_ROW = 5
ITEMS_PER_TICKET = ROWS * ITEMS_PER_ROW
MAX_TRACKS = 90


# ========================= MODEL =========================

@dataclass(frozen=True)
class Track:
    id: int
    name: str

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class TicketCell:
    track: Optional[Track]
    row: int
    col: int


@dataclass(frozen=True)
class Ticket:
    """
    One bingo card: a 3 x 9 grid of cells.

    `cells` is a tuple of 3 rows, each a tuple of 9 TicketCell.
    Tickets are values; anything that changes a ticket builds a new one.
    """
    id: str
    cells: Tuple[Tuple[TicketCell, ...], ...]

    @classmethod
    def from_grid(cls, ticket_id: str, grid: List[List[Optional[Track]]]) -> "Ticket":
        cells = tuple(
            tuple(TicketCell(track=grid[r][c], row=r, col=c) for c in range(COLS))
            for r in range(ROWS)
        )
        return cls(id=ticket_id, cells=cells)

    def grid(self) -> List[List[Optional[Track]]]:
        return [[cell.track for cell in row] for row in self.cells]

    def filled_cells(self) -> List[TicketCell]:
        return [cell for row in self.cells for cell in row if cell.track is not None]

    def track_ids(self) -> List[int]:
        return [cell.track.id for cell in self.filled_cells()]

    def with_tracks(self, swaps: Dict[Tuple[int, int], Track]) -> "Ticket":
        """Return a copy with the tracks at the given (row, col) positions replaced."""
        grid = self.grid()
        for (r, c), track in swaps.items():
            grid[r][c] = track
        return Ticket.from_grid(self.id, grid)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "rows": [
                [cell.track.to_dict() if cell.track else None for cell in row]
                for row in self.cells
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "Ticket":
        """
        Rebuild a ticket from its `to_dict` shape.

        Raises ValueError when the payload is not a 3 x 9 grid of
        null / {"id", "name"} cells.
        """
        rows = data.get("rows") if isinstance(data, dict) else None
        if not isinstance(rows, list) or len(rows) != ROWS:
            raise ValueError("ticket must have 3 rows")
        grid: List[List[Optional[Track]]] = []
        for r, row in enumerate(rows):
            if not isinstance(row, list) or len(row) != COLS:
                raise ValueError(f"row {r} must have 9 cells")
            out: List[Optional[Track]] = []
            for raw in row:
                if raw is None:
                    out.append(None)
                elif isinstance(raw, dict) and isinstance(raw.get("id"), int):
                    out.append(Track(id=raw["id"], name=str(raw.get("name", ""))))
                else:
                    raise ValueError(f"row {r} has a malformed cell")
            grid.append(out)
        return cls.from_grid(str(data.get("id", "")), grid)


def ticket_id_for(sequence_number: int) -> str:
    return f"TICKET-{sequence_number:04d}"


# ========================= COLUMNS =========================

def column_of(track_id: int) -> int:
    """Column index for a track id, -1 when the id is outside 1..90."""
    for c, (lo, hi) in enumerate(COL_RANGES):
        if lo <= track_id <= hi:
            return c
    return -1


def tracks_for_column(tracks: List[Track], col: int) -> List[Track]:
    lo, hi = COL_RANGES[col]
    return [t for t in tracks if lo <= t.id <= hi]


# ========================= INPUT =========================

def parse_tracks(raw_text: str) -> List[Track]:
    """
    One track per line. Lines are trimmed, blank lines dropped,
    everything past the 90th kept line ignored. Ids are 1..N in line order.
    """
    names = [line.strip() for line in (raw_text or "").splitlines()]
    names = [n for n in names if n][:MAX_TRACKS]
    return [Track(id=i + 1, name=n) for i, n in enumerate(names)]


def validate_input(raw_text: str) -> Tuple[bool, int, str]:
    """
    Check pasted input before generation.

    Returns (ok, track_count, message). The generator itself accepts
    any pool size; a full game needs all 90 tracks.
    """
    count = len(parse_tracks(raw_text))
    if count == 0:
        return False, 0, "enter at least one track"
    if count < MAX_TRACKS:
        return False, count, f"not enough tracks: {count}/{MAX_TRACKS}, add {MAX_TRACKS - count} more"
    return True, count, "ready to generate tickets"
