# ticket_validation.py
"""
Independent checks for generated tickets.

Nothing here is shared with the generator, so the results can be trusted
as an outside check on it:
  - each row has exactly 5 tracks
  - no track id appears twice on a ticket
  - at most one column has all 3 rows filled
  - every track sits in the column its id belongs to
"""
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Tuple

from track_pool import COL_RANGES, COLS, ITEMS_PER_ROW, ROWS, Ticket

MAX_FULL_COLUMNS = 1


@dataclass
class ValidationErrors:
    invalid_row_counts: List[Tuple[int, int]] = field(default_factory=list)  # (row, count)
    duplicate_tracks: List[int] = field(default_factory=list)
    full_columns_count: int = 0
    full_columns_exceeded: bool = False
    misplaced_tracks: List[int] = field(default_factory=list)


@dataclass
class ValidationResult:
    is_valid: bool
    ticket_id: str
    errors: ValidationErrors

    def to_dict(self) -> Dict[str, object]:
        out = asdict(self)
        out["errors"]["invalid_row_counts"] = [
            {"row": r, "count": n} for r, n in self.errors.invalid_row_counts
        ]
        return out


@dataclass
class ValidationSummary:
    total_tickets: int
    valid_tickets: int
    invalid_tickets: int
    invalid_details: List[ValidationResult]

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_tickets": self.total_tickets,
            "valid_tickets": self.valid_tickets,
            "invalid_tickets": self.invalid_tickets,
            "invalid_details": [r.to_dict() for r in self.invalid_details],
        }


def validate_ticket(ticket: Ticket) -> ValidationResult:
    errors = ValidationErrors()

    for r in range(ROWS):
        filled = sum(1 for cell in ticket.cells[r] if cell.track is not None)
        if filled != ITEMS_PER_ROW:
            errors.invalid_row_counts.append((r, filled))

    seen = set()
    duplicates: List[int] = []
    for row in ticket.cells:
        for cell in row:
            if cell.track is None:
                continue
            tid = cell.track.id
            if tid in seen and tid not in duplicates:
                duplicates.append(tid)
            seen.add(tid)
    errors.duplicate_tracks = duplicates

    for c in range(COLS):
        if all(ticket.cells[r][c].track is not None for r in range(ROWS)):
            errors.full_columns_count += 1
    errors.full_columns_exceeded = errors.full_columns_count > MAX_FULL_COLUMNS

    for row in ticket.cells:
        for cell in row:
            if cell.track is None:
                continue
            lo, hi = COL_RANGES[cell.col]
            if not lo <= cell.track.id <= hi:
                errors.misplaced_tracks.append(cell.track.id)

    is_valid = (
        not errors.invalid_row_counts
        and not errors.duplicate_tracks
        and not errors.full_columns_exceeded
        and not errors.misplaced_tracks
    )
    return ValidationResult(is_valid=is_valid, ticket_id=ticket.id, errors=errors)


def validate_tickets(tickets: List[Ticket]) -> ValidationSummary:
    results = [validate_ticket(t) for t in tickets]
    invalid = [r for r in results if not r.is_valid]
    return ValidationSummary(
        total_tickets=len(results),
        valid_tickets=len(results) - len(invalid),
        invalid_tickets=len(invalid),
        invalid_details=invalid,
    )
