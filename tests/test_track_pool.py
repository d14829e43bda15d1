import pytest

from track_pool import (
    COL_RANGES,
    Ticket,
    Track,
    column_of,
    parse_tracks,
    ticket_id_for,
    tracks_for_column,
    validate_input,
)


def test_parse_tracks_keeps_line_order():
    text = "\n".join(f"Track {i}" for i in range(1, 91))
    tracks = parse_tracks(text)
    assert len(tracks) == 90
    assert [t.id for t in tracks] == list(range(1, 91))
    assert tracks[0].name == "Track 1"
    assert tracks[89].name == "Track 90"


def test_parse_tracks_truncates_to_90():
    text = "\n".join(f"Track {i}" for i in range(1, 101))
    tracks = parse_tracks(text)
    assert len(tracks) == 90
    assert tracks[-1].name == "Track 90"


def test_parse_tracks_drops_blank_lines_and_trims():
    tracks = parse_tracks("Track 1\n\n  Track 2  \n   \r\nTrack 3")
    assert [t.name for t in tracks] == ["Track 1", "Track 2", "Track 3"]
    assert [t.id for t in tracks] == [1, 2, 3]


def test_parse_tracks_empty():
    assert parse_tracks("") == []
    assert parse_tracks(None) == []


def test_column_ranges_partition_1_to_90():
    ids = [n for lo, hi in COL_RANGES for n in range(lo, hi + 1)]
    assert ids == list(range(1, 91))
    assert COL_RANGES[0] == (1, 9)
    assert COL_RANGES[8] == (80, 90)


@pytest.mark.parametrize("track_id,col", [(1, 0), (9, 0), (10, 1), (55, 5), (79, 7), (80, 8), (90, 8)])
def test_column_of(track_id, col):
    assert column_of(track_id) == col


@pytest.mark.parametrize("track_id", [0, 91, -3])
def test_column_of_out_of_range(track_id):
    assert column_of(track_id) == -1


def test_tracks_for_column(tracks):
    assert [t.id for t in tracks_for_column(tracks, 0)] == list(range(1, 10))
    assert [t.id for t in tracks_for_column(tracks, 8)] == list(range(80, 91))
    assert tracks_for_column(tracks[:5], 3) == []


def test_validate_input():
    assert validate_input("") == (False, 0, "enter at least one track")

    ok, count, message = validate_input("a\nb\nc")
    assert not ok
    assert count == 3
    assert "87" in message

    ok, count, _ = validate_input("\n".join(f"T{i}" for i in range(120)))
    assert ok
    assert count == 90


def test_ticket_id_is_zero_padded():
    assert ticket_id_for(1) == "TICKET-0001"
    assert ticket_id_for(20) == "TICKET-0020"
    assert ticket_id_for(12345) == "TICKET-12345"


def test_ticket_dict_round_trip():
    grid = [[None] * 9 for _ in range(3)]
    grid[0][0] = Track(id=3, name="Three")
    grid[2][8] = Track(id=85, name="Eighty-five")
    ticket = Ticket.from_grid("TICKET-0007", grid)

    data = ticket.to_dict()
    assert data["rows"][0][0] == {"id": 3, "name": "Three"}
    assert data["rows"][1][4] is None
    assert Ticket.from_dict(data) == ticket


@pytest.mark.parametrize(
    "payload",
    [
        {"id": "x"},
        {"id": "x", "rows": [[None] * 9] * 2},
        {"id": "x", "rows": [[None] * 9, [None] * 8, [None] * 9]},
        {"id": "x", "rows": [[None] * 9, [None] * 9, [None] * 8 + ["oops"]]},
    ],
)
def test_ticket_from_dict_rejects_malformed(payload):
    with pytest.raises(ValueError):
        Ticket.from_dict(payload)


def test_with_tracks_returns_new_ticket():
    grid = [[None] * 9 for _ in range(3)]
    grid[1][2] = Track(id=21, name="a")
    ticket = Ticket.from_grid("TICKET-0001", grid)

    changed = ticket.with_tracks({(1, 2): Track(id=22, name="b")})
    assert ticket.cells[1][2].track.id == 21
    assert changed.cells[1][2].track.id == 22
    assert changed.id == ticket.id
