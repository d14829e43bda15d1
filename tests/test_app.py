import pytest

from app import MAX_TICKETS, app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def full_text():
    return "\n".join(f"Track {i}" for i in range(1, 91))


def test_home(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"running" in resp.data


def test_whoami(client):
    data = client.get("/whoami").get_json()
    assert data["max_tickets"] == MAX_TICKETS
    assert "time" in data


def test_validate_tracks(client, full_text):
    data = client.post("/api/tracks/validate", json={"text": "a\nb"}).get_json()
    assert data == {"ok": False, "track_count": 2, "message": "not enough tracks: 2/90, add 88 more"}

    data = client.post("/api/tracks/validate", json={"text": full_text}).get_json()
    assert data["ok"] is True
    assert data["track_count"] == 90


def test_tickets(client, full_text):
    resp = client.post("/api/tickets", json={"text": full_text, "count": 10})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["ok"] is True
    assert data["count"] == 10
    assert [t["id"] for t in data["tickets"]] == [f"TICKET-{i:04d}" for i in range(1, 11)]
    assert data["validation"]["invalid_tickets"] == 0
    assert data["missed_tracks"] == []
    first = data["tickets"][0]
    assert len(first["rows"]) == 3
    assert all(sum(1 for cell in row if cell) == 5 for row in first["rows"])


def test_tickets_count_is_clamped(client, full_text):
    data = client.post("/api/tickets", json={"text": full_text, "count": "lots"}).get_json()
    assert data["count"] == 1
    data = client.post("/api/tickets", json={"text": full_text, "count": -4}).get_json()
    assert data["count"] == 1


def test_tickets_reject_short_input(client):
    resp = client.post("/api/tickets", json={"text": "only one", "count": 2})
    assert resp.status_code == 400
    data = resp.get_json()
    assert data["reason"] == "bad_input"
    assert data["track_count"] == 1


def test_validate_tickets_round_trip(client, full_text):
    tickets = client.post("/api/tickets", json={"text": full_text, "count": 3}).get_json()["tickets"]
    data = client.post("/api/tickets/validate", json={"tickets": tickets}).get_json()
    assert data["ok"] is True
    assert data["validation"]["total_tickets"] == 3

    tickets[0]["rows"][0] = [None] * 9
    data = client.post("/api/tickets/validate", json={"tickets": tickets}).get_json()
    assert data["ok"] is False
    detail = data["validation"]["invalid_details"][0]
    assert detail["ticket_id"] == "TICKET-0001"
    assert detail["errors"]["invalid_row_counts"] == [{"row": 0, "count": 0}]


def test_validate_tickets_bad_payload(client):
    resp = client.post("/api/tickets/validate", json={})
    assert resp.status_code == 400
    assert resp.get_json()["reason"] == "missing_tickets"

    resp = client.post("/api/tickets/validate", json={"tickets": [{"id": "x", "rows": []}]})
    assert resp.status_code == 400
    assert resp.get_json()["reason"] == "malformed_ticket"


def test_selftest(client):
    data = client.get("/api/selftest").get_json()
    assert data["ok"] is True
    assert data["count"] == 10
    assert data["sample_first_ticket"]["id"] == "TICKET-0001"
