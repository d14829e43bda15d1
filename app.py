"""
Music bingo backend — app.py
- Consolidated & safe CORS
- Thin JSON shell over the ticket engine (no generation logic here)
- Input check before generation, validation + coverage report after

ENV VARS:
- FRONTEND_ORIGIN     -> e.g. https://musicbingo.netlify.app  (optional; we also allow *.netlify.app)
- MAX_TICKETS         -> upper bound for ?count / "count" (default 100)
- REQUIRE_FULL_POOL   -> "1" / "true" / "yes" to reject inputs with fewer than 90 tracks (default on)
- LOG_LEVEL           -> logging level name (default INFO)
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from flask import Flask, jsonify, request
from flask_cors import CORS

from ticket_generator_module import generate_tickets, get_missed_tracks
from ticket_validation import validate_tickets
from track_pool import MAX_TRACKS, Ticket, Track, parse_tracks, validate_input

app = Flask(__name__)

# ======== Config ========
FRONTEND_ORIGIN = os.environ.get("FRONTEND_ORIGIN", "").strip()  # exact origin, optional
MAX_TICKETS = int(os.environ.get("MAX_TICKETS", "100"))
REQUIRE_FULL_POOL = os.environ.get("REQUIRE_FULL_POOL", "1").lower() in {"1", "true", "yes"}
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

# Dev-friendly allowlist; FRONTEND_ORIGIN added if set.
ALLOWED_ORIGINS = {
    "http://localhost",
    "http://localhost:3000",
    "http://127.0.0.1",
    "http://127.0.0.1:5500",
}
if FRONTEND_ORIGIN:
    ALLOWED_ORIGINS.add(FRONTEND_ORIGIN)

CORS(
    app,
    resources={r"/*": {"origins": list(ALLOWED_ORIGINS)}},
    supports_credentials=False,
    methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
    expose_headers=["Content-Type"],
    max_age=86400,
)


@app.after_request
def add_cors_headers(resp):
    """Allow any https://*.netlify.app origin dynamically."""
    origin = request.headers.get("Origin", "")
    resp.headers.setdefault("Vary", "Origin")
    if origin.startswith("https://") and origin.endswith(".netlify.app"):
        resp.headers["Access-Control-Allow-Origin"] = origin
    return resp


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _clamp_count(raw) -> int:
    try:
        count = int(raw)
    except (TypeError, ValueError):
        count = 1
    return max(1, min(MAX_TICKETS, count))


def _batch_report(tracks, tickets) -> dict:
    summary = validate_tickets(tickets)
    missed = get_missed_tracks(tracks, tickets)
    return {
        "ok": summary.invalid_tickets == 0,
        "count": len(tickets),
        "tickets": [t.to_dict() for t in tickets],
        "validation": summary.to_dict(),
        "missed_tracks": [t.to_dict() for t in missed],
    }


# ======== Health ========
@app.route("/")
def home():
    return "Music bingo backend is running ✅"


@app.route("/whoami")
def whoami():
    return jsonify(
        {
            "service": os.environ.get("RENDER_SERVICE_NAME", "local-or-unknown"),
            "max_tickets": MAX_TICKETS,
            "require_full_pool": REQUIRE_FULL_POOL,
            "frontend_origin": FRONTEND_ORIGIN or "(dev/any in list)",
            "allowed_dev_origins": sorted(ALLOWED_ORIGINS),
            "time": utc_now_iso(),
        }
    )


# ======== Tracks ========
@app.route("/api/tracks/validate", methods=["POST"])
def api_validate_tracks():
    data = request.get_json(silent=True) or {}
    ok, count, message = validate_input(data.get("text") or "")
    return jsonify({"ok": ok, "track_count": count, "message": message})


# ======== Tickets ========
@app.route("/api/tickets", methods=["POST"])
def api_tickets():
    data = request.get_json(silent=True) or {}
    text = data.get("text") or ""

    ok, track_count, message = validate_input(text)
    if track_count == 0 or (REQUIRE_FULL_POOL and not ok):
        return jsonify({"ok": False, "reason": "bad_input", "track_count": track_count, "message": message}), 400

    count = _clamp_count(data.get("count", 1))
    tracks = parse_tracks(text)
    try:
        tickets = generate_tickets(tracks, count)
        return jsonify(_batch_report(tracks, tickets))
    except Exception as e:
        logger.exception("ticket generation failed")
        return jsonify({"ok": False, "error": str(e)}), 500


@app.route("/api/tickets/validate", methods=["POST"])
def api_validate_tickets():
    data = request.get_json(silent=True) or {}
    raw = data.get("tickets")
    if not isinstance(raw, list):
        return jsonify({"ok": False, "reason": "missing_tickets"}), 400

    try:
        tickets = [Ticket.from_dict(t) for t in raw]
    except ValueError as e:
        return jsonify({"ok": False, "reason": "malformed_ticket", "error": str(e)}), 400

    summary = validate_tickets(tickets)
    return jsonify({"ok": summary.invalid_tickets == 0, "validation": summary.to_dict()})


@app.route("/api/selftest")
def api_selftest():
    try:
        tracks = [Track(id=i, name=f"Track {i}") for i in range(1, MAX_TRACKS + 1)]
        tickets = generate_tickets(tracks, 10)
        report = _batch_report(tracks, tickets)
        report["ok"] = report["ok"] and not report["missed_tracks"]
        report["sample_first_ticket"] = report.pop("tickets")[0]
        return jsonify(report)
    except Exception as e:
        logger.exception("selftest failed")
        return jsonify({"ok": False, "error": str(e)}), 500


# ======== Run (local) ========
if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
