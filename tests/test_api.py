"""HTTP API end to end against the in-memory store."""
from conftest import DATE, PIN, PRO_ID
from services import agenda_repo

BOOK = f"/api/booking/{PRO_ID}"
AGENDA = f"/api/agenda/{PRO_ID}"


def _book(client, booking_data, **overrides):
    return client.post(f"{BOOK}/appointments", json=booking_data(**overrides))


# ---------------------------------------------------------------------
# Público
# ---------------------------------------------------------------------

def test_health(client):
    assert client.get("/health").get_json() == {"ok": True}
    body = client.get("/api/health").get_json()
    assert body["ok"] is True
    assert body["store"] == "memory"


def test_public_profile_hides_pin(client):
    resp = client.get(BOOK)
    assert resp.status_code == 200
    pro = resp.get_json()["professional"]
    assert pro["name"] == "Ana Pérez"
    assert "pin" not in pro
    assert [s["name"] for s in pro["services"]] == ["Kinesiología", "Evaluación"]


def test_unknown_professional(client):
    resp = client.get("/api/booking/nobody")
    assert resp.status_code == 404
    assert resp.get_json() == {
        "ok": False, "error": "professional_not_found", "message": "Profesional no encontrado.",
    }


def test_availability(client):
    resp = client.get(f"{BOOK}/availability", query_string={"date": DATE})
    assert resp.status_code == 200
    slots = resp.get_json()["slots"]
    assert len(slots) == 10
    assert all(s["available"] for s in slots)


def test_availability_bad_date(client):
    resp = client.get(f"{BOOK}/availability", query_string={"date": "01/06/2099"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_date"


def test_book_and_conflict(client, booking_data):
    resp = _book(client, booking_data)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["appointment"]["status"] == "confirmed"
    assert body["whatsappUrl"].startswith("https://wa.me/56987654321?text=")

    resp = _book(client, booking_data, name="Otra Persona")
    assert resp.status_code == 409
    body = resp.get_json()
    assert body["error"] == "slot_taken"
    assert body["ok"] is False
    available = {s["time"]: s["available"] for s in body["slots"]}
    assert available["10:30"] is False
    assert available["11:15"] is True


def test_book_blocked_slot(client, store, booking_data):
    agenda_repo.block_slot(store, PRO_ID, DATE, "10:30")
    resp = _book(client, booking_data)
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "slot_unavailable"


def test_book_validation_error(client, booking_data):
    resp = _book(client, booking_data, phone="123")
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "invalid_phone"
    assert "9 dígitos" in body["message"]


def test_book_rejects_non_object_json(client, store):
    resp = client.post(f"{BOOK}/appointments", json=["x"])
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_json"
    assert store.list(agenda_repo.appointments_col(PRO_ID)) == []


def test_setup_rejects_non_object_json(client):
    headers = {"X-Master-Pin": "0000"}
    resp = client.post("/api/setup/professionals", json=["x"], headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_json"
    resp = client.post("/api/setup/master-pin", json=[1, 2], headers=headers)
    assert resp.get_json()["error"] == "invalid_json"


# ---------------------------------------------------------------------
# Painel
# ---------------------------------------------------------------------

def test_agenda_requires_pin(client):
    resp = client.get(f"{AGENDA}/day", query_string={"date": DATE})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "auth_required"


def test_agenda_with_pin_header(client, pin_headers):
    resp = client.get(f"{AGENDA}/day", query_string={"date": DATE}, headers=pin_headers)
    assert resp.status_code == 200
    assert len(resp.get_json()["slots"]) == 22


def test_login_session(client):
    assert client.post(f"{AGENDA}/login", json={"pin": "0000"}).status_code == 401
    resp = client.post(f"{AGENDA}/login", json={"pin": PIN})
    assert resp.status_code == 200
    assert client.get(f"{AGENDA}/today").status_code == 200

    client.post(f"{AGENDA}/logout")
    assert client.get(f"{AGENDA}/today").status_code == 401


def test_session_is_per_professional(client, store):
    from services.professionals import create_professional
    create_professional(store, {"name": "Otro Pro", "pin": "5555"})
    client.post(f"{AGENDA}/login", json={"pin": PIN})
    assert client.get("/api/agenda/otro-pro/today").status_code == 401


def test_block_and_unblock(client, pin_headers):
    resp = client.post(f"{AGENDA}/blocks", json={"date": DATE, "time": "10:30"}, headers=pin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["block"]["id"] == f"{DATE}_10:30"

    slots = client.get(f"{BOOK}/availability", query_string={"date": DATE}).get_json()["slots"]
    assert {s["time"]: s["available"] for s in slots}["10:30"] is False

    resp = client.delete(f"{AGENDA}/blocks", json={"date": DATE, "time": "10:30"}, headers=pin_headers)
    assert resp.get_json()["removed"] == f"{DATE}_10:30"


def test_unblock_without_time_keeps_day_block(client, pin_headers):
    client.post(f"{AGENDA}/blocks/day", json={"date": DATE}, headers=pin_headers)
    resp = client.delete(f"{AGENDA}/blocks", json={"date": DATE, "time": ""}, headers=pin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_time"
    month = client.get(f"{AGENDA}/month", query_string={"month": "2099-06"}, headers=pin_headers).get_json()
    assert month["blockedDays"] == {DATE: True}


def test_block_day_and_clear(client, pin_headers):
    client.post(f"{AGENDA}/blocks/day", json={"date": DATE}, headers=pin_headers)
    month = client.get(f"{AGENDA}/month", query_string={"month": "2099-06"}, headers=pin_headers).get_json()
    assert month["blockedDays"] == {DATE: True}

    resp = client.delete(f"{AGENDA}/blocks/day", query_string={"date": DATE}, headers=pin_headers)
    assert resp.get_json()["removed"] == 1


def test_cancel_and_edit_appointment(client, booking_data, pin_headers):
    appt_id = _book(client, booking_data).get_json()["appointment"]["id"]

    resp = client.patch(f"{AGENDA}/appointments/{appt_id}", json={"time": "11:15"}, headers=pin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["appointment"]["time"] == "11:15"

    resp = client.post(f"{AGENDA}/appointments/{appt_id}/cancel", json={}, headers=pin_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["appointment"]["status"] == "cancelled"
    assert "wa.me/56987654321" in body["whatsappUrl"]

    day = client.get(f"{AGENDA}/day", query_string={"date": DATE}, headers=pin_headers).get_json()
    assert day["appointments"] == []


def test_unknown_appointment(client, pin_headers):
    resp = client.post(f"{AGENDA}/appointments/nope/cancel", headers=pin_headers)
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "appointment_not_found"


def test_settings_and_services(client, pin_headers):
    resp = client.post(f"{AGENDA}/settings", json={"slotInterval": 30}, headers=pin_headers)
    assert resp.get_json()["settings"]["slotInterval"] == 30
    day = client.get(f"{AGENDA}/day", query_string={"date": DATE}, headers=pin_headers).get_json()
    assert len(day["slots"]) == 32

    resp = client.put(f"{AGENDA}/services", json={"services": [{"name": "Masaje", "duration": 60}]},
                      headers=pin_headers)
    assert resp.get_json()["services"] == [{"name": "Masaje", "duration": 60}]
    assert client.get(f"{AGENDA}/settings", headers=pin_headers).get_json()["services"][0]["name"] == "Masaje"


def test_settings_requires_json(client, pin_headers):
    resp = client.post(f"{AGENDA}/settings", data="x", headers=pin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "invalid_json"


def test_reminders_endpoint(client, pin_headers):
    resp = client.get(f"{AGENDA}/reminders", headers=pin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["reminders"] == []


# ---------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------

def test_setup_flow(client):
    assert client.get("/api/setup/professionals").status_code == 401
    assert client.post("/api/setup/login", json={"pin": "9999"}).status_code == 401
    assert client.post("/api/setup/login", json={"pin": "0000"}).status_code == 200

    resp = client.post("/api/setup/professionals", json={"name": "Luis Rojas", "pin": "2468"})
    assert resp.status_code == 201
    assert resp.get_json()["professional"]["id"] == "luis-rojas"

    ids = [p["id"] for p in client.get("/api/setup/professionals").get_json()["professionals"]]
    assert ids == [PRO_ID, "luis-rojas"]

    resp = client.patch("/api/setup/professionals/luis-rojas", json={"phone": "911112222"})
    assert resp.get_json()["professional"]["phone"] == "911112222"

    assert client.delete("/api/setup/professionals/luis-rojas").status_code == 200
    assert client.get("/api/booking/luis-rojas").status_code == 404


def test_setup_master_pin_change(client):
    headers = {"X-Master-Pin": "0000"}
    resp = client.post("/api/setup/master-pin", json={"pin": "1357", "confirm": "1357"}, headers=headers)
    assert resp.status_code == 200
    assert client.get("/api/setup/professionals", headers=headers).status_code == 401
    assert client.get("/api/setup/professionals", headers={"X-Master-Pin": "1357"}).status_code == 200


def test_unknown_route_is_json(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json()["ok"] is False


# ---------------------------------------------------------------------
# SSE
# ---------------------------------------------------------------------

def test_sse_stream_disposes_watches(client, store, pin_headers):
    resp = client.get(f"/api/sse/agenda/{PRO_ID}", query_string={"date": DATE}, headers=pin_headers)
    assert resp.status_code == 200
    assert resp.mimetype == "text/event-stream"

    chunks = iter(resp.response)
    assert b"event: hello" in next(chunks)
    first = next(chunks)
    assert b"event: agenda" in first
    assert f'"date": "{DATE}"'.encode() in first
    assert store.active_watchers == 5

    resp.close()
    assert store.active_watchers == 0
