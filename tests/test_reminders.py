"""Reminder window and WhatsApp texts."""
from datetime import datetime

from conftest import PRO_ID
from domain.models import Appointment, STATUS_CANCELLED
from domain.reminders import booking_text, build_reminders, cancellation_text, window_dates
from services import agenda_repo

# lunes 2 de junio de 2025, 09:00
NOW = datetime(2025, 6, 2, 9, 0)


def _appt(date, time, status="confirmed", name="Juan"):
    return Appointment(date=date, time=time, patient_name=name, patient_phone="987654321",
                       status=status, id=f"{date}-{time}")


def test_window_is_today_plus_four_days():
    assert window_dates(NOW) == ["2025-06-02", "2025-06-03", "2025-06-04", "2025-06-05", "2025-06-06"]


def test_classification():
    appts = [
        _appt("2025-06-05", "10:00"),
        _appt("2025-06-02", "15:00"),
        _appt("2025-06-02", "10:00"),
        _appt("2025-06-02", "08:00"),
        _appt("2025-06-03", "09:45"),
        _appt("2025-06-07", "10:00"),
        _appt("2025-06-03", "11:00", status=STATUS_CANCELLED),
    ]
    out = build_reminders(appts, NOW)
    summary = [(r["appointment"].date, r["appointment"].time, r["kind"]) for r in out]
    assert summary == [
        ("2025-06-02", "10:00", "2h"),
        ("2025-06-02", "15:00", "today"),
        ("2025-06-03", "09:45", "24h"),
        ("2025-06-05", "10:00", "future"),
    ]
    assert out[0]["label"] == "Hoy (Pronto)"
    assert out[2]["label"] == "Mañana"
    assert out[3]["label"] == "En 3 días (Jue)"
    assert out[3]["dayOffset"] == 3


def test_messages():
    today, tomorrow, later = (
        build_reminders([_appt("2025-06-02", "12:00")], NOW)[0],
        build_reminders([_appt("2025-06-03", "12:00")], NOW)[0],
        build_reminders([_appt("2025-06-05", "12:00")], NOW)[0],
    )
    assert "hoy a las 12:00" in today["message"]
    assert "mañana Mar a las 12:00" in tomorrow["message"]
    assert "Jue 2025-06-05" in later["message"]


def test_booking_and_cancellation_texts():
    assert booking_text("Kinesiología", "2025-06-02", "10:30") == (
        "Su hora ha sido agendada para Kinesiología el día 2025-06-02 a las 10:30. Muchas gracias"
    )
    assert "ha sido cancelada" in cancellation_text(_appt("2025-06-02", "10:30"))


def test_list_reminders_adds_whatsapp_links(store):
    col = agenda_repo.appointments_col(PRO_ID)
    store.set(f"{col}/a1", _appt("2025-06-03", "10:30").to_doc())
    store.set(f"{col}/a2", _appt("2025-06-20", "10:30").to_doc())

    out = agenda_repo.list_reminders(store, PRO_ID, now=NOW)
    assert len(out) == 1
    assert out[0]["appointment"]["id"] == "a1"
    assert out[0]["whatsappUrl"].startswith("https://wa.me/56987654321?text=Hola%20Juan")
