"""Four-state slot classification and the booking view."""
from domain.availability import (
    SlotState,
    booking_view,
    classify_slot,
    month_indicators,
    resolve_day,
)
from domain.models import Appointment, Block, STATUS_CANCELLED
from domain.schedule import ScheduleConfig
from domain.slots import generate_time_slots

DATE = "2025-06-01"
HOURS = ScheduleConfig(start_time="09:00", end_time="17:00", lunch_start="13:00", lunch_end="14:00")


def _appt(time, status="confirmed", date=DATE):
    return Appointment(date=date, time=time, patient_name="X", status=status, id=f"a-{time}")


def test_free_slot_inside_hours():
    assert classify_slot("10:30", HOURS, [], []) == SlotState.FREE


def test_whole_day_block_dominates_everything():
    """A whole-day block marks every slot as blocked, even outside business hours."""
    blocks = [Block(DATE, "all")]
    states = {s.state for s in resolve_day(HOURS, blocks, [])}
    assert states == {SlotState.MANUALLY_BLOCKED}


def test_occupied_beats_block():
    appts = [_appt("10:30")]
    blocks = [Block(DATE, "10:30"), Block(DATE, "all")]
    assert classify_slot("10:30", HOURS, blocks, appts) == SlotState.OCCUPIED


def test_occupied_even_outside_hours():
    assert classify_slot("06:00", HOURS, [], [_appt("06:00")]) == SlotState.OCCUPIED


def test_outside_hours_before_single_slot_block():
    blocks = [Block(DATE, "06:00")]
    assert classify_slot("06:00", HOURS, blocks, []) == SlotState.OUTSIDE_HOURS
    assert classify_slot("13:30", HOURS, [], []) == SlotState.OUTSIDE_HOURS


def test_single_slot_block():
    blocks = [Block(DATE, "11:15")]
    assert classify_slot("11:15", HOURS, blocks, []) == SlotState.MANUALLY_BLOCKED
    assert classify_slot("12:00", HOURS, blocks, []) == SlotState.FREE


def test_cancelled_appointment_does_not_occupy():
    assert classify_slot("10:30", HOURS, [], [_appt("10:30", STATUS_CANCELLED)]) == SlotState.FREE


def test_resolve_day_covers_every_generated_slot():
    day = resolve_day(HOURS, [], [])
    assert [s.time for s in day] == generate_time_slots(45)
    outside = [s for s in day if s.state == SlotState.OUTSIDE_HOURS]
    assert all(not s.toggleable for s in outside)


def test_slot_json_for_admin_grid():
    day = resolve_day(HOURS, [Block(DATE, "09:45")], [])
    by_time = {s.time: s.to_json() for s in day}
    assert by_time["09:45"] == {
        "time": "09:45", "state": "blocked", "label": "Bloqueado", "blocked": True, "toggleable": True,
    }
    assert by_time["06:00"]["label"] == "Fuera Horario"
    assert by_time["10:30"]["state"] == "free"


def test_booking_view_hides_outside_hours():
    view = booking_view(HOURS, [Block(DATE, "09:45")], [_appt("10:30")])
    times = [s["time"] for s in view]
    assert times == [
        "09:00", "09:45", "10:30", "11:15", "12:00", "12:45",
        "14:15", "15:00", "15:45", "16:30",
    ]
    available = {s["time"]: s["available"] for s in view}
    assert available["09:00"] is True
    assert available["09:45"] is False
    assert available["10:30"] is False


def test_booking_view_whole_day_block_shows_nothing_available():
    view = booking_view(HOURS, [Block(DATE, "all")], [])
    assert view and not any(s["available"] for s in view)


def test_month_indicators():
    appts = [_appt("10:30", date="2025-06-03"), _appt("10:30", STATUS_CANCELLED, date="2025-06-04")]
    blocks = [Block("2025-06-05", "all"), Block("2025-06-06", "10:30")]
    out = month_indicators(appts, blocks)
    assert out == {
        "appointmentDays": {"2025-06-03": True},
        "blockedDays": {"2025-06-05": True},
    }
