"""Candidate slot generation."""
import math

import pytest

from domain.slots import (
    DAY_END_MIN,
    DAY_START_MIN,
    expected_slot_count,
    generate_time_slots,
    is_valid_slot,
    iter_time_slots,
)


def test_default_interval_matches_legacy_list():
    slots = generate_time_slots(45)
    assert slots[0] == "06:00"
    assert slots[-1] == "21:45"
    assert len(slots) == 22
    assert "10:30" in slots and "10:00" not in slots


def test_generation_is_deterministic():
    assert generate_time_slots(45) == generate_time_slots(45)
    assert list(iter_time_slots(45)) == list(iter_time_slots(45))


@pytest.mark.parametrize("bad", [0, -5, None, "abc"])
def test_invalid_interval_uses_default(bad):
    assert generate_time_slots(bad) == generate_time_slots(45)


@pytest.mark.parametrize("interval", [15, 30, 45, 50, 60, 7])
def test_slot_count_formula(interval):
    expected = math.ceil((DAY_END_MIN - DAY_START_MIN) / interval)
    assert len(generate_time_slots(interval)) == expected == expected_slot_count(interval)


def test_slots_are_sorted_and_before_day_end():
    slots = generate_time_slots(50)
    assert slots == sorted(slots)
    assert all(s < "22:00" for s in slots)


def test_returned_list_is_a_copy():
    slots = generate_time_slots(30)
    slots.append("23:00")
    assert "23:00" not in generate_time_slots(30)


def test_is_valid_slot():
    assert is_valid_slot("06:00", 45)
    assert not is_valid_slot("10:00", 45)
    assert is_valid_slot("10:00", 30)
