"""Tests for calvapi.services.availability: slot flattening, exact match and ranking."""

from datetime import datetime, timedelta, timezone

from calvapi.schemas.booking import AvailabilitySlot
from calvapi.services.availability import (
    extract_slots,
    find_alternative_time_slots,
    is_time_slot_available,
    parse_instant,
)


def _at(hour, minute=0, day=1):
    return datetime(2025, 3, day, hour, minute, tzinfo=timezone.utc)


def _slots(*times):
    return [AvailabilitySlot(time=t) for t in times]


# ---------------------------------------------------------------------------
# parse_instant / extract_slots
# ---------------------------------------------------------------------------


class TestParseInstant:
    def test_naive_is_utc(self):
        assert parse_instant("2025-03-01T10:00:00") == _at(10)

    def test_offset_preserved(self):
        dt = parse_instant("2025-03-01T12:00:00+02:00")
        assert dt.utcoffset() == timedelta(hours=2)
        assert dt == _at(10)

    def test_zulu_suffix(self):
        assert parse_instant("2025-03-01T10:00:00Z") == _at(10)


class TestExtractSlots:
    def test_days_sorted_and_provider_order_kept(self):
        payload = {
            "slots": {
                "2025-03-02": [{"time": "2025-03-02T09:00:00Z"}],
                "2025-03-01": [{"time": "2025-03-01T15:00:00Z"}, {"time": "2025-03-01T11:00:00Z"}],
            }
        }
        times = [s.time for s in extract_slots(payload)]
        assert times == [_at(15), _at(11), _at(9, day=2)]

    def test_data_wrapper_and_start_key(self):
        payload = {"data": {"slots": [{"start": "2025-03-01T10:00:00Z"}]}}
        assert [s.time for s in extract_slots(payload)] == [_at(10)]

    def test_plain_list_of_strings(self):
        assert [s.time for s in extract_slots(["2025-03-01T10:00:00Z"])] == [_at(10)]

    def test_unparseable_and_empty_entries_skipped(self):
        payload = {"slots": {"2025-03-01": [{"time": "not a time"}, {}, {"time": "2025-03-01T10:00:00Z"}]}}
        assert [s.time for s in extract_slots(payload)] == [_at(10)]

    def test_unknown_shapes_are_empty(self):
        assert extract_slots(None) == []
        assert extract_slots({"unexpected": True}) == []

    def test_spoken_rendering_in_time_zone(self):
        payload = {"slots": {"2023-01-01": [{"time": "2023-01-01T17:30:00Z"}]}}
        slot = extract_slots(payload, "America/New_York")[0]
        assert slot.spoken == "Sunday, January 1 at 12:30 PM"
        assert slot.formatted_date_time == "Sunday, January 1, 2023 at 12:30 PM"


# ---------------------------------------------------------------------------
# is_time_slot_available
# ---------------------------------------------------------------------------


class TestIsTimeSlotAvailable:
    def test_exact_match(self):
        assert is_time_slot_available(_slots(_at(9), _at(10)), _at(10))

    def test_same_instant_other_offset(self):
        requested = datetime(2025, 3, 1, 11, 0, tzinfo=timezone(timedelta(hours=1)))
        assert is_time_slot_available(_slots(_at(10)), requested)

    def test_near_miss_is_unavailable(self):
        assert not is_time_slot_available(_slots(_at(10)), _at(10, 1))

    def test_empty(self):
        assert not is_time_slot_available([], _at(10))


# ---------------------------------------------------------------------------
# find_alternative_time_slots
# ---------------------------------------------------------------------------


class TestFindAlternativeTimeSlots:
    def test_nearest_first(self):
        slots = _slots(_at(9), _at(10), _at(11, 30))
        result = find_alternative_time_slots(slots, _at(10, 20), 2)
        assert [s.time for s in result] == [_at(10), _at(11, 30)]

    def test_tie_prefers_earlier(self):
        # 09:00 and 11:30 are both 75 minutes from 10:15. Equal distance resolves to the
        # earlier slot, so the second pick is 09:00, not 11:30.
        slots = _slots(_at(11, 30), _at(10), _at(9))
        result = find_alternative_time_slots(slots, _at(10, 15), 3)
        assert [s.time for s in result] == [_at(10), _at(9), _at(11, 30)]

    def test_truncates_to_max(self):
        slots = _slots(*[_at(h) for h in range(8, 18)])
        assert len(find_alternative_time_slots(slots, _at(12), 5)) == 5

    def test_default_max_is_five(self):
        slots = _slots(*[_at(h) for h in range(8, 18)])
        assert len(find_alternative_time_slots(slots, _at(12))) == 5

    def test_fewer_than_max(self):
        assert len(find_alternative_time_slots(_slots(_at(9)), _at(12), 5)) == 1

    def test_empty_and_non_positive_max(self):
        assert find_alternative_time_slots([], _at(12), 5) == []
        assert find_alternative_time_slots(_slots(_at(9)), _at(12), 0) == []

    def test_input_order_does_not_matter(self):
        times = [_at(14), _at(9), _at(12, 30), _at(11)]
        forward = find_alternative_time_slots(_slots(*times), _at(12), 4)
        backward = find_alternative_time_slots(_slots(*reversed(times)), _at(12), 4)
        assert [s.time for s in forward] == [s.time for s in backward]
