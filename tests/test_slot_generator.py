"""Tests for slot generation over template windows."""

from vetschedule.domain.scheduling.slot_generator import TemplateWindow, find_slot, generate_slots


def window(start, end, duration=30, capacity=1):
    return TemplateWindow(start_time=start, end_time=end, slot_duration=duration, max_concurrent=capacity)


def starts(slots):
    return [s.start_time for s in slots]


class TestGenerateSlots:
    """Expansion of templates into discrete slots."""

    def test_steps_by_slot_duration(self):
        slots = generate_slots([window("09:00", "10:30")])

        assert starts(slots) == ["09:00", "09:30", "10:00"]
        assert [s.end_time for s in slots] == ["09:30", "10:00", "10:30"]

    def test_trailing_partial_slot_is_dropped(self):
        """09:00-09:50 in 30 minute steps gives only 09:00-09:30."""
        slots = generate_slots([window("09:00", "09:50")])

        assert len(slots) == 1
        assert (slots[0].start_time, slots[0].end_time) == ("09:00", "09:30")

    def test_window_shorter_than_one_slot_is_empty(self):
        assert generate_slots([window("09:00", "09:20")]) == []

    def test_templates_are_ordered_by_start(self):
        afternoon = window("14:00", "15:00", capacity=1)
        morning = window("09:00", "10:00", capacity=3)

        slots = generate_slots([afternoon, morning])

        assert starts(slots) == ["09:00", "09:30", "14:00", "14:30"]
        assert [s.capacity for s in slots] == [3, 3, 1, 1]

    def test_overlapping_templates_stay_strictly_increasing(self):
        slots = generate_slots([window("09:00", "11:00"), window("10:00", "12:00", duration=60)])

        assert starts(slots) == ["09:00", "09:30", "10:00", "10:30", "11:00"]
        assert all(a.start < b.start for a, b in zip(slots, slots[1:]))

    def test_closed_day_is_empty(self):
        assert generate_slots([window("09:00", "12:00")], closed=True) == []

    def test_no_templates(self):
        assert generate_slots([]) == []

    def test_output_is_deterministic(self):
        templates = [window("13:00", "14:00"), window("09:00", "11:00", duration=20, capacity=2)]
        assert generate_slots(templates) == generate_slots(list(reversed(templates)))


class TestFindSlot:
    """Matching a requested start time against generated boundaries."""

    def test_finds_boundary(self):
        slot = find_slot([window("09:00", "12:00", capacity=2)], "10:30")

        assert slot is not None
        assert slot.end_time == "11:00"
        assert slot.capacity == 2

    def test_rejects_time_between_boundaries(self):
        assert find_slot([window("09:00", "12:00")], "09:15") is None

    def test_rejects_truncated_remainder(self):
        assert find_slot([window("09:00", "09:50")], "09:30") is None

    def test_rejects_time_outside_templates(self):
        assert find_slot([window("09:00", "12:00")], "12:00") is None
        assert find_slot([window("09:00", "12:00")], "08:30") is None
