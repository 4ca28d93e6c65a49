"""Slot generation - pure functions over time template data"""

from dataclasses import dataclass
from typing import Iterable, Optional

from .time_calculator import to_hhmm, to_minutes


@dataclass(frozen=True)
class TemplateWindow:
    """Flat view of an active time template used for slot math"""

    start_time: str
    end_time: str
    slot_duration: int
    max_concurrent: int

    @classmethod
    def from_row(cls, row) -> "TemplateWindow":
        return cls(
            start_time=row.start_time,
            end_time=row.end_time,
            slot_duration=row.slot_duration,
            max_concurrent=row.max_concurrent,
        )

    def to_dict(self) -> dict:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "slot_duration": self.slot_duration,
            "max_concurrent": self.max_concurrent,
        }


@dataclass(frozen=True)
class Slot:
    start: int  # minutes since midnight
    end: int
    capacity: int

    @property
    def start_time(self) -> str:
        return to_hhmm(self.start)

    @property
    def end_time(self) -> str:
        return to_hhmm(self.end)


def generate_slots(templates: Iterable[TemplateWindow], closed: bool = False) -> list[Slot]:
    """
    Expand the day's templates into discrete candidate slots.

    Templates are walked in start-time order in steps of their slot duration.
    A trailing remainder shorter than one slot is dropped. When templates
    overlap, a slot is only emitted if it starts after the previous one so
    the output stays strictly increasing.
    """
    if closed:
        return []

    slots: list[Slot] = []
    ordered = sorted(templates, key=lambda t: to_minutes(t.start_time))

    for template in ordered:
        duration = template.slot_duration
        if duration <= 0:
            continue
        current = to_minutes(template.start_time)
        end = to_minutes(template.end_time)

        while current + duration <= end:
            if not slots or current > slots[-1].start:
                slots.append(Slot(start=current, end=current + duration, capacity=template.max_concurrent))
            current += duration

    return slots


def find_slot(templates: Iterable[TemplateWindow], start_time: str) -> Optional[Slot]:
    """Return the generated slot starting at start_time, if any"""
    target = to_minutes(start_time)
    for slot in generate_slots(templates):
        if slot.start == target:
            return slot
        if slot.start > target:
            break
    return None
