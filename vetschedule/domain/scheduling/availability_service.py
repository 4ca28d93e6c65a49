"""
Availability service - point-in-time snapshot of bookable slots for a date.

The snapshot is advisory. Bookings never consult it and re-derive
availability themselves in the allocator.
"""

import logging
from collections import Counter
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...cache import get_templates_cached, set_templates_cached
from ...directory import ClinicDirectory
from .repository import AppointmentRepository, ClosureRepository, TimeTemplateRepository
from .schemas import AvailableSlot, AvailableSlotsResponse
from .slot_generator import Slot, TemplateWindow, generate_slots
from .time_calculator import day_of_week

logger = logging.getLogger(__name__)


def annotate_availability(slots: Iterable[Slot], booked_start_times: Iterable[str]) -> list[AvailableSlot]:
    """Attach remaining capacity to each slot from the day's booked start times"""
    booked = Counter(booked_start_times)
    annotated = []
    for slot in slots:
        remaining = max(0, slot.capacity - booked.get(slot.start_time, 0))
        annotated.append(
            AvailableSlot(
                startTime=slot.start_time,
                endTime=slot.end_time,
                available=remaining > 0,
                remainingSlots=remaining,
            )
        )
    return annotated


class AvailabilityService:
    """Service layer for availability reads"""

    def __init__(self, db: Session):
        self.db = db
        self.directory = ClinicDirectory(db)
        self.templates = TimeTemplateRepository()
        self.closures = ClosureRepository()
        self.appointments = AppointmentRepository()

    def _active_windows(self, hospital_id: str, weekday: int) -> list[TemplateWindow]:
        cached = get_templates_cached(hospital_id, weekday)
        if cached is not None:
            return [TemplateWindow(**item) for item in cached]

        rows = self.templates.get_active_templates(self.db, hospital_id, weekday)
        windows = [TemplateWindow.from_row(r) for r in rows]
        set_templates_cached(hospital_id, weekday, [w.to_dict() for w in windows])
        return windows

    def get_available_slots(
        self, hospital_id: str, target: date, appointment_type: Optional[str] = None
    ) -> AvailableSlotsResponse:
        """
        Slots for (hospital, date) with remaining capacity.

        `appointment_type` is accepted for API compatibility; every type shares
        the same slot calendar.
        """
        self.directory.require_hospital(hospital_id)

        closure = self.closures.get_closure(self.db, hospital_id, target)
        if closure:
            logger.info(f"📅 {target} is a closure day for hospital {hospital_id}")
            return AvailableSlotsResponse(
                date=target,
                isHoliday=True,
                holidayReason=closure.reason,
                slots=[],
            )

        windows = self._active_windows(hospital_id, day_of_week(target))
        if not windows:
            return AvailableSlotsResponse(
                date=target,
                isHoliday=False,
                message="No appointments are accepted on this day",
                slots=[],
            )

        slots = generate_slots(windows)
        booked = self.appointments.booked_start_times(self.db, hospital_id, target)
        return AvailableSlotsResponse(
            date=target,
            isHoliday=False,
            slots=annotate_availability(slots, booked),
        )
