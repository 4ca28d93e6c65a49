"""
Booking allocator - the only place that takes or gives back slot capacity.

Availability is re-derived from the database on every call; nothing a client
sends about availability is trusted. Capacity is taken with a conditional
increment on the slot's counter row inside the same transaction that writes
the appointment, so a booking either commits completely or not at all.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...directory import ClinicDirectory
from ...exceptions import ConflictError, ForbiddenError, SlotUnavailableError
from ...models import Appointment
from .repository import (
    AppointmentRepository,
    ClosureRepository,
    SlotReservationRepository,
    TimeTemplateRepository,
)
from .schemas import AppointmentStatus
from .slot_generator import Slot, TemplateWindow, find_slot
from .time_calculator import day_of_week

logger = logging.getLogger(__name__)


class BookingAllocator:
    def __init__(self, db: Session, directory: Optional[ClinicDirectory] = None):
        self.db = db
        self.directory = directory or ClinicDirectory(db)
        self.templates = TimeTemplateRepository()
        self.closures = ClosureRepository()
        self.counters = SlotReservationRepository()
        self.appointments = AppointmentRepository()

    # ------------------------------------------------------------------
    # Slot resolution
    # ------------------------------------------------------------------

    def resolve_slot(self, hospital_id: str, target: date, start_time: str) -> Slot:
        """Find the bookable slot for a slot key or raise SlotUnavailableError"""
        closure = self.closures.get_closure(self.db, hospital_id, target)
        if closure:
            logger.info(f"🚫 Hospital {hospital_id} is closed on {target}")
            raise SlotUnavailableError(
                f"The hospital is closed on {target.isoformat()}"
                + (f" ({closure.reason})" if closure.reason else "")
            )

        rows = self.templates.get_active_templates(self.db, hospital_id, day_of_week(target))
        slot = find_slot([TemplateWindow.from_row(r) for r in rows], start_time)
        if slot is None:
            logger.info(f"🚫 No bookable slot at {start_time} on {target} for hospital {hospital_id}")
            raise SlotUnavailableError()
        return slot

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def allocate(self, guardian_id: str, **appointment_data) -> Appointment:
        """
        Book a new appointment for a guardian.

        Verifies caretaker relationship and hospital, re-derives the slot and
        commits the appointment together with one unit of slot capacity.
        """
        hospital_id = appointment_data["hospital_id"]
        animal_id = appointment_data["animal_id"]
        target = appointment_data["appointment_date"]
        start_time = appointment_data["start_time"]

        if not self.directory.is_guardian_of(guardian_id, animal_id):
            logger.warning(f"⚠️ User {guardian_id} is not a guardian of animal {animal_id}")
            raise ForbiddenError("You are not a registered guardian of this animal")

        self.directory.require_hospital(hospital_id)

        try:
            slot = self.resolve_slot(hospital_id, target, start_time)

            if not self.counters.try_acquire(self.db, hospital_id, target, start_time, slot.capacity):
                logger.info(f"🚫 Slot {hospital_id}/{target}/{start_time} is full ({slot.capacity})")
                raise SlotUnavailableError("The selected time slot is no longer available")

            appointment = self.appointments.add(
                self.db,
                guardian_id=guardian_id,
                status=AppointmentStatus.SCHEDULED.value,
                **appointment_data,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info(
            f"✅ Appointment {appointment.id} booked at {hospital_id}/{target}/{start_time}"
        )
        return appointment

    # ------------------------------------------------------------------
    # Reschedule
    # ------------------------------------------------------------------

    def move(self, appointment: Appointment, target: date, start_time: str, **updates) -> Appointment:
        """
        Move an appointment to another slot key and apply field updates.

        The new slot is checked exactly like a fresh booking; the appointment's
        own unit on its old slot is given back in the same transaction.
        """
        old_key = (appointment.hospital_id, appointment.appointment_date, appointment.start_time)
        new_key = (appointment.hospital_id, target, start_time)

        try:
            slot = self.resolve_slot(appointment.hospital_id, target, start_time)

            # Counters first: the new key's seed count must not see this row at its new key.
            # Rows are touched in key order so two opposite moves cannot deadlock.
            for key in sorted([old_key, new_key], key=lambda k: (k[1], k[2])):
                if key == new_key:
                    if not self.counters.try_acquire(self.db, *new_key, slot.capacity):
                        raise SlotUnavailableError("The selected time slot is no longer available")
                else:
                    self.counters.release(self.db, *old_key)

            appointment.appointment_date = target
            appointment.start_time = start_time
            for key, value in updates.items():
                setattr(appointment, key, value)
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            raise ConflictError("Appointment was modified by another request, please retry") from e
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info(f"✅ Appointment {appointment.id} moved to {target}/{start_time}")
        return appointment

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def release(self, appointment: Appointment) -> None:
        """Give back the appointment's unit (caller owns the transaction)"""
        self.counters.release(
            self.db, appointment.hospital_id, appointment.appointment_date, appointment.start_time
        )
