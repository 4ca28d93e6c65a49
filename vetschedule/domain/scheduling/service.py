"""Appointment service - Business logic for appointment operations"""

import logging
import math
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...auth import ADMIN_ROLES, STAFF_ROLES, CurrentUser, UserRole
from ...config import DEFAULT_APPOINTMENT_DURATION, DEFAULT_APPOINTMENT_TYPE
from ...directory import ClinicDirectory
from ...exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from ...models import Appointment
from .allocator import BookingAllocator
from .lifecycle import (
    RELEASED_STATUSES,
    apply_transition,
    check_transition_allowed,
    holds_capacity,
    is_terminal,
)
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentUpdate, StatusUpdate
from .time_calculator import add_minutes

logger = logging.getLogger(__name__)

STATS_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.HOSPITAL_ADMIN, UserRole.VET})

MAX_PAGE_SIZE = 100


def compute_end_time(start_time: str, duration: int) -> str:
    try:
        return add_minutes(start_time, duration)
    except ValueError as e:
        raise BadRequestError("Appointment would end after midnight") from e


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()
        self.directory = ClinicDirectory(db)
        self.allocator = BookingAllocator(db, self.directory)

    # ------------------------------------------------------------------
    # Access helpers
    # ------------------------------------------------------------------

    def _authorize_access(self, appointment: Appointment, user: CurrentUser) -> None:
        if user.is_guardian:
            if appointment.guardian_id != user.id:
                raise ForbiddenError("You can only access your own appointments")
            return
        self.directory.require_staff_of(user, appointment.hospital_id, STAFF_ROLES)

    def _load(self, appointment_id: str, for_update: bool = False) -> Appointment:
        if for_update:
            appointment = self.repo.get_by_id_for_update(self.db, appointment_id)
        else:
            appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: str, user: CurrentUser) -> Appointment:
        appointment = self._load(appointment_id)
        self._authorize_access(appointment, user)
        return appointment

    def list_appointments(
        self,
        user: CurrentUser,
        hospital_id: Optional[str] = None,
        animal_id: Optional[str] = None,
        guardian_id: Optional[str] = None,
        vet_id: Optional[str] = None,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        """Filtered, paginated appointments scoped to what the user may see"""
        page = max(1, page)
        limit = min(max(1, limit), MAX_PAGE_SIZE)

        if user.is_guardian:
            guardian_id = user.id
        elif not user.is_super_admin:
            staff_hospital = self.directory.staff_hospital_id(user.id)
            if not staff_hospital:
                raise ForbiddenError("You are not a staff member of any hospital")
            hospital_id = staff_hospital

        items, total = self.repo.search(
            self.db,
            hospital_id=hospital_id,
            animal_id=animal_id,
            guardian_id=guardian_id,
            vet_id=vet_id,
            status=status,
            start_date=start_date,
            end_date=end_date,
            page=page,
            limit=limit,
        )
        return {
            "data": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit) if total else 0,
            },
        }

    def get_stats(
        self,
        hospital_id: str,
        user: CurrentUser,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> dict:
        self.directory.require_staff_of(user, hospital_id, STATS_ROLES)
        self.directory.require_hospital(hospital_id)
        return self.repo.get_stats(self.db, hospital_id, start_date, end_date)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_appointment(self, data: AppointmentCreate, user: CurrentUser) -> Appointment:
        """Book an appointment on behalf of the acting guardian"""
        logger.info(
            f"📥 Booking request by {user.id} for {data.hospitalId} "
            f"on {data.appointmentDate} at {data.startTime}"
        )

        duration = data.duration or DEFAULT_APPOINTMENT_DURATION
        appointment_data = {
            "hospital_id": data.hospitalId,
            "animal_id": data.animalId,
            "vet_id": data.vetId,
            "appointment_date": data.appointmentDate,
            "start_time": data.startTime,
            "end_time": data.endTime or compute_end_time(data.startTime, duration),
            "duration": duration,
            "type": data.type.value if data.type else DEFAULT_APPOINTMENT_TYPE,
            "reason": data.reason,
            "symptoms": data.symptoms,
            "notes": data.notes,
        }

        return self.allocator.allocate(user.id, **appointment_data)

    def update_appointment(
        self, appointment_id: str, data: AppointmentUpdate, user: CurrentUser
    ) -> Appointment:
        """Edit appointment details; a new date or time goes through the allocator"""
        appointment = self._load(appointment_id, for_update=True)
        self._authorize_access(appointment, user)

        if is_terminal(appointment.status):
            raise BadRequestError(f"Cannot modify a {appointment.status} appointment")

        updates = {}
        if data.vetId is not None:
            updates["vet_id"] = data.vetId
        if data.duration is not None:
            updates["duration"] = data.duration
        if data.type is not None:
            updates["type"] = data.type.value
        if data.reason is not None:
            updates["reason"] = data.reason
        if data.symptoms is not None:
            updates["symptoms"] = data.symptoms
        if data.notes is not None:
            updates["notes"] = data.notes

        target = data.appointmentDate or appointment.appointment_date
        start_time = data.startTime or appointment.start_time
        moved = (target, start_time) != (appointment.appointment_date, appointment.start_time)

        if data.endTime is not None:
            updates["end_time"] = data.endTime
        elif moved or data.duration is not None:
            updates["end_time"] = compute_end_time(
                start_time, updates.get("duration", appointment.duration)
            )

        if moved:
            return self.allocator.move(appointment, target, start_time, **updates)

        try:
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
        logger.info(f"✅ Appointment {appointment.id} updated")
        return appointment

    def update_status(self, appointment_id: str, data: StatusUpdate, user: CurrentUser) -> Appointment:
        """Drive the appointment through its lifecycle"""
        appointment = self._load(appointment_id, for_update=True)

        check_transition_allowed(appointment, data.status, user, data.cancelReason)
        if not user.is_guardian:
            self.directory.require_staff_of(user, appointment.hospital_id)

        releases = holds_capacity(appointment.status) and data.status in RELEASED_STATUSES

        try:
            if releases:
                self.allocator.release(appointment)
            apply_transition(appointment, data.status, data.cancelReason)
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            # Lost to a concurrent change: report a terminal winner like a late request would see it
            check_transition_allowed(self._load(appointment_id), data.status, user, data.cancelReason)
            raise ConflictError("Appointment was modified by another request, please retry") from e
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        return appointment

    def delete_appointment(self, appointment_id: str, user: CurrentUser) -> dict:
        """Administrative removal; guardians cancel instead"""
        appointment = self._load(appointment_id, for_update=True)
        self.directory.require_staff_of(user, appointment.hospital_id, ADMIN_ROLES)

        try:
            if holds_capacity(appointment.status):
                self.allocator.release(appointment)
            self.repo.delete(self.db, appointment)
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            raise ConflictError("Appointment was modified by another request, please retry") from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ Appointment {appointment_id} deleted by {user.id}")
        return {"message": "Appointment deleted"}
