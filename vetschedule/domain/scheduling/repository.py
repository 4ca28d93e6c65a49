"""Scheduling repository - Database operations for templates, closures and appointments"""

from datetime import date
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from ...models import Appointment, Closure, SlotReservation, TimeTemplate
from .lifecycle import RELEASED_STATUSES
from .time_calculator import matches_closure_date

RELEASED_VALUES = [s.value for s in RELEASED_STATUSES]


class TimeTemplateRepository:
    """Repository for time template database operations"""

    @staticmethod
    def get_active_templates(db: Session, hospital_id: str, day_of_week: int) -> list[TimeTemplate]:
        """Active templates for a weekday, ordered by start time"""
        return (
            db.query(TimeTemplate)
            .filter(
                TimeTemplate.hospital_id == hospital_id,
                TimeTemplate.day_of_week == day_of_week,
                TimeTemplate.is_active.is_(True),
            )
            .order_by(TimeTemplate.start_time.asc())
            .all()
        )

    @staticmethod
    def list_templates(db: Session, hospital_id: str) -> list[TimeTemplate]:
        return (
            db.query(TimeTemplate)
            .filter(TimeTemplate.hospital_id == hospital_id)
            .order_by(TimeTemplate.day_of_week.asc(), TimeTemplate.start_time.asc())
            .all()
        )

    @staticmethod
    def get_template(db: Session, template_id: str) -> Optional[TimeTemplate]:
        return db.query(TimeTemplate).filter(TimeTemplate.id == template_id).first()

    @staticmethod
    def find_active_duplicate(
        db: Session,
        hospital_id: str,
        day_of_week: int,
        start_time: str,
        exclude_id: Optional[str] = None,
    ) -> Optional[TimeTemplate]:
        """Active template sharing (hospital, weekday, start time), if any"""
        query = db.query(TimeTemplate).filter(
            TimeTemplate.hospital_id == hospital_id,
            TimeTemplate.day_of_week == day_of_week,
            TimeTemplate.start_time == start_time,
            TimeTemplate.is_active.is_(True),
        )
        if exclude_id:
            query = query.filter(TimeTemplate.id != exclude_id)
        return query.first()

    @staticmethod
    def create_template(db: Session, **template_data) -> TimeTemplate:
        template = TimeTemplate(**template_data)
        db.add(template)
        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def update_template(db: Session, template: TimeTemplate, **updates) -> TimeTemplate:
        for key, value in updates.items():
            if value is not None and hasattr(template, key):
                setattr(template, key, value)
        db.commit()
        db.refresh(template)
        return template


class ClosureRepository:
    """Repository for closure (holiday) database operations"""

    @staticmethod
    def get_closure(db: Session, hospital_id: str, target: date) -> Optional[Closure]:
        """Closure blocking the target date: exact date first, then yearly recurring"""
        candidates = (
            db.query(Closure)
            .filter(
                Closure.hospital_id == hospital_id,
                or_(Closure.date == target, Closure.is_recurring.is_(True)),
            )
            .order_by(Closure.is_recurring.asc(), Closure.date.asc())
            .all()
        )
        for closure in candidates:
            if matches_closure_date(closure.date, closure.is_recurring, target):
                return closure
        return None

    @staticmethod
    def list_closures(db: Session, hospital_id: str, year: Optional[int] = None) -> list[Closure]:
        query = db.query(Closure).filter(Closure.hospital_id == hospital_id)
        if year:
            query = query.filter(
                or_(
                    Closure.is_recurring.is_(True),
                    Closure.date.between(date(year, 1, 1), date(year, 12, 31)),
                )
            )
        return query.order_by(Closure.date.asc()).all()

    @staticmethod
    def get_closure_by_id(db: Session, closure_id: str) -> Optional[Closure]:
        return db.query(Closure).filter(Closure.id == closure_id).first()

    @staticmethod
    def create_closure(db: Session, **closure_data) -> Closure:
        closure = Closure(**closure_data)
        db.add(closure)
        db.commit()
        db.refresh(closure)
        return closure

    @staticmethod
    def delete_closure(db: Session, closure: Closure) -> None:
        db.delete(closure)
        db.commit()


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def get_by_id_for_update(db: Session, appointment_id: str) -> Optional[Appointment]:
        """Load an appointment with a row lock (no-op on SQLite)"""
        return (
            db.query(Appointment)
            .filter(Appointment.id == appointment_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    @staticmethod
    def booked_start_times(db: Session, hospital_id: str, target: date) -> list[str]:
        """Start times of every capacity-holding appointment on a date"""
        rows = (
            db.query(Appointment.start_time)
            .filter(
                Appointment.hospital_id == hospital_id,
                Appointment.appointment_date == target,
                Appointment.status.notin_(RELEASED_VALUES),
            )
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def add(db: Session, **appointment_data) -> Appointment:
        """Stage a new appointment in the current transaction (caller commits)"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def search(
        db: Session,
        hospital_id: Optional[str] = None,
        animal_id: Optional[str] = None,
        guardian_id: Optional[str] = None,
        vet_id: Optional[str] = None,
        status: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Appointment], int]:
        """Filter appointments, returning (page_items, total)"""
        query = db.query(Appointment)

        if hospital_id:
            query = query.filter(Appointment.hospital_id == hospital_id)
        if animal_id:
            query = query.filter(Appointment.animal_id == animal_id)
        if guardian_id:
            query = query.filter(Appointment.guardian_id == guardian_id)
        if vet_id:
            query = query.filter(Appointment.vet_id == vet_id)
        if status:
            query = query.filter(Appointment.status == status)
        if start_date:
            query = query.filter(Appointment.appointment_date >= start_date)
        if end_date:
            query = query.filter(Appointment.appointment_date <= end_date)

        total = query.count()
        items = (
            query.order_by(Appointment.appointment_date.asc(), Appointment.start_time.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    @staticmethod
    def get_stats(
        db: Session,
        hospital_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> dict:
        filters = [Appointment.hospital_id == hospital_id]
        if start_date:
            filters.append(Appointment.appointment_date >= start_date)
        if end_date:
            filters.append(Appointment.appointment_date <= end_date)

        total = db.query(func.count(Appointment.id)).filter(*filters).scalar() or 0
        by_status = (
            db.query(Appointment.status, func.count(Appointment.id))
            .filter(*filters)
            .group_by(Appointment.status)
            .all()
        )
        by_type = (
            db.query(Appointment.type, func.count(Appointment.id))
            .filter(*filters)
            .group_by(Appointment.type)
            .all()
        )
        return {
            "total": total,
            "byStatus": {status: count for status, count in by_status},
            "byType": {type_: count for type_, count in by_type},
        }

    @staticmethod
    def delete(db: Session, appointment: Appointment) -> None:
        """Stage deletion in the current transaction (caller commits)"""
        db.delete(appointment)
        db.flush()


class SlotReservationRepository:
    """
    Per-slot-key capacity counters.

    The conditional increment is a single UPDATE, so two transactions racing
    for the last unit serialize on the counter row and exactly one matches.
    """

    @staticmethod
    def _insert_for(db: Session):
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert
        if dialect == "sqlite":
            return sqlite_insert
        raise NotImplementedError(f"Slot counters are not supported on {dialect}")

    @staticmethod
    def ensure_row(db: Session, hospital_id: str, target: date, start_time: str) -> None:
        """Create the counter row if missing, seeded from the live appointment count"""
        live_count = (
            select(func.count(Appointment.id))
            .where(
                Appointment.hospital_id == hospital_id,
                Appointment.appointment_date == target,
                Appointment.start_time == start_time,
                Appointment.status.notin_(RELEASED_VALUES),
            )
            .scalar_subquery()
        )
        insert = SlotReservationRepository._insert_for(db)
        stmt = (
            insert(SlotReservation)
            .values(
                hospital_id=hospital_id,
                appointment_date=target,
                start_time=start_time,
                booked=live_count,
            )
            .on_conflict_do_nothing(index_elements=["hospital_id", "appointment_date", "start_time"])
        )
        db.execute(stmt)

    @staticmethod
    def try_acquire(db: Session, hospital_id: str, target: date, start_time: str, capacity: int) -> bool:
        """Take one unit if fewer than `capacity` are booked"""
        SlotReservationRepository.ensure_row(db, hospital_id, target, start_time)
        result = db.execute(
            update(SlotReservation)
            .where(
                SlotReservation.hospital_id == hospital_id,
                SlotReservation.appointment_date == target,
                SlotReservation.start_time == start_time,
                SlotReservation.booked < capacity,
            )
            .values(booked=SlotReservation.booked + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def release(db: Session, hospital_id: str, target: date, start_time: str) -> None:
        """Give one unit back"""
        db.execute(
            update(SlotReservation)
            .where(
                SlotReservation.hospital_id == hospital_id,
                SlotReservation.appointment_date == target,
                SlotReservation.start_time == start_time,
                SlotReservation.booked > 0,
            )
            .values(booked=SlotReservation.booked - 1)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def get_booked(db: Session, hospital_id: str, target: date, start_time: str) -> Optional[int]:
        return (
            db.query(SlotReservation.booked)
            .filter(
                SlotReservation.hospital_id == hospital_id,
                SlotReservation.appointment_date == target,
                SlotReservation.start_time == start_time,
            )
            .scalar()
        )
