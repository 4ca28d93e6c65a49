import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a unique string ID for public-facing records"""
    return str(uuid.uuid4())


# ============================================================================
# CLINIC DIRECTORY (owned by the hospital / guardian services)
# ============================================================================


class Hospital(Base):
    __tablename__ = "hospitals"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    staff = relationship("HospitalStaff", back_populates="hospital")
    time_templates = relationship("TimeTemplate", back_populates="hospital")
    closures = relationship("Closure", back_populates="hospital")


class HospitalStaff(Base):
    __tablename__ = "hospital_staff"
    __table_args__ = (UniqueConstraint("hospital_id", "user_id", name="uq_hospital_staff_user"),)

    id = Column(Integer, primary_key=True, index=True)
    hospital_id = Column(String(36), ForeignKey("hospitals.id"), nullable=False)
    user_id = Column(String(36), nullable=False, index=True)
    position = Column(String(50), nullable=True)  # OWNER, MANAGER, VET, NURSE, RECEPTIONIST
    is_active = Column(Boolean, default=True, nullable=False)

    hospital = relationship("Hospital", back_populates="staff")


class GuardianAnimal(Base):
    """Registered caretaker relationship between a guardian and an animal"""

    __tablename__ = "guardian_animals"
    __table_args__ = (UniqueConstraint("guardian_id", "animal_id", name="uq_guardian_animal"),)

    id = Column(Integer, primary_key=True, index=True)
    guardian_id = Column(String(36), nullable=False, index=True)
    animal_id = Column(String(36), nullable=False, index=True)


# ============================================================================
# SCHEDULING
# ============================================================================


class TimeTemplate(Base):
    """Recurring weekly availability window for a hospital"""

    __tablename__ = "time_templates"
    __table_args__ = (
        Index("ix_time_templates_lookup", "hospital_id", "day_of_week", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    hospital_id = Column(String(36), ForeignKey("hospitals.id"), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Sunday ... 6=Saturday
    start_time = Column(String(5), nullable=False)  # HH:MM format
    end_time = Column(String(5), nullable=False)
    slot_duration = Column(Integer, nullable=False, default=30)  # minutes
    max_concurrent = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    hospital = relationship("Hospital", back_populates="time_templates")


class Closure(Base):
    """Day on which a hospital takes no bookings (one-off or every year)"""

    __tablename__ = "closures"

    id = Column(String(36), primary_key=True, default=generate_id)
    hospital_id = Column(String(36), ForeignKey("hospitals.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    reason = Column(String(255), nullable=True)
    is_recurring = Column(Boolean, default=False, nullable=False)  # same month/day every year
    created_at = Column(DateTime, server_default=func.now())

    hospital = relationship("Hospital", back_populates="closures")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_slot_key", "hospital_id", "appointment_date", "start_time"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    hospital_id = Column(String(36), ForeignKey("hospitals.id"), nullable=False)
    animal_id = Column(String(36), nullable=False, index=True)
    guardian_id = Column(String(36), nullable=False, index=True)
    vet_id = Column(String(36), nullable=True)
    appointment_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM, a generated slot boundary
    end_time = Column(String(5), nullable=True)
    duration = Column(Integer, nullable=False, default=30)  # minutes
    type = Column(String(30), nullable=False, default="CONSULTATION")
    status = Column(String(20), nullable=False, default="SCHEDULED")
    reason = Column(Text, nullable=True)
    symptoms = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    cancel_reason = Column(Text, nullable=True)

    checked_in_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
    # Optimistic lock: two concurrent changes to one appointment cannot both commit
    version = Column(Integer, nullable=False, default=1)

    hospital = relationship("Hospital")

    __mapper_args__ = {"version_id_col": version}


class SlotReservation(Base):
    """Committed capacity units per slot key.

    Kept in step with the appointments table inside the same transaction; the
    conditional increment on this row is what serializes competing bookings.
    """

    __tablename__ = "slot_reservations"
    __table_args__ = (
        UniqueConstraint(
            "hospital_id", "appointment_date", "start_time", name="uq_slot_reservation_key"
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    hospital_id = Column(String(36), nullable=False)
    appointment_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    booked = Column(Integer, nullable=False, default=0)
