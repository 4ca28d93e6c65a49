"""Appointment router - FastAPI endpoints for booking and appointment lifecycle"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user
from ...config import BOOKING_RATE_LIMIT, BOOKING_RATE_WINDOW
from ...database import get_db
from ...models import Appointment
from ...rate_limiter import create_rate_limiter
from .availability_service import AvailabilityService
from .schemas import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStats,
    AppointmentStatus,
    AppointmentType,
    AppointmentUpdate,
    AvailableSlotsResponse,
    StatusUpdate,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

booking_rate_limit = create_rate_limiter(BOOKING_RATE_LIMIT, BOOKING_RATE_WINDOW, "booking")


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


def to_response(a: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=a.id,
        hospitalId=a.hospital_id,
        animalId=a.animal_id,
        guardianId=a.guardian_id,
        vetId=a.vet_id,
        appointmentDate=a.appointment_date,
        startTime=a.start_time,
        endTime=a.end_time,
        duration=a.duration,
        type=a.type,
        status=a.status,
        reason=a.reason,
        symptoms=a.symptoms,
        notes=a.notes,
        cancelReason=a.cancel_reason,
        checkedInAt=a.checked_in_at,
        completedAt=a.completed_at,
        cancelledAt=a.cancelled_at,
        createdAt=a.created_at,
        updatedAt=a.updated_at,
    )


# ============================================================================
# BOOKING
# ============================================================================


@router.post("", response_model=AppointmentResponse, status_code=201)
def create_appointment(
    data: AppointmentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
    _: None = Depends(booking_rate_limit),
):
    """Book an appointment in an available slot"""
    appointment = service.create_appointment(data, current_user)
    return to_response(appointment)


@router.get("", response_model=AppointmentListResponse)
def list_appointments(
    hospitalId: Optional[str] = Query(None),
    animalId: Optional[str] = Query(None),
    guardianId: Optional[str] = Query(None),
    vetId: Optional[str] = Query(None),
    status: Optional[AppointmentStatus] = Query(None),
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """List appointments visible to the current user"""
    result = service.list_appointments(
        current_user,
        hospital_id=hospitalId,
        animal_id=animalId,
        guardian_id=guardianId,
        vet_id=vetId,
        status=status.value if status else None,
        start_date=startDate,
        end_date=endDate,
        page=page,
        limit=limit,
    )
    return AppointmentListResponse(
        data=[to_response(a) for a in result["data"]],
        pagination=result["pagination"],
    )


@router.get("/available-slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    hospitalId: str = Query(...),
    date: date = Query(...),
    type: Optional[AppointmentType] = Query(None),
    _user: CurrentUser = Depends(get_current_user),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Point-in-time availability for a hospital and date"""
    return service.get_available_slots(hospitalId, date, type.value if type else None)


@router.get("/stats", response_model=AppointmentStats)
def get_stats(
    hospitalId: str = Query(...),
    startDate: Optional[date] = Query(None),
    endDate: Optional[date] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointment counts by status and type"""
    return service.get_stats(hospitalId, current_user, startDate, endDate)


# ============================================================================
# SINGLE APPOINTMENT
# ============================================================================


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.get_appointment(appointment_id, current_user)
    return to_response(appointment)


@router.put("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Update appointment details or reschedule it"""
    appointment = service.update_appointment(appointment_id, data, current_user)
    return to_response(appointment)


@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
def update_status(
    appointment_id: str,
    data: StatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Move an appointment through its lifecycle"""
    appointment = service.update_status(appointment_id, data, current_user)
    return to_response(appointment)


@router.delete("/{appointment_id}")
def delete_appointment(
    appointment_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Remove an appointment (administrators only)"""
    return service.delete_appointment(appointment_id, current_user)
