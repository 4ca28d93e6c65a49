"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .time_calculator import to_minutes, validate_hhmm


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class AppointmentType(str, Enum):
    CONSULTATION = "CONSULTATION"
    VACCINATION = "VACCINATION"
    SURGERY = "SURGERY"
    CHECKUP = "CHECKUP"
    GROOMING = "GROOMING"
    FOLLOW_UP = "FOLLOW_UP"
    EMERGENCY = "EMERGENCY"
    OTHER = "OTHER"


# ============================================================================
# APPOINTMENTS
# ============================================================================


class AppointmentCreate(BaseModel):
    """Schema for a guardian-initiated booking"""

    hospitalId: str
    animalId: str
    vetId: Optional[str] = None
    appointmentDate: date
    startTime: str
    endTime: Optional[str] = None
    duration: Optional[int] = Field(None, ge=10, le=240)
    type: Optional[AppointmentType] = None
    reason: Optional[str] = None
    symptoms: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("startTime")
    @classmethod
    def validate_start_time(cls, v):
        return validate_hhmm(v)

    @field_validator("endTime")
    @classmethod
    def validate_end_time(cls, v):
        if v:
            return validate_hhmm(v)
        return v


class AppointmentUpdate(BaseModel):
    """Schema for updating appointment details (status changes go through /status)"""

    vetId: Optional[str] = None
    appointmentDate: Optional[date] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    duration: Optional[int] = Field(None, ge=10, le=240)
    type: Optional[AppointmentType] = None
    reason: Optional[str] = None
    symptoms: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        if v:
            return validate_hhmm(v)
        return v


class StatusUpdate(BaseModel):
    status: AppointmentStatus
    cancelReason: Optional[str] = None


class AppointmentResponse(BaseModel):
    id: str
    hospitalId: str
    animalId: str
    guardianId: str
    vetId: Optional[str] = None
    appointmentDate: date
    startTime: str
    endTime: Optional[str] = None
    duration: int
    type: str
    status: str
    reason: Optional[str] = None
    symptoms: Optional[str] = None
    notes: Optional[str] = None
    cancelReason: Optional[str] = None
    checkedInAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    cancelledAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class AppointmentListResponse(BaseModel):
    data: list[AppointmentResponse]
    pagination: Pagination


class AppointmentStats(BaseModel):
    total: int
    byStatus: dict[str, int]
    byType: dict[str, int]


# ============================================================================
# AVAILABILITY
# ============================================================================


class AvailableSlot(BaseModel):
    startTime: str
    endTime: str
    available: bool
    remainingSlots: int


class AvailableSlotsResponse(BaseModel):
    date: date
    isHoliday: bool
    holidayReason: Optional[str] = None
    message: Optional[str] = None
    slots: list[AvailableSlot]


# ============================================================================
# TIME TEMPLATES & CLOSURES
# ============================================================================


class TimeTemplateCreate(BaseModel):
    hospitalId: str
    dayOfWeek: int = Field(..., ge=0, le=6)  # 0=Sunday
    startTime: str
    endTime: str
    slotDuration: Optional[int] = Field(None, ge=10, le=120)
    maxConcurrent: Optional[int] = Field(None, ge=1, le=10)

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        return validate_hhmm(v)

    @model_validator(mode="after")
    def validate_range(self):
        if to_minutes(self.startTime) >= to_minutes(self.endTime):
            raise ValueError("startTime must be before endTime")
        return self


class TimeTemplateUpdate(BaseModel):
    dayOfWeek: Optional[int] = Field(None, ge=0, le=6)
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    slotDuration: Optional[int] = Field(None, ge=10, le=120)
    maxConcurrent: Optional[int] = Field(None, ge=1, le=10)
    isActive: Optional[bool] = None

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_times(cls, v):
        if v:
            return validate_hhmm(v)
        return v


class TimeTemplateResponse(BaseModel):
    id: str
    hospitalId: str
    dayOfWeek: int
    startTime: str
    endTime: str
    slotDuration: int
    maxConcurrent: int
    isActive: bool

    class Config:
        from_attributes = True


class ClosureCreate(BaseModel):
    hospitalId: str
    date: date
    reason: Optional[str] = None
    isRecurring: Optional[bool] = False


class ClosureResponse(BaseModel):
    id: str
    hospitalId: str
    date: date
    reason: Optional[str] = None
    isRecurring: bool

    class Config:
        from_attributes = True
