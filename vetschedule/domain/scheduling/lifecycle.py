"""
Appointment status lifecycle.

SCHEDULED -> CONFIRMED -> CHECKED_IN -> IN_PROGRESS -> COMPLETED, with
CANCELLED and NO_SHOW reachable from any non-terminal state. Intermediate
states may be skipped; leaving a terminal state is not allowed.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ...auth import CurrentUser, STAFF_ROLES
from ...exceptions import BadRequestError, ForbiddenError
from .schemas import AppointmentStatus

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
)

# Appointments in these states no longer hold slot capacity
RELEASED_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW})

# Timestamp column stamped when an appointment enters the status
STATUS_TIMESTAMPS = {
    AppointmentStatus.CHECKED_IN: "checked_in_at",
    AppointmentStatus.COMPLETED: "completed_at",
    AppointmentStatus.CANCELLED: "cancelled_at",
}


def is_terminal(status: str) -> bool:
    return AppointmentStatus(status) in TERMINAL_STATUSES


def holds_capacity(status: str) -> bool:
    return AppointmentStatus(status) not in RELEASED_STATUSES


def check_transition_allowed(
    appointment,
    new_status: AppointmentStatus,
    user: CurrentUser,
    cancel_reason: Optional[str] = None,
) -> None:
    """
    Validate a status change for the acting user.

    Guardians may only cancel their own appointments; every other transition
    needs a staff role. Hospital membership is checked by the caller.
    """
    if user.is_guardian:
        if appointment.guardian_id != user.id:
            raise ForbiddenError("You can only modify your own appointments")
        if new_status != AppointmentStatus.CANCELLED:
            raise ForbiddenError("Guardians can only cancel appointments")
    elif user.role not in STAFF_ROLES:
        raise ForbiddenError("Your role is not allowed to change appointment status")

    if new_status == AppointmentStatus.CANCELLED and not (cancel_reason and cancel_reason.strip()):
        raise BadRequestError("A cancellation reason is required")

    if is_terminal(appointment.status):
        raise BadRequestError(
            f"Appointment is already {appointment.status} and can no longer change status"
        )


def apply_transition(
    appointment,
    new_status: AppointmentStatus,
    cancel_reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> None:
    """Set the new status and stamp its timestamp (never overwriting one already set)"""
    now = now or datetime.now(timezone.utc)
    previous = appointment.status
    appointment.status = new_status.value

    timestamp_field = STATUS_TIMESTAMPS.get(new_status)
    if timestamp_field and getattr(appointment, timestamp_field) is None:
        setattr(appointment, timestamp_field, now)

    if new_status == AppointmentStatus.CANCELLED:
        appointment.cancel_reason = cancel_reason

    logger.info(f"🔄 Appointment {appointment.id}: {previous} -> {new_status.value}")
