"""Tests for appointment status transitions and detail updates."""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from vetschedule.auth import CurrentUser, UserRole
from vetschedule.domain.scheduling import service as service_module
from vetschedule.domain.scheduling.allocator import BookingAllocator
from vetschedule.domain.scheduling.lifecycle import apply_transition, check_transition_allowed
from vetschedule.domain.scheduling.repository import SlotReservationRepository
from vetschedule.domain.scheduling.schemas import AppointmentStatus, AppointmentUpdate, StatusUpdate
from vetschedule.domain.scheduling.service import AppointmentService
from vetschedule.exceptions import BadRequestError, ForbiddenError
from vetschedule.models import Appointment

GUARDIAN = CurrentUser(id="guardian-1", role=UserRole.GUARDIAN)
OTHER_GUARDIAN = CurrentUser(id="guardian-2", role=UserRole.GUARDIAN)
STAFF = CurrentUser(id="staff-1", role=UserRole.STAFF)
VET = CurrentUser(id="vet-1", role=UserRole.VET)
OUTSIDER_ADMIN = CurrentUser(id="admin-2", role=UserRole.HOSPITAL_ADMIN)


@pytest.fixture
def appointment(db, clinic):
    return BookingAllocator(db).allocate(
        "guardian-1",
        hospital_id="hosp-1",
        animal_id="animal-1",
        appointment_date=clinic.monday,
        start_time="13:00",
        end_time="13:30",
        duration=30,
        type="CONSULTATION",
    )


def set_status(db, appointment, status, user, reason=None):
    return AppointmentService(db).update_status(
        appointment.id, StatusUpdate(status=status, cancelReason=reason), user
    )


class TestTransitionRules:
    """Pure checks on who may move an appointment where."""

    def _appointment(self, status="SCHEDULED"):
        return SimpleNamespace(id="a-1", guardian_id="guardian-1", status=status,
                               checked_in_at=None, completed_at=None, cancelled_at=None,
                               cancel_reason=None)

    def test_guardian_may_cancel_own(self):
        check_transition_allowed(self._appointment(), AppointmentStatus.CANCELLED, GUARDIAN, "Sick")

    @pytest.mark.parametrize(
        "status",
        [AppointmentStatus.CONFIRMED, AppointmentStatus.CHECKED_IN, AppointmentStatus.COMPLETED,
         AppointmentStatus.NO_SHOW],
    )
    def test_guardian_may_not_drive_forward(self, status):
        with pytest.raises(ForbiddenError):
            check_transition_allowed(self._appointment(), status, GUARDIAN)

    def test_guardian_may_not_cancel_others(self):
        with pytest.raises(ForbiddenError):
            check_transition_allowed(self._appointment(), AppointmentStatus.CANCELLED, OTHER_GUARDIAN, "x")

    @pytest.mark.parametrize("reason", [None, "", "   "])
    def test_cancel_requires_reason(self, reason):
        with pytest.raises(BadRequestError):
            check_transition_allowed(self._appointment(), AppointmentStatus.CANCELLED, STAFF, reason)

    def test_skipping_states_is_allowed(self):
        check_transition_allowed(self._appointment(), AppointmentStatus.COMPLETED, VET)

    @pytest.mark.parametrize("terminal", ["COMPLETED", "CANCELLED", "NO_SHOW"])
    def test_terminal_states_are_final(self, terminal):
        with pytest.raises(BadRequestError):
            check_transition_allowed(self._appointment(terminal), AppointmentStatus.CONFIRMED, STAFF)

    def test_timestamps_are_not_overwritten(self):
        first = datetime(2030, 1, 7, 12, 55)
        appointment = self._appointment()
        appointment.checked_in_at = first

        apply_transition(appointment, AppointmentStatus.CHECKED_IN, now=datetime(2030, 1, 7, 13, 5))

        assert appointment.checked_in_at == first
        assert appointment.status == "CHECKED_IN"

    def test_default_timestamp_is_utc(self):
        appointment = self._appointment()

        apply_transition(appointment, AppointmentStatus.COMPLETED)

        assert appointment.completed_at.tzinfo == timezone.utc


class TestUpdateStatus:
    """Status changes through the service."""

    def test_full_happy_path_stamps_timestamps(self, db, appointment):
        for status in [AppointmentStatus.CONFIRMED, AppointmentStatus.CHECKED_IN,
                       AppointmentStatus.IN_PROGRESS, AppointmentStatus.COMPLETED]:
            result = set_status(db, appointment, status, VET)
            assert result.status == status.value

        assert result.checked_in_at is not None
        assert result.completed_at is not None
        assert result.cancelled_at is None

    def test_cancel_without_reason_leaves_row_unchanged(self, db, appointment):
        with pytest.raises(BadRequestError):
            set_status(db, appointment, AppointmentStatus.CANCELLED, GUARDIAN)

        db.expire_all()
        assert db.get(Appointment, appointment.id).status == "SCHEDULED"

    def test_guardian_cancel_records_reason(self, db, appointment):
        result = set_status(db, appointment, AppointmentStatus.CANCELLED, GUARDIAN, "Travelling")

        assert result.status == "CANCELLED"
        assert result.cancel_reason == "Travelling"
        assert result.cancelled_at is not None

    def test_staff_of_other_hospital_is_forbidden(self, db, appointment):
        with pytest.raises(ForbiddenError):
            set_status(db, appointment, AppointmentStatus.CONFIRMED, OUTSIDER_ADMIN)

    @pytest.mark.parametrize("status", [AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW])
    def test_release_statuses_free_the_slot(self, db, clinic, appointment, status):
        set_status(db, appointment, status, STAFF, "Owner called")

        assert SlotReservationRepository.get_booked(db, "hosp-1", clinic.monday, "13:00") == 0

    def test_completed_keeps_the_slot(self, db, clinic, appointment):
        set_status(db, appointment, AppointmentStatus.COMPLETED, VET)

        assert SlotReservationRepository.get_booked(db, "hosp-1", clinic.monday, "13:00") == 1

    def test_cannot_cancel_twice(self, db, clinic, appointment):
        set_status(db, appointment, AppointmentStatus.CANCELLED, GUARDIAN, "First")

        with pytest.raises(BadRequestError):
            set_status(db, appointment, AppointmentStatus.CANCELLED, GUARDIAN, "Second")

        assert SlotReservationRepository.get_booked(db, "hosp-1", clinic.monday, "13:00") == 0

    def test_concurrent_cancel_loser_sees_already_cancelled(
        self, db, session_factory, clinic, appointment, monkeypatch
    ):
        """A cancel that loses the race fails the same way as one arriving late."""
        real_check = service_module.check_transition_allowed

        def cancel_elsewhere_first(*args, **kwargs):
            monkeypatch.setattr(service_module, "check_transition_allowed", real_check)
            other = session_factory()
            try:
                set_status(other, appointment, AppointmentStatus.CANCELLED, GUARDIAN, "First")
            finally:
                other.close()
            real_check(*args, **kwargs)

        monkeypatch.setattr(service_module, "check_transition_allowed", cancel_elsewhere_first)

        with pytest.raises(BadRequestError) as exc:
            set_status(db, appointment, AppointmentStatus.CANCELLED, GUARDIAN, "Second")

        assert "already CANCELLED" in exc.value.detail
        db.expire_all()
        stored = db.get(Appointment, appointment.id)
        assert stored.cancel_reason == "First"
        assert SlotReservationRepository.get_booked(db, "hosp-1", clinic.monday, "13:00") == 0


class TestUpdateAppointment:
    """Detail edits and rescheduling."""

    @pytest.mark.parametrize("terminal", [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED,
                                          AppointmentStatus.NO_SHOW])
    def test_terminal_appointments_cannot_move(self, db, clinic, appointment, terminal):
        set_status(db, appointment, terminal, STAFF, "Closed out")

        with pytest.raises(BadRequestError):
            AppointmentService(db).update_appointment(
                appointment.id, AppointmentUpdate(startTime="13:30"), STAFF
            )

        db.expire_all()
        stored = db.get(Appointment, appointment.id)
        assert stored.start_time == "13:00"
        assert stored.appointment_date == clinic.monday

    def test_reschedule_recomputes_end_time(self, db, appointment):
        result = AppointmentService(db).update_appointment(
            appointment.id, AppointmentUpdate(startTime="13:30"), GUARDIAN
        )

        assert result.start_time == "13:30"
        assert result.end_time == "14:00"

    def test_reschedule_to_invalid_slot(self, db, appointment):
        with pytest.raises(BadRequestError):
            AppointmentService(db).update_appointment(
                appointment.id, AppointmentUpdate(startTime="13:15"), GUARDIAN
            )

    def test_same_slot_edit_does_not_need_capacity(self, db, appointment):
        """The appointment's own unit is not counted against it."""
        result = AppointmentService(db).update_appointment(
            appointment.id, AppointmentUpdate(startTime="13:00", notes="Bring records"), GUARDIAN
        )

        assert result.notes == "Bring records"
        assert result.start_time == "13:00"

    def test_other_guardian_cannot_edit(self, db, appointment):
        with pytest.raises(ForbiddenError):
            AppointmentService(db).update_appointment(
                appointment.id, AppointmentUpdate(notes="x"), OTHER_GUARDIAN
            )
