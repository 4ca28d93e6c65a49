"""Clinic directory - read-only lookups against hospital and guardian data"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from .auth import CurrentUser, UserRole
from .exceptions import ForbiddenError, NotFoundError
from .models import GuardianAnimal, Hospital, HospitalStaff

logger = logging.getLogger(__name__)


class ClinicDirectory:
    """Hospital existence, staff membership and caretaker checks"""

    def __init__(self, db: Session):
        self.db = db

    def get_hospital(self, hospital_id: str) -> Optional[Hospital]:
        return self.db.query(Hospital).filter(Hospital.id == hospital_id).first()

    def require_hospital(self, hospital_id: str) -> Hospital:
        hospital = self.get_hospital(hospital_id)
        if not hospital:
            raise NotFoundError("Hospital not found")
        return hospital

    def is_guardian_of(self, guardian_id: str, animal_id: str) -> bool:
        return (
            self.db.query(GuardianAnimal)
            .filter(GuardianAnimal.guardian_id == guardian_id, GuardianAnimal.animal_id == animal_id)
            .first()
            is not None
        )

    def is_active_staff(self, user_id: str, hospital_id: str) -> bool:
        return (
            self.db.query(HospitalStaff)
            .filter(
                HospitalStaff.user_id == user_id,
                HospitalStaff.hospital_id == hospital_id,
                HospitalStaff.is_active.is_(True),
            )
            .first()
            is not None
        )

    def staff_hospital_id(self, user_id: str) -> Optional[str]:
        """First hospital the user is active staff of"""
        membership = (
            self.db.query(HospitalStaff)
            .filter(HospitalStaff.user_id == user_id, HospitalStaff.is_active.is_(True))
            .order_by(HospitalStaff.id.asc())
            .first()
        )
        return membership.hospital_id if membership else None

    def require_staff_of(self, user: CurrentUser, hospital_id: str, roles=None) -> None:
        """
        Ensure the acting user is allowed to act for a hospital.

        SUPER_ADMIN acts on any hospital. Other roles must be listed in `roles`
        (when given) and be active staff of the hospital.
        """
        if roles is not None and user.role not in roles:
            logger.warning(f"⚠️ Role {user.role.value} not allowed for user {user.id}")
            raise ForbiddenError("Your role is not allowed to perform this action")

        if user.role == UserRole.SUPER_ADMIN:
            return

        if user.role == UserRole.GUARDIAN or not self.is_active_staff(user.id, hospital_id):
            logger.warning(f"⚠️ User {user.id} is not staff of hospital {hospital_id}")
            raise ForbiddenError("You are not a staff member of this hospital")
