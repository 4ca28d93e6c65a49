"""
Acting-user resolution.

Authentication happens upstream: the API gateway verifies the session and
forwards the caller as X-User-Id / X-User-Role headers.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    HOSPITAL_ADMIN = "HOSPITAL_ADMIN"
    VET = "VET"
    STAFF = "STAFF"
    GUARDIAN = "GUARDIAN"


# Roles that work inside a hospital and may drive appointment status forward
STAFF_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.HOSPITAL_ADMIN, UserRole.VET, UserRole.STAFF})
ADMIN_ROLES = frozenset({UserRole.SUPER_ADMIN, UserRole.HOSPITAL_ADMIN})


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: UserRole

    @property
    def is_guardian(self) -> bool:
        return self.role == UserRole.GUARDIAN

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN


async def get_current_user(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> CurrentUser:
    """Get the acting user from gateway headers"""
    if not x_user_id or not x_user_role:
        logger.warning("⚠️ Request without acting user headers")
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. X-User-Id and X-User-Role headers are required.",
        )

    try:
        role = UserRole(x_user_role.upper())
    except ValueError as e:
        logger.warning(f"⚠️ Unknown role in request: {x_user_role}")
        raise HTTPException(status_code=401, detail="Unknown user role") from e

    return CurrentUser(id=x_user_id, role=role)
