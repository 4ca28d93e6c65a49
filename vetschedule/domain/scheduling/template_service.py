"""Template service - clinic-admin management of time templates and closures"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...auth import ADMIN_ROLES, CurrentUser
from ...cache import invalidate_templates_cache
from ...config import DEFAULT_MAX_CONCURRENT, DEFAULT_SLOT_DURATION
from ...directory import ClinicDirectory
from ...exceptions import BadRequestError, NotFoundError
from ...models import Closure, TimeTemplate
from .repository import ClosureRepository, TimeTemplateRepository
from .schemas import ClosureCreate, TimeTemplateCreate, TimeTemplateUpdate
from .time_calculator import to_minutes

logger = logging.getLogger(__name__)


class TemplateService:
    """Service layer for time templates and closures"""

    def __init__(self, db: Session):
        self.db = db
        self.templates = TimeTemplateRepository()
        self.closures = ClosureRepository()
        self.directory = ClinicDirectory(db)

    def _require_admin(self, user: CurrentUser, hospital_id: str) -> None:
        self.directory.require_staff_of(user, hospital_id, ADMIN_ROLES)
        self.directory.require_hospital(hospital_id)

    def _get_template(self, template_id: str) -> TimeTemplate:
        template = self.templates.get_template(self.db, template_id)
        if not template:
            raise NotFoundError("Time template not found")
        return template

    # ------------------------------------------------------------------
    # Time templates
    # ------------------------------------------------------------------

    def list_templates(self, hospital_id: str) -> list[TimeTemplate]:
        self.directory.require_hospital(hospital_id)
        return self.templates.list_templates(self.db, hospital_id)

    def create_template(self, data: TimeTemplateCreate, user: CurrentUser) -> TimeTemplate:
        self._require_admin(user, data.hospitalId)

        if self.templates.find_active_duplicate(
            self.db, data.hospitalId, data.dayOfWeek, data.startTime
        ):
            raise BadRequestError("An active time template already starts at this time on this day")

        template = self.templates.create_template(
            self.db,
            hospital_id=data.hospitalId,
            day_of_week=data.dayOfWeek,
            start_time=data.startTime,
            end_time=data.endTime,
            slot_duration=data.slotDuration or DEFAULT_SLOT_DURATION,
            max_concurrent=data.maxConcurrent or DEFAULT_MAX_CONCURRENT,
            is_active=True,
        )
        invalidate_templates_cache(data.hospitalId)
        logger.info(
            f"🕘 Template {template.id} created for {data.hospitalId} "
            f"(day {data.dayOfWeek} {data.startTime}-{data.endTime})"
        )
        return template

    def update_template(
        self, template_id: str, data: TimeTemplateUpdate, user: CurrentUser
    ) -> TimeTemplate:
        template = self._get_template(template_id)
        self._require_admin(user, template.hospital_id)

        day = data.dayOfWeek if data.dayOfWeek is not None else template.day_of_week
        start_time = data.startTime or template.start_time
        end_time = data.endTime or template.end_time
        is_active = data.isActive if data.isActive is not None else template.is_active

        if to_minutes(start_time) >= to_minutes(end_time):
            raise BadRequestError("startTime must be before endTime")

        if is_active and self.templates.find_active_duplicate(
            self.db, template.hospital_id, day, start_time, exclude_id=template.id
        ):
            raise BadRequestError("An active time template already starts at this time on this day")

        template = self.templates.update_template(
            self.db,
            template,
            day_of_week=data.dayOfWeek,
            start_time=data.startTime,
            end_time=data.endTime,
            slot_duration=data.slotDuration,
            max_concurrent=data.maxConcurrent,
            is_active=data.isActive,
        )
        invalidate_templates_cache(template.hospital_id)
        logger.info(f"🕘 Template {template.id} updated")
        return template

    def delete_template(self, template_id: str, user: CurrentUser) -> dict:
        """Soft-disable so past slot computations stay reproducible"""
        template = self._get_template(template_id)
        self._require_admin(user, template.hospital_id)

        self.templates.update_template(self.db, template, is_active=False)
        invalidate_templates_cache(template.hospital_id)
        logger.info(f"🕘 Template {template.id} disabled")
        return {"message": "Time template disabled"}

    # ------------------------------------------------------------------
    # Closures
    # ------------------------------------------------------------------

    def list_closures(self, hospital_id: str, year: Optional[int] = None) -> list[Closure]:
        self.directory.require_hospital(hospital_id)
        return self.closures.list_closures(self.db, hospital_id, year)

    def create_closure(self, data: ClosureCreate, user: CurrentUser) -> Closure:
        self._require_admin(user, data.hospitalId)
        closure = self.closures.create_closure(
            self.db,
            hospital_id=data.hospitalId,
            date=data.date,
            reason=data.reason,
            is_recurring=bool(data.isRecurring),
        )
        logger.info(
            f"📅 Closure {closure.id} on {data.date} for {data.hospitalId}"
            + (" (every year)" if closure.is_recurring else "")
        )
        return closure

    def delete_closure(self, closure_id: str, user: CurrentUser) -> dict:
        closure = self.closures.get_closure_by_id(self.db, closure_id)
        if not closure:
            raise NotFoundError("Closure not found")
        self._require_admin(user, closure.hospital_id)

        self.closures.delete_closure(self.db, closure)
        logger.info(f"🗑️ Closure {closure_id} deleted")
        return {"message": "Closure deleted"}
