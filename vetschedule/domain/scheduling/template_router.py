"""Template router - FastAPI endpoints for opening hours and closures"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import CurrentUser, get_current_user
from ...database import get_db
from ...models import Closure, TimeTemplate
from .schemas import (
    ClosureCreate,
    ClosureResponse,
    TimeTemplateCreate,
    TimeTemplateResponse,
    TimeTemplateUpdate,
)
from .template_service import TemplateService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Time Templates"])


def get_template_service(db: Session = Depends(get_db)) -> TemplateService:
    """Dependency injection for TemplateService"""
    return TemplateService(db)


def template_response(t: TimeTemplate) -> TimeTemplateResponse:
    return TimeTemplateResponse(
        id=t.id,
        hospitalId=t.hospital_id,
        dayOfWeek=t.day_of_week,
        startTime=t.start_time,
        endTime=t.end_time,
        slotDuration=t.slot_duration,
        maxConcurrent=t.max_concurrent,
        isActive=t.is_active,
    )


def closure_response(c: Closure) -> ClosureResponse:
    return ClosureResponse(
        id=c.id,
        hospitalId=c.hospital_id,
        date=c.date,
        reason=c.reason,
        isRecurring=c.is_recurring,
    )


# ============================================================================
# TIME TEMPLATES
# ============================================================================


@router.post("/time-slots", response_model=TimeTemplateResponse, status_code=201)
def create_time_template(
    data: TimeTemplateCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """Add a weekly opening window"""
    return template_response(service.create_template(data, current_user))


@router.get("/time-slots/{hospital_id}", response_model=list[TimeTemplateResponse])
def list_time_templates(
    hospital_id: str,
    _user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    return [template_response(t) for t in service.list_templates(hospital_id)]


@router.put("/time-slots/{template_id}", response_model=TimeTemplateResponse)
def update_time_template(
    template_id: str,
    data: TimeTemplateUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    return template_response(service.update_template(template_id, data, current_user))


@router.delete("/time-slots/{template_id}")
def delete_time_template(
    template_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """Disable a weekly opening window"""
    return service.delete_template(template_id, current_user)


# ============================================================================
# CLOSURES
# ============================================================================


@router.post("/holidays", response_model=ClosureResponse, status_code=201)
def create_closure(
    data: ClosureCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """Close a hospital for a date, optionally every year"""
    return closure_response(service.create_closure(data, current_user))


@router.get("/holidays/{hospital_id}", response_model=list[ClosureResponse])
def list_closures(
    hospital_id: str,
    year: Optional[int] = Query(None, ge=1900, le=9999),
    _user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    return [closure_response(c) for c in service.list_closures(hospital_id, year)]


@router.delete("/holidays/{closure_id}")
def delete_closure(
    closure_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    return service.delete_closure(closure_id, current_user)
