"""
Domain error taxonomy.

All errors are HTTPException subclasses so services can raise them directly and
FastAPI renders them as {"detail": "..."} with the matching status code.
"""

from typing import Optional

from fastapi import HTTPException


class NotFoundError(HTTPException):
    """Referenced hospital, animal or appointment does not exist"""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=404, detail=detail)


class ForbiddenError(HTTPException):
    """Actor lacks the relationship or role required for the operation"""

    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(status_code=403, detail=detail)


class BadRequestError(HTTPException):
    """Domain rule violation"""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=400, detail=detail)


class ConflictError(HTTPException):
    """Storage-layer rejection of a write that conflicts with existing data"""

    def __init__(self, detail: str = "Conflict"):
        super().__init__(status_code=409, detail=detail)


class SlotUnavailableError(BadRequestError):
    """The requested slot cannot be booked.

    Raised for stale snapshots and lost races alike so callers never need to
    tell the two apart.
    """

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or "The selected time slot is not available")
