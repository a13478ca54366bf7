"""
School Registry Backend: School Route Handlers
================================================

What:  POST /api/schools, GET /api/schools, GET /api/schools/{school_id}.
How:   Extracts form fields / path params, delegates to SchoolService and
       wraps the result in the `{"success": true, ...}` envelope. Errors
       are raised by the service and formatted by the global handlers.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from school_registry.schemas.school import (
    ErrorResponse,
    SchoolCreatedResponse,
    SchoolDetailResponse,
    SchoolListResponse,
)
from school_registry.services.school_service import SchoolService, get_school_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Schools"])


def request_base_url(request: Request) -> str:
    """<scheme>://<host[:port]> as the client addressed this service."""
    return f"{request.url.scheme}://{request.url.netloc}"


@router.post(
    "/schools",
    status_code=201,
    response_model=SchoolCreatedResponse,
    responses={
        400: {"description": "Invalid fields, file type or file size", "model": ErrorResponse},
        500: {"description": "Database error", "model": ErrorResponse},
    },
    summary="Add a school",
    description=(
        "Multipart form with name, address, city, state, contact and email_id, "
        "plus an optional `image` file (jpeg, jpg, png or gif, max 5MB)."
    ),
)
async def create_school(
    name: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    city: Optional[str] = Form(None),
    state: Optional[str] = Form(None),
    contact: Optional[str] = Form(None),
    email_id: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    service: SchoolService = Depends(get_school_service),
) -> SchoolCreatedResponse:
    # Fields are optional here so that presence is checked by the service
    # together with the other field rules.
    fields = {
        "name": name,
        "address": address,
        "city": city,
        "state": state,
        "contact": contact,
        "email_id": email_id,
    }

    school_id = await service.create_school(fields, image)
    return SchoolCreatedResponse(school_id=school_id)


@router.get(
    "/schools",
    response_model=SchoolListResponse,
    responses={500: {"description": "Database error", "model": ErrorResponse}},
    summary="List all schools, newest first",
)
async def list_schools(
    request: Request,
    service: SchoolService = Depends(get_school_service),
) -> SchoolListResponse:
    schools = await service.list_schools(base_url=request_base_url(request))
    return SchoolListResponse(schools=schools)


@router.get(
    "/schools/{school_id}",
    response_model=SchoolDetailResponse,
    responses={
        404: {"description": "School not found", "model": ErrorResponse},
        500: {"description": "Database error", "model": ErrorResponse},
    },
    summary="Get a single school by id",
)
async def get_school(
    school_id: int,
    request: Request,
    service: SchoolService = Depends(get_school_service),
) -> SchoolDetailResponse:
    """
    Fetch one school.

    Args:
        school_id: Integer path parameter. Non-integer values are rejected
                   with 400 by the request validation handler.
    """
    school = await service.get_school(school_id, base_url=request_base_url(request))
    return SchoolDetailResponse(school=school)
