"""
School Registry Backend: Pydantic Request/Response Schemas
============================================================

What:  Pydantic models defining the API contract.
How:   SchoolCreate validates the multipart form fields at the service
       boundary; the response models serialize records and the
       `{"success": ...}` envelopes. FastAPI also uses them for OpenAPI docs.

Every response body carries a `success` flag.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from school_registry.models.school import MAX_CONTACT


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SchoolCreate(BaseModel):
    """
    What:  Fields of a new school record as submitted in the create form.
    How:   Text fields are stripped and must be non-empty; `contact` accepts
           the form's string value and coerces it to an integer.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1)
    address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    contact: int = Field(ge=0, le=MAX_CONTACT, description="Phone number")
    email_id: str = Field(min_length=1)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class SchoolOut(BaseModel):
    """
    What:  Full representation of a school record.
    Who:   Items of GET /api/schools and the body of GET /api/schools/{id}.

    `image` is an absolute URL built from the request's scheme and host,
    or null when the school has no image.
    """
    id: int
    name: str
    address: str
    city: str
    state: str
    contact: int
    image: Optional[str] = None
    email_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SchoolCreatedResponse(BaseModel):
    """Returned by POST /api/schools with HTTP 201."""
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str = "School added successfully"
    school_id: int = Field(alias="schoolId")


class SchoolListResponse(BaseModel):
    """Returned by GET /api/schools, newest first."""
    success: bool = True
    schools: List[SchoolOut]


class SchoolDetailResponse(BaseModel):
    """Returned by GET /api/schools/{id}."""
    success: bool = True
    school: SchoolOut


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Error body produced by the global exception handlers.

    Example:
        {
            "success": false,
            "message": "Failed to add school",
            "error": "null value in column \"name\" violates not-null constraint",
            "request_id": "1f2e3d4c"
        }
    """
    success: bool = False
    message: str
    error: Optional[str] = Field(default=None, description="Raw storage error text")
    details: Optional[dict] = None
    request_id: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float
