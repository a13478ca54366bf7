"""
School Registry Backend: School Service
=========================================

What:  Create, list and fetch school records.
How:   Each operation builds one SQLAlchemy Core statement and runs it through
       the injected Database handle; images go through the injected
       ImageStorage.
Who:   Called by the /api/schools route handlers.

Create flow (POST /api/schools):
    ┌──────────────┐    ┌───────────────┐    ┌──────────────┐
    │ Validate     │───▶│ Store image   │───▶│ INSERT row   │
    │ form fields  │    │ (optional)    │    │ → new id     │
    └──────────────┘    └───────────────┘    └──────────────┘
    Field errors stop before any file is written. A failed INSERT removes
    the stored image again.

Image URLs:
    Records store a relative path (/schoolImages/<file>). Reads rewrite it
    to <scheme>://<host>/schoolImages/<file> using the base URL of the
    incoming request, so the same record yields different absolute URLs
    depending on how the client reached the service.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError
from starlette.datastructures import UploadFile
from starlette.requests import Request

from school_registry.database import Database
from school_registry.exceptions import DatabaseError, NotFoundError, ValidationError
from school_registry.models.school import MAX_SCHOOL_ID, School
from school_registry.schemas.school import SchoolCreate, SchoolOut
from school_registry.services.image_storage import ImageStorage

logger = logging.getLogger(__name__)

SCHOOL_COLUMNS = (
    School.id,
    School.name,
    School.address,
    School.city,
    School.state,
    School.contact,
    School.image,
    School.email_id,
    School.created_at,
)


def driver_error_text(exc: SQLAlchemyError) -> str:
    """The DBAPI's own message when there is one, else SQLAlchemy's."""
    orig = getattr(exc, "orig", None)
    return str(orig) if orig is not None else str(exc)


def absolute_image_url(base_url: str, image: Optional[str]) -> Optional[str]:
    if not image:
        return None
    return f"{base_url.rstrip('/')}{image}"


class SchoolService:
    """
    Business logic for school records.

    Dependencies are passed in rather than imported as module singletons, so
    tests can construct the service around a mock Database.
    """

    def __init__(self, database: Database, images: ImageStorage):
        self.database = database
        self.images = images

    @staticmethod
    def validate_fields(fields: Mapping[str, Any]) -> SchoolCreate:
        """
        Validate submitted form fields.

        Raises:
            ValidationError listing every offending field.
        """
        try:
            return SchoolCreate.model_validate(dict(fields))
        except PydanticValidationError as e:
            problems = {
                ".".join(str(part) for part in err["loc"]): err["msg"]
                for err in e.errors()
            }
            invalid = ", ".join(sorted(problems))
            raise ValidationError(
                message=f"Invalid or missing fields: {invalid}",
                context={"fields": problems},
            )

    async def create_school(
        self,
        fields: Mapping[str, Any],
        image: Optional[UploadFile] = None,
    ) -> int:
        """
        Insert one school record.

        Args:
            fields: name, address, city, state, contact, email_id
            image:  Optional uploaded image

        Returns:
            The id assigned by the database.

        Raises:
            ValidationError:   Bad form fields or rejected image type (400)
            FileTooLargeError: Image over the ceiling (400)
            FileStorageError:  Image could not be written (500)
            DatabaseError:     INSERT rejected or connection failure (500)
        """
        data = self.validate_fields(fields)
        image_path = await self.images.save(image)

        statement = insert(School).values(
            name=data.name,
            address=data.address,
            city=data.city,
            state=data.state,
            contact=data.contact,
            image=image_path,
            email_id=data.email_id,
        )

        try:
            school_id = await self.database.execute(statement)
        except SQLAlchemyError as e:
            await self.images.remove(image_path)
            logger.error("Error adding school: %s", driver_error_text(e))
            raise DatabaseError(
                message="Failed to add school",
                error=driver_error_text(e),
                context={"operation": "insert"},
            )

        logger.info("School created: id=%s image=%s", school_id, image_path)
        return school_id

    async def list_schools(self, base_url: str) -> List[SchoolOut]:
        """
        All schools, newest first.

        Query plan:
            SELECT ... FROM schools ORDER BY created_at DESC, id DESC
            The id tiebreak keeps rows inserted within one clock tick in
            insertion order.
        """
        statement = select(*SCHOOL_COLUMNS).order_by(
            School.created_at.desc(), School.id.desc()
        )

        try:
            rows = await self.database.execute(statement)
        except SQLAlchemyError as e:
            logger.error("Error fetching schools: %s", driver_error_text(e))
            raise DatabaseError(
                message="Failed to fetch schools",
                error=driver_error_text(e),
                context={"operation": "list"},
            )

        return [self._to_out(row, base_url) for row in rows]

    async def get_school(self, school_id: int, base_url: str) -> SchoolOut:
        """
        One school by primary key.

        Raises:
            NotFoundError: no row with that id (404)
            DatabaseError: query failed (500)
        """
        # Ids outside the INTEGER column range cannot exist
        if not 1 <= school_id <= MAX_SCHOOL_ID:
            raise NotFoundError(
                message="School not found",
                context={"school_id": school_id},
            )

        statement = select(*SCHOOL_COLUMNS).where(School.id == school_id)

        try:
            rows = await self.database.execute(statement)
        except SQLAlchemyError as e:
            logger.error("Error fetching school %s: %s", school_id, driver_error_text(e))
            raise DatabaseError(
                message="Failed to fetch school",
                error=driver_error_text(e),
                context={"operation": "get", "school_id": school_id},
            )

        if not rows:
            raise NotFoundError(
                message="School not found",
                context={"school_id": school_id},
            )

        return self._to_out(rows[0], base_url)

    @staticmethod
    def _to_out(row: Dict[str, Any], base_url: str) -> SchoolOut:
        record = dict(row)
        record["image"] = absolute_image_url(base_url, record.get("image"))
        return SchoolOut.model_validate(record)


def get_school_service(request: Request) -> SchoolService:
    """FastAPI dependency: the SchoolService created by create_app()."""
    return request.app.state.school_service
