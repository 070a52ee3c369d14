"""
Schools Service Layer

Business logic for registering and listing schools.

1. Create Flow:
   - Required fields, email format and contact format are checked first
   - Upload mode: image type and size are checked, then the file is written
   - Default-image mode: the configured default image URL is attached
   - The row is inserted; a unique-email violation becomes a conflict

2. List Flow:
   - All schools, newest first, no server-side filtering
   - Any store failure is reported as a retrieval failure (no partial results)

Validation is entirely pre-flight: nothing touches the disk or the store
until every check has passed.
"""

import logging
import re

from school_directory.core.config import Settings
from school_directory.core.database import DatabaseGateway, StoreError, StoreErrorKind
from school_directory.core.storage import ImageStore, ImageUpload
from school_directory.modules.schools.repository import SchoolRepository
from school_directory.modules.schools.schemas import (
    CreateRequest,
    JsonCreateRequest,
    MultipartCreateRequest,
    SchoolFields,
    SchoolOut,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CONTACT_PATTERN = re.compile(r"^[0-9]{10,15}$")

ALLOWED_IMAGE_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "image/gif",
    }
)

REQUIRED_FIELDS = ("name", "address", "city", "state", "contact", "email")

IMAGE_ROUTE_PREFIX = "/schools/images/"


class SchoolServiceError(Exception):
    """Base exception for school service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class SchoolValidationError(SchoolServiceError):
    """Raised when a create request is missing or has malformed input."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
        )


class DuplicateSchoolError(SchoolServiceError):
    """Raised when a school with the same email already exists."""

    def __init__(self):
        super().__init__(
            message="A school with this email already exists",
            error_code="DUPLICATE_SCHOOL",
            status_code=409,
        )


class SchoolRetrievalError(SchoolServiceError):
    """Raised when the school list cannot be read from the store."""

    def __init__(self):
        super().__init__(
            message="Failed to fetch schools",
            error_code="RETRIEVAL_FAILED",
            status_code=500,
        )


def _is_blank(value: str | None) -> bool:
    return not value or not value.strip()


def validate_fields(fields: SchoolFields) -> None:
    """
    Check required fields, email format and contact format, in that order.

    Whitespace-only values count as missing. Values are never modified;
    what passes is stored exactly as submitted.

    Raises:
        SchoolValidationError: On the first failing check
    """
    if any(_is_blank(getattr(fields, field)) for field in REQUIRED_FIELDS):
        raise SchoolValidationError("All fields are required")

    if not EMAIL_PATTERN.fullmatch(fields.email):
        raise SchoolValidationError("Invalid email format")

    if not CONTACT_PATTERN.fullmatch(fields.contact):
        raise SchoolValidationError("Invalid contact number")


def validate_image(image: ImageUpload, max_bytes: int) -> None:
    """
    Check an uploaded image's content type and size.

    Raises:
        SchoolValidationError: Disallowed type or larger than max_bytes
    """
    if image.content_type.lower() not in ALLOWED_IMAGE_TYPES:
        raise SchoolValidationError(
            "Invalid image type. Only JPEG, PNG, WEBP and GIF images are allowed"
        )

    if image.size > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise SchoolValidationError(f"Image size must be less than {limit_mb}MB")


def resolve_image_url(image: str | None, default_image_url: str) -> str:
    """Turn a stored image reference into a URL the browser can load."""
    if not image:
        return default_image_url
    if image.startswith(("http://", "https://")):
        return image
    return f"{IMAGE_ROUTE_PREFIX}{image}"


async def list_schools(db: DatabaseGateway, settings: Settings) -> list[SchoolOut]:
    """
    Get every school, newest first.

    Args:
        db: Database gateway
        settings: Application settings (for the default image URL)

    Returns:
        List of schools, empty if none are registered

    Raises:
        SchoolRetrievalError: If the store cannot be read
    """
    try:
        rows = await SchoolRepository.list_all(db)
    except StoreError as e:
        logger.error(f"Failed to fetch schools ({e.kind.value}): {e.message}")
        raise SchoolRetrievalError() from e

    return [
        SchoolOut(
            **row,
            image_url=resolve_image_url(row["image"], settings.default_image_url),
        )
        for row in rows
    ]


async def create_school(
    db: DatabaseGateway,
    images: ImageStore,
    settings: Settings,
    request: CreateRequest,
) -> int:
    """
    Register a new school.

    Args:
        db: Database gateway
        images: Image store (used for uploads only)
        settings: Application settings
        request: The create request, already resolved from the HTTP body

    Returns:
        The new school's id

    Raises:
        SchoolValidationError: If any pre-flight check fails
        DuplicateSchoolError: If the email is already registered
        StoreError: On any other store failure
        ImageStorageError: If the upload cannot be written
    """
    fields = request.fields
    validate_fields(fields)

    upload: ImageUpload | None = None
    if isinstance(request, MultipartCreateRequest) and request.image is not None:
        validate_image(request.image, settings.max_image_bytes)
        upload = request.image

    logger.info(f"Processing school registration: {fields.name}")

    image: str | None = None
    if isinstance(request, JsonCreateRequest):
        if request.image_url and request.image_url != settings.default_image_url:
            logger.debug(f"Ignoring client image {request.image_url!r} in default-image mode")
        image = settings.default_image_url
    elif upload is not None:
        image = await images.save(upload)

    try:
        school_id = await SchoolRepository.create(
            db,
            name=fields.name,
            address=fields.address,
            city=fields.city,
            state=fields.state,
            contact=fields.contact,
            email=fields.email,
            image=image,
        )
    except StoreError as e:
        if upload is not None:
            logger.warning(f"Insert failed after storing image {image}; file left on disk")
        if e.kind is StoreErrorKind.DUPLICATE:
            logger.warning(f"Duplicate school rejected (code={e.code}): {fields.name}")
            raise DuplicateSchoolError() from e
        raise

    return school_id
