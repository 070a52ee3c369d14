"""
Schools Router

API endpoints for the school directory. These endpoints are public.

Endpoints:
- GET /schools - List all schools, newest first
- POST /schools - Register a school (multipart or JSON, see IMAGE_MODE)
- GET /schools/images/{filename} - Serve an uploaded school image

Every failure is converted to a JSON body of the form {"error": "..."}.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

from school_directory.core.config import Settings, get_settings
from school_directory.core.database import DatabaseGateway, get_db
from school_directory.core.storage import (
    ImageNotFoundError,
    ImageStore,
    ImageStoreError,
    ImageUpload,
    UnsafeFilenameError,
    get_image_store,
)
from school_directory.modules.schools import service
from school_directory.modules.schools.schemas import (
    CreateRequest,
    ErrorResponse,
    JsonCreateRequest,
    MultipartCreateRequest,
    SchoolCreatedResponse,
    SchoolFields,
    SchoolOut,
)
from school_directory.modules.schools.service import (
    SchoolServiceError,
    SchoolValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

IMAGE_CACHE_CONTROL = "public, max-age=31536000, immutable"
INTERNAL_ERROR_MESSAGE = "Internal server error"

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _read_json_request(request: Request) -> JsonCreateRequest:
    try:
        data = await request.json()
    except ValueError as e:
        raise SchoolValidationError("Invalid request body") from e

    if not isinstance(data, dict):
        raise SchoolValidationError("Invalid request body")

    try:
        fields = SchoolFields.model_validate(data)
    except ValidationError as e:
        raise SchoolValidationError("Invalid request body") from e

    image_url = data.get("image")
    return JsonCreateRequest(
        fields=fields,
        image_url=image_url if isinstance(image_url, str) else None,
    )


async def _read_multipart_request(request: Request, max_image_bytes: int) -> MultipartCreateRequest:
    try:
        form = await request.form()
    except StarletteHTTPException as e:
        raise SchoolValidationError("Invalid request body") from e

    values = {key: value for key, value in form.items() if isinstance(value, str)}
    try:
        fields = SchoolFields.model_validate(values)
    except ValidationError as e:
        raise SchoolValidationError("Invalid request body") from e

    image: ImageUpload | None = None
    upload = form.get("image")
    # Browsers send an empty, nameless part when no file was chosen
    if isinstance(upload, UploadFile) and upload.filename:
        # One byte past the limit is enough to know it is too large
        content = await upload.read(max_image_bytes + 1)
        if content:
            image = ImageUpload(
                filename=upload.filename,
                content_type=upload.content_type or "",
                content=content,
            )

    return MultipartCreateRequest(fields=fields, image=image)


async def read_create_request(request: Request, settings: Settings) -> CreateRequest:
    """
    Resolve the POST /schools body into a CreateRequest.

    upload mode accepts form bodies only; default mode accepts JSON only.

    Raises:
        SchoolValidationError: Wrong body format for the mode, or unparseable body
    """
    content_type = request.headers.get("content-type", "").lower()

    if settings.image_mode == "default":
        if not content_type.startswith("application/json"):
            raise SchoolValidationError("Request body must be JSON")
        return await _read_json_request(request)

    if not content_type.startswith(FORM_CONTENT_TYPES):
        raise SchoolValidationError("Request body must be multipart/form-data")
    return await _read_multipart_request(request, settings.max_image_bytes)


@router.get(
    "",
    response_model=list[SchoolOut],
    summary="List Schools",
    description="All registered schools, newest first. Filtering is done by the client.",
    responses={500: {"description": "Store unavailable", "model": ErrorResponse}},
)
async def get_schools(
    db: DatabaseGateway = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    List every school.

    Returns:
        Schools ordered by creation time, newest first
    """
    try:
        schools = await service.list_schools(db, settings)
    except SchoolServiceError as e:
        return _error(e.status_code, e.message)
    except Exception as e:
        logger.exception(f"Unexpected error listing schools: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to fetch schools")

    logger.info(f"Listed {len(schools)} schools")
    return schools


@router.post(
    "",
    response_model=SchoolCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register School",
    description="""
Register a new school.

**Body format** depends on the IMAGE_MODE setting:
- `upload`: multipart/form-data with the text fields and an optional `image` file
  (JPEG, PNG, WEBP or GIF, at most 5MB)
- `default`: application/json with the text fields; the default image is attached

**Validation:** all of name, address, city, state, contact and email are required;
email must look like an address and contact must be 10-15 digits.
""",
    responses={
        400: {"description": "Validation error", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
        500: {"description": "Internal error", "model": ErrorResponse},
    },
)
async def add_school(
    request: Request,
    db: DatabaseGateway = Depends(get_db),
    images: ImageStore = Depends(get_image_store),
    settings: Settings = Depends(get_settings),
):
    """
    Register a school.

    Every failure is answered with a 400, 409 or 500 JSON error body.

    Returns:
        The new school's id
    """
    try:
        create_request = await read_create_request(request, settings)
        school_id = await service.create_school(db, images, settings, create_request)
    except SchoolServiceError as e:
        logger.warning(f"School registration rejected: {e.message}")
        return _error(e.status_code, e.message)
    except Exception as e:
        logger.exception(f"Error adding school: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)

    logger.info(f"School registered successfully: id={school_id}")
    return SchoolCreatedResponse(id=school_id)


@router.get(
    "/images/{filename:path}",
    summary="Get School Image",
    response_class=Response,
    responses={
        200: {"content": {"image/*": {}}},
        400: {"description": "Unsafe filename", "model": ErrorResponse},
        404: {"description": "Image not found", "model": ErrorResponse},
        500: {"description": "Read failure", "model": ErrorResponse},
    },
)
async def get_school_image(
    filename: str,
    images: ImageStore = Depends(get_image_store),
):
    """
    Serve a stored school image.

    Stored names embed their creation timestamp, so responses are cached
    as immutable for a year.
    """
    try:
        image = await images.fetch(filename)
    except UnsafeFilenameError:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid filename")
    except ImageNotFoundError:
        return _error(status.HTTP_404_NOT_FOUND, "Image not found")
    except ImageStoreError:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)
    except Exception as e:
        logger.exception(f"Error serving image: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)

    return Response(
        content=image.content,
        media_type=image.content_type,
        headers={"Cache-Control": IMAGE_CACHE_CONTROL},
    )
