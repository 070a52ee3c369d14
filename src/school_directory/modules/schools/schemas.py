"""
School Schemas

Pydantic schemas for the school endpoints, plus the create request union
that both body formats (JSON and multipart) are resolved into.
"""

from dataclasses import dataclass
from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from school_directory.core.storage import ImageUpload


class SchoolFields(BaseModel):
    """
    Text fields of a create request, exactly as submitted.

    Everything is optional here so that missing or malformed values reach
    the service, which reports them with its own messages.
    """

    model_config = ConfigDict(
        coerce_numbers_to_str=True,
        populate_by_name=True,
    )

    name: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    contact: str | None = None
    email: str | None = Field(None, validation_alias=AliasChoices("email", "email_id"))


@dataclass(frozen=True)
class JsonCreateRequest:
    """POST /schools with an application/json body (default-image mode)."""

    fields: SchoolFields
    image_url: str | None = None


@dataclass(frozen=True)
class MultipartCreateRequest:
    """POST /schools with a multipart/form-data body (upload mode)."""

    fields: SchoolFields
    image: ImageUpload | None = None


CreateRequest = JsonCreateRequest | MultipartCreateRequest


class SchoolOut(BaseModel):
    """A school as returned by GET /schools."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    address: str
    city: str
    state: str
    contact: str
    email: str
    image: str | None
    image_url: str
    created_at: datetime


class SchoolCreatedResponse(BaseModel):
    """Response body for a successful POST /schools."""

    success: bool = True
    message: str = "School added successfully"
    id: int


class ErrorResponse(BaseModel):
    error: str
