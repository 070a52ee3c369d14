"""
Schools Module

Registering and listing schools, and serving their uploaded images.

API Endpoints:
- GET /schools - List all schools, newest first
- POST /schools - Register a school
- GET /schools/images/{filename} - Serve an uploaded image

Image handling follows the IMAGE_MODE setting:
- upload: multipart bodies, images validated and written to UPLOAD_DIR
- default: JSON bodies, the default image URL is attached to every school
"""

from school_directory.modules.schools.models import School
from school_directory.modules.schools.repository import SchoolRepository
from school_directory.modules.schools.router import router

__all__ = ["School", "SchoolRepository", "router"]
