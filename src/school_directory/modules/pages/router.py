"""
Pages Router

Serves the two browser pages. Both are static HTML that talk to the
/schools API from the browser; the only server-side step is embedding the
active IMAGE_MODE into the add-school page.
"""

from functools import lru_cache
from html import escape
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse

from school_directory.core.config import Settings, get_settings

router = APIRouter()

STATIC_DIR = Path(__file__).resolve().parents[2] / "static"

IMAGE_MODE_PLACEHOLDER = "__IMAGE_MODE__"
DEFAULT_IMAGE_PLACEHOLDER = "__DEFAULT_IMAGE_URL__"


@lru_cache
def _load_page(name: str) -> str:
    return (STATIC_DIR / name).read_text(encoding="utf-8")


@router.get("/add-school", response_class=HTMLResponse, include_in_schema=False)
async def add_school_page(settings: Settings = Depends(get_settings)) -> str:
    """Registration form. Posts multipart in upload mode, JSON otherwise."""
    return (
        _load_page("add_school.html")
        .replace(IMAGE_MODE_PLACEHOLDER, settings.image_mode)
        .replace(DEFAULT_IMAGE_PLACEHOLDER, escape(settings.default_image_url))
    )


@router.get("/show-schools", response_class=HTMLResponse, include_in_schema=False)
async def show_schools_page() -> str:
    """School listing with client-side search and city filter."""
    return _load_page("show_schools.html")
