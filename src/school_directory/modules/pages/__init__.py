"""Pages module - the add-school form and the school listing."""

from school_directory.modules.pages.router import router

__all__ = ["router"]
