from fastapi import APIRouter

from school_directory.modules.pages import router as pages_router
from school_directory.modules.schools import router as schools_router

api_router = APIRouter()

api_router.include_router(schools_router, prefix="/schools", tags=["Schools"])

api_router.include_router(pages_router, tags=["Pages"])
