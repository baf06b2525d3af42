# dosewatch/api/__init__.py
"""
Router principal de la API
"""
from fastapi import APIRouter, Depends
from dosewatch.core.config import get_settings
from dosewatch.core.dependencies import get_current_user

from . import attendance, dispensations, enrollments, patients

settings = get_settings()

# Router principal de la API
api_router = APIRouter()

api_router.include_router(
    dispensations.router,
    prefix="/dispensations",
    tags=["dispensations"],
    dependencies=[Depends(get_current_user)]
)

api_router.include_router(
    attendance.router,
    prefix="/attendance",
    tags=["attendance"],
    dependencies=[Depends(get_current_user)]
)

api_router.include_router(
    enrollments.router,
    prefix="/enrollments",
    tags=["enrollments"],
    dependencies=[Depends(get_current_user)]
)

api_router.include_router(
    patients.router,
    prefix="/patients",
    tags=["patients"],
    dependencies=[Depends(get_current_user)]
)


# Endpoints adicionales de la API
@api_router.get("/health")
async def api_health():
    """Health check específico de la API"""
    return {
        "status": "healthy",
        "service": settings.PROJECT_NAME,
        "version": settings.VERSION
    }

