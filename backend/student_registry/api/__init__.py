"""
API routes package initialization.
"""

from fastapi import APIRouter

from student_registry.api.students import router as students_router
from student_registry.api.cohorts import router as cohorts_router
from student_registry.api.points import router as points_router
from student_registry.api.imports import router as imports_router
from student_registry.api.reports import router as reports_router
from student_registry.api.dashboard import router as dashboard_router
from student_registry.api.settings import router as settings_router

# Create main API router with v1 versioning
api_router = APIRouter(prefix="/api/v1")

# Include all sub-routers
api_router.include_router(students_router)
api_router.include_router(cohorts_router)
api_router.include_router(points_router)
api_router.include_router(imports_router)
api_router.include_router(reports_router)
api_router.include_router(dashboard_router)
api_router.include_router(settings_router)

__all__ = ["api_router"]
