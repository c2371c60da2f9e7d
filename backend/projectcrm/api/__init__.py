"""API router package."""

from fastapi import APIRouter

from projectcrm.api.schemas import ErrorResponse
from projectcrm.api.v1 import (
    api_keys,
    auth,
    clients,
    documents,
    health,
    projects,
    stats,
    tags,
    tasks,
)

# Documented on every route; bodies come from the CRMError handler
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Validation error or conflict"},
    404: {"model": ErrorResponse, "description": "Not found"},
    500: {"model": ErrorResponse, "description": "Store error"},
}

router = APIRouter(responses=ERROR_RESPONSES)

# Include all API routers
router.include_router(health.router, tags=["Health"])
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(tags.router, prefix="/tags", tags=["Tags"])
router.include_router(clients.router, prefix="/clients", tags=["Clients"])
router.include_router(api_keys.router, prefix="/apikeys", tags=["API Keys"])
router.include_router(documents.router, prefix="/documents", tags=["Documents"])
router.include_router(stats.router, prefix="/stats", tags=["Stats"])
