"""Portal API router."""

from fastapi import APIRouter

from devportal.api.routes.apikeys import router as apikeys_router
from devportal.api.routes.apiproducts import router as apiproducts_router
from devportal.api.routes.permissions import router as permissions_router
from devportal.api.routes.planpolicies import router as planpolicies_router
from devportal.api.routes.requests import router as requests_router

router = APIRouter()

router.include_router(apiproducts_router, prefix="/apiproducts", tags=["apiproducts"])
router.include_router(requests_router, prefix="/requests", tags=["requests"])
router.include_router(apikeys_router, prefix="/apikeys", tags=["apikeys"])
router.include_router(planpolicies_router, tags=["planpolicies"])
router.include_router(permissions_router, tags=["permissions"])
