"""Main API router."""

from fastapi import APIRouter

from dataroom_ai.routers.rag import router as rag_router
from dataroom_ai.routers.tenant_status import router as tenant_status_router

api_router = APIRouter()
api_router.include_router(rag_router, prefix="/tenants/{customer_slug}", tags=["rag"])
api_router.include_router(tenant_status_router, prefix="/tenant-status", tags=["tenant_status"])
