from fastapi import APIRouter

from site_auditor.features.audit.routes.audit import router as audit_router
from site_auditor.features.health.routes.health import router as health_router
from site_auditor.features.indexing.routes.indexnow import router as indexnow_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(audit_router)
api_router.include_router(indexnow_router)
