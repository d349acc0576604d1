from fastapi import APIRouter

from credgate.api.clients.router import router as clients_router
from credgate.api.external.router import router as external_router
from credgate.api.health.router import router as health_router
from credgate.api.keys.router import router as keys_router
from credgate.api.permissions.router import router as permissions_router

# V1 API router
v1_router = APIRouter(prefix="/v1")

v1_router.include_router(clients_router)
v1_router.include_router(keys_router)
v1_router.include_router(permissions_router)
v1_router.include_router(external_router)

# Main API router
api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(v1_router)
