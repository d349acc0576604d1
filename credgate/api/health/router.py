"""Health check endpoints for monitoring."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from credgate.api.core.dependencies import StorageDep
from credgate.core.errors import StorageUnavailable

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/")
async def health_check(storage: StorageDep):
    """Readiness: the storage backend answers."""
    try:
        await storage.ping()
    except StorageUnavailable:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "storage": "unavailable"},
        )
    return {"status": "healthy", "storage": "ok"}


@router.get("/liveness")
async def liveness_check():
    """Simple liveness check - indicates if service is running."""
    return {"status": "alive", "service": "credgate"}
