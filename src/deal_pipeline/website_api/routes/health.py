"""Health check routes."""

from fastapi import APIRouter, Depends

from ...core.errors import PersistenceError
from ..dependencies import get_service

router = APIRouter(tags=["health"])

READY_PATH = "health/ready"


@router.get("/health")
async def health():
    return {"status": "healthy", "service": "deal-pipeline-api", "version": "1.0.0"}


@router.get("/ready")
def ready(service=Depends(get_service)):
    """Readiness check - a single keyed read against the document store."""
    try:
        service.store.get(READY_PATH)
        return {"status": "ready"}
    except PersistenceError as e:
        return {"status": "not_ready", "detail": e.message}
