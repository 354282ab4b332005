"""
Health check endpoints.

Liveness never touches the database; readiness pings it.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "storefront",
    }


@router.get("/health/ready")
def readiness_check(request: Request):
    try:
        request.app.state.database.ping()
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unavailable", "checks": {"database": "error"}})

    return {"status": "ready", "checks": {"database": "ok"}}
