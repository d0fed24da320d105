"""
Health check endpoints for the User Service
"""
from fastapi import APIRouter, HTTPException, status
from datetime import datetime
from typing import Dict, Any

from ..db import check_db_connection

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Returns:
        dict: Health status and timestamp
    """
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/ready", status_code=status.HTTP_200_OK)
def readiness_check() -> Dict[str, Any]:
    """
    Readiness check endpoint with database status.

    Raises:
        HTTPException: 503 if the database is unreachable
    """
    db_connected = check_db_connection()

    response = {
        "status": "ready" if db_connected else "not_ready",
        "database": "connected" if db_connected else "disconnected",
        "timestamp": datetime.utcnow().isoformat()
    }

    if not db_connected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=response
        )

    return response
