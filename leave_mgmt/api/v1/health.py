"""
Health check endpoint
"""
from fastapi import APIRouter
from leave_mgmt.core.config import settings
from leave_mgmt.core.constants import SERVICE_NAME

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Health check endpoint

    Returns service status and version.
    """
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "version": settings.VERSION or "1.0.0",
    }
