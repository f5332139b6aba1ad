"""
Health Router
Liveness endpoint and service banner. Neither is rate limited.
"""

from datetime import datetime, timezone

from fastapi import APIRouter


router = APIRouter()


@router.get("/")
async def root():
    """Service banner."""
    return {"message": "hello world"}


@router.get("/healthz")
async def health_check():
    """
    Liveness probe - is the app process running?
    Returns 200 if the process is alive.
    """
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
