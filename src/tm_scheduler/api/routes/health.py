"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...db.supabase import get_supabase_client
from ...persistence.database import check_schedules_table

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Report whether schedules are stored in Supabase or on local disk."""
    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "backend": "filesystem",
            "message": "Supabase not configured. Set TMS_SUPABASE_URL and TMS_SUPABASE_KEY environment variables.",
        }

    try:
        count = check_schedules_table(supabase)
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "backend": "supabase",
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
    return {
        "configured": True,
        "connected": True,
        "backend": "supabase",
        "schedules_count": count,
        "message": f"Database connected. Found {count} schedules.",
    }
