"""Health check endpoint for the tasktint API."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request

from tasktint.config import APP_VERSION

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Service status, version and coloring core stats.

    Reports ``degraded`` while the installed color snapshot came from a
    failed storage read.
    """
    service = request.app.state.service
    stats = service.stats()

    return {
        "status": "degraded" if stats["cache"]["degraded"] else "healthy",
        "service": "tasktint",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "coloring": stats,
    }
