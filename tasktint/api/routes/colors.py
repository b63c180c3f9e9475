"""
Coloring endpoints.

- POST /api/colors/resolve   - resolve colors for a batch of occurrences
- POST /api/repaint          - request a repaint pass
- POST /api/storage/changes  - forward a storage change notification
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, status

from tasktint.api.models import (
    BundleOut,
    RepaintRequest,
    ResolveRequest,
    ResolveResponse,
    StorageChangesRequest,
)
from tasktint.coloring.interfaces import StorageChange
from tasktint.coloring.service import ColoringService
from tasktint.observability.logging import get_logger
from tasktint.observability.telemetry import counter

router = APIRouter(prefix="/api", tags=["colors"])
logger = get_logger(__name__)


def get_service(request: Request) -> ColoringService:
    return request.app.state.service


@router.post("/colors/resolve", response_model=ResolveResponse)
async def resolve_colors(
    payload: ResolveRequest, service: ColoringService = Depends(get_service)
) -> ResolveResponse:
    """Resolve every occurrence against one snapshot, in request order."""
    snapshot = await service.cache.acquire()

    results: list[BundleOut | None] = []
    for item in payload.occurrences:
        bundle = service.resolver.resolve_with(snapshot, item.to_occurrence(), item.to_options())
        results.append(BundleOut.from_bundle(bundle) if bundle else None)

    counter("api.colors_resolved", len(results))
    return ResolveResponse(results=results, degraded=snapshot.degraded)


@router.post("/repaint", status_code=status.HTTP_202_ACCEPTED)
async def request_repaint(
    payload: RepaintRequest, service: ColoringService = Depends(get_service)
) -> dict[str, Any]:
    service.request_repaint(bypass_throttle=payload.bypass_throttle)
    return {"status": "accepted", "context": service.context}


@router.post("/storage/changes")
async def storage_changes(
    payload: StorageChangesRequest, service: ColoringService = Depends(get_service)
) -> dict[str, Any]:
    changes = {
        key: StorageChange(old_value=change.old_value, new_value=change.new_value)
        for key, change in payload.changes.items()
    }
    relevant = service.changes(changes, payload.area)
    logger.debug("Forwarded %d change(s) in %s (relevant=%s)", len(changes), payload.area, relevant)
    return {"relevant": relevant}
