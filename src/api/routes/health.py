"""Health check endpoint."""

import time
from typing import Optional

from fastapi import APIRouter, Depends

from src.pipelines.inference.pipeline import ConversationOrchestrator

from ..dependencies import get_optional_orchestrator
from ..models.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    orchestrator: Optional[ConversationOrchestrator] = Depends(get_optional_orchestrator)
) -> HealthResponse:
    """Check API and dependency health.

    The booking endpoints work without the assistant, so a missing
    assistant reports ``unhealthy`` for chat only.
    """
    start_time = time.time()
    services = {"api": "up", "bookings": "up"}
    overall_status = "healthy"

    if orchestrator is not None and orchestrator.is_initialized:
        report = orchestrator.health_check()
        services["assistant"] = "up"
        services.update(report["components"])
        if report["status"] != "healthy":
            overall_status = report["status"]
    else:
        services["assistant"] = "down"
        overall_status = "unhealthy"

    response_time_ms = (time.time() - start_time) * 1000

    return HealthResponse(
        status=overall_status,
        services=services,
        response_time_ms=round(response_time_ms, 2)
    )
