"""Health check endpoint for liveness probes."""

from fastapi import APIRouter, status
from fastapi.responses import PlainTextResponse

router = APIRouter()


@router.get(
    "/health",
    response_class=PlainTextResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
    tags=["health"],
)
async def health_check() -> str:
    """
    Report that the process is serving requests.

    The relay keeps all state in memory and has no backing services, so
    liveness is the only thing to report.
    """
    return "OK"
