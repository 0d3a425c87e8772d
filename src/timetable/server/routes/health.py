"""Health check routes."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        Health status.
    """
    return {"status": "healthy"}


@router.get("/ready")
async def readiness_check(request: Request) -> dict[str, str | int]:
    """Readiness check endpoint.

    Returns:
        Readiness status and the number of loaded timetables.
    """
    registry = request.app.state.registry
    return {"status": "ready", "timetables": len(registry)}
