"""
Order Timing - Health endpoint
"""
import asyncio
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.schemas.timing import HealthResponse

settings = get_settings()
router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Verifies the timing store answers and the engine has loaded its records.
    Returns 200 if healthy, 503 otherwise.
    """
    deps: dict[str, str] = {}
    healthy = True

    store = request.app.state.timing_store
    try:
        await asyncio.wait_for(store.ping(), timeout=settings.HEALTH_CHECK_TIMEOUT)
        deps["timing_store"] = "ok"
    except Exception as e:
        deps["timing_store"] = f"error: {str(e)[:100]}"
        healthy = False

    engine = request.app.state.timing_engine
    if not engine.initialized:
        deps["timing_engine"] = "not loaded"
        healthy = False
    elif engine.degraded:
        deps["timing_engine"] = "degraded: started without stored records"
        healthy = False
    else:
        deps["timing_engine"] = "ok"

    response = HealthResponse(
        status="healthy" if healthy else "degraded",
        service=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        dependencies=deps,
    )

    return JSONResponse(
        content=response.model_dump(),
        status_code=200 if healthy else 503,
    )
